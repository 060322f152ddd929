from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from ..config import ScraperSettings
from ..types import MAIN_NUMBERS, NUMBERS_PER_DRAW, DrawRecord, to_iso_date
from .base import ResultDataSource, RowParseError, StructuralMismatch

logger = logging.getLogger("drawwatch.datasource")


@dataclass(frozen=True)
class TableLayout:
    """Where the draw fields live inside the results table."""

    table_selector: str = "section#archivioEstrazioni table tbody"
    date_column: int = 0
    numbers_column: int = 1
    number_selector: str = "span.numero"
    jolly_column: int = 2
    jolly_selector: str = "span.numero-jolly"


def _parse_number(text: str) -> Optional[int]:
    text = text.strip()
    if not text or not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    return value if value > 0 else None


def _cell(cells: List[Tag], index: int) -> Optional[Tag]:
    if 0 <= index < len(cells):
        return cells[index]
    return None


def _row_numbers(cells: List[Tag], layout: TableLayout) -> Set[int]:
    numbers: Set[int] = set()
    found = 0

    numbers_cell = _cell(cells, layout.numbers_column)
    if numbers_cell is not None:
        for element in numbers_cell.select(layout.number_selector):
            if found == MAIN_NUMBERS:
                break
            value = _parse_number(element.get_text())
            if value is not None:
                numbers.add(value)
                found += 1

    # The Jolly only counts once all six main numbers were read.
    if found == MAIN_NUMBERS:
        jolly_cell = _cell(cells, layout.jolly_column)
        jolly = jolly_cell.select_one(layout.jolly_selector) if jolly_cell is not None else None
        if jolly is not None:
            value = _parse_number(jolly.get_text())
            if value is not None:
                numbers.add(value)
    return numbers


def _parse_row(row: Tag, layout: TableLayout) -> DrawRecord:
    cells = row.find_all("td")
    date_cell = _cell(cells, layout.date_column)
    date_text = date_cell.get_text(" ", strip=True) if date_cell is not None else ""
    try:
        draw_date = to_iso_date(date_text)
    except ValueError as exc:
        raise RowParseError(f"Could not parse date: {date_text!r}") from exc

    numbers = _row_numbers(cells, layout)
    if len(numbers) != NUMBERS_PER_DRAW:
        raise RowParseError(
            f"Invalid data (Date: {date_text}, Numbers found: {len(numbers)})"
        )
    return DrawRecord.build(draw_date, numbers)


def parse_draws(html: str, layout: TableLayout = TableLayout()) -> List[DrawRecord]:
    """Extract valid draws from the archive page, newest first.

    Raises `StructuralMismatch` when the results table body is missing.
    Rows that do not hold a date and seven distinct numbers are logged and
    skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    table_body = soup.select_one(layout.table_selector)
    if table_body is None:
        raise StructuralMismatch(
            f"Results table not found with selector {layout.table_selector!r}"
        )

    results: List[DrawRecord] = []
    for index, row in enumerate(table_body.find_all("tr"), start=1):
        try:
            results.append(_parse_row(row, layout))
        except RowParseError as exc:
            logger.warning("Skipping row %s: %s", index, exc)

    results.sort(key=lambda record: record.date, reverse=True)
    logger.info("Scraped %s valid entries.", len(results))
    return results


class HtmlTableDataSource(ResultDataSource):
    """Scrape draws from the public results archive page."""

    def __init__(
        self,
        settings: ScraperSettings,
        layout: Optional[TableLayout] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._layout = layout or TableLayout(table_selector=settings.table_selector)
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": settings.user_agent})

    async def fetch_latest_draws(self) -> List[DrawRecord]:
        html = await asyncio.to_thread(self._get_html)
        return parse_draws(html, self._layout)

    def _get_html(self) -> str:
        logger.info("Fetching data from %s", self._settings.url)
        resp = self._session.get(self._settings.url, timeout=self._settings.timeout_seconds)
        resp.raise_for_status()
        return resp.text

    async def close(self) -> None:
        self._session.close()
