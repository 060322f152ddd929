from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from .config import WatchSettings
from .datasource import ResultDataSource, StructuralMismatch
from .state import StateStore
from .types import CheckOutcome, DrawRecord

ERROR_TITLE = "SuperEnalotto Scraper Error"


class NotifierProtocol(Protocol):
    async def notify(self, title: str, message: str) -> None:
        ...

    async def close(self) -> None:
        ...


@dataclass(frozen=True)
class CheckResult:
    outcome: CheckOutcome
    status_code: int
    body: str
    latest_date: Optional[str] = None

    @classmethod
    def config_error(cls, reason: str) -> "CheckResult":
        return cls(CheckOutcome.CONFIG_ERROR, 500, f"Configuration error: {reason}")


class DrawCheckScheduler:
    """Compare the newest scraped draw with the stored one and notify on change.

    Each check is a sequence of awaited steps with no internal concurrency.
    Callers must not run two checks against the same store at once.
    """

    def __init__(
        self,
        settings: WatchSettings,
        datasource: ResultDataSource,
        store: StateStore,
        notifier: NotifierProtocol,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings
        self._datasource = datasource
        self._store = store
        self._notifier = notifier
        self._logger = logger or logging.getLogger("drawwatch.scheduler")

    async def run_forever(self) -> None:
        interval = self._settings.poll_interval_seconds
        self._logger.info("Check loop started; poll interval=%s", interval)
        try:
            while True:
                try:
                    result = await self.check()
                    self._logger.info("Check finished: %s", result.body)
                except Exception as exc:
                    self._logger.exception("Check iteration failed: %s", exc)
                await asyncio.sleep(interval)
        finally:
            await self.close()

    async def run_once(self) -> CheckResult:
        try:
            return await self.check()
        finally:
            await self.close()

    async def close(self) -> None:
        await self._datasource.close()
        await self._store.close()
        await self._notifier.close()

    async def scrape(self) -> Optional[List[DrawRecord]]:
        """Fetch draws newest first, or None after reporting a failure."""
        try:
            draws = await self._datasource.fetch_latest_draws()
        except StructuralMismatch as exc:
            self._logger.error(
                "Could not find the results table body. Site structure might have changed: %s", exc
            )
            await self._notifier.notify(
                ERROR_TITLE,
                "Failed to find results table body. Selectors might need updating.",
            )
            return None
        except Exception as exc:
            self._logger.error("Error during scraping: %s", exc)
            await self._notifier.notify(ERROR_TITLE, f"Failed to scrape data: {exc}")
            return None

        if not draws:
            self._logger.warning("Results table found but no valid rows were parsed.")
            if self._settings.alert_on_empty_table:
                await self._notifier.notify(
                    ERROR_TITLE,
                    "Results table has no valid rows. Selectors might need updating.",
                )
        return draws

    async def check(self) -> CheckResult:
        draws = await self.scrape()
        if not draws:
            self._logger.info("No results scraped or scraping failed. Exiting.")
            return CheckResult(
                CheckOutcome.NO_RESULTS, 200, "Scraping failed or yielded no results."
            )

        latest = draws[0]
        last_date = await self._store.get_last_date()
        self._logger.info("Latest scraped date: %s", latest.date)
        self._logger.info("Last processed date from store: %s", last_date or "unknown")

        if last_date is not None and latest.date <= last_date:
            self._logger.info("No new extractions found since last run.")
            return CheckResult(
                CheckOutcome.UP_TO_DATE, 200, "No new extractions found.", latest.date
            )

        self._logger.info("New extraction found for date: %s", latest.date)
        await self._notifier.notify(
            f"New SuperEnalotto Extraction ({latest.date})",
            f"Numbers: {latest.numbers_label()}",
        )
        if not await self._store.set_last_date(latest.date):
            self._logger.warning(
                "Could not persist %s; the next run may notify this draw again.", latest.date
            )
        return CheckResult(
            CheckOutcome.NEW_DRAW,
            200,
            f"New extraction found for {latest.date} and notification sent.",
            latest.date,
        )
