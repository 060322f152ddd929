import asyncio
import datetime as dt
import unittest
from unittest import mock

import requests

from drawwatch.config import ScraperSettings
from drawwatch.datasource import HtmlTableDataSource, StructuralMismatch, TableLayout, parse_draws
from drawwatch.types import DrawRecord, to_display_date, to_iso_date


def _row(date: str, numbers, jolly) -> str:
    spans = "".join(f'<span class="numero">{n}</span>' for n in numbers)
    return (
        "<tr>"
        f"<td>{date}</td>"
        f"<td>{spans}</td>"
        f'<td><span class="numero-jolly">{jolly}</span></td>'
        "</tr>"
    )


def _page(*rows: str) -> str:
    return (
        "<html><body><section id=\"archivioEstrazioni\"><table><tbody>"
        + "".join(rows)
        + "</tbody></table></section></body></html>"
    )


class ParseDrawsTests(unittest.TestCase):
    def test_parses_rows_and_sorts_newest_first(self) -> None:
        html = _page(
            _row("02/01/2024", [1, 2, 3, 4, 5, 6], 7),
            _row("05/01/2024", [10, 20, 30, 40, 50, 60], 70),
            _row("04/01/2024", [11, 12, 13, 14, 15, 16], 17),
        )

        draws = parse_draws(html)

        self.assertEqual([d.date for d in draws], ["2024-01-05", "2024-01-04", "2024-01-02"])
        self.assertEqual(draws[0].sorted_numbers(), (10, 20, 30, 40, 50, 60, 70))

    def test_output_is_strictly_descending_and_starts_with_max_date(self) -> None:
        dates = ["13/03/2023", "01/12/2022", "28/02/2024", "15/07/2023", "31/12/2023"]
        html = _page(*(_row(d, [1, 2, 3, 4, 5, 6], 9) for d in dates))

        draws = parse_draws(html)

        output_dates = [d.date for d in draws]
        self.assertEqual(output_dates[0], max(to_iso_date(d) for d in dates))
        for newer, older in zip(output_dates, output_dates[1:]):
            self.assertGreater(newer, older)

    def test_missing_table_raises_structural_mismatch(self) -> None:
        html = "<html><body><table><tbody><tr><td>01/01/2024</td></tr></tbody></table></body></html>"

        with self.assertRaises(StructuralMismatch):
            parse_draws(html)

    def test_empty_table_yields_no_draws(self) -> None:
        self.assertEqual(parse_draws(_page()), [])

    def test_rows_with_bad_dates_are_skipped(self) -> None:
        html = _page(
            _row("not a date", [1, 2, 3, 4, 5, 6], 7),
            _row("31/02/2024", [1, 2, 3, 4, 5, 6], 7),
            _row("03/01/2024", [1, 2, 3, 4, 5, 6], 7),
        )

        with self.assertLogs("drawwatch.datasource", level="WARNING") as logs:
            draws = parse_draws(html)

        self.assertEqual([d.date for d in draws], ["2024-01-03"])
        self.assertEqual(sum("Skipping row" in line for line in logs.output), 2)

    def test_rows_without_seven_distinct_numbers_are_skipped(self) -> None:
        html = _page(
            _row("01/01/2024", [1, 2, 3, 4, 5], 7),  # five main numbers
            _row("02/01/2024", [1, 2, 3, 4, 5, 6], "x"),  # unreadable jolly
            _row("03/01/2024", [1, 1, 3, 4, 5, 6], 7),  # duplicate main number
            _row("04/01/2024", [1, 2, 3, 4, 5, 6], 6),  # jolly repeats a main number
            _row("05/01/2024", [1, 2, "a", 4, 5, 6], 7),  # non numeric main number
            _row("06/01/2024", [0, 2, 3, 4, 5, 6], 7),  # not positive
            _row("07/01/2024", [1, 2, 3, 4, 5, 6], 7),
        )

        draws = parse_draws(html)

        self.assertEqual([d.date for d in draws], ["2024-01-07"])

    def test_only_first_six_main_numbers_are_read(self) -> None:
        html = _page(_row("08/01/2024", [1, 2, 3, 4, 5, 6, 99], 7))

        draws = parse_draws(html)

        self.assertEqual(draws[0].sorted_numbers(), (1, 2, 3, 4, 5, 6, 7))

    def test_row_without_cells_never_crashes(self) -> None:
        html = _page("<tr></tr>", "<tr><td>09/01/2024</td></tr>")

        self.assertEqual(parse_draws(html), [])

    def test_custom_layout(self) -> None:
        html = (
            "<table class='results'><tbody>"
            "<tr><td>n. 4</td><td>10/01/2024</td>"
            "<td><b>1</b><b>2</b><b>3</b><b>4</b><b>5</b><b>6</b><i>7</i></td></tr>"
            "</tbody></table>"
        )
        layout = TableLayout(
            table_selector="table.results tbody",
            date_column=1,
            numbers_column=2,
            number_selector="b",
            jolly_column=2,
            jolly_selector="i",
        )

        draws = parse_draws(html, layout)

        self.assertEqual(draws, [DrawRecord.build("2024-01-10", range(1, 8))])


class DateHelperTests(unittest.TestCase):
    def test_round_trip_over_calendar(self) -> None:
        day = dt.date(2023, 12, 25)
        for _ in range(800):
            display = day.strftime("%d/%m/%Y")
            iso = to_iso_date(display)
            self.assertEqual(iso, day.isoformat())
            self.assertEqual(to_display_date(iso), display)
            day += dt.timedelta(days=1)

    def test_date_found_inside_surrounding_text(self) -> None:
        self.assertEqual(to_iso_date("Estrazione n. 12 del 05/01/2024"), "2024-01-05")

    def test_invalid_dates_raise(self) -> None:
        for text in ("", "2024-01-05", "5/1/2024", "30/02/2023", "01/13/2024"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    to_iso_date(text)


class DrawRecordTests(unittest.TestCase):
    def test_requires_seven_distinct_numbers(self) -> None:
        with self.assertRaises(ValueError):
            DrawRecord.build("2024-01-05", [1, 2, 3, 4, 5, 6])
        with self.assertRaises(ValueError):
            DrawRecord.build("2024-01-05", [1, 2, 3, 4, 5, 6, 6])

    def test_rejects_non_positive_numbers(self) -> None:
        with self.assertRaises(ValueError):
            DrawRecord.build("2024-01-05", [0, 2, 3, 4, 5, 6, 7])

    def test_numbers_label_is_sorted(self) -> None:
        record = DrawRecord.build("2024-01-05", [40, 3, 88, 12, 7, 61, 25])
        self.assertEqual(record.numbers_label(), "3, 7, 12, 25, 40, 61, 88")


class HtmlTableDataSourceTests(unittest.TestCase):
    def _make_source(self, session) -> HtmlTableDataSource:
        settings = ScraperSettings(url="https://example.test/archive", user_agent="TestAgent/1.0")
        return HtmlTableDataSource(settings, session=session)

    def test_fetch_sends_user_agent_and_parses(self) -> None:
        session = requests.Session()
        response = mock.Mock()
        response.text = _page(_row("05/01/2024", [1, 2, 3, 4, 5, 6], 7))
        response.raise_for_status.return_value = None
        with mock.patch.object(session, "get", return_value=response) as get:
            source = self._make_source(session)
            draws = asyncio.run(source.fetch_latest_draws())

        get.assert_called_once_with("https://example.test/archive", timeout=10)
        self.assertEqual(session.headers["User-Agent"], "TestAgent/1.0")
        self.assertEqual(draws[0].date, "2024-01-05")

    def test_http_errors_propagate(self) -> None:
        session = requests.Session()
        response = mock.Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        with mock.patch.object(session, "get", return_value=response):
            source = self._make_source(session)
            with self.assertRaises(requests.HTTPError):
                asyncio.run(source.fetch_latest_draws())


if __name__ == "__main__":
    unittest.main()
