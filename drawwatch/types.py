from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Tuple

MAIN_NUMBERS = 6
NUMBERS_PER_DRAW = MAIN_NUMBERS + 1

_DISPLAY_DATE_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})")


def to_iso_date(text: str) -> str:
    """Find a ``DD/MM/YYYY`` date in ``text`` and return it as ``YYYY-MM-DD``.

    Raises ``ValueError`` when no such pattern is present or when it does
    not name a real calendar date (e.g. ``31/02/2024``).
    """
    match = _DISPLAY_DATE_RE.search(text)
    if match is None:
        raise ValueError(f"No DD/MM/YYYY date in {text!r}")
    day, month, year = match.groups()
    parsed = dt.date(int(year), int(month), int(day))
    return parsed.isoformat()


def to_display_date(iso_date: str) -> str:
    parsed = dt.date.fromisoformat(iso_date)
    return parsed.strftime("%d/%m/%Y")


class CheckOutcome(str, Enum):
    CONFIG_ERROR = "config_error"
    NO_RESULTS = "no_results"
    NEW_DRAW = "new_draw"
    UP_TO_DATE = "up_to_date"


@dataclass(frozen=True)
class DrawRecord:
    """One SuperEnalotto draw: 6 main numbers plus the Jolly."""

    date: str
    numbers: FrozenSet[int]

    def __post_init__(self) -> None:
        numbers = frozenset(self.numbers)
        object.__setattr__(self, "numbers", numbers)
        if len(numbers) != NUMBERS_PER_DRAW:
            raise ValueError(
                f"A draw needs {NUMBERS_PER_DRAW} distinct numbers, got {len(numbers)}"
            )
        if any(n <= 0 for n in numbers):
            raise ValueError("Draw numbers must be positive")
        # Validates the format; ISO strings compare correctly as plain strings.
        dt.date.fromisoformat(self.date)

    @classmethod
    def build(cls, date: str, numbers: Iterable[int]) -> "DrawRecord":
        return cls(date=date, numbers=frozenset(int(n) for n in numbers))

    def sorted_numbers(self) -> Tuple[int, ...]:
        return tuple(sorted(self.numbers))

    def numbers_label(self) -> str:
        return ", ".join(str(n) for n in self.sorted_numbers())
