from __future__ import annotations

import abc
from typing import List

from ..types import DrawRecord


class StructuralMismatch(RuntimeError):
    """The results container is missing: the page layout has changed."""


class RowParseError(ValueError):
    """A single table row could not be turned into a draw."""


class ResultDataSource(abc.ABC):
    """Abstract result provider."""

    @abc.abstractmethod
    async def fetch_latest_draws(self) -> List[DrawRecord]:
        """Return the valid draws found upstream, newest first.

        Implementations raise `StructuralMismatch` when the page no longer
        has the expected shape and let transport errors propagate; an empty
        list means the source was readable but held no valid draw.
        """

    async def close(self) -> None:
        """Optional hook for connectors that require cleanup."""
        return None
