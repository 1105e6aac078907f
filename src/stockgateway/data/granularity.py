"""Time-series granularities and cache key construction."""

from __future__ import annotations

from enum import Enum


class Granularity(str, Enum):
    """Time resolution of a requested series."""

    INTRADAY = "INTRADAY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

    @property
    def function(self) -> str:
        """Provider function name, e.g. ``TIME_SERIES_DAILY``."""
        return f"TIME_SERIES_{self.value}"

    @classmethod
    def parse(cls, value: Granularity | str) -> Granularity:
        """
        Resolve a granularity from a member or a case-insensitive name.

        Raises:
            ValueError: If the value names no known granularity.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid = ", ".join(g.value.lower() for g in cls)
            raise ValueError(f"Unknown granularity '{value}'. Expected one of: {valid}") from None


def normalize_symbol(symbol: str) -> str:
    """Case-fold a ticker for use in a cache key."""
    return symbol.upper()


def cache_key(granularity: Granularity | str, symbol: str) -> str:
    """Build the cache key for a (granularity, symbol) pair, e.g. ``DAILY_IBM``."""
    return f"{Granularity.parse(granularity).value}_{normalize_symbol(symbol)}"
