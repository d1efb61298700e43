"""
Data models for the price tracker.
Prices stay float (as delivered by the provider); cent rounding goes through Decimal.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Timeframe(Enum):
    H24 = "24h"
    D7 = "7d"
    D30 = "30d"

    @property
    def days(self) -> int:
        """Day-count sent to the market chart endpoint."""
        return _TIMEFRAME_DAYS[self]


_TIMEFRAME_DAYS = {
    Timeframe.H24: 1,
    Timeframe.D7: 7,
    Timeframe.D30: 30,
}


class HistoryStatus(Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Quote:
    """Spot price snapshot. Replaced wholesale, never patched."""
    price: float
    change_24h_percent: float
    observed_at: datetime


@dataclass(frozen=True)
class PricePoint:
    timestamp_ms: int       # Unix ms
    price: float


@dataclass(frozen=True)
class HistoricalPoint:
    label: str              # e.g. "Jan 24"
    price: float            # rounded to cents


@dataclass(frozen=True)
class PriceStats:
    min: float
    max: float
    mean: float
