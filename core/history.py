"""
Historical series shaping: raw daily pairs to chart-ready points.

Each [timestamp, price] pair becomes a HistoricalPoint labelled with the
short month name and 2-digit year (UTC), price rounded to cents on the binary
float.
The series is then thinned to every `stride`-th point so ten years of daily
data lands around 120 chart points.
"""

from __future__ import annotations
from datetime import datetime, timezone
import math
from typing import Iterable, List, Sequence, Tuple, TypeVar
from provider.models import HistoricalPoint

T = TypeVar("T")


def month_label(timestamp_ms: int) -> str:
    """1700000000000 -> 'Nov 23'."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.strftime("%b %y")


def round_cents(price: float) -> float:
    """Half-up on the float product, so 1.005 -> 1.0 but 0.125 -> 0.13."""
    return math.floor(price * 100 + 0.5) / 100


def to_historical_points(raw: Iterable[Tuple[int, float]]) -> List[HistoricalPoint]:
    return [
        HistoricalPoint(label=month_label(ts), price=round_cents(price))
        for ts, price in raw
    ]


def downsample(points: Sequence[T], stride: int = 30) -> List[T]:
    """Keep indices 0, stride, 2*stride, ... -> ceil(len / stride) points."""
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")
    return list(points[::stride])
