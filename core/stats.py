"""
Price statistics over the short-term series.
Recomputed on every render; the series is at most a few hundred points.
"""

from __future__ import annotations
from typing import Sequence
from provider.models import PricePoint, PriceStats


def compute_stats(points: Sequence[PricePoint]) -> PriceStats:
    """Min / max / arithmetic mean of the price field. Empty series -> all zero."""
    if not points:
        return PriceStats(min=0.0, max=0.0, mean=0.0)

    prices = [p.price for p in points]
    return PriceStats(
        min=min(prices),
        max=max(prices),
        mean=sum(prices) / len(prices),
    )
