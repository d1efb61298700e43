"""
View derivation — TrackerState to render-ready values.
Pure functions; the dashboard serializes the result as JSON.
"""

from __future__ import annotations
from datetime import timezone
from typing import Any, Dict, List, Optional, Sequence

from core.state import TrackerState
from core.stats import compute_stats
from provider.models import HistoryStatus, PricePoint, Timeframe

SPARK_WIDTH = 100
SPARK_HEIGHT = 50
HISTORY_TICKS = 6


def format_usd(value: float) -> str:
    """3000.5 -> '$3,000.50'."""
    return f"${value:,.2f}"


def format_change(change_pct: float) -> str:
    """-2.25 -> '▼ 2.25% (24h)'. Zero counts as up."""
    arrow = "▲" if change_pct >= 0 else "▼"
    return f"{arrow} {abs(change_pct):.2f}% (24h)"


def sparkline_points(points: Sequence[PricePoint]) -> str:
    """
    Polyline coordinates on a 100x50 viewbox, newest at the right.
    A single point or a flat series is drawn at mid-height.
    """
    if not points:
        return ""

    prices = [p.price for p in points]
    low, high = min(prices), max(prices)
    span = high - low
    last = len(prices) - 1

    coords = []
    for idx, price in enumerate(prices):
        x = (idx / last) * SPARK_WIDTH if last else 0.0
        if span:
            y = SPARK_HEIGHT - ((price - low) / span) * SPARK_HEIGHT
        else:
            y = SPARK_HEIGHT / 2
        coords.append(f"{x:g},{y:g}")
    return " ".join(coords)


def _quote_block(state: TrackerState, pair_label: str) -> Optional[Dict[str, Any]]:
    quote = state.quote
    if quote is None:
        return None
    return {
        "pair": pair_label,
        "price": format_usd(quote.price),
        "change": format_change(quote.change_24h_percent),
        "direction": "positive" if quote.change_24h_percent >= 0 else "negative",
        "last_updated": quote.observed_at.astimezone(timezone.utc).strftime("%H:%M:%S UTC"),
    }


def _history_block(state: TrackerState) -> Dict[str, Any]:
    points = state.history
    if state.history_status in (HistoryStatus.IDLE, HistoryStatus.LOADING):
        status, message = "loading", "Loading 10-year data..."
    elif points:
        status, message = "ready", None
    else:
        # Empty READY series is shown the same as a failure
        status, message = "failed", "Failed to load historical data"

    if status != "ready":
        return {"status": status, "message": message, "points": [], "tick_interval": 0, "ticks": []}

    interval = len(points) // HISTORY_TICKS
    # Fewer points than ticks: label every one
    step = interval or 1
    return {
        "status": status,
        "message": message,
        "points": [{"date": p.label, "price": p.price} for p in points],
        "tick_interval": interval,
        "ticks": [p.label for p in points[::step]],
    }


def render_view(
    state: TrackerState,
    pair_label: str = "ETH/USD",
    refresh_sec: float = 15,
) -> Dict[str, Any]:
    """Everything a front end needs to draw the dashboard."""
    stats = compute_stats(state.series)
    window = state.timeframe.value
    quote_block = _quote_block(state, pair_label)

    view: Dict[str, Any] = {
        "loading": state.loading,
        "error": state.error,
        "retry_available": state.error is not None,
        "quote": quote_block,
        "stats": None,
        "short_term": None,
        "history": None,
        "footer": f"Data from CoinGecko • Updates every {refresh_sec:g} seconds",
    }

    # Charts and stats only appear once there is a price to anchor them
    if quote_block is None:
        return view

    timeframes: List[str] = [tf.value for tf in Timeframe]
    view["stats"] = [
        {"label": f"{window} High", "value": format_usd(stats.max)},
        {"label": f"{window} Low", "value": format_usd(stats.min)},
        {"label": f"{window} Average", "value": format_usd(stats.mean)},
    ]
    view["short_term"] = {
        "timeframe": window,
        "timeframes": timeframes,
        "points": [{"timestamp": p.timestamp_ms, "price": p.price} for p in state.series],
        "sparkline": sparkline_points(state.series),
    }
    view["history"] = _history_block(state)
    return view
