"""
Tracker state — one immutable record, updated only through transitions.

Each fetch outcome maps to exactly one transition function
(state, ...) -> new state. The StateStore applies them on the event loop
thread and notifies listeners with (old, new).
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple
import logging

from provider.models import HistoricalPoint, HistoryStatus, PricePoint, Quote, Timeframe

logger = logging.getLogger(__name__)

Listener = Callable[["TrackerState", "TrackerState"], None]


@dataclass(frozen=True)
class TrackerState:
    quote: Optional[Quote] = None
    error: Optional[str] = None
    timeframe: Timeframe = Timeframe.H24
    series: Tuple[PricePoint, ...] = field(default_factory=tuple)
    history: Tuple[HistoricalPoint, ...] = field(default_factory=tuple)
    history_status: HistoryStatus = HistoryStatus.IDLE
    loading: bool = True


# ─── Transitions ───

def quote_loaded(state: TrackerState, quote: Quote) -> TrackerState:
    return replace(state, quote=quote, error=None)


def quote_failed(state: TrackerState, message: str) -> TrackerState:
    """Keep the last known quote; only the error slot changes."""
    return replace(state, error=message)


def series_loaded(state: TrackerState, points: Tuple[PricePoint, ...]) -> TrackerState:
    return replace(state, series=tuple(points))


def timeframe_selected(state: TrackerState, timeframe: Timeframe) -> TrackerState:
    return replace(state, timeframe=timeframe)


def history_started(state: TrackerState) -> TrackerState:
    return replace(state, history_status=HistoryStatus.LOADING)


def history_loaded(state: TrackerState, points: Tuple[HistoricalPoint, ...]) -> TrackerState:
    return replace(state, history=tuple(points), history_status=HistoryStatus.READY)


def history_failed(state: TrackerState) -> TrackerState:
    return replace(state, history=(), history_status=HistoryStatus.FAILED)


def startup_completed(state: TrackerState) -> TrackerState:
    return replace(state, loading=False)


class StateStore:
    """Holds the current TrackerState and fans out changes."""

    def __init__(self, initial: Optional[TrackerState] = None):
        self._state = initial or TrackerState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> TrackerState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, transition: Callable[..., TrackerState], *args) -> TrackerState:
        old = self._state
        new = transition(old, *args)
        self._state = new
        if new != old:
            for listener in list(self._listeners):
                try:
                    listener(old, new)
                except Exception as e:
                    logger.error(f"[STATE] Listener error after {transition.__name__}: {e}", exc_info=True)
        return new
