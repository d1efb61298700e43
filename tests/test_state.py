from conftest import FIXED_NOW

from core.state import (
    StateStore,
    TrackerState,
    history_failed,
    history_loaded,
    history_started,
    quote_failed,
    quote_loaded,
    series_loaded,
    startup_completed,
    timeframe_selected,
)
from provider.models import HistoricalPoint, HistoryStatus, PricePoint, Quote, Timeframe

QUOTE = Quote(price=3000.5, change_24h_percent=-2.25, observed_at=FIXED_NOW)


def test_initial_state():
    state = TrackerState()
    assert state.quote is None
    assert state.error is None
    assert state.timeframe is Timeframe.H24
    assert state.series == ()
    assert state.history_status is HistoryStatus.IDLE
    assert state.loading is True


def test_quote_loaded_clears_error():
    state = quote_failed(TrackerState(), "Error: boom. Retrying...")
    state = quote_loaded(state, QUOTE)
    assert state.quote == QUOTE
    assert state.error is None


def test_quote_failed_keeps_last_quote():
    state = quote_loaded(TrackerState(), QUOTE)
    state = quote_failed(state, "Error: HTTP error! status: 429. Retrying...")
    assert state.quote == QUOTE
    assert "Retrying" in state.error


def test_series_replaced_wholesale():
    first = (PricePoint(1, 1.0), PricePoint(2, 2.0), PricePoint(3, 3.0))
    second = (PricePoint(10, 10.0),)
    state = series_loaded(series_loaded(TrackerState(), first), second)
    assert state.series == second


def test_history_lifecycle():
    state = history_started(TrackerState())
    assert state.history_status is HistoryStatus.LOADING
    points = (HistoricalPoint("Jan 24", 2281.46),)
    assert history_loaded(state, points).history == points
    failed = history_failed(state)
    assert failed.history_status is HistoryStatus.FAILED
    assert failed.history == ()


def test_transitions_do_not_mutate_input():
    original = TrackerState()
    timeframe_selected(original, Timeframe.D30)
    startup_completed(original)
    assert original == TrackerState()


def test_store_notifies_listeners_with_old_and_new():
    store = StateStore()
    seen = []
    store.subscribe(lambda old, new: seen.append((old.timeframe, new.timeframe)))
    store.apply(timeframe_selected, Timeframe.D7)
    assert seen == [(Timeframe.H24, Timeframe.D7)]


def test_store_skips_listeners_when_nothing_changed():
    store = StateStore()
    seen = []
    store.subscribe(lambda old, new: seen.append(new))
    store.apply(timeframe_selected, Timeframe.H24)
    assert seen == []


def test_unsubscribe():
    store = StateStore()
    seen = []
    unsubscribe = store.subscribe(lambda old, new: seen.append(new))
    unsubscribe()
    store.apply(startup_completed)
    assert seen == []


def test_failing_listener_does_not_block_others():
    store = StateStore()
    seen = []

    def broken(old, new):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    store.subscribe(lambda old, new: seen.append(new.loading))
    store.apply(startup_completed)
    assert store.state.loading is False
    assert seen == [False]
