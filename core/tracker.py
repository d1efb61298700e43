"""
Tracker — wires client, state, fetchers and scheduler together.
Owns the lifecycle: start() runs the startup sequence, stop() tears
every timer and pending fetch down.
"""

from __future__ import annotations
import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from config import TrackerConfig
from core.fetchers import HistoryFetcher, QuoteFetcher, SeriesFetcher, utcnow
from core.scheduler import SleepFn, TaskRegistry, TaskSpec, Trigger
from core.state import StateStore, TrackerState, startup_completed, timeframe_selected
from core.view import render_view
from provider.coingecko_rest import CoinGeckoRestClient
from provider.models import Timeframe

logger = logging.getLogger(__name__)


class Tracker:
    """Single-asset price tracker."""

    def __init__(
        self,
        config: TrackerConfig,
        client: Optional[CoinGeckoRestClient] = None,
        sleep: SleepFn = asyncio.sleep,
        now: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        provider = config.provider
        schedule = config.schedule

        self.client = client or CoinGeckoRestClient(
            base_url=provider.base_url,
            vs_currency=provider.vs_currency,
            timeout_sec=provider.request_timeout_sec,
        )
        self.store = StateStore(TrackerState(timeframe=Timeframe(schedule.default_timeframe)))

        self.quote_fetcher = QuoteFetcher(self.client, self.store, provider.asset_id, now=now)
        self.series_fetcher = SeriesFetcher(self.client, self.store, provider.asset_id)
        self.history_fetcher = HistoryFetcher(
            self.client, self.store, provider.asset_id,
            days=schedule.history_days,
            stride=schedule.history_stride,
        )

        # Registration order is the startup order
        self.registry = TaskRegistry(self.store, sleep=sleep)
        self.registry.register(TaskSpec(
            name="quote",
            run=self.quote_fetcher.run,
            triggers=frozenset({Trigger.STARTUP, Trigger.TIMER, Trigger.MANUAL}),
            interval_sec=schedule.quote_refresh_sec,
        ))
        self.registry.register(TaskSpec(
            name="series",
            run=self.series_fetcher.run,
            triggers=frozenset({Trigger.STARTUP, Trigger.STATE_CHANGE}),
            watch=lambda state: state.timeframe,
        ))
        self.registry.register(TaskSpec(
            name="history",
            run=self.history_fetcher.run,
            triggers=frozenset({Trigger.STARTUP}),
        ))

        self._started = False
        self._closed = False

    @property
    def state(self) -> TrackerState:
        return self.store.state

    async def start(self):
        """Arm timers, then run quote -> series -> history in sequence."""
        if self._started:
            return
        self._started = True
        logger.info(f"[BOOT] Tracking {self.config.provider.pair_label}")

        self.registry.start()
        await self.registry.run_startup()
        self.store.apply(startup_completed)
        logger.info("[BOOT] Initial data loaded.")

    async def stop(self):
        logger.info("[SHUTDOWN] Stopping tracker...")
        self._closed = True
        await self.registry.stop()
        await self.client.close()
        self._started = False
        logger.info("[SHUTDOWN] Complete.")

    # ─── User actions ───

    def select_timeframe(self, value: str) -> Timeframe:
        """Switch the short-term window. Raises ValueError on unknown values."""
        timeframe = Timeframe(value)
        self.store.apply(timeframe_selected, timeframe)
        return timeframe

    def retry_quote(self) -> Optional[asyncio.Task]:
        """Refetch the quote now. None once the tracker has been stopped."""
        if self._closed:
            logger.warning("[QUOTE] Retry ignored: tracker is stopped")
            return None
        return self.registry.trigger("quote")

    def view(self) -> Dict[str, Any]:
        return render_view(
            self.store.state,
            pair_label=self.config.provider.pair_label,
            refresh_sec=self.config.schedule.quote_refresh_sec,
        )
