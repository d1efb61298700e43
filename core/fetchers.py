"""
Fetchers — the three data-acquisition routines.

Each fetcher stamps its calls with a monotonically increasing request id.
Only the newest request of a fetcher may write state; a response that
arrives after a newer request was issued is dropped.
"""

from __future__ import annotations
import asyncio
from datetime import datetime, timezone
from typing import Callable, TYPE_CHECKING
import aiohttp
import logging

from core.history import downsample, to_historical_points
from core.state import (
    StateStore,
    history_failed,
    history_loaded,
    history_started,
    quote_failed,
    quote_loaded,
    series_loaded,
)
from provider.coingecko_rest import ProviderError
from provider.models import PricePoint, Quote

if TYPE_CHECKING:
    from provider.coingecko_rest import CoinGeckoRestClient

logger = logging.getLogger(__name__)

# Network/transport, non-2xx and malformed payloads
FETCH_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ProviderError)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SequencedFetcher:
    """Request-id bookkeeping shared by all fetchers."""

    tag = "FETCH"

    def __init__(self, client: "CoinGeckoRestClient", store: StateStore, asset_id: str):
        self.client = client
        self.store = store
        self.asset_id = asset_id
        self._last_request_id = 0

    @property
    def last_request_id(self) -> int:
        return self._last_request_id

    def _next_request_id(self) -> int:
        self._last_request_id += 1
        return self._last_request_id

    def _is_superseded(self, request_id: int) -> bool:
        if request_id != self._last_request_id:
            logger.debug(
                f"[{self.tag}] Dropping response #{request_id} "
                f"(superseded by #{self._last_request_id})"
            )
            return True
        return False


class QuoteFetcher(SequencedFetcher):
    """Spot price + 24h change. Failures keep the last quote and set an error."""

    tag = "QUOTE"

    def __init__(
        self,
        client: "CoinGeckoRestClient",
        store: StateStore,
        asset_id: str,
        now: Callable[[], datetime] = utcnow,
    ):
        super().__init__(client, store, asset_id)
        self._now = now

    async def run(self):
        request_id = self._next_request_id()
        try:
            price, change = await self.client.get_simple_price(self.asset_id)
        except FETCH_ERRORS as e:
            if self._is_superseded(request_id):
                return
            logger.error(f"[QUOTE] Fetch error: {e!r}")
            self.store.apply(quote_failed, f"Error: {str(e) or 'Failed to fetch price'}. Retrying...")
            return

        if self._is_superseded(request_id):
            return
        quote = Quote(price=price, change_24h_percent=change, observed_at=self._now())
        self.store.apply(quote_loaded, quote)
        logger.debug(f"[QUOTE] {self.asset_id}: {price} ({change:+.2f}%)")


class SeriesFetcher(SequencedFetcher):
    """Short-term series for the currently selected timeframe."""

    tag = "SERIES"

    async def run(self):
        request_id = self._next_request_id()
        timeframe = self.store.state.timeframe
        try:
            raw = await self.client.get_market_chart(self.asset_id, timeframe.days)
        except FETCH_ERRORS as e:
            # Prior series stays on screen; nothing user-visible
            logger.error(f"[SERIES] {timeframe.value}: fetch failed: {e!r}")
            return

        if self._is_superseded(request_id):
            return
        points = tuple(PricePoint(timestamp_ms=ts, price=price) for ts, price in raw)
        self.store.apply(series_loaded, points)
        logger.info(f"[SERIES] {timeframe.value}: {len(points)} points")


class HistoryFetcher(SequencedFetcher):
    """Long-term series. Fetched and downsampled once per session."""

    tag = "HISTORY"

    def __init__(
        self,
        client: "CoinGeckoRestClient",
        store: StateStore,
        asset_id: str,
        days: int = 3650,
        stride: int = 30,
    ):
        super().__init__(client, store, asset_id)
        self.days = days
        self.stride = stride

    @property
    def started(self) -> bool:
        return self._last_request_id > 0

    async def run(self):
        if self.started:
            logger.debug("[HISTORY] Already fetched this session, skipping")
            return

        self._next_request_id()
        self.store.apply(history_started)
        try:
            raw = await self.client.get_market_chart(self.asset_id, self.days)
            points = downsample(to_historical_points(raw), self.stride)
        except FETCH_ERRORS as e:
            logger.error(f"[HISTORY] {self.days}d fetch failed: {e!r}")
            self.store.apply(history_failed)
            return

        self.store.apply(history_loaded, points)
        logger.info(f"[HISTORY] {len(raw)} raw points -> {len(points)} after downsampling")
