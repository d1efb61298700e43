"""
CoinGecko public REST API client.
Read-only, unauthenticated. Handles the simple-price and market-chart endpoints.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import aiohttp
import logging

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base class for quote provider failures."""


class HTTPStatusError(ProviderError):
    """Provider answered with a status outside 2xx."""

    def __init__(self, status: int):
        super().__init__(f"HTTP error! status: {status}")
        self.status = status


class MalformedPayloadError(ProviderError):
    """Response body did not have the expected shape."""


class CoinGeckoRestClient:
    """Async CoinGecko API wrapper."""

    def __init__(
        self,
        base_url: str,
        vs_currency: str = "usd",
        timeout_sec: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.vs_currency = vs_currency
        self._timeout_sec = timeout_sec
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            if self._timeout_sec is not None:
                timeout = aiohttp.ClientTimeout(total=self._timeout_sec)
                self._session = aiohttp.ClientSession(timeout=timeout)
            else:
                self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get(self, endpoint: str, params: Dict[str, str]) -> Any:
        """GET a JSON document. Raises HTTPStatusError on non-2xx."""
        session = await self._get_session()
        url = f"{self.base_url}{endpoint}"
        headers = {"Accept": "application/json"}

        try:
            async with session.get(url, headers=headers, params=params) as resp:
                if not 200 <= resp.status < 300:
                    raise HTTPStatusError(resp.status)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise MalformedPayloadError(f"Invalid JSON from {endpoint}: {e}") from e

        except Exception as e:
            logger.error(f"[REST] GET {endpoint} Exception: {e}")
            raise

    # ==================== Market Endpoints ====================

    async def get_simple_price(self, asset_id: str) -> Tuple[float, float]:
        """
        Get spot price and 24h percent change.
        Payload: {<asset_id>: {usd: number, usd_24h_change: number}}
        """
        data = await self._get(
            "/simple/price",
            {
                "ids": asset_id,
                "vs_currencies": self.vs_currency,
                "include_24hr_change": "true",
            },
        )
        try:
            entry = data[asset_id]
            price = float(entry[self.vs_currency])
            change = float(entry[f"{self.vs_currency}_24h_change"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Unexpected simple price payload: {e!r}") from e
        return price, change

    async def get_market_chart(self, asset_id: str, days: int) -> List[Tuple[int, float]]:
        """
        Get the price series for the last `days` days.
        Payload: {prices: [[epoch_ms, price], ...]}, oldest first.
        """
        data = await self._get(
            f"/coins/{asset_id}/market_chart",
            {"vs_currency": self.vs_currency, "days": str(days)},
        )
        try:
            return [(int(p[0]), float(p[1])) for p in data["prices"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Unexpected market chart payload: {e!r}") from e
