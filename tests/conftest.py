import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from config import TrackerConfig
from core.state import StateStore

FIXED_NOW = datetime(2024, 3, 1, 12, 30, 45, tzinfo=timezone.utc)


class FakeClock:
    """Drop-in for asyncio.sleep; time only moves when advance() is called."""

    def __init__(self):
        self.now = 0.0
        self._waiters = []  # (deadline, future)

    async def sleep(self, delay):
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + delay, fut))
        await fut

    @property
    def pending(self):
        return sum(1 for _, fut in self._waiters if not fut.done())

    async def advance(self, seconds):
        # Spawned tasks register their sleeps before time moves
        await settle()
        self.now += seconds
        due = [w for w in self._waiters if w[0] <= self.now]
        self._waiters = [w for w in self._waiters if w[0] > self.now]
        for _, fut in due:
            if not fut.done():
                fut.set_result(None)
        await settle()


async def settle(rounds=20):
    """Let spawned tasks run to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def mock_client():
    """Mock CoinGeckoRestClient"""
    client = MagicMock()
    client.get_simple_price = AsyncMock(return_value=(3000.5, -2.25))
    client.get_market_chart = AsyncMock(
        return_value=[(1700000000000, 100.0), (1700003600000, 110.0)]
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def config():
    cfg = TrackerConfig()
    cfg.dashboard.log_path = "nonexistent/tracker.log"
    return cfg
