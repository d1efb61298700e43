"""
ETH Price Tracker — Configuration
All tunable parameters in one place.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ProviderConfig:
    base_url: str = "https://api.coingecko.com/api/v3"
    asset_id: str = "ethereum"
    symbol: str = "ETH"
    vs_currency: str = "usd"
    request_timeout_sec: Optional[float] = None   # None = aiohttp default

    @property
    def pair_label(self) -> str:
        return f"{self.symbol}/{self.vs_currency.upper()}"


@dataclass
class ScheduleConfig:
    quote_refresh_sec: float = 15.0       # Quote polling period
    default_timeframe: str = "24h"        # Short-term window on startup
    history_days: int = 3650              # ~10 years
    history_stride: int = 30              # Keep every 30th daily point


@dataclass
class DashboardConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    log_path: str = "data/tracker.log"


@dataclass
class TrackerConfig:
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        """Load config with environment variable overrides."""
        config = cls()
        config.provider.base_url = os.getenv("COINGECKO_BASE_URL", config.provider.base_url)
        config.provider.asset_id = os.getenv("TRACKER_ASSET_ID", config.provider.asset_id)
        config.provider.symbol = os.getenv("TRACKER_SYMBOL", config.provider.symbol)
        timeout = os.getenv("REQUEST_TIMEOUT_SEC", "")
        config.provider.request_timeout_sec = float(timeout) if timeout else None
        config.schedule.quote_refresh_sec = float(os.getenv("QUOTE_REFRESH_SEC", "15"))
        config.dashboard.host = os.getenv("DASHBOARD_HOST", config.dashboard.host)
        config.dashboard.port = int(os.getenv("DASHBOARD_PORT", "8080"))
        config.dashboard.log_path = os.getenv("LOG_PATH", config.dashboard.log_path)
        config.log_level = os.getenv("LOG_LEVEL", "INFO")
        return config
