"""
Configuration management for the leader tracker.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class PolymarketConfig:
    """Configuration for the Polymarket Data and Gamma APIs."""
    # Data API serves trades and user activity, Gamma API serves market metadata
    data_api_url: str = "https://data-api.polymarket.com"
    gamma_api_url: str = "https://gamma-api.polymarket.com"
    site_url: str = "https://polymarket.com"  # Leaderboard page lives on the public site
    user_agent: str = "LeaderTracker/0.1.0"
    timeout_seconds: float = 15.0

    # Rate limiting
    requests_per_second: int = 5
    trader_fetch_delay_seconds: float = 0.3  # Pause between trader histories
    market_fetch_delay_seconds: float = 0.1  # Pause between market trade pages
    profile_fetch_delay_seconds: float = 0.2  # Pause between trader P&L lookups

    # Pagination
    page_size: int = 100
    max_parallel_pages: int = 3
    max_trades: int = 1000  # Cap on trades fetched per trader

    # Positions below this share count are left out
    position_size_threshold: float = 0.01


@dataclass
class LeadershipConfig:
    """Configuration for the leadership analysis."""

    # Trader comparison
    history_days: int = 30
    time_window_hours: float = 24.0  # Max first-trade gap for a meaningful pair

    # Ranking
    top_n: int = 5  # Entry rank at or below this counts as "top N"
    min_leader_count: int = 3  # Min times first to be ranked

    # Market scan
    min_market_volume: float = 1000.0
    max_markets: int = 100
    market_trade_limit: int = 100

    @property
    def time_window_seconds(self) -> float:
        return self.time_window_hours * 3600


@dataclass
class ProfitabilityConfig:
    """Configuration for the profitable trader finder."""
    max_traders: int = 30  # Leaderboard traders to analyze
    activity_limit: int = 500  # Activity records used for trade cash flow


@dataclass
class StorageConfig:
    """Configuration for result storage."""
    results_dir: Path = field(default_factory=lambda: Path("data/results"))
    database_path: Path = field(default_factory=lambda: Path("data/leader_tracker.db"))
    cache_ttl_seconds: int = 300  # 5 minutes
    max_cached_markets: int = 1000


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid integer for {name}: {value!r}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid number for {name}: {value!r}")
        return default


@dataclass
class Config:
    """Main configuration container."""
    polymarket: PolymarketConfig = field(default_factory=PolymarketConfig)
    leadership: LeadershipConfig = field(default_factory=LeadershipConfig)
    profitability: ProfitabilityConfig = field(default_factory=ProfitabilityConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    # Traders to compare when none are given on the command line
    compare_traders: list[str] = field(default_factory=list)

    # Global settings
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # Trader comparison
        traders = os.getenv("COMPARE_TRADERS", "")
        config.compare_traders = [t.strip().lower() for t in traders.split(",") if t.strip()]
        config.leadership.history_days = _env_int("COMPARE_HISTORY_DAYS", config.leadership.history_days)
        config.leadership.time_window_hours = _env_float(
            "COMPARE_TIME_WINDOW_HOURS", config.leadership.time_window_hours
        )
        config.polymarket.max_trades = _env_int("COMPARE_MAX_TRADES", config.polymarket.max_trades)

        # Market scan
        config.leadership.min_market_volume = _env_float("LEADER_MIN_VOLUME", config.leadership.min_market_volume)
        config.leadership.max_markets = _env_int("LEADER_MAX_MARKETS", config.leadership.max_markets)
        config.leadership.top_n = _env_int("LEADER_TOP_N", config.leadership.top_n)
        config.leadership.min_leader_count = _env_int("LEADER_MIN_FIRST", config.leadership.min_leader_count)

        # Profitable traders
        config.profitability.max_traders = _env_int("MAX_TRADERS", config.profitability.max_traders)

        # API
        config.polymarket.requests_per_second = _env_int(
            "POLYMARKET_REQUESTS_PER_SECOND", config.polymarket.requests_per_second
        )

        # Debug mode
        config.debug = os.getenv("DEBUG", "false").lower() == "true"
        config.log_level = os.getenv("LOG_LEVEL", "INFO")

        # Storage
        results_dir = os.getenv("RESULTS_DIR")
        if results_dir:
            config.storage.results_dir = Path(results_dir)
        db_path = os.getenv("DATABASE_PATH")
        if db_path:
            config.storage.database_path = Path(db_path)

        return config


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
