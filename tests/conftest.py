"""Pytest configuration and fixtures."""

from typing import Callable

import pytest

from leader_tracker.config import Config, set_config
from leader_tracker.models import Trade, TradeSide, TraderHistory


@pytest.fixture(autouse=True)
def isolated_config(tmp_path) -> Config:
    """Use a fresh config with storage under the test's tmp dir."""
    config = Config()
    config.storage.results_dir = tmp_path / "results"
    config.storage.database_path = tmp_path / "leader_tracker.db"
    config.polymarket.trader_fetch_delay_seconds = 0.0
    config.polymarket.market_fetch_delay_seconds = 0.0
    config.polymarket.profile_fetch_delay_seconds = 0.0
    config.polymarket.requests_per_second = 1000
    set_config(config)
    yield config
    set_config(None)


def make_trade(
    trader: str,
    market: str,
    timestamp: int,
    side: TradeSide = TradeSide.BUY,
    price: float = 0.5,
    size: float = 100.0,
    usd_value: float | None = None,
) -> Trade:
    return Trade(
        id=f"{trader}:{market}:{timestamp}",
        timestamp=timestamp,
        trader_address=trader,
        market_id=market,
        side=side,
        price=price,
        size=size,
        usd_value=price * size if usd_value is None else usd_value,
    )


@pytest.fixture
def trade_factory() -> Callable[..., Trade]:
    return make_trade


@pytest.fixture
def history_factory() -> Callable[..., TraderHistory]:
    """Build a history from (market, timestamp) pairs."""

    def build(trader: str, *touches: tuple[str, int], usd_value: float = 50.0) -> TraderHistory:
        return TraderHistory.from_trades(
            trader,
            [make_trade(trader, market, ts, usd_value=usd_value) for market, ts in touches],
        )

    return build
