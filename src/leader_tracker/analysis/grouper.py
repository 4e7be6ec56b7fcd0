"""
First-touch grouping of trades.

Both functions fold a time-sorted trade sequence into one MarketFirstTouch per
key: the first trade seen for a key fixes the first-touch fields and later
trades only add to the running volume and trade count. Sorting is the
caller's job; out-of-order input would make "first" meaningless.
"""

from dataclasses import replace
from typing import Callable, Iterable, Mapping

from ..models import MarketFirstTouch, Trade, TraderHistory


def _fold_first_touches(
    trades: Iterable[Trade],
    key: Callable[[Trade], str],
) -> dict[str, MarketFirstTouch]:
    touches: dict[str, MarketFirstTouch] = {}

    for trade in trades:
        k = key(trade)
        touch = touches.get(k)
        if touch is None:
            touches[k] = MarketFirstTouch(
                trader_address=trade.trader_address,
                market_id=trade.market_id,
                first_timestamp=trade.timestamp,
                first_side=trade.side,
                first_price=trade.price,
                first_usd_value=trade.usd_value,
                cumulative_usd_volume=trade.usd_value,
                trade_count_in_market=1,
                position=len(touches) + 1,
            )
        else:
            touches[k] = replace(
                touch,
                cumulative_usd_volume=touch.cumulative_usd_volume + trade.usd_value,
                trade_count_in_market=touch.trade_count_in_market + 1,
            )

    return touches


def group_first_touches(history: TraderHistory) -> dict[str, MarketFirstTouch]:
    """Map each market a trader touched to their first touch in it.

    ``position`` is the order in which the trader entered their markets.
    """
    return _fold_first_touches(history.trades, key=lambda t: t.market_id)


def market_entry_order(trades: Iterable[Trade]) -> dict[str, MarketFirstTouch]:
    """Map each trader in a single market's trades to their first touch.

    Iteration order of the result is arrival order, and ``position`` is the
    trader's 1-indexed arrival rank (1 = first trader in the market).
    """
    return _fold_first_touches(trades, key=lambda t: t.trader_address)


def group_histories(
    histories: Iterable[TraderHistory],
) -> dict[str, Mapping[str, MarketFirstTouch]]:
    """First touches per trader, keyed by trader address then market."""
    return {history.address: group_first_touches(history) for history in histories}
