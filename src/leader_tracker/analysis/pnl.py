"""
Profit and loss for Polymarket traders from their open positions and trades.

Open positions are marked at their current value against the cash spent on
them. Net trade cash flow (sells minus buys) is added on top, so a trader who
has already exited positions is still credited for them.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from ..models import PositionPnl, Trade, TradeSide, TraderPnl
from .normalizer import to_float

logger = logging.getLogger(__name__)


def position_pnl(record: Mapping[str, Any]) -> Optional[PositionPnl]:
    """Value one raw position record, or None when it holds no shares."""
    size = to_float(record.get("size"))
    if size <= 0:
        return None

    value = to_float(record.get("currentValue"))
    invested = abs(to_float(record.get("cashBalance")) or to_float(record.get("initialValue")))
    pnl = value - invested

    return PositionPnl(
        condition_id=str(record.get("conditionId") or ""),
        title=str(record.get("title") or "Unknown"),
        outcome=str(record.get("outcome") or ""),
        size=size,
        avg_price=invested / size,
        current_price=value / size,
        value=value,
        invested=invested,
        pnl=pnl,
        pnl_percent=pnl / invested * 100 if invested > 0 else 0.0,
    )


def analyze_trader_pnl(
    address: str,
    positions: Iterable[Any],
    trades: Iterable[Trade],
    name: str = "",
) -> Optional[TraderPnl]:
    """Build a TraderPnl, or None when the trader has neither positions nor trades."""
    records = [r for r in positions or [] if isinstance(r, Mapping)]
    trades = list(trades or [])
    if not records and not trades:
        return None

    open_positions = [p for p in (position_pnl(r) for r in records) if p is not None]
    unrealized = sum(p.pnl for p in open_positions)
    invested = sum(p.invested for p in open_positions)
    winning = sum(1 for p in open_positions if p.pnl > 0)
    losing = sum(1 for p in open_positions if p.pnl < 0)

    bought = sum(t.usd_value for t in trades if t.side == TradeSide.BUY)
    sold = sum(t.usd_value for t in trades if t.side == TradeSide.SELL)
    total_pnl = sold - bought + unrealized

    # Every reported position counts, including closed-out zero-size ones
    count = len(records)
    by_pnl = sorted(open_positions, key=lambda p: p.pnl, reverse=True)

    return TraderPnl(
        address=address.lower(),
        name=name,
        total_pnl=total_pnl,
        realized_pnl=total_pnl,
        unrealized_pnl=unrealized,
        total_volume=max(invested, bought),
        position_count=count,
        winning_positions=winning,
        losing_positions=losing,
        win_rate=winning / count * 100 if count else 0.0,
        avg_pnl_per_position=total_pnl / count if count else 0.0,
        best_position=by_pnl[0] if by_pnl else None,
        worst_position=by_pnl[-1] if by_pnl else None,
    )


def rank_by_pnl(results: Iterable[TraderPnl]) -> list[TraderPnl]:
    """Most profitable first; ties keep their input order."""
    return sorted(results, key=lambda r: r.total_pnl, reverse=True)
