"""
Leadership analysis: normalization, first-touch grouping, pairwise matching,
aggregation, ranking and profit and loss.
"""

from .aggregator import RunningMean, summarize, summarize_market_entries, summarize_trader
from .gaps import GapStatistics, gap_statistics
from .grouper import group_first_touches, group_histories, market_entry_order
from .matcher import match_markets
from .normalizer import normalize_trade, normalize_trades, to_float
from .pnl import analyze_trader_pnl, position_pnl, rank_by_pnl
from .ranker import qualifies, rank_traders

__all__ = [
    "RunningMean",
    "summarize",
    "summarize_market_entries",
    "summarize_trader",
    "GapStatistics",
    "gap_statistics",
    "group_first_touches",
    "group_histories",
    "market_entry_order",
    "match_markets",
    "normalize_trade",
    "normalize_trades",
    "to_float",
    "analyze_trader_pnl",
    "position_pnl",
    "rank_by_pnl",
    "qualifies",
    "rank_traders",
]
