"""
JSON export of comparison, market scan and profitability results.
"""

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..config import get_config
from ..models import MatchedMarket, TraderLeadershipSummary, TraderPnl

if TYPE_CHECKING:
    from ..engine import ComparisonResult, MarketScanResult, ProfitabilityResult

logger = logging.getLogger(__name__)


def summary_to_dict(summary: TraderLeadershipSummary) -> dict:
    data = asdict(summary)
    data["leader_rate"] = summary.leader_rate
    data["profile_url"] = summary.profile_url
    return data


def matched_market_to_dict(market: MatchedMarket) -> dict:
    return {
        "market_id": market.market_id,
        "market_title": market.market_title,
        "polymarket_url": market.url,
        "participants": [
            {
                "trader_address": p.trader_address,
                "entry_rank": p.position,
                "first_timestamp": p.first_timestamp,
                "first_side": p.first_side.value,
                "first_price": p.first_price,
                "first_usd_value": p.first_usd_value,
                "cumulative_usd_volume": p.cumulative_usd_volume,
                "trade_count_in_market": p.trade_count_in_market,
            }
            for p in market.participants
        ],
        "gaps": [asdict(g) for g in market.gaps],
    }


def result_to_dict(result: "ComparisonResult") -> dict:
    """JSON-ready form of a trader comparison."""
    return {
        "config": {
            "history_days": result.history_days,
            "time_window_hours": result.time_window_seconds / 3600,
            "traders": result.traders,
        },
        "timestamp": int(datetime.now().timestamp() * 1000),
        "summaries": [summary_to_dict(s) for s in result.summaries],
        "ranked": [s.trader_address for s in result.ranked],
        "gap_statistics": asdict(result.gap_stats),
        "matched_markets": [matched_market_to_dict(m) for m in result.matched_markets],
    }


def scan_to_dict(result: "MarketScanResult", limit: int = 100) -> dict:
    """JSON-ready form of a market scan, keeping the top ``limit`` traders."""
    return {
        "config": {
            "top_n": result.top_n,
            "min_leader_count": result.min_leader_count,
        },
        "timestamp": int(datetime.now().timestamp() * 1000),
        "total_markets_analyzed": len(result.markets),
        "total_traders_found": result.total_traders,
        "traders": [summary_to_dict(s) for s in result.ranked[:limit]],
    }


def trader_pnl_to_dict(trader: TraderPnl) -> dict:
    data = asdict(trader)
    data["profile_url"] = trader.profile_url
    return data


def profitability_to_dict(result: "ProfitabilityResult") -> dict:
    """JSON-ready form of a profitability ranking."""
    return {
        "timestamp": int(datetime.now().timestamp() * 1000),
        "total_analyzed": len(result.traders),
        "profitable_count": len(result.profitable),
        "traders": [trader_pnl_to_dict(t) for t in result.traders],
    }


def _write(data: dict, directory: Optional[Path], prefix: str) -> Path:
    directory = directory or get_config().storage.results_dir
    directory.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    path = directory / f"{prefix}_{stamp}.json"
    with open(path, "w") as f:
        json.dump(data, f, indent=2)

    logger.info(f"Results saved to {path}")
    return path


def save_comparison(result: "ComparisonResult", directory: Optional[Path] = None) -> Path:
    """Write a comparison to a timestamped JSON file."""
    prefix = "comparison" if result.history_days is None else f"comparison_{result.history_days}d"
    return _write(result_to_dict(result), directory, prefix)


def save_scan(result: "MarketScanResult", directory: Optional[Path] = None) -> Path:
    """Write a market scan to a timestamped JSON file."""
    return _write(scan_to_dict(result), directory, "leaders")


def save_profitability(result: "ProfitabilityResult", directory: Optional[Path] = None) -> Path:
    """Write a profitability ranking to a timestamped JSON file."""
    return _write(profitability_to_dict(result), directory, "profitable")
