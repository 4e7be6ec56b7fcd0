"""
Pairwise leadership matching across traders.

Given every trader's first touch per market, find the markets shared by at
least two traders and measure, for each pair of participants, who entered
first and by how many seconds.
"""

import logging
from dataclasses import replace
from itertools import combinations
from typing import Mapping, Optional

from ..models import MarketFirstTouch, MatchedMarket, PairwiseGap

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2


def invert_first_touches(
    per_trader: Mapping[str, Mapping[str, MarketFirstTouch]],
) -> dict[str, dict[str, MarketFirstTouch]]:
    """Turn trader -> market -> touch into market -> trader -> touch."""
    by_market: dict[str, dict[str, MarketFirstTouch]] = {}
    for trader, touches in per_trader.items():
        for market_id, touch in touches.items():
            by_market.setdefault(market_id, {})[trader] = touch
    return by_market


def pair_gap(a: MarketFirstTouch, b: MarketFirstTouch) -> PairwiseGap:
    """Gap record for two touches; the earlier one leads.

    On equal timestamps the lexicographically smaller address leads.
    """
    delta = b.first_timestamp - a.first_timestamp
    if delta > 0:
        leader = a.trader_address
    elif delta < 0:
        leader = b.trader_address
    else:
        leader = min(a.trader_address, b.trader_address)

    return PairwiseGap(
        trader_a=a.trader_address,
        trader_b=b.trader_address,
        delta_seconds=delta,
        leader=leader,
    )


def match_market(
    market_id: str,
    touches: Mapping[str, MarketFirstTouch],
    time_window_seconds: float,
    market_title: str = "",
) -> Optional[MatchedMarket]:
    """Build the MatchedMarket for one market, or None if no pair is in window."""
    participants = sorted(
        (replace(touch, trader_address=trader) for trader, touch in touches.items()),
        key=lambda t: (t.first_timestamp, t.trader_address),
    )
    participants = [
        replace(touch, position=i) for i, touch in enumerate(participants, start=1)
    ]

    gaps = []
    for a, b in combinations(participants, 2):
        gap = pair_gap(a, b)
        if abs(gap.delta_seconds) <= time_window_seconds:
            gaps.append(gap)

    if not gaps:
        return None

    return MatchedMarket(
        market_id=market_id,
        participants=tuple(participants),
        gaps=tuple(gaps),
        market_title=market_title,
    )


def match_markets(
    per_trader: Mapping[str, Mapping[str, MarketFirstTouch]],
    time_window_seconds: float,
    min_participants: int = MIN_PARTICIPANTS,
    market_titles: Optional[Mapping[str, str]] = None,
) -> list[MatchedMarket]:
    """Find markets where traders entered within ``time_window_seconds`` of each other.

    Markets touched by fewer than ``min_participants`` traders are skipped,
    and pairs further apart than the window are discarded. The result is
    ordered by each market's earliest entry, most recent first.
    """
    if time_window_seconds < 0:
        raise ValueError(f"time window must be non-negative, got {time_window_seconds}")

    market_titles = market_titles or {}
    by_market = invert_first_touches(per_trader)

    matched = []
    for market_id, touches in by_market.items():
        if len(touches) < max(min_participants, MIN_PARTICIPANTS):
            continue

        market = match_market(
            market_id,
            touches,
            time_window_seconds,
            market_title=market_titles.get(market_id, ""),
        )
        if market is not None:
            matched.append(market)

    logger.info(
        f"Matched {len(matched)} of {len(by_market)} markets "
        f"(window {time_window_seconds:.0f}s)"
    )

    return sorted(matched, key=lambda m: m.earliest_timestamp, reverse=True)
