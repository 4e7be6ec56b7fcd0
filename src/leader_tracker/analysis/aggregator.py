"""
Leadership aggregation.

Summaries are built as a pure fold: an immutable LeadershipState is threaded
through every matched market (and every gap record inside it) with
``functools.reduce``. Averages are kept as running means so a long scan never
has to hold all of its samples.
"""

import logging
from dataclasses import dataclass, field, replace
from functools import partial, reduce
from typing import Iterable, Mapping, Sequence

from ..models import (
    MarketFirstTouch,
    MatchedMarket,
    PairwiseGap,
    TraderHistory,
    TraderLeadershipSummary,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunningMean:
    """Incremental arithmetic mean."""
    count: int = 0
    mean: float = 0.0

    def add(self, sample: float) -> "RunningMean":
        count = self.count + 1
        return RunningMean(count=count, mean=self.mean + (sample - self.mean) / count)

    @property
    def value(self) -> float:
        # Empty means are 0, never NaN
        return self.mean if self.count else 0.0


@dataclass(frozen=True)
class LeadershipState:
    """Accumulator for one trader's fold over matched markets."""
    trader_address: str
    matched_market_count: int = 0
    times_leader: int = 0
    times_in_top_n: int = 0
    matched_volume_usd: float = 0.0
    trade_count: int = 0
    lead: RunningMean = field(default_factory=RunningMean)
    follow: RunningMean = field(default_factory=RunningMean)
    entry_rank: RunningMean = field(default_factory=RunningMean)
    entry_delay: RunningMean = field(default_factory=RunningMean)

    def to_summary(self, total_trades: int) -> TraderLeadershipSummary:
        return TraderLeadershipSummary(
            trader_address=self.trader_address,
            total_trades=total_trades,
            matched_market_count=self.matched_market_count,
            times_leader=self.times_leader,
            avg_lead_seconds=self.lead.value,
            avg_follow_seconds=self.follow.value,
            times_in_top_n=self.times_in_top_n,
            matched_volume_usd=self.matched_volume_usd,
            lead_count=self.lead.count,
            follow_count=self.follow.count,
            avg_entry_rank=self.entry_rank.value,
            avg_entry_delay_seconds=self.entry_delay.value,
        )


def fold_gap(state: LeadershipState, gap: PairwiseGap) -> LeadershipState:
    """Fold one gap record into a trader's state."""
    if not gap.involves(state.trader_address):
        return state

    sample = abs(gap.delta_seconds)
    if gap.leader == state.trader_address:
        return replace(state, times_leader=state.times_leader + 1, lead=state.lead.add(sample))
    return replace(state, follow=state.follow.add(sample))


def _fold_entry(
    state: LeadershipState,
    touch: MarketFirstTouch,
    rank: int,
    market_start: int,
    top_n: int,
) -> LeadershipState:
    return replace(
        state,
        matched_market_count=state.matched_market_count + 1,
        times_in_top_n=state.times_in_top_n + (1 if rank <= top_n else 0),
        matched_volume_usd=state.matched_volume_usd + touch.cumulative_usd_volume,
        trade_count=state.trade_count + touch.trade_count_in_market,
        entry_rank=state.entry_rank.add(rank),
        entry_delay=state.entry_delay.add(touch.first_timestamp - market_start),
    )


def fold_market(state: LeadershipState, market: MatchedMarket, top_n: int) -> LeadershipState:
    """Fold one matched market into a trader's state."""
    touch = market.touch_for(state.trader_address)
    if touch is None:
        return state

    state = _fold_entry(
        state,
        touch,
        rank=market.entry_rank(state.trader_address),
        market_start=market.earliest_timestamp,
        top_n=top_n,
    )
    return reduce(fold_gap, market.gaps, state)


def summarize_trader(
    history: TraderHistory,
    matched_markets: Iterable[MatchedMarket],
    top_n: int,
) -> TraderLeadershipSummary:
    """Leadership summary of one trader over all matched markets."""
    initial = LeadershipState(trader_address=history.address)
    state = reduce(partial(fold_market, top_n=top_n), matched_markets, initial)
    return state.to_summary(total_trades=len(history))


def summarize(
    histories: Iterable[TraderHistory],
    matched_markets: Sequence[MatchedMarket],
    top_n: int,
) -> list[TraderLeadershipSummary]:
    """Summaries for every trader, in the order the histories were given."""
    return [summarize_trader(history, matched_markets, top_n) for history in histories]


def summarize_market_entries(
    entries_by_market: Mapping[str, Mapping[str, MarketFirstTouch]],
    top_n: int,
) -> list[TraderLeadershipSummary]:
    """Summaries from per-market entry orders (the market scan).

    Each value maps trader -> first touch with ``position`` as arrival rank.
    A trader leads a market when they were its first trader. Summaries come
    back in order of first appearance across the scan.
    """
    states: dict[str, LeadershipState] = {}

    for market_id, entries in entries_by_market.items():
        if not entries:
            continue
        market_start = min(t.first_timestamp for t in entries.values())

        for trader, touch in entries.items():
            state = states.get(trader) or LeadershipState(trader_address=trader)
            state = _fold_entry(state, touch, touch.position, market_start, top_n)
            if touch.position == 1:
                state = replace(state, times_leader=state.times_leader + 1)
            states[trader] = state

    logger.info(f"Aggregated {len(states)} traders over {len(entries_by_market)} markets")
    return [state.to_summary(total_trades=state.trade_count) for state in states.values()]
