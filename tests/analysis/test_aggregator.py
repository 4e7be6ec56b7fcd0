"""Tests for leadership aggregation."""

import math
import random
from functools import reduce

import pytest

from leader_tracker.analysis.aggregator import (
    LeadershipState,
    RunningMean,
    fold_gap,
    summarize,
    summarize_market_entries,
    summarize_trader,
)
from leader_tracker.analysis.grouper import group_histories, market_entry_order
from leader_tracker.analysis.matcher import match_markets
from leader_tracker.models import PairwiseGap


class TestRunningMean:
    def test_empty_is_zero(self) -> None:
        assert RunningMean().value == 0.0
        assert not math.isnan(RunningMean().value)

    def test_add_is_pure(self) -> None:
        mean = RunningMean()
        updated = mean.add(10)
        assert mean.count == 0
        assert updated.count == 1
        assert updated.value == 10

    @pytest.mark.parametrize("seed", range(10))
    def test_matches_batch_mean(self, seed) -> None:
        rng = random.Random(seed)
        samples = [rng.uniform(0, 86_400) for _ in range(rng.randint(1, 200))]

        running = reduce(lambda m, s: m.add(s), samples, RunningMean())

        assert running.count == len(samples)
        assert running.value == pytest.approx(sum(samples) / len(samples))


class TestFoldGap:
    def test_literal_gap_records(self) -> None:
        gaps = [
            PairwiseGap("0xaaa", "0xbbb", 40, leader="0xaaa"),
            PairwiseGap("0xccc", "0xaaa", 30, leader="0xccc"),
            PairwiseGap("0xaaa", "0xddd", 20, leader="0xaaa"),
            PairwiseGap("0xeee", "0xaaa", 90, leader="0xeee"),
            PairwiseGap("0xbbb", "0xccc", 5, leader="0xbbb"),  # Not involving 0xaaa
        ]

        state = reduce(fold_gap, gaps, LeadershipState(trader_address="0xaaa"))

        assert state.times_leader == 2
        assert state.lead.value == pytest.approx(30)
        assert state.follow.count == 2
        assert state.follow.value == pytest.approx(60)

    def test_negative_delta_uses_magnitude(self) -> None:
        state = fold_gap(
            LeadershipState(trader_address="0xbbb"),
            PairwiseGap("0xaaa", "0xbbb", -25, leader="0xbbb"),
        )
        assert state.lead.value == 25


class TestSummarize:
    @pytest.fixture
    def histories(self, history_factory):
        return [
            history_factory("0xttt", ("M1", 100), ("M2", 200), ("M3", 1090)),
            history_factory("0xxxx", ("M1", 150), ("M2", 260), ("M3", 1000)),
            history_factory("0xyyy", ("M3", 1060)),
            history_factory("0xzzz", ("M9", 5)),
        ]

    @pytest.fixture
    def matched(self, histories):
        return match_markets(group_histories(histories), time_window_seconds=3600)

    def test_leading_and_following_trader(self, histories, matched) -> None:
        summary = summarize_trader(histories[0], matched, top_n=2)

        assert summary.trader_address == "0xttt"
        assert summary.total_trades == 3
        assert summary.matched_market_count == 3
        assert summary.times_leader == 2
        assert summary.avg_lead_seconds == pytest.approx(55)
        assert summary.avg_follow_seconds == pytest.approx(60)
        assert summary.lead_count == 2
        assert summary.follow_count == 2
        assert summary.times_in_top_n == 2
        assert summary.avg_entry_rank == pytest.approx(5 / 3)
        assert summary.avg_entry_delay_seconds == pytest.approx(30)
        assert summary.matched_volume_usd == pytest.approx(150)

    def test_trader_without_matches_has_zero_averages(self, histories, matched) -> None:
        summary = summarize_trader(histories[3], matched, top_n=2)

        assert summary.matched_market_count == 0
        assert summary.times_leader == 0
        assert summary.avg_lead_seconds == 0
        assert summary.avg_follow_seconds == 0
        assert summary.leader_rate == 0.0

    def test_follower_only_has_zero_lead(self, history_factory) -> None:
        histories = [
            history_factory("0xaaa", ("M1", 0)),
            history_factory("0xbbb", ("M1", 30)),
        ]
        matched = match_markets(group_histories(histories), time_window_seconds=3600)

        follower = summarize_trader(histories[1], matched, top_n=5)

        assert follower.times_leader == 0
        assert follower.avg_lead_seconds == 0
        assert follower.avg_follow_seconds == 30

    def test_summaries_keep_input_order(self, histories, matched) -> None:
        summaries = summarize(histories, matched, top_n=2)
        assert [s.trader_address for s in summaries] == ["0xttt", "0xxxx", "0xyyy", "0xzzz"]

    def test_does_not_mutate_matched_markets(self, histories, matched) -> None:
        before = [(m.market_id, m.gaps, tuple(p.cumulative_usd_volume for p in m.participants)) for m in matched]
        summarize(histories, matched, top_n=2)
        after = [(m.market_id, m.gaps, tuple(p.cumulative_usd_volume for p in m.participants)) for m in matched]
        assert before == after


class TestSummarizeMarketEntries:
    def test_first_and_top_n_counts(self, trade_factory) -> None:
        entries = {
            "m1": market_entry_order([
                trade_factory("0xaaa", "m1", 100, usd_value=10),
                trade_factory("0xbbb", "m1", 130, usd_value=20),
                trade_factory("0xccc", "m1", 160, usd_value=30),
            ]),
            "m2": market_entry_order([
                trade_factory("0xbbb", "m2", 500, usd_value=5),
                trade_factory("0xaaa", "m2", 560, usd_value=5),
                trade_factory("0xaaa", "m2", 600, usd_value=5),
            ]),
        }

        summaries = {s.trader_address: s for s in summarize_market_entries(entries, top_n=2)}

        a = summaries["0xaaa"]
        assert a.matched_market_count == 2
        assert a.times_leader == 1
        assert a.times_in_top_n == 2
        assert a.total_trades == 3
        assert a.matched_volume_usd == pytest.approx(20)
        assert a.avg_entry_rank == pytest.approx(1.5)
        assert a.avg_entry_delay_seconds == pytest.approx(30)

        c = summaries["0xccc"]
        assert c.times_leader == 0
        assert c.times_in_top_n == 0
        assert c.avg_entry_delay_seconds == pytest.approx(60)

    def test_empty_scan(self) -> None:
        assert summarize_market_entries({}, top_n=5) == []
