"""Tests for raw trade record normalization."""

import pytest

from leader_tracker.analysis.normalizer import (
    normalize_trade,
    normalize_trades,
    to_float,
    to_timestamp,
)
from leader_tracker.engine import analyze_histories
from leader_tracker.models import TradeSide, TraderHistory


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1.5, 1.5),
        (3, 3.0),
        ("0.65", 0.65),
        ("  12.5abc", 12.5),
        ("1e3", 1000.0),
        ("-0.25", -0.25),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (True, 0.0),
        (float("nan"), 0.0),
        ("inf", 0.0),
        ([1, 2], 0.0),
    ],
)
def test_to_float(value, expected) -> None:
    assert to_float(value) == pytest.approx(expected)


class TestToTimestamp:
    def test_seconds_pass_through(self) -> None:
        assert to_timestamp(1_700_000_000) == 1_700_000_000

    def test_string_seconds(self) -> None:
        assert to_timestamp("1700000000") == 1_700_000_000

    def test_milliseconds_scaled_down(self) -> None:
        assert to_timestamp(1_700_000_000_123) == 1_700_000_000

    def test_garbage_is_zero(self) -> None:
        assert to_timestamp("soon") == 0


class TestNormalizeTrade:
    def test_activity_record(self) -> None:
        record = {
            "proxyWallet": "0xABCDEF",
            "timestamp": 1_700_000_100,
            "conditionId": "0xcond",
            "side": "BUY",
            "price": "0.42",
            "size": "100",
            "usdcSize": "42.1",
            "transactionHash": "0xhash",
            "title": "Will it rain?",
            "outcome": "Yes",
        }
        trade = normalize_trade(record)

        assert trade is not None
        assert trade.trader_address == "0xabcdef"
        assert trade.market_id == "0xcond"
        assert trade.side == TradeSide.BUY
        assert trade.price == pytest.approx(0.42)
        assert trade.size == pytest.approx(100.0)
        assert trade.usd_value == pytest.approx(42.1)
        assert trade.id == "0xhash"
        assert trade.market_title == "Will it rain?"
        assert trade.outcome == "Yes"

    def test_usd_value_derived_when_missing(self) -> None:
        trade = normalize_trade({"user": "0xa", "price": 0.5, "size": 30, "market": "m1"})
        assert trade.usd_value == pytest.approx(15.0)

    def test_explicit_trader_and_market_override_record(self) -> None:
        trade = normalize_trade(
            {"proxyWallet": "0xother", "conditionId": "m-other", "timestamp": 5},
            trader_address="0xME",
            market_id="m1",
        )
        assert trade.trader_address == "0xme"
        assert trade.market_id == "m1"

    def test_sell_side_case_insensitive(self) -> None:
        trade = normalize_trade({"owner": "0xa", "market": "m1", "side": "sell"})
        assert trade.side == TradeSide.SELL

    def test_unknown_side_defaults_to_buy(self) -> None:
        trade = normalize_trade({"owner": "0xa", "market": "m1", "side": None})
        assert trade.side == TradeSide.BUY

    def test_missing_trader_is_dropped(self) -> None:
        assert normalize_trade({"price": 0.5, "size": 10}) is None
        assert normalize_trade({"proxyWallet": "", "maker": None}) is None

    def test_missing_market_is_dropped(self) -> None:
        assert normalize_trade({"proxyWallet": "0xa", "timestamp": 100}) is None
        assert normalize_trade({"proxyWallet": "0xa", "conditionId": "", "market": None}) is None
        assert normalize_trade({"proxyWallet": "0xa", "conditionId": "  "}) is None

    def test_explicit_market_rescues_record_without_one(self) -> None:
        trade = normalize_trade({"proxyWallet": "0xa", "timestamp": 100}, market_id="0xcond")
        assert trade.market_id == "0xcond"

    def test_malformed_numbers_coerced(self) -> None:
        trade = normalize_trade({"taker": "0xa", "market": "m1", "price": "n/a", "size": None, "timestamp": "x"})
        assert trade.price == 0.0
        assert trade.size == 0.0
        assert trade.usd_value == 0.0
        assert trade.timestamp == 0

    def test_composite_id_when_none_given(self) -> None:
        trade = normalize_trade({"maker": "0xa", "market": "m1", "timestamp": 10})
        assert trade.id == "0xa:m1:10"


class TestNormalizeTrades:
    def test_drops_unattributable_and_non_mapping_records(self) -> None:
        records = [
            {"proxyWallet": "0xa", "conditionId": "m1", "timestamp": 1},
            {"timestamp": 2},
            "not a record",
            None,
            {"proxyWallet": "0xb", "conditionId": "m1", "timestamp": 3},
        ]
        trades = normalize_trades(records)
        assert [t.trader_address for t in trades] == ["0xa", "0xb"]

    def test_none_input_is_empty(self) -> None:
        assert normalize_trades(None) == []

    def test_unlabelled_trades_never_form_a_shared_market(self) -> None:
        records = [
            {"proxyWallet": "0xAAA", "timestamp": 100, "price": 0.5, "size": 10},
            {"proxyWallet": "0xBBB", "timestamp": 160, "price": 0.5, "size": 10},
        ]
        trades = normalize_trades(records)
        histories = [
            TraderHistory.from_trades(address, [t for t in trades if t.trader_address == address])
            for address in ("0xaaa", "0xbbb")
        ]

        result = analyze_histories(histories, time_window_seconds=3600)

        assert trades == []
        assert result.matched_markets == []
        assert all(s.times_leader == 0 for s in result.summaries)
