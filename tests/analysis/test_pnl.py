"""Tests for trader profit and loss."""

import pytest

from leader_tracker.analysis.pnl import analyze_trader_pnl, position_pnl, rank_by_pnl
from leader_tracker.models import TradeSide, TraderPnl


def position(title: str, size, value, cash, **extra) -> dict:
    return {
        "conditionId": f"0x{title.lower()}",
        "title": title,
        "outcome": "Yes",
        "size": size,
        "currentValue": value,
        "cashBalance": cash,
        **extra,
    }


class TestPositionPnl:
    def test_values_position_against_cash_spent(self) -> None:
        p = position_pnl(position("Rain", "200", 150, -100))

        assert p.invested == 100
        assert p.pnl == 50
        assert p.pnl_percent == pytest.approx(50)
        assert p.avg_price == pytest.approx(0.5)
        assert p.current_price == pytest.approx(0.75)
        assert p.condition_id == "0xrain"

    def test_zero_size_ignored(self) -> None:
        assert position_pnl(position("Closed", 0, 0, 100)) is None

    def test_initial_value_when_no_cash_balance(self) -> None:
        record = position("Snow", 10, 4, None, initialValue="5")

        assert position_pnl(record).pnl == pytest.approx(-1)

    def test_nothing_invested_has_zero_percent(self) -> None:
        p = position_pnl(position("Free", 10, 3, 0))

        assert p.pnl == 3
        assert p.pnl_percent == 0.0

    def test_missing_title(self) -> None:
        p = position_pnl({"size": 1, "currentValue": 1, "cashBalance": 1})
        assert p.title == "Unknown"


class TestAnalyzeTraderPnl:
    def test_combines_positions_and_trade_flow(self, trade_factory) -> None:
        positions = [
            position("Win", 100, 80, 50),
            position("Lose", 100, 10, 40),
            position("Flat", 100, 20, 20),
            position("Closed", 0, 0, 0),
        ]
        trades = [
            trade_factory("0xaaa", "M1", 1, usd_value=300),
            trade_factory("0xaaa", "M1", 2, side=TradeSide.SELL, usd_value=350),
        ]

        result = analyze_trader_pnl("0xAAA", positions, trades, name="whale")

        assert result.address == "0xaaa"
        assert result.name == "whale"
        assert result.unrealized_pnl == pytest.approx(0)
        assert result.total_pnl == pytest.approx(50)
        assert result.realized_pnl == result.total_pnl
        assert result.total_volume == 300
        assert result.winning_positions == 1
        assert result.losing_positions == 1
        # The closed position still counts toward the rate
        assert result.position_count == 4
        assert result.win_rate == pytest.approx(25)
        assert result.avg_pnl_per_position == pytest.approx(12.5)
        assert result.best_position.title == "Win"
        assert result.worst_position.title == "Lose"
        assert result.is_profitable

    def test_volume_from_positions_when_larger(self) -> None:
        result = analyze_trader_pnl("0xaaa", [position("Big", 1000, 900, 800)], [])

        assert result.total_volume == 800
        assert result.total_pnl == pytest.approx(100)

    def test_no_data_gives_none(self) -> None:
        assert analyze_trader_pnl("0xaaa", [], []) is None

    def test_trades_only(self, trade_factory) -> None:
        result = analyze_trader_pnl("0xaaa", [], [trade_factory("0xaaa", "M1", 1, usd_value=40)])

        assert result.total_pnl == -40
        assert result.position_count == 0
        assert result.win_rate == 0.0
        assert result.avg_pnl_per_position == 0.0
        assert result.best_position is None
        assert not result.is_profitable

    def test_non_mapping_positions_skipped(self) -> None:
        result = analyze_trader_pnl("0xaaa", ["junk", position("Ok", 10, 6, 5)], [])

        assert result.position_count == 1
        assert result.total_pnl == pytest.approx(1)


def test_rank_by_pnl_is_stable() -> None:
    traders = [
        TraderPnl(address="0xa", total_pnl=5),
        TraderPnl(address="0xb", total_pnl=-2),
        TraderPnl(address="0xc", total_pnl=5),
        TraderPnl(address="0xd", total_pnl=9),
    ]

    assert [t.address for t in rank_by_pnl(traders)] == ["0xd", "0xa", "0xc", "0xb"]
