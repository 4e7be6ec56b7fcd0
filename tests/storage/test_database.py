"""Tests for the run history database."""

import pytest
import pytest_asyncio

from leader_tracker.models import TraderLeadershipSummary
from leader_tracker.storage import Database


@pytest_asyncio.fixture
async def db(tmp_path):
    async with Database(tmp_path / "runs.db") as database:
        yield database


def summary(address, times_leader=0, volume=0.0) -> TraderLeadershipSummary:
    return TraderLeadershipSummary(
        trader_address=address,
        total_trades=10,
        matched_market_count=4,
        times_leader=times_leader,
        avg_lead_seconds=120.0,
        matched_volume_usd=volume,
    )


class TestDatabase:
    @pytest.mark.asyncio
    async def test_save_and_list_runs(self, db) -> None:
        first = await db.save_run("compare", [summary("0xa", 3)], market_count=2, config={"window": 24})
        second = await db.save_run("scan", [summary("0xb", 5), summary("0xa", 4)], market_count=50)

        runs = await db.get_recent_runs()

        assert second > first
        assert [r["id"] for r in runs] == [second, first]
        assert runs[0]["kind"] == "scan"
        assert runs[0]["trader_count"] == 2
        assert runs[1]["config"] == {"window": 24}

    @pytest.mark.asyncio
    async def test_trader_runs_keep_rank(self, db) -> None:
        await db.save_run("compare", [summary("0xa", 3), summary("0xb", 1)])
        await db.save_run("scan", [summary("0xb", 5), summary("0xa", 4, volume=99.5)])

        entries = await db.get_trader_runs("0xA")

        assert [e["kind"] for e in entries] == ["scan", "compare"]
        assert [e["rank"] for e in entries] == [2, 1]
        assert entries[0]["times_leader"] == 4
        assert entries[0]["matched_volume_usd"] == pytest.approx(99.5)
        assert entries[0]["avg_lead_seconds"] == pytest.approx(120.0)

    @pytest.mark.asyncio
    async def test_unknown_trader(self, db) -> None:
        assert await db.get_trader_runs("0xnobody") == []

    @pytest.mark.asyncio
    async def test_stats(self, db) -> None:
        await db.save_run("compare", [summary("0xa"), summary("0xb")])
        await db.save_run("compare", [summary("0xb")])
        await db.save_run("scan", [])

        stats = await db.get_stats()

        assert stats == {"runs": 3, "traders": 2, "runs_with_traders": 2}

    @pytest.mark.asyncio
    async def test_default_path_from_config(self, isolated_config) -> None:
        async with Database() as database:
            assert database.db_path == isolated_config.storage.database_path
        assert isolated_config.storage.database_path.exists()
