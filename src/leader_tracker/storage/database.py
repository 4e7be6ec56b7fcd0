"""
SQLite database recording leadership runs so traders can be followed over time.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import aiosqlite

from ..config import get_config
from ..models import TraderLeadershipSummary

logger = logging.getLogger(__name__)


class Database:
    """SQLite database for storing ranked leadership results."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_config().storage.database_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self) -> None:
        """Connect to database and initialize schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        await self._create_schema()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._conn.executescript("""
            -- One row per comparison or market scan
            CREATE TABLE IF NOT EXISTS runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                created_at TEXT NOT NULL,
                market_count INTEGER DEFAULT 0,
                trader_count INTEGER DEFAULT 0,
                config TEXT
            );

            -- Ranked summaries of each run
            CREATE TABLE IF NOT EXISTS run_summaries (
                run_id INTEGER NOT NULL REFERENCES runs(id),
                rank INTEGER NOT NULL,
                trader_address TEXT NOT NULL,
                total_trades INTEGER DEFAULT 0,
                matched_market_count INTEGER DEFAULT 0,
                times_leader INTEGER DEFAULT 0,
                times_in_top_n INTEGER DEFAULT 0,
                avg_lead_seconds REAL DEFAULT 0,
                avg_follow_seconds REAL DEFAULT 0,
                matched_volume_usd REAL DEFAULT 0,
                PRIMARY KEY (run_id, trader_address)
            );

            -- Indexes
            CREATE INDEX IF NOT EXISTS idx_runs_created ON runs(created_at DESC);
            CREATE INDEX IF NOT EXISTS idx_summaries_trader ON run_summaries(trader_address);
        """)
        await self._conn.commit()

    # Run operations

    async def save_run(
        self,
        kind: str,
        summaries: Iterable[TraderLeadershipSummary],
        market_count: int = 0,
        config: Optional[dict] = None,
    ) -> int:
        """Save a ranked run. Returns the run ID."""
        summaries = list(summaries)

        cursor = await self._conn.execute("""
            INSERT INTO runs (kind, created_at, market_count, trader_count, config)
            VALUES (?, ?, ?, ?, ?)
        """, (
            kind,
            datetime.now().isoformat(),
            market_count,
            len(summaries),
            json.dumps(config or {}),
        ))
        run_id = cursor.lastrowid

        await self._conn.executemany("""
            INSERT OR REPLACE INTO run_summaries
            (run_id, rank, trader_address, total_trades, matched_market_count,
             times_leader, times_in_top_n, avg_lead_seconds, avg_follow_seconds,
             matched_volume_usd)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            (
                run_id,
                rank,
                s.trader_address,
                s.total_trades,
                s.matched_market_count,
                s.times_leader,
                s.times_in_top_n,
                s.avg_lead_seconds,
                s.avg_follow_seconds,
                s.matched_volume_usd,
            )
            for rank, s in enumerate(summaries, start=1)
        ])
        await self._conn.commit()

        logger.info(f"Saved {kind} run {run_id} with {len(summaries)} traders")
        return run_id

    async def get_recent_runs(self, limit: int = 20) -> list[dict]:
        """Get the most recent runs, newest first."""
        runs = []
        async with self._conn.execute("""
            SELECT id, kind, created_at, market_count, trader_count, config
            FROM runs
            ORDER BY id DESC
            LIMIT ?
        """, (limit,)) as cursor:
            async for row in cursor:
                runs.append({
                    "id": row[0],
                    "kind": row[1],
                    "created_at": datetime.fromisoformat(row[2]),
                    "market_count": row[3] or 0,
                    "trader_count": row[4] or 0,
                    "config": json.loads(row[5]) if row[5] else {},
                })
        return runs

    async def get_trader_runs(self, address: str, limit: int = 20) -> list[dict]:
        """Get a trader's placement in past runs, newest first."""
        entries = []
        async with self._conn.execute("""
            SELECT r.id, r.kind, r.created_at, s.rank, s.times_leader,
                   s.times_in_top_n, s.matched_market_count, s.avg_lead_seconds,
                   s.avg_follow_seconds, s.matched_volume_usd
            FROM run_summaries s
            JOIN runs r ON r.id = s.run_id
            WHERE s.trader_address = ?
            ORDER BY r.id DESC
            LIMIT ?
        """, (address.lower(), limit)) as cursor:
            async for row in cursor:
                entries.append({
                    "run_id": row[0],
                    "kind": row[1],
                    "created_at": datetime.fromisoformat(row[2]),
                    "rank": row[3],
                    "times_leader": row[4] or 0,
                    "times_in_top_n": row[5] or 0,
                    "matched_market_count": row[6] or 0,
                    "avg_lead_seconds": row[7] or 0.0,
                    "avg_follow_seconds": row[8] or 0.0,
                    "matched_volume_usd": row[9] or 0.0,
                })
        return entries

    async def get_stats(self) -> dict:
        """Get database statistics."""
        stats = {}

        async with self._conn.execute("SELECT COUNT(*) FROM runs") as cursor:
            stats["runs"] = (await cursor.fetchone())[0]

        async with self._conn.execute(
            "SELECT COUNT(DISTINCT trader_address) FROM run_summaries"
        ) as cursor:
            stats["traders"] = (await cursor.fetchone())[0]

        async with self._conn.execute(
            "SELECT COUNT(*) FROM runs WHERE trader_count > 0"
        ) as cursor:
            stats["runs_with_traders"] = (await cursor.fetchone())[0]

        return stats
