"""
Leadership engine.

Wires the Polymarket client to the analysis pipeline:

1. Compare a set of traders: who enters shared markets first, and by how much
2. Scan active markets: who is consistently among the first traders
3. Look up the entry order of a single market
4. Rank leaderboard traders by profit and loss
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .analysis.aggregator import summarize, summarize_market_entries
from .analysis.gaps import GapStatistics, gap_statistics
from .analysis.grouper import group_histories, market_entry_order
from .analysis.matcher import match_markets
from .analysis.normalizer import normalize_trades
from .analysis.pnl import analyze_trader_pnl, rank_by_pnl
from .analysis.ranker import rank_traders, ranking_key
from .clients.polymarket import PolymarketClient
from .config import LeadershipConfig, PolymarketConfig, ProfitabilityConfig, get_config
from .models import (
    MarketFirstTouch,
    MarketInfo,
    MatchedMarket,
    TraderHistory,
    TraderLeadershipSummary,
    TraderPnl,
)

logger = logging.getLogger(__name__)


@dataclass
class ComparisonResult:
    """Result of comparing a set of traders."""
    histories: list[TraderHistory] = field(default_factory=list)
    matched_markets: list[MatchedMarket] = field(default_factory=list)
    summaries: list[TraderLeadershipSummary] = field(default_factory=list)  # All traders, best first
    ranked: list[TraderLeadershipSummary] = field(default_factory=list)  # Qualifying traders only
    gap_stats: GapStatistics = field(default_factory=GapStatistics.empty)
    time_window_seconds: float = 0.0
    history_days: Optional[int] = None

    @property
    def traders(self) -> list[str]:
        return [h.address for h in self.histories]


@dataclass
class MarketScanResult:
    """Result of scanning active markets for early traders."""
    markets: list[MarketInfo] = field(default_factory=list)
    summaries: list[TraderLeadershipSummary] = field(default_factory=list)
    ranked: list[TraderLeadershipSummary] = field(default_factory=list)
    top_n: int = 5
    min_leader_count: int = 3

    @property
    def total_traders(self) -> int:
        return len(self.summaries)


@dataclass
class FirstTraderResult:
    """Entry order of a single market."""
    condition_id: str
    market: Optional[MarketInfo] = None
    trade_count: int = 0
    entries: list[MarketFirstTouch] = field(default_factory=list)  # Arrival order

    @property
    def first_entry(self) -> Optional[MarketFirstTouch]:
        return self.entries[0] if self.entries else None

    @property
    def first_timestamp(self) -> int:
        return self.entries[0].first_timestamp if self.entries else 0


@dataclass
class ProfitabilityResult:
    """Profit and loss of a set of traders."""
    traders: list[TraderPnl] = field(default_factory=list)  # Most profitable first
    candidates: int = 0  # Addresses looked up, including ones with no data

    @property
    def profitable(self) -> list[TraderPnl]:
        return [t for t in self.traders if t.is_profitable]

    @property
    def unprofitable(self) -> list[TraderPnl]:
        return [t for t in self.traders if t.total_pnl < 0]

    @property
    def avg_pnl(self) -> float:
        if not self.traders:
            return 0.0
        return sum(t.total_pnl for t in self.traders) / len(self.traders)

    @property
    def avg_win_rate(self) -> float:
        if not self.traders:
            return 0.0
        return sum(t.win_rate for t in self.traders) / len(self.traders)


def analyze_histories(
    histories: Iterable[TraderHistory],
    time_window_seconds: float,
    top_n: int = 5,
    min_leader_count: int = 3,
    market_titles: Optional[dict[str, str]] = None,
) -> ComparisonResult:
    """Run the full leadership pipeline over already-fetched histories."""
    histories = list(histories)

    per_trader = group_histories(histories)
    matched = match_markets(per_trader, time_window_seconds, market_titles=market_titles)
    summaries = summarize(histories, matched, top_n=top_n)

    return ComparisonResult(
        histories=histories,
        matched_markets=matched,
        summaries=sorted(summaries, key=ranking_key),
        ranked=rank_traders(summaries, min_leader_count),
        gap_stats=gap_statistics(matched),
        time_window_seconds=time_window_seconds,
    )


def _market_titles(histories: Iterable[TraderHistory]) -> dict[str, str]:
    titles: dict[str, str] = {}
    for history in histories:
        for trade in history.trades:
            if trade.market_title and trade.market_id not in titles:
                titles[trade.market_id] = trade.market_title
    return titles


class LeadershipEngine:
    """
    Main engine for finding traders who act first.

    Fetches trade data through the Polymarket client and hands the
    materialized records to the synchronous analysis pipeline.
    """

    def __init__(
        self,
        config: Optional[LeadershipConfig] = None,
        client: Optional[PolymarketClient] = None,
        polymarket_config: Optional[PolymarketConfig] = None,
        profitability_config: Optional[ProfitabilityConfig] = None,
    ):
        self.config = config or get_config().leadership
        self.profitability_config = profitability_config or get_config().profitability
        self.polymarket_config = polymarket_config or (
            client.config if client else get_config().polymarket
        )
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self) -> None:
        """Initialize the API client."""
        if self._client is None:
            self._client = PolymarketClient(self.polymarket_config)
        await self._client.connect()

    async def close(self) -> None:
        """Close the API client."""
        if self._client:
            await self._client.close()
            if self._owns_client:
                self._client = None

    @property
    def client(self) -> PolymarketClient:
        if not self._client:
            raise RuntimeError("Polymarket client not connected")
        return self._client

    async def compare_traders(
        self,
        addresses: Iterable[str],
        time_window_hours: Optional[float] = None,
        history_days: Optional[int] = None,
    ) -> ComparisonResult:
        """
        Compare trade timing between traders.

        Each trader's recent history is fetched, then shared markets are
        matched and leadership statistics computed.
        """
        unique = list(dict.fromkeys(a.strip().lower() for a in addresses if a.strip()))
        if len(unique) < 2:
            raise ValueError("At least 2 distinct trader addresses are required")

        window_hours = self.config.time_window_hours if time_window_hours is None else time_window_hours
        if window_hours < 0:
            raise ValueError(f"Time window must be non-negative, got {window_hours}h")
        days = self.config.history_days if history_days is None else history_days

        histories = []
        for i, address in enumerate(unique):
            if i > 0:
                await asyncio.sleep(self.polymarket_config.trader_fetch_delay_seconds)
            history = await self.client.fetch_trader_history(address, history_days=days)
            if not history.trades:
                logger.warning(f"No trades found for {address}")
            histories.append(history)

        result = analyze_histories(
            histories,
            time_window_seconds=window_hours * 3600,
            top_n=self.config.top_n,
            min_leader_count=self.config.min_leader_count,
            market_titles=_market_titles(histories),
        )
        result.history_days = days

        logger.info(
            f"Compared {len(histories)} traders: {len(result.matched_markets)} shared markets"
        )
        return result

    async def scan_markets(
        self,
        min_volume: Optional[float] = None,
        max_markets: Optional[int] = None,
        top_n: Optional[int] = None,
        min_leader_count: Optional[int] = None,
    ) -> MarketScanResult:
        """
        Scan active markets and rank traders by how often they trade first.
        """
        min_volume = self.config.min_market_volume if min_volume is None else min_volume
        max_markets = self.config.max_markets if max_markets is None else max_markets
        top_n = self.config.top_n if top_n is None else top_n
        min_leader_count = self.config.min_leader_count if min_leader_count is None else min_leader_count

        markets = await self.client.get_active_markets(min_volume=min_volume, max_markets=max_markets)
        result = MarketScanResult(markets=markets, top_n=top_n, min_leader_count=min_leader_count)
        if not markets:
            return result

        entries_by_market = {}
        for i, market in enumerate(markets, start=1):
            logger.debug(f"Analyzing market {i}/{len(markets)}: {market.label}")
            trades = await self.client.get_market_trades(
                market.condition_id,
                limit=self.config.market_trade_limit,
            )
            if trades:
                ordered = sorted(trades, key=lambda t: t.timestamp)
                entries_by_market[market.condition_id] = market_entry_order(ordered)
            await asyncio.sleep(self.polymarket_config.market_fetch_delay_seconds)

        summaries = summarize_market_entries(entries_by_market, top_n=top_n)
        result.summaries = summaries
        result.ranked = rank_traders(summaries, min_leader_count)

        logger.info(
            f"Scanned {len(markets)} markets: {len(summaries)} traders, {len(result.ranked)} ranked"
        )
        return result

    async def first_traders(self, identifier: str, limit: int = 500) -> FirstTraderResult:
        """
        Find the order in which traders entered a market.

        ``identifier`` is a condition ID (0x...) or a market slug. When the
        market can't be resolved the input itself is used as condition ID.
        """
        identifier = identifier.strip()
        market = await self.client.find_market(identifier)
        condition_id = market.condition_id if market and market.condition_id else identifier

        trades = await self.client.get_market_trades(condition_id, limit=limit)
        ordered = sorted(trades, key=lambda t: t.timestamp)
        entries = market_entry_order(ordered)

        return FirstTraderResult(
            condition_id=condition_id,
            market=market,
            trade_count=len(trades),
            entries=list(entries.values()),
        )

    async def _trader_pnl(self, address: str) -> Optional[TraderPnl]:
        positions, records = await asyncio.gather(
            self.client.get_positions(address),
            self.client.get_trader_activity(address, limit=self.profitability_config.activity_limit),
        )
        name = ""
        if records:
            name = records[0].get("name") or records[0].get("pseudonym") or ""
        trades = normalize_trades(records, trader_address=address)
        return analyze_trader_pnl(address, positions, trades, name=name)

    async def profitable_traders(
        self,
        addresses: Optional[Iterable[str]] = None,
        max_traders: Optional[int] = None,
    ) -> ProfitabilityResult:
        """
        Rank traders by profit and loss.

        Without explicit addresses the top of the public leaderboard is used.
        Traders with neither positions nor activity are left out.
        """
        max_traders = self.profitability_config.max_traders if max_traders is None else max_traders
        if addresses:
            candidates = list(dict.fromkeys(a.strip().lower() for a in addresses if a.strip()))
        else:
            candidates = await self.client.get_leaderboard_traders(limit=max_traders)

        results = []
        for i, address in enumerate(candidates):
            if i > 0:
                await asyncio.sleep(self.polymarket_config.profile_fetch_delay_seconds)
            logger.debug(f"Analyzing trader {i + 1}/{len(candidates)}: {address}")
            analysis = await self._trader_pnl(address)
            if analysis is None:
                logger.warning(f"No positions or activity for {address}")
                continue
            results.append(analysis)

        result = ProfitabilityResult(traders=rank_by_pnl(results), candidates=len(candidates))
        logger.info(
            f"Analyzed {len(results)} of {len(candidates)} traders: {len(result.profitable)} profitable"
        )
        return result
