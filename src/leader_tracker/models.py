"""
Core data models for the leader tracker.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class TradeSide(Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Trade:
    """A single normalized trade on a Polymarket market."""
    id: str
    timestamp: int  # Unix seconds
    trader_address: str  # Lower-cased
    market_id: str  # Condition ID
    side: TradeSide
    price: float
    size: float
    usd_value: float  # ~ price * size, as reported by the provider

    # Labelling only
    market_title: str = ""
    outcome: str = ""
    asset: str = ""


@dataclass(frozen=True)
class TraderHistory:
    """All fetched trades of one trader, sorted by timestamp ascending."""
    address: str
    trades: tuple[Trade, ...] = ()

    @classmethod
    def from_trades(cls, address: str, trades: Iterable[Trade]) -> "TraderHistory":
        """Build a history, sorting the trades once."""
        return cls(
            address=address.lower(),
            trades=tuple(sorted(trades, key=lambda t: t.timestamp)),
        )

    def __len__(self) -> int:
        return len(self.trades)


@dataclass(frozen=True)
class MarketFirstTouch:
    """A trader's first trade in a market plus running totals for that market.

    Later trades are folded in by building a new touch, so a touch held by a
    MatchedMarket never changes. ``position`` is the 1-indexed order of first
    appearance along the axis the touches were grouped on.
    """
    trader_address: str
    market_id: str
    first_timestamp: int
    first_side: TradeSide
    first_price: float
    first_usd_value: float
    cumulative_usd_volume: float
    trade_count_in_market: int = 1
    position: int = 1


@dataclass(frozen=True)
class PairwiseGap:
    """Timing between two traders' first trades in the same market."""
    trader_a: str
    trader_b: str
    delta_seconds: int  # trader_b first trade - trader_a first trade
    leader: str

    def involves(self, address: str) -> bool:
        return address == self.trader_a or address == self.trader_b


@dataclass(frozen=True)
class MatchedMarket:
    """A market where at least two traders entered within the time window."""
    market_id: str
    participants: tuple[MarketFirstTouch, ...]  # Ordered by (first_timestamp, address)
    gaps: tuple[PairwiseGap, ...]
    market_title: str = ""

    @property
    def earliest_timestamp(self) -> int:
        return min(p.first_timestamp for p in self.participants)

    @property
    def url(self) -> str:
        return f"https://polymarket.com/event/{self.market_id}"

    def touch_for(self, address: str) -> Optional[MarketFirstTouch]:
        for touch in self.participants:
            if touch.trader_address == address:
                return touch
        return None

    def entry_rank(self, address: str) -> Optional[int]:
        """1-indexed arrival order of a trader among the participants."""
        for i, touch in enumerate(self.participants, start=1):
            if touch.trader_address == address:
                return i
        return None

    def gaps_for(self, address: str) -> list[PairwiseGap]:
        return [g for g in self.gaps if g.involves(address)]


@dataclass(frozen=True)
class TraderLeadershipSummary:
    """Leadership statistics for one trader."""
    trader_address: str
    total_trades: int = 0
    matched_market_count: int = 0
    times_leader: int = 0
    avg_lead_seconds: float = 0.0
    avg_follow_seconds: float = 0.0

    # Ranking inputs
    times_in_top_n: int = 0
    matched_volume_usd: float = 0.0

    # Sample counts behind the averages
    lead_count: int = 0
    follow_count: int = 0

    # Entry timing
    avg_entry_rank: float = 0.0
    avg_entry_delay_seconds: float = 0.0  # Seconds after the market's first entrant

    @property
    def leader_rate(self) -> float:
        """Leader gaps per matched market (the "first rate" of reports)."""
        if self.matched_market_count == 0:
            return 0.0
        return self.times_leader / self.matched_market_count

    @property
    def profile_url(self) -> str:
        return f"https://polymarket.com/profile/{self.trader_address}"


@dataclass
class MarketInfo:
    """Market metadata used for labelling output."""
    condition_id: str
    question: str = ""
    slug: str = ""
    volume: float = 0.0
    liquidity: float = 0.0
    active: bool = True

    @property
    def label(self) -> str:
        return self.question or self.slug or self.condition_id

    @property
    def url(self) -> str:
        return f"https://polymarket.com/event/{self.slug or self.condition_id}"


@dataclass(frozen=True)
class PositionPnl:
    """An open position valued against the cash put into it."""
    condition_id: str
    title: str
    outcome: str
    size: float
    avg_price: float
    current_price: float
    value: float
    invested: float
    pnl: float
    pnl_percent: float


@dataclass(frozen=True)
class TraderPnl:
    """Profit and loss for one trader across open positions and trade flow.

    ``win_rate`` is a percentage of all reported positions, and
    ``best_position``/``worst_position`` are None when nothing is open.
    """
    address: str
    name: str = ""
    total_pnl: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    total_volume: float = 0.0
    position_count: int = 0
    winning_positions: int = 0
    losing_positions: int = 0
    win_rate: float = 0.0
    avg_pnl_per_position: float = 0.0
    best_position: Optional[PositionPnl] = None
    worst_position: Optional[PositionPnl] = None

    @property
    def is_profitable(self) -> bool:
        return self.total_pnl > 0

    @property
    def profile_url(self) -> str:
        return f"https://polymarket.com/profile/{self.address}"
