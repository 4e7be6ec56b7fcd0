"""
Distribution statistics over the leadership gaps of a comparison.
"""

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from ..models import MatchedMarket

ONE_MINUTE = 60
FIVE_MINUTES = 300
ONE_HOUR = 3600


@dataclass
class GapStatistics:
    """Summary of absolute first-trade gaps across all matched pairs."""
    count: int = 0
    minimum: float = 0.0
    maximum: float = 0.0
    median: float = 0.0
    mean: float = 0.0
    under_one_minute: int = 0
    under_five_minutes: int = 0
    under_one_hour: int = 0

    @classmethod
    def empty(cls) -> "GapStatistics":
        return cls()

    def share(self, bucket_count: int) -> float:
        """Fraction of all gaps that a bucket count represents."""
        return bucket_count / self.count if self.count else 0.0


def gap_statistics(matched_markets: Iterable[MatchedMarket]) -> GapStatistics:
    """Compute gap statistics; no gaps gives an all-zero result."""
    gaps = np.sort(np.array(
        [abs(g.delta_seconds) for m in matched_markets for g in m.gaps],
        dtype=float,
    ))

    if gaps.size == 0:
        return GapStatistics.empty()

    return GapStatistics(
        count=int(gaps.size),
        minimum=float(gaps[0]),
        maximum=float(gaps[-1]),
        # Upper median, as the reports have always shown it
        median=float(gaps[gaps.size // 2]),
        mean=float(np.mean(gaps)),
        under_one_minute=int(np.count_nonzero(gaps < ONE_MINUTE)),
        under_five_minutes=int(np.count_nonzero(gaps < FIVE_MINUTES)),
        under_one_hour=int(np.count_nonzero(gaps < ONE_HOUR)),
    )
