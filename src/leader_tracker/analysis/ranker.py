"""
Ranking of traders by leadership.
"""

from typing import Iterable

from ..models import TraderLeadershipSummary


def qualifies(summary: TraderLeadershipSummary, min_leader_count: int) -> bool:
    """A trader qualifies by leading often enough, or by being near the front twice as often."""
    return (
        summary.times_leader >= min_leader_count
        or summary.times_in_top_n >= 2 * min_leader_count
    )


def ranking_key(summary: TraderLeadershipSummary) -> tuple[int, int, float]:
    return (-summary.times_leader, -summary.times_in_top_n, -summary.matched_volume_usd)


def rank_traders(
    summaries: Iterable[TraderLeadershipSummary],
    min_leader_count: int,
) -> list[TraderLeadershipSummary]:
    """Filter qualifying traders and order them best first.

    Sorted by times led, then times in the top N, then matched volume.
    Python's sort is stable, so full ties keep their input order.
    """
    return sorted(
        (s for s in summaries if qualifies(s, min_leader_count)),
        key=ranking_key,
    )
