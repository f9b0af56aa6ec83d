"""Score distribution statistics and the per-snapshot values derived from them."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import TYPE_CHECKING

from fantasy_football_manager.domain.distribution import DistributionStats, ScalingMode, ScoreSummary
from fantasy_football_manager.domain.snapshot import PerformanceTier

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from fantasy_football_manager.domain.snapshot import PlayerSnapshot

ADAPTIVE_SKEW_FACTOR = 3.0
SUMMARY_TOLERANCE = 0.01

EMPTY_DISTRIBUTION = DistributionStats(
    sorted_scores=(),
    top_score=1.0,
    median=0.0,
    quartiles=(0.0, 0.0, 0.0),
    scaling_mode=ScalingMode.LINEAR,
)


def _median(descending: Sequence[float]) -> float:
    count = len(descending)
    mid = count // 2
    if count % 2 == 0:
        return (descending[mid - 1] + descending[mid]) / 2
    return descending[mid]


def _at(descending: Sequence[float], index: int) -> float:
    return descending[min(index, len(descending) - 1)]


def compute_distribution(scores: Iterable[float]) -> DistributionStats:
    """Build the distribution for *scores*, recomputed from scratch on every call.

    Adaptive (logarithmic) scaling is chosen only when the top score is strictly
    greater than three times the median.
    """
    descending = tuple(sorted(scores, reverse=True))
    if not descending:
        return EMPTY_DISTRIBUTION
    count = len(descending)
    top = descending[0]
    median = _median(descending)
    quartiles = (_at(descending, count // 4), _at(descending, count // 2), _at(descending, 3 * count // 4))
    mode = ScalingMode.ADAPTIVE if top > median * ADAPTIVE_SKEW_FACTOR else ScalingMode.LINEAR
    return DistributionStats(
        sorted_scores=descending,
        top_score=top,
        median=median,
        quartiles=quartiles,
        scaling_mode=mode,
    )


def scaled_percentage(score: float, stats: DistributionStats) -> float:
    top = stats.top_score
    if top <= 0:
        return 0.0
    if stats.scaling_mode is ScalingMode.ADAPTIVE:
        denominator = math.log(max(top, 1.0))
        if denominator > 0:
            return math.log(max(score, 1.0)) / denominator
    return max(0.0, min(score / top, 1.0))


def assign_tier(score: float, stats: DistributionStats) -> PerformanceTier:
    if not stats.sorted_scores:
        return PerformanceTier.AVERAGE
    elite_cutoff, good_cutoff, average_cutoff = stats.quartiles
    if score >= elite_cutoff:
        return PerformanceTier.ELITE
    if score >= good_cutoff:
        return PerformanceTier.GOOD
    if score >= average_cutoff:
        return PerformanceTier.AVERAGE
    return PerformanceTier.STRUGGLING


def apply_distribution(snapshots: Iterable[PlayerSnapshot], stats: DistributionStats) -> list[PlayerSnapshot]:
    """Return copies of *snapshots* with percentage and tier taken from *stats*."""
    return [
        replace(
            snapshot,
            percentage_of_top=scaled_percentage(snapshot.current_score, stats),
            performance_tier=assign_tier(snapshot.current_score, stats),
        )
        for snapshot in snapshots
    ]


def summarize(stats: DistributionStats) -> ScoreSummary:
    return ScoreSummary(
        top_score=stats.top_score,
        median=stats.median,
        score_range=stats.score_range,
        scaling_mode=stats.scaling_mode,
    )


def _changed(old: float, new: float, tolerance: float) -> bool:
    return abs(new - old) > tolerance


def merge_summary(previous: ScoreSummary, fresh: ScoreSummary, tolerance: float = SUMMARY_TOLERANCE) -> ScoreSummary:
    """Carry over each scalar from *previous* unless *fresh* moved it by more than *tolerance*."""
    return ScoreSummary(
        top_score=fresh.top_score if _changed(previous.top_score, fresh.top_score, tolerance) else previous.top_score,
        median=fresh.median if _changed(previous.median, fresh.median, tolerance) else previous.median,
        score_range=(
            fresh.score_range if _changed(previous.score_range, fresh.score_range, tolerance) else previous.score_range
        ),
        scaling_mode=fresh.scaling_mode,
    )
