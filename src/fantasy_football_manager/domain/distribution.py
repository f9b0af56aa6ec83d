from dataclasses import dataclass
from enum import StrEnum


class ScalingMode(StrEnum):
    LINEAR = "linear"
    ADAPTIVE = "adaptive"


@dataclass(frozen=True)
class DistributionStats:
    """Score distribution for one pass over one set of snapshots.

    ``quartiles`` holds the (elite, good, average) cutoffs read from the
    descending score list at ``count // 4``, ``count // 2`` and ``3 * count // 4``.
    """

    sorted_scores: tuple[float, ...]
    top_score: float
    median: float
    quartiles: tuple[float, float, float]
    scaling_mode: ScalingMode

    @property
    def count(self) -> int:
        return len(self.sorted_scores)

    @property
    def bottom_score(self) -> float:
        return self.sorted_scores[-1] if self.sorted_scores else 0.0

    @property
    def score_range(self) -> float:
        return self.top_score - self.bottom_score if self.sorted_scores else 0.0


@dataclass(frozen=True)
class ScoreSummary:
    top_score: float = 0.0
    median: float = 0.0
    score_range: float = 0.0
    scaling_mode: ScalingMode = ScalingMode.LINEAR
