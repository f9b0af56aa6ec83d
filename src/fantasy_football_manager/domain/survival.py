from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fantasy_football_manager.domain.matchup import FantasyTeam


class EliminationStatus(StrEnum):
    CHAMPION = "champion"
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"
    ELIMINATED = "eliminated"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    EliminationStatus.CHAMPION: 0,
    EliminationStatus.SAFE: 1,
    EliminationStatus.WARNING: 2,
    EliminationStatus.DANGER: 3,
    EliminationStatus.CRITICAL: 4,
    EliminationStatus.ELIMINATED: 5,
}


def drama_label(drama: float) -> str:
    if drama >= 0.8:
        return "HEARTBREAKING"
    if drama >= 0.6:
        return "Dramatic"
    if drama >= 0.4:
        return "Close Call"
    if drama >= 0.2:
        return "Expected"
    return "Blowout"


@dataclass(frozen=True)
class EliminationEvent:
    league_id: str
    period: int
    team_id: str
    team_name: str
    score: float
    margin: float
    drama: float
    note: str = ""

    @property
    def drama_label(self) -> str:
        return drama_label(self.drama)


@dataclass(frozen=True)
class TeamStanding:
    team: FantasyTeam
    rank: int
    score: float
    projected_score: float
    status: EliminationStatus
    survival_probability: float
    safety_margin: float
    weeks_alive: int

    @property
    def is_eliminated(self) -> bool:
        return self.status is EliminationStatus.ELIMINATED


@dataclass(frozen=True)
class SurvivalRanking:
    league_id: str
    league_name: str
    period: int
    standings: tuple[TeamStanding, ...]
    eliminated: tuple[TeamStanding, ...]
    history: tuple[EliminationEvent, ...]
    elimination_count: int
    cutoff_score: float
    average_score: float
    highest_score: float
    lowest_score: float
    has_scoring_started: bool

    @property
    def total_survivors(self) -> int:
        return len(self.standings)

    @property
    def champion(self) -> TeamStanding | None:
        return self.standings[0] if self.standings else None

    @property
    def elimination_zone(self) -> tuple[TeamStanding, ...]:
        return tuple(s for s in self.standings if s.status is EliminationStatus.CRITICAL)

    def standing_for(self, team_id: str) -> TeamStanding | None:
        for standing in (*self.standings, *self.eliminated):
            if standing.team.team_id == team_id:
                return standing
        return None
