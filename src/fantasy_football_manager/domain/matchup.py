from dataclasses import dataclass, field
from enum import StrEnum

from fantasy_football_manager.domain.positions import Position


class LeagueSource(StrEnum):
    SLEEPER = "sleeper"
    SEARCH = "search"


@dataclass(frozen=True)
class LeagueInfo:
    league_id: str
    name: str
    source: LeagueSource
    is_survival: bool = False


@dataclass(frozen=True)
class RosterPlayer:
    player_id: str
    first_name: str
    last_name: str
    position: Position
    team: str
    current_score: float = 0.0
    projected_score: float = 0.0
    is_starter: bool = False
    jersey_number: str | None = None
    injury_status: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class FantasyTeam:
    team_id: str
    name: str
    owner_name: str | None = None
    current_score: float = 0.0
    projected_score: float = 0.0
    roster: tuple[RosterPlayer, ...] = ()

    @property
    def starters(self) -> tuple[RosterPlayer, ...]:
        return tuple(p for p in self.roster if p.is_starter)


@dataclass(frozen=True)
class HeadToHeadPair:
    my_team: FantasyTeam
    opponent: FantasyTeam | None = None


@dataclass(frozen=True)
class RankedEntry:
    team: FantasyTeam
    rank: int
    is_eliminated: bool = False


@dataclass(frozen=True)
class MatchupContext:
    """One league's roster view for one scoring period.

    Exactly one of ``head_to_head`` or ``ranked_entry`` is populated for a
    complete fetch. ``league_teams`` carries the whole field for survival
    leagues so standings can be ranked from the same context.
    """

    matchup_id: str
    league: LeagueInfo
    season: int
    period: int
    head_to_head: HeadToHeadPair | None = None
    ranked_entry: RankedEntry | None = None
    league_teams: tuple[FantasyTeam, ...] = field(default=())
    is_playoff_eliminated: bool = False
    is_period_final: bool = False

    @property
    def is_populated(self) -> bool:
        return self.head_to_head is not None or self.ranked_entry is not None

    @property
    def is_survival(self) -> bool:
        return self.ranked_entry is not None or self.league.is_survival
