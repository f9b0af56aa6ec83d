from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fantasy_football_manager.domain.matchup import LeagueSource, RosterPlayer
    from fantasy_football_manager.domain.positions import Position


class PerformanceTier(StrEnum):
    ELITE = "elite"
    GOOD = "good"
    AVERAGE = "average"
    STRUGGLING = "struggling"

    @property
    def rank(self) -> int:
        """Lower is better; ELITE is 0."""
        return _TIER_RANK[self]


_TIER_RANK = {
    PerformanceTier.ELITE: 0,
    PerformanceTier.GOOD: 1,
    PerformanceTier.AVERAGE: 2,
    PerformanceTier.STRUGGLING: 3,
}


class RosterRole(StrEnum):
    MY_TEAM = "my"
    SURVIVAL = "chopped"
    SEARCH = "search"


RECENT_ACTIVITY_WINDOW = timedelta(minutes=5)


@dataclass(frozen=True)
class PlayerSnapshot:
    player: RosterPlayer
    matchup_id: str
    role: RosterRole
    league_name: str
    league_source: LeagueSource
    is_starter: bool = True
    percentage_of_top: float = 0.0
    performance_tier: PerformanceTier = PerformanceTier.AVERAGE
    previous_score: float | None = None
    accumulated_delta: float = 0.0
    last_activity_time: datetime | None = None

    @property
    def snapshot_id(self) -> str:
        if self.role is RosterRole.SEARCH:
            return f"search_all_{self.player.player_id}"
        return f"{self.matchup_id}_{self.role}_{self.player.player_id}"

    @property
    def reconcile_key(self) -> tuple[str, str]:
        return (self.player.player_id, self.matchup_id)

    @property
    def player_id(self) -> str:
        return self.player.player_id

    @property
    def full_name(self) -> str:
        return self.player.full_name

    @property
    def position(self) -> Position:
        return self.player.position

    @property
    def team(self) -> str:
        return self.player.team

    @property
    def current_score(self) -> float:
        return self.player.current_score

    @property
    def projected_score(self) -> float:
        return self.player.projected_score

    @property
    def is_search_result(self) -> bool:
        return self.role is RosterRole.SEARCH

    def has_recent_activity(self, now: datetime, window: timedelta = RECENT_ACTIVITY_WINDOW) -> bool:
        if self.last_activity_time is None:
            return False
        return now - self.last_activity_time <= window
