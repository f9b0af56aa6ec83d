from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from fantasy_football_manager.domain.directory import DirectoryPlayer
    from fantasy_football_manager.domain.matchup import LeagueInfo, MatchupContext
    from fantasy_football_manager.domain.positions import Position


class SourceError(Exception):
    """Raised by an adapter when an upstream platform cannot supply data."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class MatchupSourceProvider(Protocol):
    async def list_leagues(self, season: int) -> list[LeagueInfo]: ...

    async def fetch_context(self, league: LeagueInfo, season: int, period: int) -> MatchupContext: ...


class PlayerDirectoryLookup(Protocol):
    def get(self, player_id: str) -> DirectoryPlayer | None: ...

    def all_players(self) -> list[DirectoryPlayer]: ...

    def find(
        self, name: str, team: str | None = None, position: Position | None = None
    ) -> DirectoryPlayer | None: ...


class GameStatusLookup(Protocol):
    async def refresh(self) -> None: ...

    def is_live(self, team: str) -> bool: ...
