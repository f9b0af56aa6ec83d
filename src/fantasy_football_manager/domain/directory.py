from dataclasses import dataclass

from fantasy_football_manager.domain.positions import Position


@dataclass(frozen=True)
class DirectoryPlayer:
    player_id: str
    first_name: str
    last_name: str
    position: Position
    team: str | None = None
    jersey_number: str | None = None
    injury_status: str | None = None
    search_rank: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def short_name(self) -> str:
        if not self.first_name:
            return self.last_name
        return f"{self.first_name[0]}. {self.last_name}".strip()
