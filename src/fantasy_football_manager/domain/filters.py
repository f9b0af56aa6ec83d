from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from fantasy_football_manager.domain.positions import PositionFilter


class SortMethod(StrEnum):
    POSITION = "position"
    SCORE = "score"
    NAME = "name"
    TEAM = "team"
    RECENT = "recent"


@dataclass(frozen=True)
class FilterState:
    position: PositionFilter = PositionFilter.ALL
    active_only: bool = False
    sort_method: SortMethod = SortMethod.POSITION
    sort_high_to_low: bool = True
    search_text: str = ""
    search_all_players: bool = False

    @property
    def is_searching(self) -> bool:
        return bool(self.search_text.strip())

    @property
    def is_narrowed(self) -> bool:
        return self.active_only or self.position is not PositionFilter.ALL

    def recovered(self) -> FilterState:
        """Reset the narrowing filters, keeping sort and search choices."""
        return replace(self, position=PositionFilter.ALL, active_only=False)
