from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import TYPE_CHECKING, Any

import httpx

from fantasy_football_manager.domain.directory import DirectoryPlayer
from fantasy_football_manager.domain.positions import normalize_position
from fantasy_football_manager.sources.game_status import normalize_team_code
from fantasy_football_manager.sources.protocols import SourceError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fantasy_football_manager.domain.positions import Position
    from fantasy_football_manager.sources.sleeper_client import SleeperClient

logger = logging.getLogger(__name__)

_SUFFIXES = frozenset({"jr", "sr", "ii", "iii", "iv", "v"})
_NON_ALNUM = re.compile(r"[^a-z0-9 ]")


def normalize_name(name: str) -> str:
    """Lowercase, strip punctuation and generational suffixes: ``"D.J. Moore Jr."`` -> ``"dj moore"``."""
    cleaned = _NON_ALNUM.sub("", name.lower().replace("-", " "))
    tokens = [t for t in cleaned.split() if t not in _SUFFIXES]
    return " ".join(tokens)


def _rank(player: DirectoryPlayer) -> int:
    return player.search_rank if player.search_rank is not None else 9_999_999


def parse_directory_entry(player_id: str, raw: Mapping[str, Any]) -> DirectoryPlayer:
    position = raw.get("position") or next(iter(raw.get("fantasy_positions") or []), None)
    jersey = raw.get("number")
    rank = raw.get("search_rank")
    return DirectoryPlayer(
        player_id=str(raw.get("player_id") or player_id),
        first_name=raw.get("first_name") or "",
        last_name=raw.get("last_name") or "",
        position=normalize_position(position),
        team=raw.get("team"),
        jersey_number=str(jersey) if jersey is not None else None,
        injury_status=raw.get("injury_status"),
        search_rank=int(rank) if rank is not None else None,
    )


class SleeperPlayerDirectory:
    """In-memory index over Sleeper's full NFL player list."""

    def __init__(self, client: SleeperClient | None = None) -> None:
        self._client = client
        self._players: dict[str, DirectoryPlayer] = {}
        self._by_name: dict[str, list[DirectoryPlayer]] = defaultdict(list)

    @property
    def is_loaded(self) -> bool:
        return bool(self._players)

    async def load(self, *, force: bool = False) -> int:
        if self.is_loaded and not force:
            return len(self._players)
        if self._client is None:
            raise SourceError("No Sleeper client configured for the player directory")
        try:
            raw = await self._client.get_players()
        except httpx.HTTPError as e:
            raise SourceError("Failed to load Sleeper player directory", cause=e) from e
        self.index(raw)
        logger.info("Loaded %d players into the directory", len(self._players))
        return len(self._players)

    def index(self, raw: Mapping[str, Mapping[str, Any]]) -> None:
        players = {pid: parse_directory_entry(pid, entry) for pid, entry in raw.items()}
        by_name: dict[str, list[DirectoryPlayer]] = defaultdict(list)
        for player in players.values():
            key = normalize_name(player.full_name)
            if key:
                by_name[key].append(player)
        self._players = players
        self._by_name = by_name

    def get(self, player_id: str) -> DirectoryPlayer | None:
        return self._players.get(player_id)

    def all_players(self) -> list[DirectoryPlayer]:
        return list(self._players.values())

    def find(self, name: str, team: str | None = None, position: Position | None = None) -> DirectoryPlayer | None:
        candidates = self._by_name.get(normalize_name(name), [])
        if team:
            wanted = normalize_team_code(team)
            candidates = [c for c in candidates if c.team and normalize_team_code(c.team) == wanted]
        if position is not None:
            candidates = [c for c in candidates if c.position is position]
        if not candidates:
            return None
        return min(candidates, key=_rank)
