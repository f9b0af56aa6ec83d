"""Search, filter, bucket-local scoring and ordering over the canonical snapshot list."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fantasy_football_manager.domain.filters import FilterState, SortMethod
from fantasy_football_manager.domain.matchup import LeagueSource, RosterPlayer
from fantasy_football_manager.domain.positions import Position, position_priority
from fantasy_football_manager.domain.snapshot import PlayerSnapshot, RosterRole
from fantasy_football_manager.services.statistics import apply_distribution, compute_distribution

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from fantasy_football_manager.domain.directory import DirectoryPlayer
    from fantasy_football_manager.domain.distribution import DistributionStats
    from fantasy_football_manager.sources.protocols import GameStatusLookup, PlayerDirectoryLookup

logger = logging.getLogger(__name__)

SEARCH_LEAGUE_NAME = "NFL Search"
SEARCH_MATCHUP_ID = "search"
DEFAULT_SEARCH_LIMIT = 50
UNKNOWN_PLAYER_NAME = "unknown player"
_DISTANT_PAST = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class FilterResult:
    players: tuple[PlayerSnapshot, ...]
    stats: DistributionStats
    state: FilterState
    recovered: bool = False


def search_terms(text: str) -> list[str]:
    return [term for term in text.lower().split() if term]


def _matches_any(terms: Sequence[str], names: Iterable[str]) -> bool:
    lowered = [name.lower() for name in names if name]
    return any(term in name for term in terms for name in lowered)


def rostered_search(snapshots: Iterable[PlayerSnapshot], text: str) -> list[PlayerSnapshot]:
    terms = search_terms(text)
    if not terms:
        return list(snapshots)
    return [
        s for s in snapshots if _matches_any(terms, (s.full_name, s.player.first_name, s.player.last_name))
    ]


def passes_quality(snapshot: PlayerSnapshot) -> bool:
    name = snapshot.full_name.strip()
    if not name or name.lower() == UNKNOWN_PLAYER_NAME:
        return False
    return snapshot.current_score >= 0


def search_snapshot(player: DirectoryPlayer) -> PlayerSnapshot:
    """A zero-score placeholder for a directory hit, tagged so it is never mistaken for rostered data."""
    return PlayerSnapshot(
        player=RosterPlayer(
            player_id=player.player_id,
            first_name=player.first_name,
            last_name=player.last_name,
            position=player.position,
            team=player.team or "",
            jersey_number=player.jersey_number,
            injury_status=player.injury_status,
        ),
        matchup_id=SEARCH_MATCHUP_ID,
        role=RosterRole.SEARCH,
        league_name=SEARCH_LEAGUE_NAME,
        league_source=LeagueSource.SEARCH,
        is_starter=False,
    )


def find_directory_players(
    directory: PlayerDirectoryLookup, text: str, limit: int = DEFAULT_SEARCH_LIMIT
) -> list[DirectoryPlayer]:
    terms = search_terms(text)
    if not terms:
        return []
    hits = [
        p
        for p in directory.all_players()
        if p.full_name
        and p.position is not Position.NONE
        and _matches_any(terms, (p.full_name, p.first_name, p.last_name, p.short_name))
    ]
    hits.sort(key=lambda p: (p.search_rank is None, p.search_rank or 0, p.full_name))
    return hits[:limit]


def directory_search(
    directory: PlayerDirectoryLookup, text: str, limit: int = DEFAULT_SEARCH_LIMIT
) -> list[PlayerSnapshot]:
    return [search_snapshot(p) for p in find_directory_players(directory, text, limit)]


def last_name(full_name: str) -> str:
    parts = full_name.split()
    return parts[-1].casefold() if parts else ""


def sort_snapshots(snapshots: Iterable[PlayerSnapshot], method: SortMethod, high_to_low: bool) -> list[PlayerSnapshot]:
    """Order snapshots; ties always fall back to snapshot id so repeated runs agree.

    For name and team, "high to low" means A to Z; for position it means QB first.
    Players without a team sort last in either direction.
    """
    ordered = sorted(snapshots, key=lambda s: s.snapshot_id)
    match method:
        case SortMethod.SCORE:
            ordered.sort(key=lambda s: s.current_score, reverse=high_to_low)
        case SortMethod.NAME:
            ordered.sort(key=lambda s: last_name(s.full_name), reverse=not high_to_low)
        case SortMethod.POSITION:
            ordered.sort(key=lambda s: position_priority(s.position), reverse=not high_to_low)
        case SortMethod.TEAM:
            ordered.sort(key=lambda s: position_priority(s.position))
            ordered.sort(key=lambda s: s.team.upper(), reverse=not high_to_low)
            ordered.sort(key=lambda s: not s.team)
        case SortMethod.RECENT:
            ordered.sort(key=lambda s: (s.last_activity_time or _DISTANT_PAST, s.current_score), reverse=True)
    return ordered


class FilterSortPipeline:
    def __init__(
        self,
        game_status: GameStatusLookup,
        directory: PlayerDirectoryLookup | None = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> None:
        self._game_status = game_status
        self._directory = directory
        self._search_limit = search_limit

    def run(self, canonical: Sequence[PlayerSnapshot], state: FilterState, *, data_loaded: bool = True) -> FilterResult:
        """Produce the visible list for *state*; *canonical* is never modified.

        An empty result from a non-empty, loaded canonical list with narrowing filters
        set is retried once with those filters reset.
        """
        result = self._run_once(canonical, state)
        if result.players or not canonical or not data_loaded:
            return result
        if state.is_searching or not state.is_narrowed:
            return result
        logger.info("No players match %s/active_only=%s; resetting filters", state.position, state.active_only)
        return replace(self._run_once(canonical, state.recovered()), recovered=True)

    def _select(self, canonical: Sequence[PlayerSnapshot], state: FilterState) -> list[PlayerSnapshot]:
        if state.is_searching:
            if state.search_all_players and self._directory is not None:
                hits = directory_search(self._directory, state.search_text, self._search_limit)
                return [s for s in hits if passes_quality(s)]
            return rostered_search(canonical, state.search_text)

        selected = [s for s in canonical if state.position.matches(s.position)]
        if state.active_only:
            selected = [s for s in selected if self._game_status.is_live(s.team)]
        return [s for s in selected if passes_quality(s)]

    def _run_once(self, canonical: Sequence[PlayerSnapshot], state: FilterState) -> FilterResult:
        selected = self._select(canonical, state)
        stats = compute_distribution(s.current_score for s in selected)
        scored = apply_distribution(selected, stats)
        return FilterResult(
            players=tuple(sort_snapshots(scored, state.sort_method, state.sort_high_to_low)),
            stats=stats,
            state=state,
        )
