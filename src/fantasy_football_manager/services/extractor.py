"""Turn matchup contexts into per-player snapshots for the user's own starters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fantasy_football_manager.domain.positions import Position
from fantasy_football_manager.domain.snapshot import PlayerSnapshot, RosterRole
from fantasy_football_manager.services.reconciler import reconcile

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from fantasy_football_manager.domain.matchup import MatchupContext, RosterPlayer
    from fantasy_football_manager.services.reconciler import SnapshotKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionSettings:
    show_eliminated_survival: bool = False
    show_eliminated_playoff: bool = False


def is_valid_starter(player: RosterPlayer) -> bool:
    return bool(player.full_name) and player.position not in (Position.NONE, Position.FLEX)


def is_chopped_roster(starters: Iterable[RosterPlayer]) -> bool:
    """A survival roster with no identifiable starter has been eliminated, not merely outscored."""
    return not any(is_valid_starter(p) for p in starters)


def _snapshots_for(
    context: MatchupContext, starters: Iterable[RosterPlayer], role: RosterRole
) -> list[PlayerSnapshot]:
    return [
        PlayerSnapshot(
            player=player,
            matchup_id=context.matchup_id,
            role=role,
            league_name=context.league.name,
            league_source=context.league.source,
            is_starter=True,
        )
        for player in starters
    ]


def _extract_fresh(context: MatchupContext, settings: ExtractionSettings) -> list[PlayerSnapshot]:
    if context.head_to_head is not None:
        if context.is_playoff_eliminated and not settings.show_eliminated_playoff:
            logger.debug("Skipping playoff-eliminated league %s", context.league.name)
            return []
        return _snapshots_for(context, context.head_to_head.my_team.starters, RosterRole.MY_TEAM)

    if context.ranked_entry is not None:
        entry = context.ranked_entry
        if entry.is_eliminated and not settings.show_eliminated_survival:
            logger.debug("Skipping eliminated survival league %s", context.league.name)
            return []
        starters = entry.team.starters
        if is_chopped_roster(starters):
            logger.debug("%s has no valid starters in %s; treating as chopped", entry.team.name, context.league.name)
            return []
        return _snapshots_for(context, starters, RosterRole.SURVIVAL)

    logger.debug("Context %s has no roster shape; nothing extracted", context.matchup_id)
    return []


def extract_snapshots(
    context: MatchupContext,
    settings: ExtractionSettings,
    prior: Mapping[SnapshotKey, PlayerSnapshot] | None = None,
    now: datetime | None = None,
) -> list[PlayerSnapshot]:
    """Extract starters from *context*, reconciled against *prior* when it is given."""
    fresh = _extract_fresh(context, settings)
    if now is None:
        return fresh
    return reconcile(fresh, prior or {}, now)


def extract_all(
    contexts: Iterable[MatchupContext],
    settings: ExtractionSettings,
    prior: Mapping[SnapshotKey, PlayerSnapshot] | None = None,
    now: datetime | None = None,
) -> list[PlayerSnapshot]:
    snapshots: list[PlayerSnapshot] = []
    for context in contexts:
        snapshots.extend(extract_snapshots(context, settings, prior, now))
    return snapshots
