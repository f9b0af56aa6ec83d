from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from fantasy_football_manager.domain.snapshot import PlayerSnapshot

ACTIVITY_THRESHOLD = 0.01

type SnapshotKey = tuple[str, str]


def index_by_key(snapshots: Iterable[PlayerSnapshot]) -> dict[SnapshotKey, PlayerSnapshot]:
    """Index snapshots by (player id, matchup id); later entries win."""
    return {snapshot.reconcile_key: snapshot for snapshot in snapshots}


def reconcile_snapshot(fresh: PlayerSnapshot, prior: PlayerSnapshot | None, now: datetime) -> PlayerSnapshot:
    """Derive delta and activity state for *fresh* from the previous cycle's snapshot.

    A first observation uses its own score as the baseline. The accumulated delta
    and activity time move only when the score changed by more than the threshold.
    """
    current = fresh.current_score
    if prior is None:
        return replace(fresh, previous_score=current, accumulated_delta=0.0, last_activity_time=None)

    previous = prior.current_score
    delta = current - previous
    if abs(delta) > ACTIVITY_THRESHOLD:
        return replace(
            fresh,
            previous_score=previous,
            accumulated_delta=prior.accumulated_delta + delta,
            last_activity_time=now,
        )
    return replace(
        fresh,
        previous_score=previous,
        accumulated_delta=prior.accumulated_delta,
        last_activity_time=prior.last_activity_time,
    )


def reconcile(
    fresh: Iterable[PlayerSnapshot],
    prior: Mapping[SnapshotKey, PlayerSnapshot],
    now: datetime,
) -> list[PlayerSnapshot]:
    return [reconcile_snapshot(snapshot, prior.get(snapshot.reconcile_key), now) for snapshot in fresh]
