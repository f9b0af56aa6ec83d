"""Standings, elimination risk and the elimination ledger for survival-format leagues."""

from __future__ import annotations

import logging
import math
import statistics
from typing import TYPE_CHECKING

from fantasy_football_manager.domain.survival import EliminationEvent, EliminationStatus, SurvivalRanking, TeamStanding
from fantasy_football_manager.services.extractor import is_valid_starter

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fantasy_football_manager.domain.matchup import FantasyTeam, MatchupContext

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_PERIODS = 18
LARGE_FIELD_SIZE = 18
SCORE_VARIANCE = 10.0
TIE_TOLERANCE = 0.005

_RANK_WEIGHT = 0.6
_PROJECTION_WEIGHT = 0.4


class SurvivalLedger:
    """Append-only elimination history; at most one entry per team per league and period."""

    def __init__(self) -> None:
        self._events: dict[str, list[EliminationEvent]] = {}

    def record(self, event: EliminationEvent) -> bool:
        events = self._events.setdefault(event.league_id, [])
        if any(e.period == event.period and e.team_id == event.team_id for e in events):
            return False
        events.append(event)
        logger.info(
            "%s eliminated from %s in week %d (%.2f pts, %s)",
            event.team_name,
            event.league_id,
            event.period,
            event.score,
            event.drama_label,
        )
        return True

    def history(self, league_id: str) -> tuple[EliminationEvent, ...]:
        return tuple(self._events.get(league_id, ()))

    def elimination_of(self, league_id: str, team_id: str) -> EliminationEvent | None:
        return next((e for e in self._events.get(league_id, ()) if e.team_id == team_id), None)

    def has_period(self, league_id: str, period: int) -> bool:
        return any(e.period == period for e in self._events.get(league_id, ()))


def is_active_team(team: FantasyTeam) -> bool:
    return any(is_valid_starter(p) for p in team.roster)


def ranking_score(team: FantasyTeam) -> float:
    return team.current_score if team.current_score > 0 else team.projected_score


def elimination_count(active_teams: int) -> int:
    return 2 if active_teams >= LARGE_FIELD_SIZE else 1


def status_for_rank(rank: int, total: int, eliminations: int) -> EliminationStatus:
    if rank == 1:
        return EliminationStatus.CHAMPION
    if rank > total - eliminations:
        return EliminationStatus.CRITICAL
    if rank > total * 3 // 4:
        return EliminationStatus.DANGER
    if rank > total // 2:
        return EliminationStatus.WARNING
    return EliminationStatus.SAFE


def _logistic(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def survival_probability(
    rank: int,
    total: int,
    projected: float,
    average_projected: float,
    weeks_remaining: int,
    total_periods: int = DEFAULT_TOTAL_PERIODS,
) -> float:
    """Blend standing and projection into a probability in [0, 1].

    More remaining weeks pull the estimate toward a coin flip.
    """
    if total <= 1:
        return 1.0
    rank_component = (total - rank) / (total - 1)
    ratio = projected / average_projected if average_projected > 0 else 1.0
    projection_component = _logistic((ratio - 1.0) * average_projected / SCORE_VARIANCE)
    weekly = _RANK_WEIGHT * rank_component + _PROJECTION_WEIGHT * projection_component
    horizon = min(max(weeks_remaining, 0) / max(total_periods, 1), 1.0)
    probability = 0.5 + (weekly - 0.5) * (1.0 - horizon / 2)
    return max(0.0, min(probability, 1.0))


def drama_for_margin(margin: float) -> float:
    if margin <= TIE_TOLERANCE:
        return 1.0
    if margin < 1.0:
        return 0.8
    if margin < 5.0:
        return 0.6
    if margin < 15.0:
        return 0.4
    if margin < 30.0:
        return 0.2
    return 0.1


def _elimination_events(
    league_id: str, period: int, ordered: Sequence[tuple[FantasyTeam, float]], eliminations: int
) -> list[EliminationEvent]:
    total = len(ordered)
    if total < 2:
        return []
    events: list[EliminationEvent] = []
    for index in range(max(total - eliminations, 1), total):
        team, score = ordered[index]
        next_lowest = ordered[index - 1][1]
        margin = next_lowest - score
        tied = margin <= TIE_TOLERANCE
        events.append(
            EliminationEvent(
                league_id=league_id,
                period=period,
                team_id=team.team_id,
                team_name=team.name,
                score=score,
                margin=max(margin, 0.0),
                drama=drama_for_margin(margin),
                note="Tied for last place" if tied else f"Missed survival by {margin:.2f}",
            )
        )
    return events


def rank_survival_league(
    context: MatchupContext,
    ledger: SurvivalLedger,
    total_periods: int = DEFAULT_TOTAL_PERIODS,
) -> SurvivalRanking:
    """Rank every team in a survival league for the context's period.

    Teams without a single valid roster player are treated as already
    eliminated and listed separately. A final period appends its
    eliminations to *ledger*.
    """
    league = context.league
    teams = context.league_teams or ((context.ranked_entry.team,) if context.ranked_entry else ())
    active = [t for t in teams if is_active_team(t)]
    gone = [t for t in teams if not is_active_team(t)]

    ordered = sorted(((t, ranking_score(t)) for t in active), key=lambda pair: (-pair[1], pair[0].team_id))
    total = len(ordered)
    eliminations = elimination_count(total)
    started = any(t.current_score > 0 for t in active)
    weeks_remaining = max(0, total_periods - context.period)

    projections = [t.projected_score for t in active]
    average_projected = statistics.fmean(projections) if projections else 0.0
    scores = [score for _, score in ordered]
    cutoff_index = max(total - eliminations, 0)
    cutoff = scores[cutoff_index] if scores and cutoff_index < total else 0.0
    last_safe = scores[cutoff_index - 1] if 0 < cutoff_index <= total else 0.0

    standings: list[TeamStanding] = []
    for rank, (team, score) in enumerate(ordered, start=1):
        if not started:
            status, probability, margin = EliminationStatus.SAFE, 1.0, 0.0
        else:
            status = status_for_rank(rank, total, eliminations)
            probability = survival_probability(
                rank, total, team.projected_score, average_projected, weeks_remaining, total_periods
            )
            in_zone = status is EliminationStatus.CRITICAL
            margin = score - last_safe if in_zone else score - cutoff
        standings.append(
            TeamStanding(
                team=team,
                rank=rank,
                score=score,
                projected_score=team.projected_score,
                status=status,
                survival_probability=probability,
                safety_margin=margin,
                weeks_alive=context.period,
            )
        )

    if context.is_period_final and started and not ledger.has_period(league.league_id, context.period):
        for event in _elimination_events(league.league_id, context.period, ordered, eliminations):
            ledger.record(event)

    eliminated: list[TeamStanding] = []
    for offset, team in enumerate(sorted(gone, key=lambda t: t.team_id), start=1):
        event = ledger.elimination_of(league.league_id, team.team_id)
        eliminated.append(
            TeamStanding(
                team=team,
                rank=total + offset,
                score=team.current_score,
                projected_score=team.projected_score,
                status=EliminationStatus.ELIMINATED,
                survival_probability=0.0,
                safety_margin=0.0,
                weeks_alive=event.period if event else 0,
            )
        )

    return SurvivalRanking(
        league_id=league.league_id,
        league_name=league.name,
        period=context.period,
        standings=tuple(standings),
        eliminated=tuple(eliminated),
        history=ledger.history(league.league_id),
        elimination_count=eliminations,
        cutoff_score=cutoff,
        average_score=statistics.fmean(scores) if scores else 0.0,
        highest_score=scores[0] if scores else 0.0,
        lowest_score=scores[-1] if scores else 0.0,
        has_scoring_started=started,
    )
