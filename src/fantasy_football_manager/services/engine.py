"""The live roster engine: one update path from matchup contexts to published views."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from fantasy_football_manager.domain.distribution import ScoreSummary
from fantasy_football_manager.domain.errors import NoDataError, PartialDataError
from fantasy_football_manager.domain.filters import FilterState
from fantasy_football_manager.services.extractor import ExtractionSettings, extract_all
from fantasy_football_manager.services.filter_sort import FilterResult, FilterSortPipeline
from fantasy_football_manager.services.reconciler import index_by_key
from fantasy_football_manager.services.statistics import (
    EMPTY_DISTRIBUTION,
    apply_distribution,
    compute_distribution,
    merge_summary,
    summarize,
)
from fantasy_football_manager.services.survival_ranker import (
    DEFAULT_TOTAL_PERIODS,
    SurvivalLedger,
    rank_survival_league,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from fantasy_football_manager.domain.distribution import DistributionStats
    from fantasy_football_manager.domain.matchup import MatchupContext
    from fantasy_football_manager.domain.snapshot import PlayerSnapshot
    from fantasy_football_manager.domain.survival import SurvivalRanking
    from fantasy_football_manager.services.reconciler import SnapshotKey

logger = logging.getLogger(__name__)


class UpdateMode(StrEnum):
    VISIBLE = "visible"
    SILENT = "silent"


class DataState(StrEnum):
    INITIAL = "initial"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    NO_DATA = "no_data"


class PassStatus(StrEnum):
    APPLIED = "applied"
    ABORTED_PARTIAL = "aborted_partial"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"
    FAILED = "failed"


class EventKind(StrEnum):
    LOADING = "loading"
    UPDATED = "updated"
    FILTERED = "filtered"
    NO_DATA = "no_data"


@dataclass(frozen=True)
class PassOutcome:
    status: PassStatus
    mode: UpdateMode
    player_count: int = 0
    error: PartialDataError | NoDataError | None = None


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only view of everything the engine currently publishes."""

    canonical: tuple[PlayerSnapshot, ...]
    view: FilterResult
    global_stats: DistributionStats
    summary: ScoreSummary
    survival: dict[str, SurvivalRanking]
    data_state: DataState
    last_updated: datetime | None
    pass_count: int


@dataclass(frozen=True)
class EngineEvent:
    kind: EventKind
    mode: UpdateMode
    snapshot: EngineSnapshot | None = None

    @property
    def resets_view(self) -> bool:
        """Visible updates may reset scroll and selection; silent ones must not."""
        return self.mode is UpdateMode.VISIBLE


type EngineObserver = Callable[[EngineEvent], None]


@dataclass(frozen=True)
class EngineSettings:
    show_eliminated_survival: bool = False
    show_eliminated_playoff: bool = False
    max_empty_attempts: int = 3
    total_periods: int = DEFAULT_TOTAL_PERIODS
    default_filters: FilterState = field(default_factory=FilterState)

    @property
    def extraction(self) -> ExtractionSettings:
        return ExtractionSettings(
            show_eliminated_survival=self.show_eliminated_survival,
            show_eliminated_playoff=self.show_eliminated_playoff,
        )


def _utc_now() -> datetime:
    return datetime.now(UTC)


class LiveRosterEngine:
    """Holds the canonical snapshot list and derives every published view from it.

    All state changes go through ``apply_pass``. A pass computes its results
    into locals and commits them at the end, so an aborted pass leaves the
    previous state untouched.
    """

    def __init__(
        self,
        pipeline: FilterSortPipeline,
        settings: EngineSettings | None = None,
        ledger: SurvivalLedger | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._pipeline = pipeline
        self._settings = settings or EngineSettings()
        self._ledger = ledger or SurvivalLedger()
        self._clock = clock
        self._observers: list[EngineObserver] = []
        self._filters = self._settings.default_filters
        self._canonical: tuple[PlayerSnapshot, ...] = ()
        self._prior: dict[SnapshotKey, PlayerSnapshot] = {}
        self._prior_leagues: dict[str, str] = {}
        self._global_stats: DistributionStats = EMPTY_DISTRIBUTION
        self._summary = ScoreSummary()
        self._survival: dict[str, SurvivalRanking] = {}
        self._view = FilterResult(players=(), stats=EMPTY_DISTRIBUTION, state=self._filters)
        self._data_state = DataState.INITIAL
        self._state_before_load = DataState.INITIAL
        self._last_updated: datetime | None = None
        self._empty_attempts = 0
        self._pass_count = 0

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def data_state(self) -> DataState:
        return self._data_state

    @property
    def ledger(self) -> SurvivalLedger:
        return self._ledger

    def subscribe(self, observer: EngineObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            canonical=self._canonical,
            view=self._view,
            global_stats=self._global_stats,
            summary=self._summary,
            survival=dict(self._survival),
            data_state=self._data_state,
            last_updated=self._last_updated,
            pass_count=self._pass_count,
        )

    def begin_visible_load(self) -> None:
        """Signal a visible pass is starting; silent passes never call this."""
        if self._data_state in (DataState.INITIAL, DataState.EMPTY, DataState.NO_DATA):
            self._state_before_load = self._data_state
            self._data_state = DataState.LOADING
        self._emit(EngineEvent(EventKind.LOADING, UpdateMode.VISIBLE))

    def cancel_visible_load(self) -> None:
        if self._data_state is DataState.LOADING:
            self._data_state = self._state_before_load

    def apply_visible(
        self, contexts: Sequence[MatchupContext], expected: int, excluded: Collection[str] = ()
    ) -> PassOutcome:
        return self.apply_pass(contexts, expected, UpdateMode.VISIBLE, excluded)

    def apply_silent(
        self, contexts: Sequence[MatchupContext], expected: int, excluded: Collection[str] = ()
    ) -> PassOutcome:
        return self.apply_pass(contexts, expected, UpdateMode.SILENT, excluded)

    def apply_pass(
        self,
        contexts: Sequence[MatchupContext],
        expected: int,
        mode: UpdateMode,
        excluded: Collection[str] = (),
    ) -> PassOutcome:
        """Apply one pass. *excluded* names leagues whose fetch failed; their history is carried forward."""
        populated = [c for c in contexts if c.is_populated]
        if len(populated) < expected:
            error = PartialDataError(
                message=f"Only {len(populated)} of {expected} league contexts available",
                expected=expected,
                available=len(populated),
            )
            logger.info("Skipping %s pass: %s", mode, error.message)
            self.cancel_visible_load()
            return PassOutcome(PassStatus.ABORTED_PARTIAL, mode, len(self._canonical), error)

        now = self._clock()
        fresh = extract_all(populated, self._settings.extraction, self._prior, now)
        global_stats = compute_distribution(s.current_score for s in fresh)
        canonical = tuple(apply_distribution(fresh, global_stats))
        fresh_summary = summarize(global_stats)
        summary = fresh_summary if mode is UpdateMode.VISIBLE else merge_summary(self._summary, fresh_summary)
        view = self._pipeline.run(canonical, self._filters, data_loaded=True)
        survival = {
            c.league.league_id: rank_survival_league(c, self._ledger, self._settings.total_periods)
            for c in populated
            if c.is_survival
        }

        carried = {
            key: snapshot
            for key, snapshot in self._prior.items()
            if self._prior_leagues.get(snapshot.matchup_id) in excluded
        }
        prior_leagues = {m: lid for m, lid in self._prior_leagues.items() if lid in excluded}
        prior_leagues.update((c.matchup_id, c.league.league_id) for c in populated)

        empty_attempts = self._empty_attempts + 1 if not canonical else 0
        if canonical:
            data_state = DataState.LOADED
        elif empty_attempts >= self._settings.max_empty_attempts:
            data_state = DataState.NO_DATA
        else:
            data_state = DataState.EMPTY

        self._canonical = canonical
        self._prior = carried | index_by_key(canonical)
        self._prior_leagues = prior_leagues
        self._global_stats = global_stats
        self._summary = summary
        self._view = view
        self._filters = view.state
        self._survival = survival
        self._data_state = data_state
        self._empty_attempts = empty_attempts
        self._last_updated = now
        self._pass_count += 1

        logger.debug("%s pass applied: %d players, %d visible", mode, len(canonical), len(view.players))
        if data_state is DataState.NO_DATA:
            error = NoDataError(message=f"No player data after {empty_attempts} attempts", attempts=empty_attempts)
            logger.warning(error.message)
            self._emit(EngineEvent(EventKind.NO_DATA, mode, self.snapshot()))
            return PassOutcome(PassStatus.APPLIED, mode, 0, error)
        self._emit(EngineEvent(EventKind.UPDATED, mode, self.snapshot()))
        return PassOutcome(PassStatus.APPLIED, mode, len(canonical))

    def set_filter(self, state: FilterState) -> FilterResult:
        """Re-run the pipeline over the current canonical list without fetching."""
        view = self._pipeline.run(self._canonical, state, data_loaded=self._data_state is DataState.LOADED)
        self._view = view
        self._filters = view.state
        self._emit(EngineEvent(EventKind.FILTERED, UpdateMode.VISIBLE, self.snapshot()))
        return view

    def reset_filters(self) -> FilterResult:
        return self.set_filter(self._settings.default_filters)

    def validate_consistency(self) -> list[str]:
        """Describe any published state that disagrees with itself; empty when consistent."""
        issues: list[str] = []
        if self._data_state is DataState.LOADED and not self._canonical:
            issues.append("Data marked loaded but no players are held")
        if self._canonical and not self._view.players and not self._filters.is_searching:
            issues.append(f"All {len(self._canonical)} players filtered out by {self._filters}")
        ids = [s.snapshot_id for s in self._canonical]
        if len(ids) != len(set(ids)):
            issues.append(f"{len(ids) - len(set(ids))} duplicate snapshot ids in the canonical list")
        if self._view.stats.count != len(self._view.players):
            issues.append("Visible statistics were not computed from the visible players")
        if self._canonical and self._last_updated is None:
            issues.append("Players held without a last-updated time")
        return issues

    def _emit(self, event: EngineEvent) -> None:
        for observer in list(self._observers):
            observer(event)
