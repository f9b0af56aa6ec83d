import asyncio

from fantasy_football_manager.domain.matchup import MatchupContext
from fantasy_football_manager.services.engine import DataState, LiveRosterEngine, PassStatus
from fantasy_football_manager.services.filter_sort import FilterSortPipeline
from fantasy_football_manager.services.scheduler import (
    PeriodChanged,
    PeriodSelection,
    SchedulerSettings,
    UpdateScheduler,
)
from fantasy_football_manager.sources.protocols import SourceError
from tests.factories import h2h_context, make_league, make_player
from tests.fakes.sources import FakeGameStatus, FakeMatchupSource

_FAST = SchedulerSettings(poll_interval=0.01, max_concurrent_fetches=2, debounce_seconds=0.02)


def _source(leagues: int = 2, delay: float = 0.0, failing: set[str] | None = None) -> FakeMatchupSource:
    infos = [make_league(f"L{i}", f"League {i}") for i in range(leagues)]
    contexts: dict[tuple[str, int], MatchupContext] = {}
    for info in infos:
        for period in (6, 7):
            player = make_player(f"{info.league_id}-p", score=float(period))
            contexts[(info.league_id, period)] = h2h_context((player,), league=info, period=period)
    return FakeMatchupSource(infos, contexts, failing=failing, delay=delay)


def _scheduler(
    source: FakeMatchupSource,
    settings: SchedulerSettings = _FAST,
    game_status: FakeGameStatus | None = None,
) -> tuple[UpdateScheduler, LiveRosterEngine, PeriodSelection]:
    status = game_status or FakeGameStatus()
    engine = LiveRosterEngine(FilterSortPipeline(status))
    periods = PeriodSelection(season=2025, period=6)
    return UpdateScheduler(engine, source, status, periods, settings), engine, periods


class TestRefresh:
    async def test_visible_refresh_applies(self) -> None:
        scheduler, engine, _ = _scheduler(_source())
        outcome = await scheduler.refresh_visible()
        assert outcome.status is PassStatus.APPLIED
        assert outcome.player_count == 2
        assert engine.data_state is DataState.LOADED

    async def test_fetches_are_bounded(self) -> None:
        source = _source(leagues=5, delay=0.01)
        scheduler, _, _ = _scheduler(source)
        await scheduler.refresh_silent()
        assert len(source.fetches) == 5
        assert source.max_in_flight == 2

    async def test_failed_league_is_excluded(self) -> None:
        scheduler, engine, _ = _scheduler(_source(leagues=3, failing={"L1"}))
        outcome = await scheduler.refresh_visible()
        assert outcome.status is PassStatus.APPLIED
        assert {s.matchup_id for s in engine.snapshot().canonical} == {"L0_6", "L2_6"}

    async def test_league_listing_failure_keeps_state(self) -> None:
        source = _source()
        scheduler, engine, _ = _scheduler(source)
        await scheduler.refresh_visible()
        before = engine.snapshot()
        source.list_error = SourceError("sleeper down")
        outcome = await scheduler.refresh_silent()
        assert outcome.status is PassStatus.FAILED
        assert engine.snapshot() == before

    async def test_every_league_failing_keeps_last_good_data(self) -> None:
        source = _source()
        scheduler, engine, _ = _scheduler(source)
        await scheduler.refresh_visible()
        before = engine.snapshot()
        source.failing = {"L0", "L1"}
        outcome = await scheduler.refresh_silent()
        assert outcome.status is PassStatus.FAILED
        assert engine.snapshot() == before
        assert engine.data_state is DataState.LOADED

    async def test_every_league_failing_restores_loading_state(self) -> None:
        scheduler, engine, _ = _scheduler(_source(failing={"L0", "L1"}))
        outcome = await scheduler.refresh_visible()
        assert outcome.status is PassStatus.FAILED
        assert engine.data_state is DataState.INITIAL

    async def test_game_status_failure_does_not_abort(self) -> None:
        status = FakeGameStatus(fail=True)
        scheduler, _, _ = _scheduler(_source(), game_status=status)
        outcome = await scheduler.refresh_visible()
        assert outcome.status is PassStatus.APPLIED
        assert status.refreshes == 1

    async def test_concurrent_pass_is_rejected(self) -> None:
        scheduler, _, _ = _scheduler(_source(delay=0.05))
        first = asyncio.create_task(scheduler.refresh_visible())
        await asyncio.sleep(0)
        rejected = await scheduler.refresh_silent()
        assert rejected.status is PassStatus.REJECTED
        assert (await first).status is PassStatus.APPLIED


class TestPeriodChanges:
    async def test_rapid_changes_coalesce_into_one_pass(self) -> None:
        source = _source()
        scheduler, engine, periods = _scheduler(source)
        await scheduler.start(poll=False)
        source.fetches.clear()

        periods.select(7)
        periods.select(6)
        periods.select(7)
        await asyncio.sleep(0.15)

        assert source.fetches.count(("L0", 7)) == 1
        assert {s.matchup_id for s in engine.snapshot().canonical} == {"L0_7", "L1_7"}
        await scheduler.stop()

    async def test_period_change_supersedes_in_flight_pass(self) -> None:
        source = _source(delay=0.1)
        scheduler, engine, periods = _scheduler(source)
        periods.subscribe(scheduler.on_period_changed)

        first = asyncio.create_task(scheduler.refresh_visible())
        await asyncio.sleep(0.01)
        periods.select(7)

        assert (await first).status is PassStatus.SUPERSEDED
        await asyncio.sleep(0.4)
        assert {s.matchup_id for s in engine.snapshot().canonical} == {"L0_7", "L1_7"}
        await scheduler.stop()

    async def test_stop_unsubscribes(self) -> None:
        source = _source()
        scheduler, _, periods = _scheduler(source)
        await scheduler.start(poll=False)
        await scheduler.stop()
        source.fetches.clear()
        periods.select(7)
        await asyncio.sleep(0.1)
        assert source.fetches == []


class TestPolling:
    async def test_poll_loop_runs_silent_passes_until_stopped(self) -> None:
        source = _source()
        scheduler, engine, _ = _scheduler(source)
        await scheduler.start(poll=True)
        assert scheduler.is_running
        await asyncio.sleep(0.08)
        await scheduler.stop()
        assert not scheduler.is_running
        assert engine.snapshot().pass_count > 1


class TestPeriodSelection:
    def test_same_period_does_not_notify(self) -> None:
        periods = PeriodSelection(season=2025, period=6)
        events: list[PeriodChanged] = []
        periods.subscribe(events.append)
        periods.select(6)
        periods.select(7)
        assert events == [PeriodChanged(season=2025, period=7)]

    def test_unsubscribe(self) -> None:
        periods = PeriodSelection(season=2025, period=6)
        events: list[PeriodChanged] = []
        unsubscribe = periods.subscribe(events.append)
        unsubscribe()
        periods.select(9, season=2026)
        assert events == []
        assert periods.current == PeriodChanged(season=2026, period=9)
