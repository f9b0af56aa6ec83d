"""Polling, bounded league fan-out, period-change debouncing and pass supersession."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fantasy_football_manager.domain.errors import SourceFetchError
from fantasy_football_manager.domain.result import Err, Ok, Result, partition_results
from fantasy_football_manager.services.engine import PassOutcome, PassStatus, UpdateMode
from fantasy_football_manager.sources.protocols import SourceError

if TYPE_CHECKING:
    from fantasy_football_manager.domain.matchup import LeagueInfo, MatchupContext
    from fantasy_football_manager.services.engine import LiveRosterEngine
    from fantasy_football_manager.sources.protocols import GameStatusLookup, MatchupSourceProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodChanged:
    season: int
    period: int


type PeriodListener = Callable[[PeriodChanged], None]


class PeriodSelection:
    """Publishes the selected season and scoring period to its subscribers."""

    def __init__(self, season: int, period: int) -> None:
        self._current = PeriodChanged(season=season, period=period)
        self._listeners: list[PeriodListener] = []

    @property
    def current(self) -> PeriodChanged:
        return self._current

    def subscribe(self, listener: PeriodListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def select(self, period: int, season: int | None = None) -> None:
        selected = PeriodChanged(season=self._current.season if season is None else season, period=period)
        if selected == self._current:
            return
        self._current = selected
        for listener in list(self._listeners):
            listener(selected)


@dataclass(frozen=True)
class SchedulerSettings:
    poll_interval: float = 15.0
    max_concurrent_fetches: int = 2
    debounce_seconds: float = 0.5


def _log_task_failure(task: asyncio.Task[object]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Background refresh task %s failed", task.get_name(), exc_info=error)


class UpdateScheduler:
    """Drives the engine: one pass at a time, newest period wins.

    A pass fetches every connected league (at most ``max_concurrent_fetches`` in
    flight), then hands the contexts to the engine in a single synchronous call.
    Passes started while another is running are rejected. A period change
    bumps the generation, cancels the running pass and starts a visible one
    once the debounce window has been quiet.
    """

    def __init__(
        self,
        engine: LiveRosterEngine,
        source: MatchupSourceProvider,
        game_status: GameStatusLookup,
        periods: PeriodSelection,
        settings: SchedulerSettings | None = None,
    ) -> None:
        self._engine = engine
        self._source = source
        self._game_status = game_status
        self._periods = periods
        self._settings = settings or SchedulerSettings()
        self._lock = asyncio.Lock()
        self._generation = 0
        self._inflight: asyncio.Task[PassOutcome] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._debounce_task: asyncio.Task[None] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def start(self, *, poll: bool = True) -> PassOutcome:
        if self._unsubscribe is None:
            self._unsubscribe = self._periods.subscribe(self.on_period_changed)
        outcome = await self.refresh_visible()
        if poll and not self.is_running:
            self._poll_task = asyncio.create_task(self._poll_loop(), name="ffm-poll")
            self._poll_task.add_done_callback(_log_task_failure)
        return outcome

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._generation += 1
        for task in (self._debounce_task, self._poll_task, self._inflight):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._debounce_task = None
        self._poll_task = None

    async def refresh_visible(self) -> PassOutcome:
        return await self._run(UpdateMode.VISIBLE)

    async def refresh_silent(self) -> PassOutcome:
        return await self._run(UpdateMode.SILENT)

    def on_period_changed(self, event: PeriodChanged) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(self._debounced_refresh(event), name="ffm-period-change")
        self._debounce_task.add_done_callback(_log_task_failure)

    async def _debounced_refresh(self, event: PeriodChanged) -> None:
        await asyncio.sleep(self._settings.debounce_seconds)
        logger.info("Scoring period changed to %d week %d; refreshing", event.season, event.period)
        await self._supersede()
        await self._run(UpdateMode.VISIBLE, wait=True)

    async def _supersede(self) -> None:
        self._generation += 1
        task = self._inflight
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.poll_interval)
            outcome = await self.refresh_silent()
            logger.debug("Poll finished: %s (%d players)", outcome.status, outcome.player_count)

    async def _run(self, mode: UpdateMode, *, wait: bool = False) -> PassOutcome:
        if self._lock.locked() and not wait:
            logger.debug("Rejecting %s pass; another pass is in flight", mode)
            return PassOutcome(PassStatus.REJECTED, mode)
        async with self._lock:
            generation = self._generation
            self._inflight = asyncio.create_task(self._execute(mode, generation), name=f"ffm-{mode}-pass")
            try:
                return await self._inflight
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                logger.info("Discarded %s pass superseded by a newer one", mode)
                self._engine.cancel_visible_load()
                return PassOutcome(PassStatus.SUPERSEDED, mode)
            finally:
                self._inflight = None

    async def _execute(self, mode: UpdateMode, generation: int) -> PassOutcome:
        if mode is UpdateMode.VISIBLE:
            self._engine.begin_visible_load()
        period = self._periods.current
        try:
            leagues = await self._source.list_leagues(period.season)
        except SourceError as e:
            logger.warning("Could not list leagues: %s", e.message)
            self._engine.cancel_visible_load()
            return PassOutcome(PassStatus.FAILED, mode)

        await self._refresh_game_status()
        results = await self._fetch_all(leagues, period)
        contexts, errors = partition_results(results)

        if generation != self._generation:
            logger.info("Discarded %s pass for week %d; a newer pass started", mode, period.period)
            self._engine.cancel_visible_load()
            return PassOutcome(PassStatus.SUPERSEDED, mode)

        if errors and not contexts:
            logger.warning("Every league fetch failed for week %d; keeping the last good data", period.period)
            self._engine.cancel_visible_load()
            return PassOutcome(PassStatus.FAILED, mode)

        expected = len(leagues) - len(errors)
        excluded = {e.league_id for e in errors}
        if mode is UpdateMode.VISIBLE:
            return self._engine.apply_visible(contexts, expected, excluded)
        return self._engine.apply_silent(contexts, expected, excluded)

    async def _refresh_game_status(self) -> None:
        try:
            await self._game_status.refresh()
        except SourceError as e:
            logger.warning("Game status unavailable, keeping last known: %s", e.message)

    async def _fetch_all(
        self, leagues: list[LeagueInfo], period: PeriodChanged
    ) -> list[Result[MatchupContext, SourceFetchError]]:
        semaphore = asyncio.Semaphore(self._settings.max_concurrent_fetches)

        async def _fetch_one(league: LeagueInfo) -> Result[MatchupContext, SourceFetchError]:
            async with semaphore:
                try:
                    return Ok(await self._source.fetch_context(league, period.season, period.period))
                except SourceError as e:
                    logger.warning("Excluding league %s this pass: %s", league.name, e.message)
                    return Err(SourceFetchError(message=e.message, league_id=league.league_id, league_name=league.name))

        return list(await asyncio.gather(*(_fetch_one(league) for league in leagues)))
