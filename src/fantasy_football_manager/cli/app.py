import asyncio
from typing import Annotated

import typer

from fantasy_football_manager.cli._logging import configure_logging
from fantasy_football_manager.cli._output import (
    console,
    print_directory_players,
    print_error,
    print_live_view,
    print_survival_ranking,
)
from fantasy_football_manager.config import SettingsError
from fantasy_football_manager.domain.filters import FilterState, SortMethod
from fantasy_football_manager.domain.positions import PositionFilter, normalize_position
from fantasy_football_manager.services.container import ServiceConfig, ServiceContainer
from fantasy_football_manager.services.engine import EngineEvent, EventKind, PassStatus
from fantasy_football_manager.services.filter_sort import find_directory_players
from fantasy_football_manager.sources.protocols import SourceError

app = typer.Typer(name="ffm", help="Fantasy Football Manager: live roster aggregation across leagues")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable DEBUG logging")] = False,
) -> None:
    """Fantasy Football Manager: live roster aggregation across leagues."""
    configure_logging(verbose=verbose)
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


_SeasonOpt = Annotated[int | None, typer.Option("--season", help="Season year")]
_WeekOpt = Annotated[int | None, typer.Option("--week", help="Scoring week")]
_LeagueOpt = Annotated[list[str] | None, typer.Option("--league", help="League id (repeatable)")]


def build_container(season: int | None, week: int | None, leagues: list[str] | None) -> ServiceContainer:
    return ServiceContainer(ServiceConfig(season=season, week=week, league_ids=tuple(leagues or ())))


async def _load_directory(container: ServiceContainer) -> None:
    await container.directory.load()


async def _search_directory(container: ServiceContainer) -> None:
    try:
        await _load_directory(container)
    finally:
        await container.aclose()


async def _refresh(container: ServiceContainer) -> PassStatus:
    try:
        await _load_directory(container)
        outcome = await container.scheduler.refresh_visible()
    finally:
        await container.aclose()
    return outcome.status


async def _watch(container: ServiceContainer) -> None:
    def _render(event: EngineEvent) -> None:
        if event.kind in (EventKind.UPDATED, EventKind.FILTERED) and event.snapshot is not None:
            print_live_view(event.snapshot)

    unsubscribe = container.engine.subscribe(_render)
    try:
        await container.scheduler.start(poll=True)
        while container.scheduler.is_running:
            await asyncio.sleep(1.0)
    finally:
        unsubscribe()
        await container.scheduler.stop()
        await container.aclose()


@app.command()
def live(
    season: _SeasonOpt = None,
    week: _WeekOpt = None,
    league: _LeagueOpt = None,
    position: Annotated[PositionFilter, typer.Option("--position", help="Position filter")] = PositionFilter.ALL,
    sort: Annotated[SortMethod | None, typer.Option("--sort", help="Sort method")] = None,
    low_to_high: Annotated[bool, typer.Option("--low-to-high", help="Reverse the sort direction")] = False,
    active_only: Annotated[bool, typer.Option("--active-only", help="Only players in live games")] = False,
    search: Annotated[str, typer.Option("--search", help="Search rostered players by name")] = "",
    all_players: Annotated[bool, typer.Option("--all-players", help="Search the full player directory")] = False,
    watch: Annotated[bool, typer.Option("--watch", help="Keep polling and redraw on changes")] = False,
) -> None:
    """Show your starters across every connected league."""
    container = build_container(season, week, league)
    try:
        filters = FilterState(
            position=position,
            active_only=active_only,
            sort_method=sort or container.engine.filters.sort_method,
            sort_high_to_low=not low_to_high,
            search_text=search,
            search_all_players=all_players,
        )
        if watch:
            container.engine.set_filter(filters)
            asyncio.run(_watch(container))
            return
        status = asyncio.run(_refresh(container))
    except (SourceError, SettingsError) as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e
    if status is not PassStatus.APPLIED:
        print_error(f"Refresh did not complete ({status})")
        raise typer.Exit(code=1)
    container.engine.set_filter(filters)
    print_live_view(container.engine.snapshot())


@app.command()
def survival(season: _SeasonOpt = None, week: _WeekOpt = None, league: _LeagueOpt = None) -> None:
    """Show standings and elimination risk for survival leagues."""
    container = build_container(season, week, league)
    try:
        status = asyncio.run(_refresh(container))
    except (SourceError, SettingsError) as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e
    if status is not PassStatus.APPLIED:
        print_error(f"Refresh did not complete ({status})")
        raise typer.Exit(code=1)
    rankings = container.engine.snapshot().survival
    if not rankings:
        console.print("No survival leagues found.")
        return
    for ranking in rankings.values():
        print_survival_ranking(ranking)


@app.command()
def search(
    name: Annotated[str, typer.Argument(help="Player name or part of it")],
    team: Annotated[str | None, typer.Option("--team", help="NFL team code")] = None,
    position: Annotated[str | None, typer.Option("--position", help="Position")] = None,
    limit: Annotated[int, typer.Option("--limit", help="Maximum results")] = 50,
) -> None:
    """Look up players in the full NFL directory."""
    container = build_container(None, None, None)
    try:
        asyncio.run(_search_directory(container))
    except (SourceError, SettingsError) as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e
    directory = container.directory
    if team or position:
        match = directory.find(name, team, normalize_position(position) if position else None)
        print_directory_players([match] if match else [])
        return
    print_directory_players(find_directory_players(directory, name, limit))
