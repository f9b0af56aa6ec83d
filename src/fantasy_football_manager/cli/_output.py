from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from fantasy_football_manager.domain.snapshot import PerformanceTier
from fantasy_football_manager.domain.survival import EliminationStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fantasy_football_manager.domain.directory import DirectoryPlayer
    from fantasy_football_manager.domain.survival import SurvivalRanking
    from fantasy_football_manager.services.engine import EngineSnapshot

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

_TIER_STYLES = {
    PerformanceTier.ELITE: "bold green",
    PerformanceTier.GOOD: "green",
    PerformanceTier.AVERAGE: "yellow",
    PerformanceTier.STRUGGLING: "red",
}

_STATUS_STYLES = {
    EliminationStatus.CHAMPION: "bold green",
    EliminationStatus.SAFE: "green",
    EliminationStatus.WARNING: "yellow",
    EliminationStatus.DANGER: "red",
    EliminationStatus.CRITICAL: "bold red",
    EliminationStatus.ELIMINATED: "dim",
}


def print_error(message: str) -> None:
    err_console.print(f"[red bold]Error:[/red bold] {message}")


def _delta(value: float) -> str:
    if abs(value) <= 0.01:
        return ""
    return f"{value:+.2f}"


def print_live_view(snapshot: EngineSnapshot) -> None:
    view = snapshot.view
    if not view.players:
        console.print("No players to show.")
        return
    if view.recovered:
        console.print("[yellow]No players matched; position and live-only filters were reset.[/yellow]")

    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Player")
    table.add_column("Pos")
    table.add_column("Team")
    table.add_column("League")
    table.add_column("Pts", justify="right")
    table.add_column("Δ", justify="right")
    table.add_column("% Top", justify="right")
    table.add_column("Tier")
    for player in view.players:
        style = _TIER_STYLES[player.performance_tier]
        table.add_row(
            player.full_name,
            player.position.value or "-",
            player.team or "-",
            player.league_name,
            f"{player.current_score:.2f}",
            _delta(player.accumulated_delta),
            f"{player.percentage_of_top * 100:.0f}%",
            f"[{style}]{player.performance_tier}[/{style}]",
        )
    console.print(table)
    stats = view.stats
    console.print(
        f"  {len(view.players)} players  top {stats.top_score:.2f}  median {stats.median:.2f}"
        f"  scaling {stats.scaling_mode}"
    )
    if snapshot.last_updated is not None:
        console.print(f"  Updated {snapshot.last_updated:%H:%M:%S}")


def print_survival_ranking(ranking: SurvivalRanking) -> None:
    console.print(f"[bold]{ranking.league_name}[/bold] week {ranking.period}")
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("Team")
    table.add_column("Pts", justify="right")
    table.add_column("Proj", justify="right")
    table.add_column("Margin", justify="right")
    table.add_column("Survival", justify="right")
    table.add_column("Status")
    for standing in (*ranking.standings, *ranking.eliminated):
        style = _STATUS_STYLES[standing.status]
        table.add_row(
            str(standing.rank),
            standing.team.name,
            f"{standing.score:.2f}",
            f"{standing.projected_score:.2f}",
            f"{standing.safety_margin:+.2f}",
            f"{standing.survival_probability * 100:.0f}%",
            f"[{style}]{standing.status}[/{style}]",
        )
    console.print(table)
    console.print(
        f"  survivors {ranking.total_survivors}  cutoff {ranking.cutoff_score:.2f}"
        f"  avg {ranking.average_score:.2f}  high {ranking.highest_score:.2f}  low {ranking.lowest_score:.2f}"
    )
    for event in ranking.history:
        console.print(
            f"  Week {event.period}: {event.team_name} out with {event.score:.2f}"
            f" by {event.margin:.2f} ({event.drama_label})"
        )


def print_directory_players(players: Sequence[DirectoryPlayer]) -> None:
    if not players:
        console.print("No matching players.")
        return
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("ID")
    table.add_column("Player")
    table.add_column("Pos")
    table.add_column("Team")
    table.add_column("#", justify="right")
    table.add_column("Status")
    for player in players:
        table.add_row(
            player.player_id,
            player.full_name,
            player.position.value or "-",
            player.team or "FA",
            player.jersey_number or "",
            player.injury_status or "",
        )
    console.print(table)
