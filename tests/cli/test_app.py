from __future__ import annotations

from dataclasses import replace

import pytest
from typer.testing import CliRunner

from fantasy_football_manager.cli import _output
from fantasy_football_manager.cli import app as app_module
from fantasy_football_manager.cli.app import app
from fantasy_football_manager.config import create_config
from fantasy_football_manager.domain.positions import Position
from fantasy_football_manager.services.container import ServiceConfig, ServiceContainer
from fantasy_football_manager.sources.protocols import SourceError
from tests.factories import (
    h2h_context,
    make_directory_player,
    make_league,
    make_player,
    make_team,
    survival_context,
)
from tests.fakes.sources import FakeDirectory, FakeGameStatus, FakeMatchupSource

runner = CliRunner()

_H2H = make_league("L1", "Dynasty")
_SURVIVAL = make_league("S1", "Chopped", survival=True)


def _source() -> FakeMatchupSource:
    mine = (
        make_player("p1", "Josh", "Allen", Position.QB, "BUF", 24.5),
        make_player("p2", "Bijan", "Robinson", Position.RB, "ATL", 12.0),
    )
    teams = (
        make_team("t1", "Mine", mine, score=36.5),
        make_team("t2", "Rival", (make_player("p3", "Tyreek", "Hill", Position.WR, "MIA", 8.0),), score=8.0),
        make_team("t3", "Gone", ()),
    )
    return FakeMatchupSource(
        [_H2H, _SURVIVAL],
        {
            ("L1", 6): h2h_context(mine, league=_H2H),
            ("S1", 6): survival_context(teams, league=_SURVIVAL),
        },
    )


def _directory() -> FakeDirectory:
    return FakeDirectory(
        [
            make_directory_player("4984", "Josh", "Allen", Position.QB, "BUF", rank=1),
            make_directory_player("9999", "Josh", "Allen", Position.OTHER, "JAX"),
            make_directory_player("6794", "Justin", "Jefferson", Position.WR, "MIN", rank=3),
        ]
    )


@pytest.fixture
def source() -> FakeMatchupSource:
    return _source()


@pytest.fixture(autouse=True)
def _container(monkeypatch: pytest.MonkeyPatch, source: FakeMatchupSource) -> None:
    monkeypatch.setattr(_output.console, "width", 200)
    cfg = create_config(yaml_path="/nonexistent/config.yaml", overrides={"season": {"week": 6}})

    def _build(season: int | None, week: int | None, leagues: list[str] | None) -> ServiceContainer:
        return ServiceContainer(
            ServiceConfig(season=season, week=week, league_ids=tuple(leagues or ())),
            app_config=cfg,
            directory=_directory(),  # type: ignore[arg-type]
            matchup_source=source,
            game_status=FakeGameStatus({"BUF"}),
        )

    monkeypatch.setattr(app_module, "build_container", _build)


class TestRootCli:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "live roster aggregation" in result.output

    def test_live_help(self) -> None:
        result = runner.invoke(app, ["live", "--help"])
        assert result.exit_code == 0
        assert "--all-players" in result.output


class TestLive:
    def test_lists_starters_from_every_league(self) -> None:
        result = runner.invoke(app, ["live"])
        assert result.exit_code == 0, result.output
        assert "Josh Allen" in result.output
        assert "Bijan Robinson" in result.output
        assert "Dynasty" in result.output
        assert "Chopped" in result.output

    def test_position_filter(self) -> None:
        result = runner.invoke(app, ["live", "--position", "RB"])
        assert result.exit_code == 0, result.output
        assert "Bijan Robinson" in result.output
        assert "Josh Allen" not in result.output

    def test_active_only_keeps_live_teams(self) -> None:
        result = runner.invoke(app, ["live", "--active-only"])
        assert result.exit_code == 0, result.output
        assert "Josh Allen" in result.output
        assert "Bijan Robinson" not in result.output

    def test_narrowed_filter_recovers(self) -> None:
        result = runner.invoke(app, ["live", "--position", "K"])
        assert result.exit_code == 0, result.output
        assert "filters were reset" in result.output
        assert "Josh Allen" in result.output

    def test_directory_search(self) -> None:
        result = runner.invoke(app, ["live", "--search", "jefferson", "--all-players"])
        assert result.exit_code == 0, result.output
        assert "Justin Jefferson" in result.output
        assert "NFL Search" in result.output

    def test_list_failure_exits_nonzero(self, source: FakeMatchupSource) -> None:
        source.list_error = SourceError("sleeper is down")
        result = runner.invoke(app, ["live"])
        assert result.exit_code == 1

    def test_failed_league_is_skipped(self, source: FakeMatchupSource) -> None:
        source.failing = {"S1"}
        result = runner.invoke(app, ["live"])
        assert result.exit_code == 0, result.output
        assert "Dynasty" in result.output
        assert "Chopped" not in result.output

    def test_partial_data_exits_nonzero(self, source: FakeMatchupSource) -> None:
        source.contexts[("S1", 6)] = replace(source.contexts[("S1", 6)], ranked_entry=None)
        result = runner.invoke(app, ["live"])
        assert result.exit_code == 1


class TestSurvival:
    def test_prints_standings(self) -> None:
        result = runner.invoke(app, ["survival"])
        assert result.exit_code == 0, result.output
        assert "Chopped" in result.output
        assert "Mine" in result.output
        assert "Rival" in result.output

    def test_no_survival_leagues(self, source: FakeMatchupSource) -> None:
        source.leagues = [_H2H]
        result = runner.invoke(app, ["survival"])
        assert result.exit_code == 0, result.output
        assert "No survival leagues found." in result.output


class TestSearch:
    def test_fuzzy_search(self) -> None:
        result = runner.invoke(app, ["search", "allen"])
        assert result.exit_code == 0, result.output
        assert "4984" in result.output

    def test_exact_lookup_with_team(self) -> None:
        result = runner.invoke(app, ["search", "Josh Allen", "--team", "BUF"])
        assert result.exit_code == 0, result.output
        assert "4984" in result.output
        assert "9999" not in result.output

    def test_no_match(self) -> None:
        result = runner.invoke(app, ["search", "Nobody Here", "--team", "BUF"])
        assert result.exit_code == 0, result.output
        assert "No matching players." in result.output


class TestSettings:
    def test_invalid_setting_exits_nonzero(self, monkeypatch: pytest.MonkeyPatch, source: FakeMatchupSource) -> None:
        cfg = create_config(yaml_path="/nonexistent/config.yaml", overrides={"display": {"sort_method": "bogus"}})

        def _build(season: int | None, week: int | None, leagues: list[str] | None) -> ServiceContainer:
            return ServiceContainer(
                app_config=cfg, directory=_directory(), matchup_source=source, game_status=FakeGameStatus()
            )

        monkeypatch.setattr(app_module, "build_container", _build)
        result = runner.invoke(app, ["live"])
        assert result.exit_code == 1
        assert "display.sort_method" in result.output
