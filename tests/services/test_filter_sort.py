from datetime import timedelta

from fantasy_football_manager.domain.filters import FilterState, SortMethod
from fantasy_football_manager.domain.matchup import LeagueSource
from fantasy_football_manager.domain.positions import Position, PositionFilter
from fantasy_football_manager.domain.snapshot import PerformanceTier, PlayerSnapshot, RosterRole
from fantasy_football_manager.services.filter_sort import (
    SEARCH_LEAGUE_NAME,
    FilterResult,
    FilterSortPipeline,
    last_name,
    passes_quality,
    rostered_search,
    sort_snapshots,
)
from tests.factories import NOW, make_directory_player, make_snapshot
from tests.fakes.sources import FakeDirectory, FakeGameStatus


def _roster() -> list[PlayerSnapshot]:
    return [
        make_snapshot("1", 22.0, Position.QB, "KC", "Patrick", "Mahomes"),
        make_snapshot("2", 15.5, Position.RB, "SF", "Christian", "McCaffrey"),
        make_snapshot("3", 8.0, Position.WR, "MIA", "Tyreek", "Hill"),
        make_snapshot("4", 3.0, Position.DEF, "", "Buffalo", "Bills"),
        make_snapshot("5", 11.0, Position.K, "KC", "Harrison", "Butker"),
    ]


def _ids(result: FilterResult) -> list[str]:
    return [s.player_id for s in result.players]


class TestRosteredSearch:
    def test_any_token_matches(self) -> None:
        hits = rostered_search(_roster(), "hill MAHOMES")
        assert {s.player_id for s in hits} == {"1", "3"}

    def test_substring_of_first_name(self) -> None:
        assert [s.player_id for s in rostered_search(_roster(), "chris")] == ["2"]

    def test_search_bypasses_position_filter(self, game_status: FakeGameStatus) -> None:
        pipeline = FilterSortPipeline(game_status)
        state = FilterState(position=PositionFilter.QB, search_text="hill")
        assert _ids(pipeline.run(_roster(), state)) == ["3"]

    def test_rostered_search_skips_quality_filter(self, game_status: FakeGameStatus) -> None:
        roster = [make_snapshot("9", -1.0, first="Negative", last="Guy")]
        result = FilterSortPipeline(game_status).run(roster, FilterState(search_text="negative"))
        assert _ids(result) == ["9"]


class TestDirectorySearch:
    def test_synthesizes_tagged_placeholders(self, game_status: FakeGameStatus) -> None:
        directory = FakeDirectory(
            [
                make_directory_player("10", "Josh", "Allen", Position.QB, "BUF", rank=5),
                make_directory_player("11", "Josh", "Jacobs", Position.RB, "GB", rank=20),
                make_directory_player("12", "Keenan", "Allen", Position.WR, "CHI", rank=90),
            ]
        )
        pipeline = FilterSortPipeline(game_status, directory)
        state = FilterState(search_text="allen", search_all_players=True, sort_method=SortMethod.NAME)
        result = pipeline.run([], state)
        assert {s.player_id for s in result.players} == {"10", "12"}
        first = result.players[0]
        assert first.role is RosterRole.SEARCH
        assert first.league_name == SEARCH_LEAGUE_NAME
        assert first.league_source is LeagueSource.SEARCH
        assert first.current_score == 0.0
        assert first.snapshot_id.startswith("search_all_")

    def test_result_count_is_capped(self, game_status: FakeGameStatus) -> None:
        directory = FakeDirectory([make_directory_player(str(i), "Sam", f"Smith{i}", rank=i) for i in range(80)])
        pipeline = FilterSortPipeline(game_status, directory, search_limit=50)
        result = pipeline.run([], FilterState(search_text="sam", search_all_players=True))
        assert len(result.players) == 50

    def test_players_without_position_are_skipped(self, game_status: FakeGameStatus) -> None:
        directory = FakeDirectory([make_directory_player("1", "Retired", "Guy", Position.NONE)])
        pipeline = FilterSortPipeline(game_status, directory)
        assert pipeline.run([], FilterState(search_text="guy", search_all_players=True)).players == ()


class TestFilters:
    def test_position_filter(self, pipeline: FilterSortPipeline) -> None:
        assert _ids(pipeline.run(_roster(), FilterState(position=PositionFilter.DEF))) == ["4"]

    def test_active_only_uses_game_status(self, game_status: FakeGameStatus) -> None:
        game_status.live_teams = {"KC"}
        result = FilterSortPipeline(game_status).run(_roster(), FilterState(active_only=True))
        assert set(_ids(result)) == {"1", "5"}

    def test_quality_filter(self) -> None:
        assert not passes_quality(make_snapshot(first="", last=""))
        assert not passes_quality(make_snapshot(first="Unknown", last="Player"))
        assert not passes_quality(make_snapshot(score=-0.5))
        assert passes_quality(make_snapshot(score=0.0))

    def test_canonical_list_is_not_mutated(self, pipeline: FilterSortPipeline) -> None:
        roster = _roster()
        before = list(roster)
        pipeline.run(roster, FilterState(position=PositionFilter.QB, sort_method=SortMethod.NAME))
        assert roster == before


class TestBucketStatistics:
    def test_stats_are_recomputed_for_filtered_set(self, pipeline: FilterSortPipeline) -> None:
        roster = _roster()
        result = pipeline.run(roster, FilterState(position=PositionFilter.K))
        assert result.stats.top_score == 11.0
        (kicker,) = result.players
        assert kicker.percentage_of_top == 1.0
        assert kicker.performance_tier is PerformanceTier.ELITE


class TestRecovery:
    def test_empty_narrow_filter_resets(self, game_status: FakeGameStatus) -> None:
        result = FilterSortPipeline(game_status).run(
            _roster(), FilterState(position=PositionFilter.TE, active_only=True)
        )
        assert result.recovered
        assert result.state.position is PositionFilter.ALL
        assert not result.state.active_only
        assert len(result.players) == 5

    def test_not_applied_before_data_loaded(self, pipeline: FilterSortPipeline) -> None:
        result = pipeline.run(_roster(), FilterState(position=PositionFilter.TE), data_loaded=False)
        assert not result.recovered
        assert result.players == ()

    def test_not_applied_to_empty_canonical(self, pipeline: FilterSortPipeline) -> None:
        result = pipeline.run([], FilterState(position=PositionFilter.TE))
        assert not result.recovered

    def test_sort_choice_survives_recovery(self, pipeline: FilterSortPipeline) -> None:
        state = FilterState(position=PositionFilter.TE, sort_method=SortMethod.NAME)
        assert pipeline.run(_roster(), state).state.sort_method is SortMethod.NAME


class TestSorting:
    def test_score_high_to_low(self) -> None:
        ordered = sort_snapshots(_roster(), SortMethod.SCORE, high_to_low=True)
        assert [s.player_id for s in ordered] == ["1", "2", "5", "3", "4"]

    def test_score_low_to_high(self) -> None:
        ordered = sort_snapshots(_roster(), SortMethod.SCORE, high_to_low=False)
        assert [s.player_id for s in ordered] == ["4", "3", "5", "2", "1"]

    def test_name_uses_last_name(self) -> None:
        ordered = sort_snapshots(_roster(), SortMethod.NAME, high_to_low=True)
        assert [s.player.last_name for s in ordered] == ["Bills", "Butker", "Hill", "Mahomes", "McCaffrey"]

    def test_last_name_extraction(self) -> None:
        assert last_name("Amon-Ra St. Brown") == "brown"
        assert last_name("") == ""

    def test_team_sorts_empty_last_and_breaks_ties_by_position(self) -> None:
        ordered = sort_snapshots(_roster(), SortMethod.TEAM, high_to_low=True)
        assert [s.player_id for s in ordered] == ["1", "5", "3", "2", "4"]

    def test_team_low_to_high_still_puts_empty_last(self) -> None:
        ordered = sort_snapshots(_roster(), SortMethod.TEAM, high_to_low=False)
        assert [s.player_id for s in ordered] == ["2", "3", "1", "5", "4"]

    def test_position_priority(self) -> None:
        ordered = sort_snapshots(_roster(), SortMethod.POSITION, high_to_low=True)
        assert [s.position for s in ordered] == [Position.QB, Position.RB, Position.WR, Position.DEF, Position.K]
        reverse = sort_snapshots(_roster(), SortMethod.POSITION, high_to_low=False)
        assert reverse[0].position is Position.K

    def test_recent_activity_first_then_score(self) -> None:
        roster = [
            make_snapshot("a", 5.0, last_activity=NOW - timedelta(minutes=3)),
            make_snapshot("b", 9.0),
            make_snapshot("c", 1.0, last_activity=NOW),
            make_snapshot("d", 12.0),
        ]
        ordered = sort_snapshots(roster, SortMethod.RECENT, high_to_low=True)
        assert [s.player_id for s in ordered] == ["c", "a", "d", "b"]

    def test_ties_are_stable_across_runs(self) -> None:
        roster = [make_snapshot(str(i), 10.0) for i in (3, 1, 2)]
        first = sort_snapshots(roster, SortMethod.SCORE, high_to_low=True)
        second = sort_snapshots(list(reversed(roster)), SortMethod.SCORE, high_to_low=True)
        assert [s.player_id for s in first] == [s.player_id for s in second] == ["1", "2", "3"]
