"""Centralized service container for CLI dependency injection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import cached_property
from typing import TYPE_CHECKING

from fantasy_football_manager.config import (
    create_config,
    load_engine_settings,
    load_scheduler_settings,
    load_search_limit,
    load_sleeper_settings,
)
from fantasy_football_manager.services.engine import LiveRosterEngine
from fantasy_football_manager.services.filter_sort import FilterSortPipeline
from fantasy_football_manager.services.scheduler import PeriodSelection, UpdateScheduler

if TYPE_CHECKING:
    from config import ConfigurationSet

    from fantasy_football_manager.config import SleeperSettings
    from fantasy_football_manager.sources.protocols import GameStatusLookup, MatchupSourceProvider
    from fantasy_football_manager.sources.sleeper_client import SleeperClient
    from fantasy_football_manager.sources.sleeper_directory import SleeperPlayerDirectory

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration options for service creation.

    Attributes:
        season: Override the season from config file.
        week: Override the starting week from config file.
        league_ids: Restrict to these league ids instead of every league the user is in.
    """

    season: int | None = None
    week: int | None = None
    league_ids: tuple[str, ...] = ()


class ServiceContainer:
    """Lazily-initialized container for CLI service dependencies.

    Supports explicit injection for testing via constructor parameters.
    When dependencies are not provided, they are created on first access
    using the default implementations.
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        *,
        app_config: ConfigurationSet | None = None,
        sleeper_client: SleeperClient | None = None,
        directory: SleeperPlayerDirectory | None = None,
        matchup_source: MatchupSourceProvider | None = None,
        game_status: GameStatusLookup | None = None,
    ) -> None:
        self._config = config or ServiceConfig()
        self._app_config = app_config
        self._sleeper_client = sleeper_client
        self._directory = directory
        self._matchup_source = matchup_source
        self._game_status = game_status

    @cached_property
    def app_config(self) -> ConfigurationSet:
        return self._app_config if self._app_config is not None else create_config()

    @cached_property
    def sleeper_settings(self) -> SleeperSettings:
        settings = load_sleeper_settings(self.app_config)
        if self._config.league_ids:
            settings = replace(settings, league_ids=self._config.league_ids)
        return settings

    @cached_property
    def sleeper_client(self) -> SleeperClient:
        if self._sleeper_client is not None:
            return self._sleeper_client
        from fantasy_football_manager.sources.sleeper_client import SleeperClient

        return SleeperClient(base_url=self.sleeper_settings.base_url)

    @cached_property
    def directory(self) -> SleeperPlayerDirectory:
        if self._directory is not None:
            return self._directory
        from fantasy_football_manager.sources.sleeper_directory import SleeperPlayerDirectory

        return SleeperPlayerDirectory(self.sleeper_client)

    @cached_property
    def matchup_source(self) -> MatchupSourceProvider:
        if self._matchup_source is not None:
            return self._matchup_source
        from fantasy_football_manager.sources.sleeper_source import SleeperMatchupSource

        settings = self.sleeper_settings
        logger.debug("Using Sleeper leagues for user %s", settings.user_id)
        return SleeperMatchupSource(self.sleeper_client, self.directory, settings.user_id, settings.league_ids)

    @cached_property
    def game_status(self) -> GameStatusLookup:
        if self._game_status is not None:
            return self._game_status
        from fantasy_football_manager.sources.game_status import EspnGameStatus

        return EspnGameStatus()

    @cached_property
    def pipeline(self) -> FilterSortPipeline:
        return FilterSortPipeline(
            self.game_status,
            self.directory,
            search_limit=load_search_limit(self.app_config),
        )

    @cached_property
    def engine(self) -> LiveRosterEngine:
        return LiveRosterEngine(self.pipeline, load_engine_settings(self.app_config))

    @cached_property
    def periods(self) -> PeriodSelection:
        settings = self.sleeper_settings
        return PeriodSelection(
            season=self._config.season or settings.season,
            period=self._config.week or settings.week,
        )

    @cached_property
    def scheduler(self) -> UpdateScheduler:
        return UpdateScheduler(
            self.engine,
            self.matchup_source,
            self.game_status,
            self.periods,
            load_scheduler_settings(self.app_config),
        )

    async def aclose(self) -> None:
        """Close HTTP clients this container created; injected ones belong to the caller."""
        if self._sleeper_client is None and "sleeper_client" in self.__dict__:
            await self.sleeper_client.aclose()
        if self._game_status is None and "game_status" in self.__dict__:
            game_status = self.__dict__["game_status"]
            await game_status.aclose()
