"""Shared pytest fixtures for test modules."""

from __future__ import annotations

import pytest

from fantasy_football_manager.services.engine import EngineSettings, LiveRosterEngine
from fantasy_football_manager.services.filter_sort import FilterSortPipeline
from tests.factories import NOW
from tests.fakes.sources import FakeDirectory, FakeGameStatus


@pytest.fixture
def game_status() -> FakeGameStatus:
    return FakeGameStatus()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def pipeline(game_status: FakeGameStatus, directory: FakeDirectory) -> FilterSortPipeline:
    return FilterSortPipeline(game_status, directory)


@pytest.fixture
def engine(pipeline: FilterSortPipeline) -> LiveRosterEngine:
    return LiveRosterEngine(pipeline, EngineSettings(), clock=lambda: NOW)
