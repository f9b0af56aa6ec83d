from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from config import ConfigurationSet, config_from_dict, config_from_env, config_from_yaml

from fantasy_football_manager.domain.filters import FilterState, SortMethod
from fantasy_football_manager.domain.positions import PositionFilter
from fantasy_football_manager.services.engine import EngineSettings
from fantasy_football_manager.services.scheduler import SchedulerSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_DEFAULTS: dict[str, object] = {
    "sleeper": {
        "user_id": "",
        "league_ids": [],
        "base_url": "https://api.sleeper.app/v1",
    },
    "season": {
        "year": 2025,
        "week": 1,
        "total_weeks": 18,
    },
    "engine": {
        "poll_interval": 15.0,
        "max_concurrent_fetches": 2,
        "debounce_seconds": 0.5,
        "search_limit": 50,
        "max_empty_attempts": 3,
    },
    "display": {
        "show_eliminated_survival": False,
        "show_eliminated_playoff": False,
        "position": "ALL",
        "active_only": False,
        "sort_method": "position",
        "sort_high_to_low": True,
    },
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


class SettingsError(Exception):
    def __init__(self, message: str, key: str) -> None:
        super().__init__(message)
        self.message = message
        self.key = key


def create_config(
    yaml_path: str = "config.yaml",
    env_prefix: str = "FANTASY",
    defaults: dict[str, object] | None = None,
    *,
    overrides: dict[str, object] | None = None,
) -> ConfigurationSet:
    """Create a layered configuration.

    Priority (highest to lowest): explicit overrides > env vars > YAML file > defaults dict.
    """
    if defaults is None:
        defaults = _DEFAULTS

    layers = [
        config_from_env(env_prefix, separator="__", lowercase_keys=True),
        config_from_yaml(yaml_path, read_from_file=True, ignore_missing_paths=True),
        config_from_dict(defaults),
    ]
    if overrides:
        layers.insert(0, config_from_dict(overrides))
    return ConfigurationSet(*layers)


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item) for item in cast("Iterable[object]", value or [])]


def _setting[T](cfg: ConfigurationSet, key: str, convert: Callable[[str], T]) -> T:
    raw = cfg[key]
    try:
        return convert(str(raw))
    except ValueError as e:
        raise SettingsError(f"Invalid value {raw!r} for {key}", key=key) from e


def load_filter_defaults(cfg: ConfigurationSet | None = None) -> FilterState:
    if cfg is None:
        cfg = create_config()
    return FilterState(
        position=_setting(cfg, "display.position", lambda v: PositionFilter(v.upper())),
        active_only=_as_bool(cfg["display.active_only"]),
        sort_method=_setting(cfg, "display.sort_method", lambda v: SortMethod(v.lower())),
        sort_high_to_low=_as_bool(cfg["display.sort_high_to_low"]),
    )


def load_engine_settings(cfg: ConfigurationSet | None = None) -> EngineSettings:
    if cfg is None:
        cfg = create_config()
    return EngineSettings(
        show_eliminated_survival=_as_bool(cfg["display.show_eliminated_survival"]),
        show_eliminated_playoff=_as_bool(cfg["display.show_eliminated_playoff"]),
        max_empty_attempts=_setting(cfg, "engine.max_empty_attempts", int),
        total_periods=_setting(cfg, "season.total_weeks", int),
        default_filters=load_filter_defaults(cfg),
    )


def load_scheduler_settings(cfg: ConfigurationSet | None = None) -> SchedulerSettings:
    if cfg is None:
        cfg = create_config()
    return SchedulerSettings(
        poll_interval=_setting(cfg, "engine.poll_interval", float),
        max_concurrent_fetches=_setting(cfg, "engine.max_concurrent_fetches", int),
        debounce_seconds=_setting(cfg, "engine.debounce_seconds", float),
    )


@dataclass(frozen=True)
class SleeperSettings:
    user_id: str
    league_ids: tuple[str, ...]
    base_url: str
    season: int
    week: int


def load_sleeper_settings(cfg: ConfigurationSet | None = None) -> SleeperSettings:
    if cfg is None:
        cfg = create_config()
    return SleeperSettings(
        user_id=str(cfg["sleeper.user_id"]),
        league_ids=tuple(_as_list(cfg["sleeper.league_ids"])),
        base_url=str(cfg["sleeper.base_url"]),
        season=_setting(cfg, "season.year", int),
        week=_setting(cfg, "season.week", int),
    )


def load_search_limit(cfg: ConfigurationSet | None = None) -> int:
    if cfg is None:
        cfg = create_config()
    return _setting(cfg, "engine.search_limit", int)
