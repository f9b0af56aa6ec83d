from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from fantasy_football_manager.sources._retry import platform_retry
from fantasy_football_manager.sources.protocols import SourceError

logger = logging.getLogger(__name__)

ESPN_SCOREBOARD_URL = "https://site.api.espn.com/apis/site/v2/sports/football/nfl/scoreboard"
_DEFAULT_RETRY = platform_retry("espn_scoreboard")

_LIVE_STATUS_NAMES = frozenset(
    {
        "STATUS_IN_PROGRESS",
        "STATUS_HALFTIME",
        "STATUS_END_PERIOD",
        "STATUS_DELAYED",
    }
)

_TEAM_ALIASES = {
    "WSH": "WAS",
    "JAC": "JAX",
    "LA": "LAR",
    "OAK": "LV",
    "SD": "LAC",
    "STL": "LAR",
}


def normalize_team_code(code: str) -> str:
    upper = code.strip().upper()
    return _TEAM_ALIASES.get(upper, upper)


def _is_live(status: Mapping[str, Any]) -> bool:
    status_type = status.get("type") or {}
    return status_type.get("state") == "in" or status_type.get("name") in _LIVE_STATUS_NAMES


def parse_live_teams(payload: Mapping[str, Any]) -> frozenset[str]:
    """Collect normalized team codes for every scoreboard event currently in progress."""
    live: set[str] = set()
    for event in payload.get("events") or []:
        competitions = event.get("competitions") or []
        if not competitions:
            continue
        competition = competitions[0]
        status = competition.get("status") or event.get("status") or {}
        if not _is_live(status):
            continue
        for competitor in competition.get("competitors") or []:
            abbreviation = (competitor.get("team") or {}).get("abbreviation")
            if abbreviation:
                live.add(normalize_team_code(abbreviation))
    return frozenset(live)


class EspnGameStatus:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        url: str = ESPN_SCOREBOARD_URL,
        retry: Callable[..., Callable[..., Any]] = _DEFAULT_RETRY,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0))
        self._url = url
        self._fetch_with_retry = retry(self._fetch)
        self._live: frozenset[str] = frozenset()

    async def refresh(self) -> None:
        try:
            payload = await self._fetch_with_retry()
        except httpx.HTTPError as e:
            raise SourceError("Failed to fetch ESPN scoreboard", cause=e) from e
        self._live = parse_live_teams(payload)
        logger.debug("Live teams: %s", ", ".join(sorted(self._live)) or "none")

    def is_live(self, team: str) -> bool:
        if not team:
            return False
        return normalize_team_code(team) in self._live

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _fetch(self) -> dict[str, Any]:
        response = await self._client.get(self._url)
        response.raise_for_status()
        return response.json()
