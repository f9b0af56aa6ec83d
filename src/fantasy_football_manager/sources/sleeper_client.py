import logging
from collections.abc import Callable
from typing import Any

import httpx

from fantasy_football_manager.sources._retry import platform_retry

logger = logging.getLogger(__name__)

SLEEPER_BASE_URL = "https://api.sleeper.app/v1"
_DEFAULT_RETRY = platform_retry("sleeper_api")


class SleeperClient:
    """Thin async wrapper over the public Sleeper read API."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = SLEEPER_BASE_URL,
        retry: Callable[..., Callable[..., Any]] = _DEFAULT_RETRY,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0))
        self._base_url = base_url.rstrip("/")
        self._get_with_retry = retry(self._do_get)

    async def get_league(self, league_id: str) -> dict[str, Any]:
        return await self._get_with_retry(f"/league/{league_id}")

    async def get_user_leagues(self, user_id: str, season: int) -> list[dict[str, Any]]:
        return await self._get_with_retry(f"/user/{user_id}/leagues/nfl/{season}") or []

    async def get_matchups(self, league_id: str, week: int) -> list[dict[str, Any]]:
        return await self._get_with_retry(f"/league/{league_id}/matchups/{week}") or []

    async def get_rosters(self, league_id: str) -> list[dict[str, Any]]:
        return await self._get_with_retry(f"/league/{league_id}/rosters") or []

    async def get_users(self, league_id: str) -> list[dict[str, Any]]:
        return await self._get_with_retry(f"/league/{league_id}/users") or []

    async def get_players(self) -> dict[str, Any]:
        return await self._get_with_retry("/players/nfl") or {}

    async def get_state(self) -> dict[str, Any]:
        return await self._get_with_retry("/state/nfl")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _do_get(self, path: str) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s", url)
        response = await self._client.get(url)
        response.raise_for_status()
        return response.json()
