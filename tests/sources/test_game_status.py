from __future__ import annotations

from typing import Any

import httpx
import pytest

from fantasy_football_manager.sources.game_status import EspnGameStatus, normalize_team_code, parse_live_teams
from fantasy_football_manager.sources.protocols import SourceError


def _event(state: str, home: str, away: str, name: str = "") -> dict[str, Any]:
    return {
        "competitions": [
            {
                "status": {"type": {"state": state, "name": name}},
                "competitors": [{"team": {"abbreviation": home}}, {"team": {"abbreviation": away}}],
            }
        ]
    }


SCOREBOARD = {
    "events": [
        _event("in", "KC", "WSH", "STATUS_IN_PROGRESS"),
        _event("post", "BUF", "MIA", "STATUS_FINAL"),
        _event("pre", "SF", "LAR", "STATUS_SCHEDULED"),
        _event("", "JAC", "TEN", "STATUS_HALFTIME"),
    ]
}


class TestParseLiveTeams:
    def test_in_progress_and_halftime(self) -> None:
        assert parse_live_teams(SCOREBOARD) == frozenset({"KC", "WAS", "JAX", "TEN"})

    def test_empty_payload(self) -> None:
        assert parse_live_teams({}) == frozenset()

    def test_team_aliases(self) -> None:
        assert normalize_team_code("wsh") == "WAS"
        assert normalize_team_code("LA") == "LAR"
        assert normalize_team_code("DET") == "DET"


class TestEspnGameStatus:
    async def test_refresh_then_lookup(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=SCOREBOARD))
        status = EspnGameStatus(httpx.AsyncClient(transport=transport), retry=lambda fn: fn)
        assert not status.is_live("KC")
        await status.refresh()
        assert status.is_live("KC")
        assert status.is_live("WAS")
        assert status.is_live("JAC")
        assert not status.is_live("BUF")
        assert not status.is_live("")

    async def test_failure_keeps_last_known(self) -> None:
        responses = iter([httpx.Response(200, json=SCOREBOARD), httpx.Response(503)])
        transport = httpx.MockTransport(lambda request: next(responses))
        status = EspnGameStatus(httpx.AsyncClient(transport=transport), retry=lambda fn: fn)
        await status.refresh()
        with pytest.raises(SourceError):
            await status.refresh()
        assert status.is_live("KC")
