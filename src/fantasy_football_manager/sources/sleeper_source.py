"""Decode Sleeper league, roster and matchup payloads into ``MatchupContext``s."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from fantasy_football_manager.domain.matchup import (
    FantasyTeam,
    HeadToHeadPair,
    LeagueInfo,
    LeagueSource,
    MatchupContext,
    RankedEntry,
    RosterPlayer,
)
from fantasy_football_manager.domain.positions import Position, normalize_position
from fantasy_football_manager.sources.protocols import SourceError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from fantasy_football_manager.sources.protocols import PlayerDirectoryLookup
    from fantasy_football_manager.sources.sleeper_client import SleeperClient

logger = logging.getLogger(__name__)

SURVIVAL_LEAGUE_TYPE = 3
_EMPTY_SLOT = "0"
_BENCH_SLOTS = frozenset({"BN", "IR", "TAXI"})


def is_survival_league(raw_league: Mapping[str, Any]) -> bool:
    settings = raw_league.get("settings") or {}
    return settings.get("type") == SURVIVAL_LEAGUE_TYPE


def parse_league(raw_league: Mapping[str, Any]) -> LeagueInfo:
    return LeagueInfo(
        league_id=str(raw_league["league_id"]),
        name=raw_league.get("name") or str(raw_league["league_id"]),
        source=LeagueSource.SLEEPER,
        is_survival=is_survival_league(raw_league),
    )


def _starting_slots(raw_league: Mapping[str, Any]) -> list[str]:
    return [slot for slot in raw_league.get("roster_positions") or [] if slot not in _BENCH_SLOTS]


def _slot_at(slots: Sequence[str], index: int) -> str | None:
    return slots[index] if index < len(slots) else None


class SleeperMatchupSource:
    def __init__(
        self,
        client: SleeperClient,
        directory: PlayerDirectoryLookup,
        user_id: str,
        league_ids: Sequence[str] = (),
    ) -> None:
        self._client = client
        self._directory = directory
        self._user_id = user_id
        self._league_ids = tuple(league_ids)
        self._raw_leagues: dict[str, dict[str, Any]] = {}

    async def list_leagues(self, season: int) -> list[LeagueInfo]:
        try:
            if self._league_ids:
                raw = list(await asyncio.gather(*(self._client.get_league(lid) for lid in self._league_ids)))
            else:
                raw = await self._client.get_user_leagues(self._user_id, season)
        except httpx.HTTPError as e:
            raise SourceError(f"Failed to list Sleeper leagues for season {season}", cause=e) from e
        self._raw_leagues = {str(league["league_id"]): league for league in raw}
        return [parse_league(league) for league in raw]

    async def fetch_context(self, league: LeagueInfo, season: int, period: int) -> MatchupContext:
        try:
            raw_league = self._raw_leagues.get(league.league_id) or await self._client.get_league(league.league_id)
            matchups, rosters, users, state = await asyncio.gather(
                self._client.get_matchups(league.league_id, period),
                self._client.get_rosters(league.league_id),
                self._client.get_users(league.league_id),
                self._client.get_state(),
            )
        except httpx.HTTPError as e:
            raise SourceError(f"Failed to fetch Sleeper league {league.league_id} week {period}", cause=e) from e

        my_roster = self._find_my_roster(rosters)
        if my_roster is None:
            raise SourceError(f"User {self._user_id} has no roster in league {league.league_id}")

        matchup_id = f"{league.league_id}_{period}"
        teams = self._build_teams(raw_league, matchups, rosters, users)
        my_team_id = str(my_roster["roster_id"])
        is_final = int(state.get("week") or 0) > period or raw_league.get("status") == "complete"

        if is_survival_league(raw_league):
            return self._survival_context(matchup_id, league, season, period, teams, my_team_id, is_final)
        return self._head_to_head_context(
            matchup_id, league, season, period, raw_league, matchups, teams, my_team_id, is_final
        )

    def _find_my_roster(self, rosters: Sequence[Mapping[str, Any]]) -> Mapping[str, Any] | None:
        for roster in rosters:
            if roster.get("owner_id") == self._user_id or self._user_id in (roster.get("co_owners") or []):
                return roster
        return None

    def _roster_player(self, player_id: str, points: float, is_starter: bool, slot: str | None) -> RosterPlayer:
        entry = self._directory.get(player_id) if player_id != _EMPTY_SLOT else None
        if entry is None:
            return RosterPlayer(
                player_id=player_id,
                first_name="",
                last_name="",
                position=normalize_position(slot) if player_id == _EMPTY_SLOT else Position.NONE,
                team="",
                current_score=points,
                is_starter=is_starter,
            )
        return RosterPlayer(
            player_id=player_id,
            first_name=entry.first_name,
            last_name=entry.last_name,
            position=entry.position,
            team=entry.team or "",
            current_score=points,
            is_starter=is_starter,
            jersey_number=entry.jersey_number,
            injury_status=entry.injury_status,
        )

    def _build_teams(
        self,
        raw_league: Mapping[str, Any],
        matchups: Sequence[Mapping[str, Any]],
        rosters: Sequence[Mapping[str, Any]],
        users: Sequence[Mapping[str, Any]],
    ) -> dict[str, FantasyTeam]:
        slots = _starting_slots(raw_league)
        names = {
            str(u.get("user_id")): (u.get("metadata") or {}).get("team_name") or u.get("display_name") or ""
            for u in users
        }
        owners = {str(u.get("user_id")): u.get("display_name") for u in users}
        entries = {str(m.get("roster_id")): m for m in matchups}

        teams: dict[str, FantasyTeam] = {}
        for roster in rosters:
            team_id = str(roster["roster_id"])
            owner_id = str(roster.get("owner_id") or "")
            entry = entries.get(team_id, {})
            points_by_player: Mapping[str, float] = entry.get("players_points") or {}
            starters = [str(pid) for pid in entry.get("starters") or []]
            bench = [str(pid) for pid in entry.get("players") or [] if str(pid) not in starters]
            roster_players = [
                self._roster_player(pid, float(points_by_player.get(pid, 0.0)), True, _slot_at(slots, i))
                for i, pid in enumerate(starters)
            ]
            roster_players.extend(
                self._roster_player(pid, float(points_by_player.get(pid, 0.0)), False, None) for pid in bench
            )
            teams[team_id] = FantasyTeam(
                team_id=team_id,
                name=names.get(owner_id) or f"Team {team_id}",
                owner_name=owners.get(owner_id),
                current_score=float(entry.get("points") or 0.0),
                projected_score=float(entry.get("projected_points") or 0.0),
                roster=tuple(roster_players),
            )
        return teams

    def _survival_context(
        self,
        matchup_id: str,
        league: LeagueInfo,
        season: int,
        period: int,
        teams: Mapping[str, FantasyTeam],
        my_team_id: str,
        is_final: bool,
    ) -> MatchupContext:
        active = sorted((t for t in teams.values() if t.roster), key=lambda t: t.current_score, reverse=True)
        my_team = teams[my_team_id]
        rank = next((i for i, t in enumerate(active, start=1) if t.team_id == my_team_id), len(teams))
        return MatchupContext(
            matchup_id=matchup_id,
            league=league,
            season=season,
            period=period,
            ranked_entry=RankedEntry(team=my_team, rank=rank, is_eliminated=not my_team.roster),
            league_teams=tuple(teams.values()),
            is_period_final=is_final,
        )

    def _head_to_head_context(
        self,
        matchup_id: str,
        league: LeagueInfo,
        season: int,
        period: int,
        raw_league: Mapping[str, Any],
        matchups: Sequence[Mapping[str, Any]],
        teams: Mapping[str, FantasyTeam],
        my_team_id: str,
        is_final: bool,
    ) -> MatchupContext:
        pairing = {str(m.get("roster_id")): m.get("matchup_id") for m in matchups}
        my_pairing = pairing.get(my_team_id)
        opponent = None
        if my_pairing is not None:
            opponent_id = next((rid for rid, mid in pairing.items() if mid == my_pairing and rid != my_team_id), None)
            opponent = teams.get(opponent_id) if opponent_id else None
        playoff_start = int((raw_league.get("settings") or {}).get("playoff_week_start") or 0)
        eliminated = bool(playoff_start) and period >= playoff_start and my_pairing is None
        return MatchupContext(
            matchup_id=matchup_id,
            league=league,
            season=season,
            period=period,
            head_to_head=HeadToHeadPair(my_team=teams[my_team_id], opponent=opponent),
            is_playoff_eliminated=eliminated,
            is_period_final=is_final,
        )
