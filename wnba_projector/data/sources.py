"""
Data-source ports and their adapters.

The engine never reaches for a global client. Every external collaborator
is one of the abstract ports below, handed to the engine in a ``DataPorts``
bundle. Adapters:

- In-memory sources (tests, batch jobs that already hold the data)
- ``HttpInjurySource``: JSON injury feed over HTTP with a request timeout
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

import requests

from ..models.context import AdvancedStats, InjuredTeammate, TeamContext
from ..models.game_log import GameLogRecord
from .team_name_resolver import TeamNameResolver, default_resolver

logger = logging.getLogger(__name__)


class GameLogSource(ABC):
    """Ordered per-game stat records for a player."""

    @abstractmethod
    def get_game_logs(self, player_id: str) -> List[GameLogRecord]:
        """Return the player's games in ascending date order."""


class AdvancedStatsSource(ABC):
    """Per-player season rates (usage, PER, shooting splits)."""

    @abstractmethod
    def get_advanced_stats(self, player_id: str, season: str) -> Optional[AdvancedStats]:
        """Return the player's advanced stats for a season, if known."""


class TeamContextSource(ABC):
    """Pace and defense-allowed ratings by team and season."""

    @abstractmethod
    def get_team_context(self, team: str, season: str) -> Optional[TeamContext]:
        """Return a team's context for a season, if known."""


class InjurySource(ABC):
    """Currently injured teammates."""

    @abstractmethod
    def get_injured_teammates(self, team: str, as_of: date) -> List[InjuredTeammate]:
        """Return the team's injury list as of a date."""


@dataclass
class DataPorts:
    """The collaborators one projection request reads from."""

    game_logs: GameLogSource
    advanced_stats: Optional[AdvancedStatsSource] = None
    team_context: Optional[TeamContextSource] = None
    injuries: Optional[InjurySource] = None


# ---------------------------------------------------------------------------
# In-memory adapters
# ---------------------------------------------------------------------------


class InMemoryGameLogSource(GameLogSource):
    """Game logs held in memory, de-duplicated on (player_id, game_id)."""

    def __init__(self, logs: Iterable[GameLogRecord] = ()):
        by_key: Dict[tuple, GameLogRecord] = {}
        for log in logs:
            by_key[log.key] = log
        self._by_player: Dict[str, List[GameLogRecord]] = defaultdict(list)
        for log in by_key.values():
            self._by_player[log.player_id].append(log)
        for player_logs in self._by_player.values():
            player_logs.sort(key=lambda g: (g.game_date, g.game_id))

    def get_game_logs(self, player_id: str) -> List[GameLogRecord]:
        return list(self._by_player.get(player_id, []))

    @property
    def player_ids(self) -> List[str]:
        return sorted(self._by_player)

    def all_logs(self) -> List[GameLogRecord]:
        return [log for pid in self.player_ids for log in self._by_player[pid]]


class InMemoryAdvancedStatsSource(AdvancedStatsSource):
    """Advanced stats keyed by (player_id, season)."""

    def __init__(self, stats: Iterable[AdvancedStats] = ()):
        self._stats: Dict[tuple, AdvancedStats] = {(s.player_id, s.season): s for s in stats}

    def get_advanced_stats(self, player_id: str, season: str) -> Optional[AdvancedStats]:
        return self._stats.get((player_id, season))


class InMemoryTeamContextSource(TeamContextSource):
    """Team contexts matched by season, then by any spelling of the team name."""

    def __init__(self, contexts: Iterable[TeamContext] = (), resolver: Optional[TeamNameResolver] = None):
        self.resolver = resolver or default_resolver()
        self._by_season: Dict[str, Dict[str, TeamContext]] = defaultdict(dict)
        for ctx in contexts:
            self._by_season[ctx.season][ctx.team] = ctx

    def get_team_context(self, team: str, season: str) -> Optional[TeamContext]:
        return self.resolver.lookup(self._by_season.get(season, {}), team)

    def league_paces(self, season: str) -> List[float]:
        """Every known team pace in a season."""
        return [c.pace for c in self._by_season.get(season, {}).values() if c.pace is not None]

    def position_allowed(self, season: str, stat_type: str) -> List[float]:
        """Every known per-position allowed value for a stat in a season."""
        values = []
        for ctx in self._by_season.get(season, {}).values():
            for stats in ctx.position_allowed.values():
                if stats.get(stat_type) is not None:
                    values.append(stats[stat_type])
        return values


class InMemoryInjurySource(InjurySource):
    """Static injury lists keyed by team."""

    def __init__(self, injuries: Optional[Dict[str, List[InjuredTeammate]]] = None,
                 resolver: Optional[TeamNameResolver] = None):
        self.resolver = resolver or default_resolver()
        self._injuries = dict(injuries or {})

    def get_injured_teammates(self, team: str, as_of: date) -> List[InjuredTeammate]:
        return list(self.resolver.lookup(self._injuries, team, []))


# ---------------------------------------------------------------------------
# HTTP adapter
# ---------------------------------------------------------------------------


class HttpInjurySource(InjurySource):
    """
    Fetches a league-wide injury feed and filters it to one team.

    Accepts either of these payload shapes:

        {"teams": {"LVA": {"players": [{"name": ..., "status": "Out", ...}]}}}

        {"injuries": [{"teamAbbrev": "LVA", "playerName": ..., "status": "Out"}]}

    Only players listed as "Out" are returned. HTTP errors propagate so the
    caller's guard can apply its fallback.
    """

    def __init__(self, url: str, timeout: float = 5.0, session: Optional[requests.Session] = None,
                 resolver: Optional[TeamNameResolver] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self.resolver = resolver or default_resolver()

    def get_injured_teammates(self, team: str, as_of: date) -> List[InjuredTeammate]:
        response = self.session.get(self.url, params={"date": as_of.isoformat()}, timeout=self.timeout)
        response.raise_for_status()
        payload = response.json()
        injuries = [i for i in self.parse_payload(payload, team) if i.is_out]
        logger.debug("Injury feed lists %d players out for %s", len(injuries), team)
        return injuries

    def parse_payload(self, payload: dict, team: str) -> List[InjuredTeammate]:
        teams_block = payload.get("teams")
        if isinstance(teams_block, dict):
            block = self.resolver.lookup(teams_block, team, {}) or {}
            return [InjuredTeammate.from_dict(p) for p in block.get("players", [])]

        target = self.resolver.canonical_id(team)
        result = []
        for row in payload.get("injuries", []):
            row_team = row.get("teamAbbrev") or row.get("team") or ""
            if self.resolver.canonical_id(row_team) != target:
                continue
            result.append(InjuredTeammate(
                name=row.get("playerName") or row.get("name", ""),
                position=row.get("position", ""),
                status=row.get("status", "Out"),
                usage_rate=row.get("usage_rate"),
                minutes_per_game=row.get("minutes_per_game"),
            ))
        return result
