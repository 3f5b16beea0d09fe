"""Per-game and per-season player stat records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, Optional

from ..config import LEAGUE_AVERAGES

STAT_FIELDS = ("points", "rebounds", "assists", "steals", "blocks", "turnovers", "minutes")


def coerce_date(value) -> date:
    """Accept a date, datetime (including pandas Timestamp) or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        return datetime.fromisoformat(value.strip()[:10]).date()
    raise ValueError(f"Cannot interpret {value!r} as a date")


def _finite_or_zero(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True)
class GameLogRecord:
    """One player's box score line for one game. Keyed by (player_id, game_id)."""

    player_id: str
    game_id: str
    game_date: date
    team: str
    opponent: str
    is_home: bool
    minutes: float = 0.0
    points: float = 0.0
    rebounds: float = 0.0
    assists: float = 0.0
    steals: float = 0.0
    blocks: float = 0.0
    turnovers: float = 0.0
    field_goals_made: float = 0.0
    field_goals_attempted: float = 0.0
    three_pointers_made: float = 0.0
    three_pointers_attempted: float = 0.0
    free_throws_made: float = 0.0
    free_throws_attempted: float = 0.0
    season: str = ""
    player_name: str = ""

    def __post_init__(self):
        """Validate identity fields and fill the season from the date."""
        if not self.player_id:
            raise ValueError("player_id is required")
        if not self.game_id:
            raise ValueError("game_id is required")
        object.__setattr__(self, "game_date", coerce_date(self.game_date))
        if self.minutes < 0:
            raise ValueError(f"minutes must be non-negative, got {self.minutes}")
        if not self.season:
            object.__setattr__(self, "season", str(self.game_date.year))

    @property
    def key(self):
        return (self.player_id, self.game_id)

    def stat(self, stat_type: str) -> float:
        """
        Get the value of a stat for this game.

        Args:
            stat_type: One of STAT_FIELDS

        Returns:
            The stat value, or NaN if the stored value is not a number
        """
        if stat_type not in STAT_FIELDS:
            raise ValueError(f"Unknown stat type: {stat_type}")
        try:
            return float(getattr(self, stat_type))
        except (TypeError, ValueError):
            return float("nan")

    def to_dict(self) -> dict:
        """Convert record to dictionary."""
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "game_id": self.game_id,
            "game_date": self.game_date.isoformat(),
            "season": self.season,
            "team": self.team,
            "opponent": self.opponent,
            "is_home": self.is_home,
            "minutes": self.minutes,
            "points": self.points,
            "rebounds": self.rebounds,
            "assists": self.assists,
            "steals": self.steals,
            "blocks": self.blocks,
            "turnovers": self.turnovers,
            "field_goals_made": self.field_goals_made,
            "field_goals_attempted": self.field_goals_attempted,
            "three_pointers_made": self.three_pointers_made,
            "three_pointers_attempted": self.three_pointers_attempted,
            "free_throws_made": self.free_throws_made,
            "free_throws_attempted": self.free_throws_attempted,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GameLogRecord":
        """Create record from dictionary. Missing or non-numeric stats become 0."""
        return cls(
            player_id=str(data["player_id"]),
            game_id=str(data["game_id"]),
            game_date=coerce_date(data["game_date"]),
            team=data.get("team", ""),
            opponent=data.get("opponent", ""),
            is_home=bool(data.get("is_home", False)),
            minutes=_finite_or_zero(data.get("minutes")),
            points=_finite_or_zero(data.get("points")),
            rebounds=_finite_or_zero(data.get("rebounds")),
            assists=_finite_or_zero(data.get("assists")),
            steals=_finite_or_zero(data.get("steals")),
            blocks=_finite_or_zero(data.get("blocks")),
            turnovers=_finite_or_zero(data.get("turnovers")),
            field_goals_made=_finite_or_zero(data.get("field_goals_made")),
            field_goals_attempted=_finite_or_zero(data.get("field_goals_attempted")),
            three_pointers_made=_finite_or_zero(data.get("three_pointers_made")),
            three_pointers_attempted=_finite_or_zero(data.get("three_pointers_attempted")),
            free_throws_made=_finite_or_zero(data.get("free_throws_made")),
            free_throws_attempted=_finite_or_zero(data.get("free_throws_attempted")),
            season=str(data.get("season") or ""),
            player_name=data.get("player_name", ""),
        )


@dataclass
class SeasonAggregate:
    """Per-player per-season stat averages. Missing stats resolve to league averages."""

    player_id: str
    season: str
    games_played: int = 0
    averages: Dict[str, float] = field(default_factory=dict)

    def average(self, stat_type: str, default: Optional[float] = None) -> float:
        value = self.averages.get(stat_type)
        if value is None or not math.isfinite(value):
            return default if default is not None else LEAGUE_AVERAGES.get(stat_type, 0.0)
        return float(value)

    @classmethod
    def from_game_logs(
        cls, player_id: str, season: str, logs: Iterable[GameLogRecord]
    ) -> "SeasonAggregate":
        """Average every stat across the given season's games."""
        season_logs = [g for g in logs if g.season == season]
        averages: Dict[str, float] = {}
        for stat_type in STAT_FIELDS:
            values = [g.stat(stat_type) for g in season_logs]
            values = [v for v in values if math.isfinite(v)]
            if values:
                averages[stat_type] = sum(values) / len(values)
        return cls(player_id, season, len(season_logs), averages)

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "season": self.season,
            "games_played": self.games_played,
            "averages": dict(self.averages),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SeasonAggregate":
        return cls(
            player_id=str(data["player_id"]),
            season=str(data["season"]),
            games_played=int(data.get("games_played", 0)),
            averages={k: float(v) for k, v in data.get("averages", {}).items()},
        )
