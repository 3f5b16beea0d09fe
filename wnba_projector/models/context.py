"""Team context, player advanced stats, and injury records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class Position(Enum):
    """Position groups used for defense splits and rebound caps."""
    GUARD = "G"
    FORWARD = "F"
    CENTER = "C"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Position":
        """
        Map a roster label (PG, SG, G-F, PF, C, ...) to a position group.

        Unknown or empty labels are treated as guards.
        """
        if not label:
            return cls.GUARD
        text = label.strip().upper()
        if text.startswith("C"):
            return cls.CENTER
        if text in ("SF", "PF") or text.startswith("F"):
            return cls.FORWARD
        return cls.GUARD


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass
class TeamContext:
    """Per-team per-season pace, defense-allowed ratings, and offensive totals."""

    team: str
    season: str
    pace: Optional[float] = None
    # stat_type -> allowed per game to one player; "team_<stat>" keys hold team totals
    allowed: Dict[str, float] = field(default_factory=dict)
    # position group ("G"/"F"/"C") -> stat_type -> allowed per game
    position_allowed: Dict[str, Dict[str, float]] = field(default_factory=dict)
    opponent_field_goal_pct: Optional[float] = None
    # Offensive per-game totals
    field_goals_made: Optional[float] = None
    field_goals_attempted: Optional[float] = None
    three_pointers_made: Optional[float] = None
    assists: Optional[float] = None
    rebound_share: Optional[float] = None
    updated_at: str = ""

    def allowed_for(self, stat_type: str, position: Optional[str] = None) -> Optional[float]:
        """Allowed per game for a stat, position-specific when available."""
        if position:
            by_position = self.position_allowed.get(Position.from_label(position).value, {})
            value = _optional_float(by_position.get(stat_type))
            if value is not None:
                return value
        return _optional_float(self.allowed.get(stat_type))

    def effective_fg_pct(self) -> Optional[float]:
        """Team effective field goal percentage, (FGM + 0.5 * 3PM) / FGA * 100."""
        if not self.field_goals_attempted or self.field_goals_made is None:
            return None
        threes = self.three_pointers_made or 0.0
        return (self.field_goals_made + 0.5 * threes) / self.field_goals_attempted * 100.0

    def assist_ratio(self) -> Optional[float]:
        """Assists per made field goal."""
        if not self.field_goals_made or self.assists is None:
            return None
        return self.assists / self.field_goals_made

    def to_dict(self) -> dict:
        return {
            "team": self.team,
            "season": self.season,
            "pace": self.pace,
            "allowed": dict(self.allowed),
            "position_allowed": {k: dict(v) for k, v in self.position_allowed.items()},
            "opponent_field_goal_pct": self.opponent_field_goal_pct,
            "field_goals_made": self.field_goals_made,
            "field_goals_attempted": self.field_goals_attempted,
            "three_pointers_made": self.three_pointers_made,
            "assists": self.assists,
            "rebound_share": self.rebound_share,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TeamContext":
        return cls(
            team=data["team"],
            season=str(data.get("season", "")),
            pace=_optional_float(data.get("pace")),
            allowed={k: float(v) for k, v in data.get("allowed", {}).items() if _optional_float(v) is not None},
            position_allowed={
                Position.from_label(pos).value: {k: float(v) for k, v in stats.items()}
                for pos, stats in data.get("position_allowed", {}).items()
            },
            opponent_field_goal_pct=_optional_float(data.get("opponent_field_goal_pct")),
            field_goals_made=_optional_float(data.get("field_goals_made")),
            field_goals_attempted=_optional_float(data.get("field_goals_attempted")),
            three_pointers_made=_optional_float(data.get("three_pointers_made")),
            assists=_optional_float(data.get("assists")),
            rebound_share=_optional_float(data.get("rebound_share")),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class AdvancedStats:
    """Season-level advanced rates for a player. Percentages are on a 0-100 scale."""

    player_id: str
    season: str
    position: str = "G"
    usage_rate: Optional[float] = None
    per: Optional[float] = None
    minutes_per_game: Optional[float] = None
    points_per_game: Optional[float] = None
    field_goal_pct: Optional[float] = None
    three_point_pct: Optional[float] = None
    free_throw_pct: Optional[float] = None
    # Totals (or per-game rates) for the Hollinger assist ratio
    assists: Optional[float] = None
    field_goals_attempted: Optional[float] = None
    free_throws_attempted: Optional[float] = None
    turnovers: Optional[float] = None

    @property
    def position_group(self) -> str:
        return Position.from_label(self.position).value

    def hollinger_assist_ratio(self) -> Optional[float]:
        """AST / (FGA + 0.475 * FTA + AST + TOV) as a percentage."""
        if self.assists is None or self.field_goals_attempted is None:
            return None
        possessions = (
            self.field_goals_attempted
            + 0.475 * (self.free_throws_attempted or 0.0)
            + self.assists
            + (self.turnovers or 0.0)
        )
        if possessions <= 0:
            return None
        return self.assists / possessions * 100.0

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "season": self.season,
            "position": self.position,
            "usage_rate": self.usage_rate,
            "per": self.per,
            "minutes_per_game": self.minutes_per_game,
            "points_per_game": self.points_per_game,
            "field_goal_pct": self.field_goal_pct,
            "three_point_pct": self.three_point_pct,
            "free_throw_pct": self.free_throw_pct,
            "assists": self.assists,
            "field_goals_attempted": self.field_goals_attempted,
            "free_throws_attempted": self.free_throws_attempted,
            "turnovers": self.turnovers,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AdvancedStats":
        return cls(
            player_id=str(data["player_id"]),
            season=str(data.get("season", "")),
            position=data.get("position") or "G",
            usage_rate=_optional_float(data.get("usage_rate")),
            per=_optional_float(data.get("per")),
            minutes_per_game=_optional_float(data.get("minutes_per_game")),
            points_per_game=_optional_float(data.get("points_per_game")),
            field_goal_pct=_optional_float(data.get("field_goal_pct")),
            three_point_pct=_optional_float(data.get("three_point_pct")),
            free_throw_pct=_optional_float(data.get("free_throw_pct")),
            assists=_optional_float(data.get("assists")),
            field_goals_attempted=_optional_float(data.get("field_goals_attempted")),
            free_throws_attempted=_optional_float(data.get("free_throws_attempted")),
            turnovers=_optional_float(data.get("turnovers")),
        )


# A teammate counts as significant above either threshold.
SIGNIFICANT_USAGE_THRESHOLD = 18.0
STARTER_MINUTES_THRESHOLD = 24.0


@dataclass
class InjuredTeammate:
    """A teammate currently listed on the injury report."""

    name: str
    position: str = ""
    status: str = "Out"
    usage_rate: Optional[float] = None
    minutes_per_game: Optional[float] = None

    @property
    def is_out(self) -> bool:
        return self.status.strip().lower() == "out"

    @property
    def is_significant(self) -> bool:
        """Teammates with no usage or minutes data are assumed significant."""
        if self.usage_rate is None and self.minutes_per_game is None:
            return True
        if self.usage_rate is not None and self.usage_rate > SIGNIFICANT_USAGE_THRESHOLD:
            return True
        return self.minutes_per_game is not None and self.minutes_per_game > STARTER_MINUTES_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "position": self.position,
            "status": self.status,
            "usage_rate": self.usage_rate,
            "minutes_per_game": self.minutes_per_game,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InjuredTeammate":
        return cls(
            name=data.get("name", ""),
            position=data.get("position", ""),
            status=data.get("status", "Out"),
            usage_rate=_optional_float(data.get("usage_rate")),
            minutes_per_game=_optional_float(data.get("minutes_per_game")),
        )
