"""
Feature vector construction.

Every feature name resolves through a chain of sources: current-game
context, then the season aggregate, then a rolling average over recent
games, then a league-constant default. Whatever the chain produces is
checked once more, and NaN or infinite values are replaced by the
feature's default, so a vector never carries a non-finite cell.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..config import LEAGUE_AVERAGES, LEAGUE_PACE
from ..models.context import AdvancedStats, InjuredTeammate, Position, TeamContext
from ..models.game_log import GameLogRecord, SeasonAggregate
from ..models.projection import FeatureVector

logger = logging.getLogger(__name__)

RECENT_GAMES = 5
FORM_WINDOW = 10

# Defaults for every stat-independent feature. Stat-specific names
# (season_average_<stat>, recent_form_<stat>) default to the league average.
FEATURE_DEFAULTS: Dict[str, float] = {
    "recent_form_volatility": 0.0,
    "team_pace": LEAGUE_PACE / 100.0,
    "opponent_pace": LEAGUE_PACE / 100.0,
    "pace_interaction": (LEAGUE_PACE / 100.0) ** 2,
    "pace_difference": 0.0,
    "usage_rate": 20.0,
    "home_away": 0.0,
    "days_rest": 2.0,
    "days_rest_log": math.log(3.0),
    "back_to_back": 0.0,
    "is_starter": 0.0,
    "historical_minutes": LEAGUE_AVERAGES["minutes"],
    "star_status": 0.0,
    "opponent_points_allowed_avg": 80.0,
    "opponent_rebounds_allowed": 33.0,
    "opponent_assists_allowed": 18.5,
    "opponent_field_goal_percentage": 0.426,
    "teammate_shooting_efficiency": 0.45,
    "teammate_rebounding_strength": 0.5,
    "teammate_assist_dependency": 0.25,
    "lineup_shift_multiplier": 1.0,
    "field_goal_percentage": 0.45,
    "three_point_percentage": 0.30,
    "free_throw_percentage": 0.80,
    "time_decay_weight": 1.0,
    "games_played": 0.0,
    "teammate_injuries": 0.0,
    "injury_status": 0.0,
}

_COMMON_FEATURES = [
    "recent_form_composite",
    "recent_form_volatility",
    "opponent_stat_allowed",
    "home_away",
    "days_rest",
    "days_rest_log",
    "back_to_back",
    "historical_minutes",
    "usage_rate",
    "is_starter",
    "star_status",
    "team_pace",
    "opponent_pace",
    "pace_interaction",
    "teammate_injuries",
    "lineup_shift_multiplier",
    "time_decay_weight",
    "games_played",
]

_STAT_FEATURES: Dict[str, List[str]] = {
    "points": [
        "field_goal_percentage",
        "three_point_percentage",
        "free_throw_percentage",
        "opponent_points_allowed_avg",
        "opponent_field_goal_percentage",
        "teammate_shooting_efficiency",
    ],
    "rebounds": [
        "opponent_rebounds_allowed",
        "opponent_field_goal_percentage",
        "teammate_rebounding_strength",
    ],
    "assists": [
        "opponent_assists_allowed",
        "teammate_shooting_efficiency",
        "teammate_assist_dependency",
        "pace_difference",
    ],
}


def feature_names_for(stat_type: str) -> List[str]:
    """Canonical ordered feature list for a stat type."""
    return (
        [f"season_average_{stat_type}", f"recent_form_{stat_type}"]
        + _COMMON_FEATURES
        + _STAT_FEATURES.get(stat_type, [])
    )


FEATURE_SETS: Dict[str, List[str]] = {stat: feature_names_for(stat) for stat in LEAGUE_AVERAGES}


def feature_default(name: str) -> float:
    """Documented default for a feature name. Unknown names default to 0."""
    if name in FEATURE_DEFAULTS:
        return FEATURE_DEFAULTS[name]
    for prefix in ("season_average_", "recent_form_"):
        if name.startswith(prefix):
            return LEAGUE_AVERAGES.get(name[len(prefix):], 0.0)
    return 0.0


def _mean(values: Sequence[float]) -> Optional[float]:
    finite = [v for v in values if math.isfinite(v)]
    return sum(finite) / len(finite) if finite else None


def _pct(value: Optional[float]) -> Optional[float]:
    """Percent on a 0-100 scale to a fraction."""
    return None if value is None else value / 100.0


@dataclass
class FeatureContext:
    """
    Everything known about one player-game before tip-off.

    ``game_logs`` must hold only games strictly before ``as_of``; the
    builder filters again so callers cannot leak the target game.
    """

    player_id: str
    stat_type: str
    as_of: date
    game_logs: List[GameLogRecord] = field(default_factory=list)
    season: str = ""
    opponent: str = ""
    is_home: Optional[bool] = None
    days_rest: Optional[int] = None
    aggregate: Optional[SeasonAggregate] = None
    advanced: Optional[AdvancedStats] = None
    team_context: Optional[TeamContext] = None
    opponent_context: Optional[TeamContext] = None
    injured_teammates: Optional[List[InjuredTeammate]] = None
    lineup_multiplier: Optional[float] = None

    def __post_init__(self):
        self.game_logs = sorted(
            (g for g in self.game_logs if g.game_date < self.as_of),
            key=lambda g: (g.game_date, g.game_id),
        )

    @property
    def position(self) -> str:
        return self.advanced.position_group if self.advanced else Position.GUARD.value

    def values(self, stat_type: str) -> List[float]:
        """Stat values in chronological order, non-finite entries dropped."""
        return [v for v in (g.stat(stat_type) for g in self.game_logs) if math.isfinite(v)]

    def last_n(self, stat_type: str, n: int) -> List[float]:
        return self.values(stat_type)[-n:]

    def resolved_days_rest(self) -> Optional[int]:
        """Explicit rest days, else days since the last game minus one."""
        if self.days_rest is not None:
            return self.days_rest
        if not self.game_logs:
            return None
        return max(0, (self.as_of - self.game_logs[-1].game_date).days - 1)

    def season_average(self, stat_type: str) -> Optional[float]:
        if self.aggregate is not None and stat_type in self.aggregate.averages:
            value = self.aggregate.averages[stat_type]
            if math.isfinite(value):
                return value
        season_logs = [g for g in self.game_logs if not self.season or g.season == self.season]
        return _mean([g.stat(stat_type) for g in season_logs]) if season_logs else _mean(self.values(stat_type))


class FeatureBuilder:
    """
    Builds feature vectors in a model's canonical feature order.

    Pure: the same context and name list always give the same vector.
    """

    def __init__(self):
        self._resolvers: Dict[str, Callable[[FeatureContext], Optional[float]]] = {
            "recent_form_composite": self._recent_form_composite,
            "recent_form_volatility": self._recent_form_volatility,
            "team_pace": lambda c: self._pace(c.team_context),
            "opponent_pace": lambda c: self._pace(c.opponent_context),
            "pace_interaction": self._pace_interaction,
            "pace_difference": self._pace_difference,
            "usage_rate": lambda c: c.advanced.usage_rate if c.advanced else None,
            "home_away": lambda c: None if c.is_home is None else float(c.is_home),
            "days_rest": self._days_rest,
            "days_rest_log": self._days_rest_log,
            "back_to_back": self._back_to_back,
            "is_starter": self._is_starter,
            "historical_minutes": self._historical_minutes,
            "star_status": self._star_status,
            "opponent_points_allowed_avg": lambda c: self._allowed(c, "team_points"),
            "opponent_rebounds_allowed": lambda c: self._allowed(c, "team_rebounds"),
            "opponent_assists_allowed": lambda c: self._allowed(c, "team_assists"),
            "opponent_stat_allowed": lambda c: (
                c.opponent_context.allowed_for(c.stat_type, c.position) if c.opponent_context else None
            ),
            "opponent_field_goal_percentage": lambda c: (
                _pct(c.opponent_context.opponent_field_goal_pct) if c.opponent_context else None
            ),
            "teammate_shooting_efficiency": lambda c: (
                _pct(c.team_context.effective_fg_pct()) if c.team_context else None
            ),
            "teammate_rebounding_strength": lambda c: c.team_context.rebound_share if c.team_context else None,
            "teammate_assist_dependency": lambda c: c.team_context.assist_ratio() if c.team_context else None,
            "lineup_shift_multiplier": lambda c: c.lineup_multiplier,
            "field_goal_percentage": lambda c: _pct(c.advanced.field_goal_pct) if c.advanced else None,
            "three_point_percentage": lambda c: _pct(c.advanced.three_point_pct) if c.advanced else None,
            "free_throw_percentage": lambda c: _pct(c.advanced.free_throw_pct) if c.advanced else None,
            "time_decay_weight": self._time_decay_weight,
            "games_played": lambda c: float(len(c.game_logs)),
            "teammate_injuries": lambda c: (
                None if c.injured_teammates is None else float(sum(1 for t in c.injured_teammates if t.is_out))
            ),
            "injury_status": lambda c: 0.0,
        }

    def build(self, feature_names: Sequence[str], context: FeatureContext) -> FeatureVector:
        """
        Build a vector whose order and length match ``feature_names``.

        Args:
            feature_names: Canonical names, usually ``TrainedModel.feature_names``
            context: Pre-game context for the player

        Returns:
            FeatureVector with every cell finite
        """
        values = np.array([self.resolve(name, context) for name in feature_names], dtype=float)
        return FeatureVector(list(feature_names), values)

    def build_dict(self, feature_names: Sequence[str], context: FeatureContext) -> Dict[str, float]:
        return {name: self.resolve(name, context) for name in feature_names}

    def resolve(self, name: str, context: FeatureContext) -> float:
        """Resolve a single feature, falling back to its default."""
        default = feature_default(name)
        try:
            value = self._lookup(name, context)
        except (TypeError, ValueError, ZeroDivisionError) as e:
            logger.debug("Feature %s could not be computed: %s", name, e)
            value = None
        if value is None:
            return default
        value = float(value)
        if not math.isfinite(value):
            logger.debug("Feature %s was non-finite; using default %.3f", name, default)
            return default
        return value

    def _lookup(self, name: str, context: FeatureContext) -> Optional[float]:
        resolver = self._resolvers.get(name)
        if resolver is not None:
            return resolver(context)
        if name.startswith("season_average_"):
            return context.season_average(name[len("season_average_"):])
        if name.startswith("recent_form_"):
            stat_type = name[len("recent_form_"):]
            return _mean(context.last_n(stat_type, RECENT_GAMES)) if stat_type in LEAGUE_AVERAGES else None
        return None

    # -- Resolvers -----------------------------------------------------------

    @staticmethod
    def _recent_form_composite(c: FeatureContext) -> Optional[float]:
        last5 = _mean(c.last_n(c.stat_type, RECENT_GAMES))
        last10 = _mean(c.last_n(c.stat_type, FORM_WINDOW))
        if last5 is None or last10 is None:
            return c.season_average(c.stat_type)
        return 0.6 * last5 + 0.4 * last10

    @staticmethod
    def _recent_form_volatility(c: FeatureContext) -> Optional[float]:
        values = c.last_n(c.stat_type, FORM_WINDOW)
        if len(values) < 2:
            return None
        return float(np.std(values))

    @staticmethod
    def _pace(ctx: Optional[TeamContext]) -> Optional[float]:
        if ctx is None or ctx.pace is None:
            return None
        return ctx.pace / 100.0

    def _pace_interaction(self, c: FeatureContext) -> Optional[float]:
        team = self.resolve("team_pace", c)
        opponent = self.resolve("opponent_pace", c)
        return team * opponent

    def _pace_difference(self, c: FeatureContext) -> Optional[float]:
        return self.resolve("team_pace", c) - self.resolve("opponent_pace", c)

    @staticmethod
    def _days_rest(c: FeatureContext) -> Optional[float]:
        rest = c.resolved_days_rest()
        return None if rest is None else float(rest)

    @staticmethod
    def _days_rest_log(c: FeatureContext) -> Optional[float]:
        rest = c.resolved_days_rest()
        return None if rest is None else math.log1p(max(rest, 0))

    @staticmethod
    def _back_to_back(c: FeatureContext) -> Optional[float]:
        rest = c.resolved_days_rest()
        return None if rest is None else float(rest <= 0)

    @staticmethod
    def _historical_minutes(c: FeatureContext) -> Optional[float]:
        if c.advanced is not None and c.advanced.minutes_per_game is not None:
            return c.advanced.minutes_per_game
        return c.season_average("minutes")

    def _is_starter(self, c: FeatureContext) -> Optional[float]:
        minutes = self._historical_minutes(c)
        return None if minutes is None else float(minutes > 20)

    @staticmethod
    def _star_status(c: FeatureContext) -> Optional[float]:
        usage = c.advanced.usage_rate if c.advanced and c.advanced.usage_rate is not None else 20.0
        points = c.season_average("points") or 0.0
        return float(usage > 25 or points > 15)

    @staticmethod
    def _allowed(c: FeatureContext, key: str) -> Optional[float]:
        if c.opponent_context is None:
            return None
        return c.opponent_context.allowed.get(key)

    @staticmethod
    def _time_decay_weight(c: FeatureContext) -> Optional[float]:
        if not c.game_logs:
            return None
        days = (c.as_of - c.game_logs[-1].game_date).days
        return math.exp(-0.01 * max(days, 0))
