"""
Contextual projection factors.

Each factor is a multiplier that is neutral at 1.0. Factors are computed
from a ``FeatureContext`` whose game logs stop strictly before its
``as_of`` date, so the result depends only on the inputs, never the clock.
Missing data always gives the neutral value.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import LEAGUE_AVERAGES, ProjectorConfig
from ..data.team_name_resolver import TeamNameResolver, default_resolver
from ..features.feature_builder import FeatureContext
from ..models.context import InjuredTeammate, Position
from ..models.game_log import GameLogRecord
from . import assists as assist_factors
from .pace import absolute_pace_factor, pace_factor

logger = logging.getLogger(__name__)

RECENT_FORM_GAMES = 10
RECENT_FORM_DECAY = 0.3
MIN_HEAD_TO_HEAD_GAMES = 2
MIN_REGRESSION_GAMES = 10

INJURY_COUNT_FACTORS = {0: 1.0, 1: 1.05, 2: 1.10}
INJURY_COUNT_MAX = 1.15
INJURY_PER_TEAMMATE = 0.05
INJURY_POSITION_BOOST = 1.15
INJURY_FACTOR_BOUNDS = (0.8, 1.6)
USAGE_BOOST_BOUNDS = (0.9, 1.4)
DEFAULT_TEAMMATE_USAGE = 20.0

# Position groups that absorb each other's touches when one is missing.
RELATED_POSITIONS = {"G": {"G"}, "F": {"F", "C"}, "C": {"F", "C"}}

# stat_type -> roster position -> share of redistributed usage that turns into that stat
USAGE_STAT_MULTIPLIERS: Dict[str, Dict[str, float]] = {
    "points": {"PG": 1.0, "SG": 1.0, "SF": 1.2, "PF": 1.2, "C": 1.1},
    "rebounds": {"PG": 0.8, "SG": 0.8, "SF": 1.0, "PF": 1.3, "C": 1.5},
    "assists": {"PG": 1.4, "SG": 1.2, "SF": 0.9, "PF": 0.8, "C": 0.7},
}
_GROUP_TO_ROSTER = {"G": "SG", "F": "SF", "C": "C"}

PER_TIERS = ((32.0, 1.015), (28.0, 1.012), (22.0, 1.008))


@dataclass
class FactorSet:
    """Base values plus the multiplicative factors for one projection."""

    season_average: float
    recent_form: float
    head_to_head_average: Optional[float] = None
    factors: Dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, float]:
        """Flat view used in projection results."""
        result = {"season_average": self.season_average, "recent_form": self.recent_form}
        result.update(self.factors)
        return result


# ---------------------------------------------------------------------------
# Pure factor functions
# ---------------------------------------------------------------------------


def season_average(values: Sequence[float]) -> float:
    """Arithmetic mean of finite values, 0 when there are none."""
    finite = [v for v in values if v is not None and math.isfinite(v)]
    return sum(finite) / len(finite) if finite else 0.0


def recent_form(logs: Sequence[GameLogRecord], stat_type: str, games: int = RECENT_FORM_GAMES) -> float:
    """
    Exponentially-decayed average of the most recent games.

    The newest game has weight 1 and the i-th older one ``exp(-0.3 * i)``.
    Negative or NaN values are skipped.

    Args:
        logs: Game logs in any order
        stat_type: Stat to average
        games: How many of the most recent games to consider

    Returns:
        Weighted average, or 0 with no usable games
    """
    ordered = sorted(logs, key=lambda g: (g.game_date, g.game_id), reverse=True)[:games]
    total = 0.0
    weights = 0.0
    for i, game in enumerate(ordered):
        value = game.stat(stat_type)
        if not math.isfinite(value) or value < 0:
            continue
        weight = math.exp(-RECENT_FORM_DECAY * i)
        total += value * weight
        weights += weight
    return total / weights if weights > 0 else 0.0


def opponent_defense(allowed: Optional[float], league_average: Optional[float]) -> float:
    """Opponent's allowed-per-game relative to league average."""
    if allowed is None or not league_average or league_average <= 0 or not math.isfinite(allowed):
        return 1.0
    if allowed <= 0:
        return 1.0
    return allowed / league_average


def home_away(logs: Sequence[GameLogRecord], stat_type: str, is_home: bool) -> float:
    """Home-to-away average ratio, inverted for road games."""
    home = [g.stat(stat_type) for g in logs if g.is_home]
    away = [g.stat(stat_type) for g in logs if not g.is_home]
    if not home or not away:
        return 1.0
    home_avg = season_average(home)
    away_avg = season_average(away)
    if away_avg == 0 or home_avg == 0:
        return 1.0
    ratio = home_avg / away_avg
    return ratio if is_home else 1.0 / ratio


def rest_factor(days_rest: int) -> float:
    """Back-to-back 0.8, one day 0.9, two days 1.0, three 1.05, four or more 1.1."""
    if days_rest <= 0:
        return 0.8
    if days_rest == 1:
        return 0.9
    if days_rest == 2:
        return 1.0
    if days_rest == 3:
        return 1.05
    return 1.1


def injury_count_factor(count: int) -> float:
    """Fallback injury factor from the number of teammates out."""
    if count <= 0:
        return 1.0
    return INJURY_COUNT_FACTORS.get(count, INJURY_COUNT_MAX)


def _roster_position(label: Optional[str]) -> str:
    text = (label or "").strip().upper()
    if text in ("PG", "SG", "SF", "PF", "C"):
        return text
    return _GROUP_TO_ROSTER[Position.from_label(text).value]


def usage_redistribution_boost(
    stat_type: str,
    player_usage: Optional[float],
    player_position: Optional[str],
    significant: Sequence[InjuredTeammate],
) -> float:
    """
    Projection boost from usage freed up by missing teammates.

    Freed usage is shared in proportion to the remaining players' usage, so
    the player's usage grows by ``freed / (100 - freed)``. Half of that
    growth, scaled by how much the player's position converts usage into the
    stat, becomes the boost, capped to [0.9, 1.4].
    """
    if not significant or not player_usage or player_usage <= 0:
        return 1.0
    freed = sum(t.usage_rate if t.usage_rate is not None else DEFAULT_TEAMMATE_USAGE for t in significant)
    freed = min(freed, 90.0)
    usage_increase = freed / (100.0 - freed)
    multiplier = USAGE_STAT_MULTIPLIERS.get(stat_type, {}).get(_roster_position(player_position), 1.0)
    boost = 1.0 + usage_increase * multiplier * 0.5
    low, high = USAGE_BOOST_BOUNDS
    return max(low, min(high, boost))


def injury_impact(
    stat_type: str,
    injured: Optional[Sequence[InjuredTeammate]],
    player_position: Optional[str] = None,
    player_usage: Optional[float] = None,
) -> float:
    """
    Injury factor from teammates listed as out.

    With position or usage detail on the injured players, each significant
    teammate adds 5 %, a missing teammate in a related position group adds
    15 %, and freed usage adds its redistribution boost; the total is clamped
    to [0.8, 1.6]. Without any detail the count-based fallback applies.
    """
    if not injured:
        return 1.0
    out = [t for t in injured if t.is_out]
    if not out:
        return 1.0

    has_detail = any(t.position or t.usage_rate is not None or t.minutes_per_game is not None for t in out)
    if not has_detail:
        return injury_count_factor(len(out))

    significant = [t for t in out if t.is_significant]
    if not significant:
        return 1.0

    factor = 1.0 + INJURY_PER_TEAMMATE * len(significant)
    group = Position.from_label(player_position).value
    related = RELATED_POSITIONS[group]
    if any(t.position and Position.from_label(t.position).value in related for t in significant):
        factor *= INJURY_POSITION_BOOST
    factor *= usage_redistribution_boost(stat_type, player_usage, player_position, significant)

    low, high = INJURY_FACTOR_BOUNDS
    return max(low, min(high, factor))


def head_to_head_games(logs: Sequence[GameLogRecord], opponent: str,
                       resolver: Optional[TeamNameResolver] = None) -> List[GameLogRecord]:
    resolver = resolver or default_resolver()
    return [g for g in logs if resolver.same_team(g.opponent, opponent)]


def head_to_head(logs: Sequence[GameLogRecord], stat_type: str, opponent: str,
                 resolver: Optional[TeamNameResolver] = None) -> float:
    """Average against this opponent over the overall average; needs two meetings."""
    h2h = head_to_head_games(logs, opponent, resolver)
    if len(h2h) < MIN_HEAD_TO_HEAD_GAMES:
        return 1.0
    overall = season_average([g.stat(stat_type) for g in logs])
    if overall <= 0:
        return 1.0
    return season_average([g.stat(stat_type) for g in h2h]) / overall


def per_factor(per: Optional[float]) -> float:
    """Small scoring boost for efficient players; at most 1.5 %."""
    if per is None:
        return 1.0
    for threshold, factor in PER_TIERS:
        if per >= threshold:
            return factor
    return 1.0


def regression_to_mean(values: Sequence[float]) -> float:
    """Pull volatile high or low producers back toward the middle."""
    finite = [v for v in values if math.isfinite(v)]
    if len(finite) < MIN_REGRESSION_GAMES:
        return 1.0
    mean = float(np.mean(finite))
    std = float(np.std(finite))
    if mean > 8 and std > 3:
        return 0.95
    if mean < 2 and std > 2:
        return 1.05
    return 1.0


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class FactorEngine:
    """Computes every factor for one projection context."""

    def __init__(self, config: Optional[ProjectorConfig] = None, resolver: Optional[TeamNameResolver] = None):
        self.config = config or ProjectorConfig()
        self.resolver = resolver or default_resolver()

    def compute(self, context: FeatureContext) -> FactorSet:
        """
        Compute the base values and factors for ``context.stat_type``.

        Args:
            context: Pre-game context (logs strictly before ``as_of``)

        Returns:
            FactorSet
        """
        stat_type = context.stat_type
        logs = context.game_logs
        values = context.values(stat_type)

        season_logs = [g for g in logs if not context.season or g.season == context.season] or logs
        base = season_average([g.stat(stat_type) for g in season_logs])
        if context.aggregate is not None and (stat_type in context.aggregate.averages or not season_logs):
            base = context.aggregate.average(stat_type)
        form = recent_form(logs, stat_type, self.config.lookup.recent_games)

        position = context.advanced.position if context.advanced else None
        usage = context.advanced.usage_rate if context.advanced else None
        days_rest = context.resolved_days_rest()

        allowed = context.opponent_context.allowed_for(stat_type) if context.opponent_context else None
        opponent_pace = context.opponent_context.pace if context.opponent_context else None
        h2h_logs = head_to_head_games(logs, context.opponent, self.resolver) if context.opponent else []

        factors = {
            "opponent_defense": opponent_defense(allowed, LEAGUE_AVERAGES.get(stat_type)),
            "home_away": home_away(logs, stat_type, bool(context.is_home)),
            "rest_factor": rest_factor(days_rest) if days_rest is not None else 1.0,
            "injury_impact": injury_impact(stat_type, context.injured_teammates, position, usage),
            "head_to_head": (
                head_to_head(logs, stat_type, context.opponent, self.resolver) if context.opponent else 1.0
            ),
            "per_factor": per_factor(context.advanced.per if context.advanced else None)
            if stat_type == "points" else 1.0,
            "pace": pace_factor(
                context.team_context.pace if context.team_context else None,
                opponent_pace,
                self.config.pace_tiers,
            ),
            "regression_to_mean": regression_to_mean(values),
            "opponent_pace": absolute_pace_factor(opponent_pace) if stat_type == "points" else 1.0,
        }

        if stat_type == "assists":
            factors.update(assist_factors.compute_assist_factors(context, self.config.defense_tiers))

        h2h_average = None
        if len(h2h_logs) >= MIN_HEAD_TO_HEAD_GAMES:
            h2h_average = season_average([g.stat(stat_type) for g in h2h_logs])

        for name, value in factors.items():
            if not math.isfinite(value):
                logger.warning("Factor %s for %s was non-finite; using neutral", name, context.player_id)
                factors[name] = 1.0

        logger.debug("Factors for %s %s: %s", context.player_id, stat_type, factors)
        return FactorSet(season_average=base, recent_form=form, head_to_head_average=h2h_average, factors=factors)
