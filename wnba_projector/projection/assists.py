"""Assist-specific factors."""

from __future__ import annotations

from typing import Dict, Optional

from ..config import (
    DEFENSE_RATIO_TIERS,
    LEAGUE_ASSIST_TO_FGM_RATIO,
    LEAGUE_ASSISTS_ALLOWED,
    LEAGUE_EFFECTIVE_FG_PCT,
    TierTable,
)
from ..features.feature_builder import FeatureContext

USAGE_TIERS = (
    (30.0, 1.25), (25.0, 1.20), (22.0, 1.15), (20.0, 1.10),
    (18.0, 1.05), (15.0, 1.0), (12.0, 0.95), (10.0, 0.90),
)
USAGE_FLOOR = 0.85

SHOOTING_TIERS = (
    (1.15, 1.20), (1.10, 1.15), (1.05, 1.10), (0.98, 1.05),
    (0.92, 1.0), (0.85, 0.95), (0.80, 0.90),
)
SHOOTING_FLOOR = 0.85

HOLLINGER_TIERS = ((25.0, 1.03), (22.0, 1.02), (20.0, 1.01))


def usage_factor(usage_rate: Optional[float], minutes_per_game: Optional[float] = None) -> float:
    """Ball-handling share, with a bump for heavy-minute players."""
    if usage_rate is None:
        return 1.0
    factor = USAGE_FLOOR
    for threshold, value in USAGE_TIERS:
        if usage_rate >= threshold:
            factor = value
            break
    if minutes_per_game is not None:
        if minutes_per_game >= 32:
            factor *= 1.08
        elif minutes_per_game >= 28:
            factor *= 1.05
    return factor


def teammate_shooting_factor(effective_fg_pct: Optional[float]) -> float:
    """Better-shooting teammates convert more passes into assists."""
    if effective_fg_pct is None or effective_fg_pct <= 0:
        return 1.0
    ratio = effective_fg_pct / LEAGUE_EFFECTIVE_FG_PCT
    for threshold, value in SHOOTING_TIERS:
        if ratio >= threshold:
            return value
    return SHOOTING_FLOOR


def team_scheme_factor(assist_ratio: Optional[float]) -> float:
    """Ball-movement offenses assist on a larger share of made shots."""
    if assist_ratio is None or assist_ratio <= 0:
        return 1.0
    ratio = assist_ratio / LEAGUE_ASSIST_TO_FGM_RATIO
    if ratio > 1.2:
        return 1.20
    if ratio > 1.1:
        return 1.10
    if ratio < 0.9:
        return 0.90
    return 1.0


def minutes_factor(minutes_per_game: Optional[float]) -> float:
    if minutes_per_game is None:
        return 1.0
    if minutes_per_game > 32:
        return 1.15
    if minutes_per_game > 28:
        return 1.10
    if minutes_per_game > 24:
        return 1.05
    if minutes_per_game < 20:
        return 0.90
    return 1.0


def position_defense_factor(allowed: Optional[float], tiers: TierTable = DEFENSE_RATIO_TIERS) -> float:
    """Assists the opponent allows to the player's position group."""
    if allowed is None or allowed <= 0:
        return 1.0
    return tiers.lookup(allowed / LEAGUE_ASSISTS_ALLOWED)


def hollinger_factor(assist_ratio: Optional[float]) -> float:
    """Small boost for high Hollinger assist ratios; at most 3 %."""
    if assist_ratio is None:
        return 1.0
    for threshold, value in HOLLINGER_TIERS:
        if assist_ratio >= threshold:
            return value
    return 1.0


def compute_assist_factors(context: FeatureContext, defense_tiers: TierTable = DEFENSE_RATIO_TIERS) -> Dict[str, float]:
    """
    Args:
        context: Pre-game context for an assists projection
        defense_tiers: Tier table for the position-defense ratio

    Returns:
        Dict of assist factor name -> multiplier
    """
    advanced = context.advanced
    minutes = advanced.minutes_per_game if advanced else None
    if minutes is None and context.game_logs:
        minutes = context.season_average("minutes")

    position_allowed = None
    if context.opponent_context is not None and advanced is not None:
        by_position = context.opponent_context.position_allowed.get(advanced.position_group, {})
        position_allowed = by_position.get("assists")

    return {
        "usage": usage_factor(advanced.usage_rate if advanced else None, minutes),
        "teammate_shooting": teammate_shooting_factor(
            context.team_context.effective_fg_pct() if context.team_context else None
        ),
        "team_scheme": team_scheme_factor(context.team_context.assist_ratio() if context.team_context else None),
        "minutes": minutes_factor(minutes),
        "position": position_defense_factor(position_allowed, defense_tiers),
        "hollinger": hollinger_factor(advanced.hollinger_assist_ratio() if advanced else None),
    }
