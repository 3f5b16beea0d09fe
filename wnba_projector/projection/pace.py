"""Pace factors."""

from __future__ import annotations

from typing import Optional

from ..config import LEAGUE_PACE, PACE_ABSOLUTE_TIERS, PACE_RATIO_TIERS, TierTable


def pace_ratio(team_pace: Optional[float], opponent_pace: Optional[float],
               league_pace: float = LEAGUE_PACE) -> Optional[float]:
    """Average pace of the two teams relative to league pace, or None without data."""
    paces = [p for p in (team_pace, opponent_pace) if p is not None and p > 0]
    if not paces or league_pace <= 0:
        return None
    return (sum(paces) / len(paces)) / league_pace


def pace_factor(team_pace: Optional[float], opponent_pace: Optional[float],
                tiers: TierTable = PACE_RATIO_TIERS, league_pace: float = LEAGUE_PACE) -> float:
    """
    Tiered game-pace factor.

    Faster games mean more possessions. Ratios above 1.08 map to 1.25,
    ratios below 0.90 to 0.80, and a missing pace on both sides is neutral.
    """
    ratio = pace_ratio(team_pace, opponent_pace, league_pace)
    if ratio is None:
        return 1.0
    return tiers.lookup(ratio)


def absolute_pace_factor(opponent_pace: Optional[float], tiers: TierTable = PACE_ABSOLUTE_TIERS) -> float:
    """Small adjustment from the opponent's raw pace alone."""
    if opponent_pace is None or opponent_pace <= 0:
        return 1.0
    return tiers.lookup(opponent_pace)
