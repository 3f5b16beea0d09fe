"""Lineup-shift adjustment for injured teammates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..models.context import SIGNIFICANT_USAGE_THRESHOLD, InjuredTeammate

logger = logging.getLogger(__name__)

# stat_type -> (shooting, rebounding, assists) boost per missing teammate
GENERIC_BOOSTS: Dict[str, Tuple[float, float, float]] = {
    "points": (0.20, 0.10, 0.10),
    "rebounds": (0.10, 0.50, 0.20),
    "assists": (0.30, 0.10, 0.40),
}

LINEUP_SCALE = 0.1
MAX_LINEUP_MULTIPLIER = 1.25


@dataclass
class LineupShift:
    """Context boosts the player gains from missing teammates."""

    shooting: float = 0.0
    rebounding: float = 0.0
    assists: float = 0.0
    teammates: int = 0

    def boost_for(self, stat_type: str) -> float:
        if stat_type == "rebounds":
            return self.rebounding
        if stat_type == "assists":
            return self.assists
        return self.shooting


def _teammate_weight(teammate: InjuredTeammate) -> float:
    """Scale a teammate's boost by how central they are to the rotation."""
    if teammate.usage_rate is not None:
        return max(0.5, min(1.5, teammate.usage_rate / SIGNIFICANT_USAGE_THRESHOLD))
    return 1.0


def compute_lineup_shift(stat_type: str, injured: Optional[List[InjuredTeammate]]) -> LineupShift:
    """
    Average the generic boosts over significant teammates who are out.

    Args:
        stat_type: Stat being projected
        injured: Injured teammates (None or empty means no shift)

    Returns:
        LineupShift with averaged boosts
    """
    relevant = [t for t in (injured or []) if t.is_out and t.is_significant]
    if not relevant:
        return LineupShift()

    shooting, rebounding, assists = GENERIC_BOOSTS.get(stat_type, GENERIC_BOOSTS["points"])
    totals = [0.0, 0.0, 0.0]
    for teammate in relevant:
        weight = _teammate_weight(teammate)
        totals[0] += shooting * weight
        totals[1] += rebounding * weight
        totals[2] += assists * weight

    n = len(relevant)
    return LineupShift(totals[0] / n, totals[1] / n, totals[2] / n, n)


def lineup_shift_multiplier(stat_type: str, injured: Optional[List[InjuredTeammate]]) -> float:
    """Multiplier in [1.0, 1.25] applied to the final projection."""
    shift = compute_lineup_shift(stat_type, injured)
    multiplier = 1.0 + shift.boost_for(stat_type) * LINEUP_SCALE
    multiplier = max(1.0, min(MAX_LINEUP_MULTIPLIER, multiplier))
    if shift.teammates:
        logger.debug("Lineup shift for %s: %d teammates out -> %.3f", stat_type, shift.teammates, multiplier)
    return multiplier
