"""
Data-derived tier tables.

The default pace and defense tiers are fixed constants. These helpers build
equivalent tables from a season's observed distribution instead, using
quantiles of each team's ratio to the league mean.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..config import DEFENSE_RATIO_TIERS, PACE_RATIO_TIERS, TierTable

logger = logging.getLogger(__name__)

MIN_TEAMS = 5

# (quantile, factor) pairs. Upper quantiles become "above" tiers,
# lower quantiles "below" tiers.
PACE_QUANTILE_FACTORS = {
    "above": ((0.90, 1.15), (0.75, 1.10), (0.60, 1.05)),
    "below": ((0.10, 0.85), (0.25, 0.90), (0.40, 0.95)),
}

DEFENSE_QUANTILE_FACTORS = {
    "above": ((0.90, 1.15), (0.75, 1.10)),
    "below": ((0.25, 0.90),),
}


def _ratios(values: Sequence[float], reference: Optional[float]) -> Optional[np.ndarray]:
    arr = np.asarray([v for v in values if v is not None], dtype=float)
    arr = arr[np.isfinite(arr) & (arr > 0)]
    if len(arr) < MIN_TEAMS:
        return None
    ref = reference if reference is not None and reference > 0 else float(arr.mean())
    return arr / ref


def _tiers_from_quantiles(ratios: np.ndarray, quantile_factors: dict) -> TierTable:
    above = tuple((float(np.quantile(ratios, q)), factor) for q, factor in quantile_factors["above"])
    below = tuple((float(np.quantile(ratios, q)), factor) for q, factor in quantile_factors["below"])
    return TierTable(above=above, below=below)


def derive_pace_tiers(paces: Sequence[float], league_pace: Optional[float] = None) -> TierTable:
    """
    Build a pace-ratio tier table from a league's team paces.

    Args:
        paces: One pace per team
        league_pace: Reference pace (defaults to the mean of ``paces``)

    Returns:
        TierTable; the fixed defaults when fewer than five teams are known
    """
    ratios = _ratios(paces, league_pace)
    if ratios is None:
        logger.warning("Fewer than %d usable team paces (%d given); using default pace tiers",
                       MIN_TEAMS, len(paces))
        return PACE_RATIO_TIERS
    return _tiers_from_quantiles(ratios, PACE_QUANTILE_FACTORS)


def derive_defense_tiers(allowed: Sequence[float], league_average: Optional[float] = None) -> TierTable:
    """
    Build an opponent-defense tier table from per-team allowed averages.

    Args:
        allowed: One allowed-per-game value per team for a stat
        league_average: Reference value (defaults to the mean of ``allowed``)

    Returns:
        TierTable; the fixed defaults when fewer than five teams are known
    """
    ratios = _ratios(allowed, league_average)
    if ratios is None:
        logger.warning("Fewer than %d usable defensive ratings (%d given); using default defense tiers",
                       MIN_TEAMS, len(allowed))
        return DEFENSE_RATIO_TIERS
    return _tiers_from_quantiles(ratios, DEFENSE_QUANTILE_FACTORS)
