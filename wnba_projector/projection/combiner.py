"""
Combination of base values, factors and model output into one projection.

The factor projection starts from the season average and multiplies in
each factor raised to its weight, so a factor of 1.0 never moves the
projection and no single factor can dominate. Assists use their own base
and exponents. The trained model's prediction, when there is one, is
blended in with weights that follow both sides' confidence.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..config import ASSISTS_FACTOR_WEIGHTS, PROJECTION_WEIGHTS, REBOUND_CAPS, round_stat
from ..models.context import Position
from .factors import FactorSet

logger = logging.getLogger(__name__)

# Factors applied by the standard combination, in application order.
STANDARD_FACTORS = ("opponent_defense", "home_away", "rest_factor", "injury_impact", "head_to_head", "per_factor")

# Applied unweighted after the standard factors; neutral except for points.
FULL_WEIGHT_FACTORS = ("opponent_pace",)


@dataclass
class BlendWeights:
    """Share of the factor projection and of the model prediction."""

    factor: float
    model: float


def _apply(projection: float, factor: Optional[float], weight: float) -> float:
    if factor is None or not math.isfinite(factor) or factor <= 0:
        return projection
    return projection * factor ** weight


def blend_weights(model_confidence: float, factor_confidence: float) -> BlendWeights:
    """
    Weights for mixing the factor projection with the model prediction.

    Starts at 0.7 factor / 0.3 model; a model confidence above 0.8 moves
    to an even split and one below 0.5 to 0.8 / 0.2. A factor confidence
    above 0.8 shifts 0.1 toward the factors, below 0.5 shifts 0.1 away.
    The result is normalized to sum to 1.
    """
    factor_weight, model_weight = 0.7, 0.3
    if model_confidence > 0.8:
        factor_weight, model_weight = 0.5, 0.5
    elif model_confidence < 0.5:
        factor_weight, model_weight = 0.8, 0.2

    if factor_confidence > 0.8:
        factor_weight += 0.1
        model_weight -= 0.1
    elif factor_confidence < 0.5:
        factor_weight -= 0.1
        model_weight += 0.1

    total = factor_weight + model_weight
    return BlendWeights(factor_weight / total, model_weight / total)


class ProjectionCombiner:
    """Turns a FactorSet (and optional model output) into a projected value."""

    def __init__(self, weights: Optional[Dict[str, float]] = None,
                 assists_weights: Optional[Dict[str, float]] = None):
        self.weights = dict(weights or PROJECTION_WEIGHTS)
        self.assists_weights = dict(assists_weights or ASSISTS_FACTOR_WEIGHTS)

    def combine(self, factor_set: FactorSet, stat_type: str) -> float:
        """
        Factor-only projection, unrounded.

        Args:
            factor_set: Base values and factors
            stat_type: Stat being projected

        Returns:
            Projected value; exactly 0 when the base is 0
        """
        if stat_type == "assists":
            return self.combine_assists(factor_set)

        base = factor_set.season_average
        if base == 0 or not math.isfinite(base):
            return 0.0

        projection = base
        if factor_set.recent_form > 0:
            projection = _apply(projection, factor_set.recent_form / base, self.weights["recent_form"])
        for name in STANDARD_FACTORS:
            projection = _apply(projection, factor_set.factors.get(name), self.weights[name])
        for name in FULL_WEIGHT_FACTORS:
            projection = _apply(projection, factor_set.factors.get(name), 1.0)
        return max(projection, 0.0)

    def combine_assists(self, factor_set: FactorSet) -> float:
        """Recent-weighted base, optionally blended with head-to-head, then weighted factors."""
        season = factor_set.season_average
        recent = factor_set.recent_form
        base = 0.7 * recent + 0.3 * season if recent > 0 else season
        if factor_set.head_to_head_average is not None:
            base = 0.8 * base + 0.2 * factor_set.head_to_head_average
        if base == 0 or not math.isfinite(base):
            return 0.0

        projection = base
        for name, weight in self.assists_weights.items():
            projection = _apply(projection, factor_set.factors.get(name), weight)
        return max(projection, 0.0)

    def blend(self, factor_value: float, model_value: Optional[float], model_confidence: float,
              factor_confidence: float) -> Tuple[float, Optional[BlendWeights]]:
        """Mix the factor projection with a model prediction when one exists."""
        if model_value is None or not math.isfinite(model_value):
            return factor_value, None
        weights = blend_weights(model_confidence, factor_confidence)
        value = weights.factor * factor_value + weights.model * max(model_value, 0.0)
        logger.debug("Blend %.2f x %.2f + %.2f x %.2f = %.2f",
                     factor_value, weights.factor, model_value, weights.model, value)
        return value, weights

    def finalize(self, value: float, stat_type: str, lineup_multiplier: float = 1.0,
                 position: Optional[str] = None) -> float:
        """
        Apply the lineup shift and rebound caps, then round.

        Args:
            value: Blended projection
            stat_type: Stat being projected
            lineup_multiplier: Lineup-shift multiplier (1.0 for none)
            position: Player position label, used for rebound caps

        Returns:
            Rounded, non-negative projection
        """
        if value == 0 or not math.isfinite(value):
            return 0.0
        value *= lineup_multiplier
        if stat_type == "rebounds":
            cap = REBOUND_CAPS[Position.from_label(position).value]
            if value > cap:
                logger.debug("Capping rebounds projection %.2f at %.1f", value, cap)
                value = cap
        return round_stat(stat_type, max(value, 0.0))
