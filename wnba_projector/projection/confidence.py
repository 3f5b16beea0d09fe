"""Confidence scoring and risk assessment."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from ..models.projection import RiskLevel

logger = logging.getLogger(__name__)

RISK_WEIGHTS: Dict[str, float] = {
    "model_quality": 0.30,
    "edge_size": 0.25,
    "proximity": 0.20,
    "volatility": 0.15,
    "sample_size": 0.10,
}

LOW_RISK_MAX = 35.0
MEDIUM_RISK_MAX = 65.0


@dataclass
class RiskAssessment:
    """Composite 0-100 risk score with its components."""

    score: float
    level: RiskLevel
    components: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"score": self.score, "level": self.level.value, "components": dict(self.components)}


def risk_level(score: float) -> RiskLevel:
    if score <= LOW_RISK_MAX:
        return RiskLevel.LOW
    if score <= MEDIUM_RISK_MAX:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


class ConfidenceRiskCalculator:
    """
    Scores how much to trust a projection and how risky acting on it is.

    Confidence starts from the model's validation R² and is nudged by
    sample size, factor agreement, recent-form stability and the edge
    against the line; it is clamped to [0, max_confidence].
    """

    def __init__(self, max_confidence: float = 0.95):
        self.max_confidence = max_confidence

    # -- Confidence ----------------------------------------------------------

    @staticmethod
    def base_confidence(r2: Optional[float]) -> float:
        if r2 is None:
            return 0.5
        if r2 >= 0.8:
            return 0.6
        if r2 >= 0.7:
            return 0.55
        if r2 >= 0.6:
            return 0.5
        if r2 >= 0.5:
            return 0.45
        return 0.4

    @staticmethod
    def sample_size_adjustment(games: int) -> float:
        if games >= 20:
            return 0.2
        if games >= 10:
            return 0.1
        if games < 5:
            return -0.2
        return 0.0

    @staticmethod
    def factor_clustering_adjustment(factors: Mapping[str, float]) -> float:
        """Factors close to neutral agree with the base projection."""
        values = [f for f in factors.values() if f is not None and math.isfinite(f)]
        if not values:
            return 0.0
        spread = sum(abs(f - 1.0) for f in values) / len(values)
        if spread < 0.1:
            return 0.15
        if spread < 0.2:
            return 0.1
        if spread > 0.4:
            return -0.1
        return 0.0

    @staticmethod
    def form_stability_adjustment(recent_form: float, season_average: float) -> float:
        if season_average <= 0 or recent_form <= 0:
            return 0.0
        ratio = recent_form / season_average
        if 0.8 < ratio < 1.2:
            return 0.1
        if ratio < 0.6 or ratio > 1.4:
            return -0.1
        return 0.0

    @staticmethod
    def edge_adjustment(edge: Optional[float]) -> float:
        if edge is None:
            return 0.0
        size = abs(edge)
        if size >= 2.5:
            return 0.2
        if size >= 1.5:
            return 0.15
        if size >= 1.0:
            return 0.1
        if size >= 0.5:
            return 0.05
        return 0.0

    def confidence(
        self,
        r2: Optional[float],
        games: int,
        factors: Mapping[str, float],
        recent_form: float,
        season_average: float,
        edge: Optional[float] = None,
    ) -> float:
        """
        Args:
            r2: Active model's validation R², None without a model
            games: Number of historical games
            factors: Multiplicative factors (base values excluded)
            recent_form: Recent-form average
            season_average: Season average
            edge: Projection minus line, None without a line

        Returns:
            Confidence in [0, max_confidence]
        """
        score = (
            self.base_confidence(r2)
            + self.sample_size_adjustment(games)
            + self.factor_clustering_adjustment(factors)
            + self.form_stability_adjustment(recent_form, season_average)
            + self.edge_adjustment(edge)
        )
        return max(0.0, min(self.max_confidence, score))

    # -- Risk ----------------------------------------------------------------

    @staticmethod
    def model_quality_risk(r2: Optional[float]) -> float:
        if r2 is None:
            return 80.0
        if r2 >= 0.8:
            return 20.0
        if r2 >= 0.7:
            return 30.0
        if r2 >= 0.6:
            return 40.0
        if r2 >= 0.5:
            return 60.0
        return 80.0

    @staticmethod
    def edge_size_risk(edge: Optional[float]) -> float:
        if edge is None:
            return 60.0
        size = abs(edge)
        if size >= 2.5:
            return 10.0
        if size >= 1.5:
            return 20.0
        if size >= 1.0:
            return 35.0
        if size >= 0.5:
            return 50.0
        return 80.0

    @staticmethod
    def proximity_risk(projected: float, line: Optional[float]) -> float:
        """A projection sitting on the line is a coin flip."""
        if line is None:
            return 50.0
        distance = abs(projected - line)
        if distance <= 0.2:
            return 90.0
        if distance <= 0.5:
            return 70.0
        if distance <= 1.0:
            return 40.0
        if distance <= 2.0:
            return 20.0
        return 10.0

    @staticmethod
    def volatility_risk(recent_values: Sequence[float]) -> float:
        values = [v for v in recent_values if math.isfinite(v)]
        std = float(np.std(values)) if len(values) >= 2 else 0.0
        if std <= 1:
            return 20.0
        if std <= 2:
            return 35.0
        if std <= 3:
            return 50.0
        if std <= 4:
            return 70.0
        return 85.0

    @staticmethod
    def sample_size_risk(games: int) -> float:
        if games >= 30:
            return 20.0
        if games >= 20:
            return 35.0
        if games >= 15:
            return 50.0
        if games >= 10:
            return 70.0
        return 90.0

    def risk(
        self,
        r2: Optional[float],
        projected: float,
        line: Optional[float],
        recent_values: Sequence[float],
        games: int,
    ) -> RiskAssessment:
        """
        Weighted 0-100 risk composite.

        Args:
            r2: Active model's validation R²
            projected: Final projected value
            line: Market line, if any
            recent_values: Last games' stat values (volatility)
            games: Number of historical games

        Returns:
            RiskAssessment; LOW up to 35, MEDIUM up to 65, HIGH above
        """
        edge = None if line is None else projected - line
        components = {
            "model_quality": self.model_quality_risk(r2),
            "edge_size": self.edge_size_risk(edge),
            "proximity": self.proximity_risk(projected, line),
            "volatility": self.volatility_risk(recent_values),
            "sample_size": self.sample_size_risk(games),
        }
        score = sum(RISK_WEIGHTS[name] * value for name, value in components.items())
        assessment = RiskAssessment(round(score, 2), risk_level(score), components)
        logger.debug("Risk %.1f (%s): %s", score, assessment.level.value, components)
        return assessment
