"""Over/under/pass recommendation against a market line."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import RecommendationConfig
from ..models.projection import Recommendation

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Compares a projection to the line and decides whether to act."""

    def __init__(self, config: Optional[RecommendationConfig] = None):
        self.config = config or RecommendationConfig()

    @staticmethod
    def edge(projected: float, line: Optional[float]) -> float:
        """Projected minus line; 0 without a line."""
        if line is None:
            return 0.0
        return projected - line

    def recommend(self, stat_type: str, projected: float, line: Optional[float], confidence: float) -> Recommendation:
        """
        Args:
            stat_type: Stat being projected
            projected: Final projected value
            line: Market line, if any
            confidence: Confidence score in [0, 1]

        Returns:
            PASS below the confidence floor or inside the stat's edge
            threshold, otherwise OVER or UNDER
        """
        if line is None:
            return Recommendation.PASS
        if confidence < self.config.min_confidence:
            return Recommendation.PASS
        edge = self.edge(projected, line)
        if abs(edge) < self.config.edge_threshold(stat_type):
            return Recommendation.PASS
        return Recommendation.OVER if edge > 0 else Recommendation.UNDER
