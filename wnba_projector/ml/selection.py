"""Choose between the forest and linear models from validation fit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import SelectionPolicy
from .metrics import RegressionMetrics

logger = logging.getLogger(__name__)

FOREST = "forest"
LINEAR = "linear"


@dataclass
class SelectionResult:
    """Which model is active for a stat type, and why."""

    model_type: str
    reason: str
    metrics: Dict[str, RegressionMetrics] = field(default_factory=dict)
    low_confidence: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def active_metrics(self) -> Optional[RegressionMetrics]:
        return self.metrics.get(self.model_type)


class ModelSelector:
    """
    Picks the model with the higher validation R².

    Stats named in the policy's ``prefer_linear_stats`` take the linear model
    as soon as its R² is positive and beats the forest. When neither model
    reaches a positive R² the forest is kept and flagged low-confidence.
    """

    def __init__(self, policy: Optional[SelectionPolicy] = None):
        self.policy = policy or SelectionPolicy()

    def select(
        self,
        stat_type: str,
        forest_metrics: RegressionMetrics,
        linear_metrics: RegressionMetrics,
    ) -> SelectionResult:
        """
        Select the active model.

        Args:
            stat_type: Stat being modelled
            forest_metrics: Validation metrics of the forest
            linear_metrics: Validation metrics of the linear model

        Returns:
            SelectionResult
        """
        metrics = {FOREST: forest_metrics, LINEAR: linear_metrics}
        rf_r2 = forest_metrics.r2_or_floor
        lr_r2 = linear_metrics.r2_or_floor

        if self.policy.prefers_linear(stat_type) and lr_r2 > 0 and lr_r2 > rf_r2:
            result = SelectionResult(LINEAR, f"policy prefers linear for {stat_type}", metrics)
        elif rf_r2 <= 0 and lr_r2 <= 0:
            warning = (
                f"Neither model achieved positive validation R² for {stat_type} "
                f"(forest={forest_metrics.r2}, linear={linear_metrics.r2}); using forest fallback"
            )
            logger.warning(warning)
            result = SelectionResult(FOREST, "fallback", metrics, low_confidence=True, warnings=[warning])
        elif rf_r2 >= lr_r2:
            result = SelectionResult(FOREST, "higher validation R²", metrics)
        else:
            result = SelectionResult(LINEAR, "higher validation R²", metrics)

        logger.info("Selected %s model for %s (%s)", result.model_type, stat_type, result.reason)
        return result
