"""Factor computation, combination, scoring and the projection engine."""

from .combiner import ProjectionCombiner, blend_weights
from .confidence import ConfidenceRiskCalculator, RiskAssessment
from .engine import ProjectionEngine, project, train
from .factors import FactorEngine, FactorSet
from .recommendation import RecommendationEngine

__all__ = [
    "ConfidenceRiskCalculator",
    "FactorEngine",
    "FactorSet",
    "ProjectionCombiner",
    "ProjectionEngine",
    "RecommendationEngine",
    "RiskAssessment",
    "blend_weights",
    "project",
    "train",
]
