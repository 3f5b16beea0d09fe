"""Domain records for game logs, context, models and projections."""

from .context import AdvancedStats, InjuredTeammate, Position, TeamContext
from .game_log import GameLogRecord, SeasonAggregate
from .projection import FeatureVector, ProjectionRequest, ProjectionResult, Recommendation, RiskLevel
from .trained_model import TrainedModel

__all__ = [
    "AdvancedStats",
    "FeatureVector",
    "GameLogRecord",
    "InjuredTeammate",
    "Position",
    "ProjectionRequest",
    "ProjectionResult",
    "Recommendation",
    "RiskLevel",
    "SeasonAggregate",
    "TeamContext",
    "TrainedModel",
]
