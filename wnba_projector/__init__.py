"""
WNBA player stat projections.

Projects a player's next-game output from game logs, team context and
injuries, blends in a trained tree-ensemble or linear model, and scores the
result with confidence, risk and an over/under recommendation.
"""

from .config import ProjectorConfig
from .projection.engine import ProjectionEngine, project, train

__all__ = ["ProjectionEngine", "ProjectorConfig", "project", "train"]

__version__ = "0.1.0"
