"""Hand-built regression models and validation utilities."""

from .forest import ForestEnsemble, ForestPrediction
from .linear import WeightedLinearModel
from .metrics import RegressionMetrics, evaluate
from .selection import ModelSelector, SelectionResult
from .tree import DecisionTreeTrainer, Leaf, Split

__all__ = [
    "DecisionTreeTrainer",
    "ForestEnsemble",
    "ForestPrediction",
    "Leaf",
    "ModelSelector",
    "RegressionMetrics",
    "SelectionResult",
    "Split",
    "WeightedLinearModel",
    "evaluate",
]
