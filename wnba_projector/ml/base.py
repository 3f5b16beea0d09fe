"""Base regressor interface for stat projection models."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import numpy as np


class BaseRegressor(ABC):
    """Abstract base class for all trainable projection models."""

    def __init__(self, name: str):
        """
        Initialize regressor.

        Args:
            name: Name of the model type ("forest" or "linear")
        """
        self.name = name

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray, sample_weight: Optional[np.ndarray] = None) -> "BaseRegressor":
        """
        Fit the model.

        Args:
            X: Feature matrix [N, D]
            y: Targets [N]
            sample_weight: Per-row weights [N] (default: all ones)

        Returns:
            self
        """

    @abstractmethod
    def predict_one(self, x: np.ndarray) -> float:
        """
        Predict a single feature vector.

        Args:
            x: Feature vector [D]

        Returns:
            Predicted stat value
        """

    @abstractmethod
    def feature_importance(self, feature_names: List[str]) -> Dict[str, float]:
        """Importance per feature name, normalized to sum to 1 when non-zero."""

    @abstractmethod
    def to_dict(self) -> dict:
        """Serialize fitted parameters."""

    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Predict every row of a feature matrix.

        Args:
            X: Feature matrix [N, D]

        Returns:
            Predictions [N]
        """
        X = np.atleast_2d(np.asarray(X, dtype=float))
        return np.array([self.predict_one(row) for row in X], dtype=float)


def normalize_importance(raw: np.ndarray, feature_names: List[str]) -> Dict[str, float]:
    """Scale raw importances to sum to 1, keyed by feature name."""
    raw = np.where(np.isfinite(raw), raw, 0.0)
    total = float(np.sum(raw))
    if total <= 0:
        return {name: 0.0 for name in feature_names}
    return {name: float(value / total) for name, value in zip(feature_names, raw)}
