"""Weighted linear regression fitted by guarded batch gradient descent."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy import stats

from ..config import LinearConfig
from .base import BaseRegressor, normalize_importance

logger = logging.getLogger(__name__)


class WeightedLinearModel(BaseRegressor):
    """
    Intercept + per-feature coefficients fitted by weighted gradient descent.

    Every iteration clips each accumulated gradient to ``±gradient_clip`` and
    applies ``param -= learning_rate * grad / n``. A parameter update is only
    committed when the new value is finite; if no parameter can be updated
    the loop stops early. Any parameter still non-finite at the end is set
    to 0.
    """

    def __init__(self, learning_rate: float = 0.01, iterations: int = 1000, gradient_clip: float = 1000.0):
        super().__init__("linear")
        self.learning_rate = learning_rate
        self.iterations = iterations
        self.gradient_clip = gradient_clip
        self.intercept = 0.0
        self.coefficients = np.zeros(0)
        self.iterations_run = 0
        self.residual_std_error = 0.0
        self.feature_scale = np.zeros(0)

    @classmethod
    def from_config(cls, config: LinearConfig) -> "WeightedLinearModel":
        return cls(config.learning_rate, config.iterations, config.gradient_clip)

    @property
    def hyperparameters(self) -> Dict:
        return {
            "learning_rate": self.learning_rate,
            "iterations": self.iterations,
            "gradient_clip": self.gradient_clip,
        }

    def fit(self, X: np.ndarray, y: np.ndarray, sample_weight: Optional[np.ndarray] = None) -> "WeightedLinearModel":
        """
        Fit intercept and coefficients.

        Args:
            X: Feature matrix [N, D]; non-finite cells are treated as 0
            y: Targets [N]
            sample_weight: Per-row weights [N] (default: all ones)

        Returns:
            self
        """
        X = np.atleast_2d(np.asarray(X, dtype=float))
        y = np.asarray(y, dtype=float)
        n_features = X.shape[1]
        w = np.ones(len(y)) if sample_weight is None else np.asarray(sample_weight, dtype=float)
        if len(y) and (len(X) != len(y) or len(w) != len(y)):
            raise ValueError(f"Shape mismatch: X {X.shape}, y {y.shape}, w {w.shape}")

        self.intercept = 0.0
        self.coefficients = np.zeros(n_features)
        self.iterations_run = 0
        self.residual_std_error = 0.0
        self.feature_scale = np.zeros(n_features)

        if len(y) == 0:
            logger.warning("Linear fit called with no rows; using zero coefficients")
            return self

        rows = np.isfinite(y) & np.isfinite(w) & (w >= 0)
        if not rows.any():
            logger.warning("Linear fit has no finite targets; using zero coefficients")
            return self
        X = np.where(np.isfinite(X[rows]), X[rows], 0.0)
        y = y[rows]
        w = w[rows]
        n = len(y)
        self.feature_scale = X.std(axis=0)

        params = np.zeros(n_features + 1)  # [intercept, coefficients...]
        for iteration in range(self.iterations):
            with np.errstate(over="ignore", invalid="ignore"):
                error = params[0] + X @ params[1:] - y
                weighted_error = w * error
                gradient = np.concatenate(([np.sum(weighted_error)], X.T @ weighted_error))
            gradient = np.clip(gradient, -self.gradient_clip, self.gradient_clip)
            updated = params - self.learning_rate * gradient / n
            finite = np.isfinite(updated)
            self.iterations_run = iteration + 1
            if not finite.any():
                logger.warning("Gradient descent diverged at iteration %d; stopping early", iteration)
                break
            params = np.where(finite, updated, params)

        params = np.where(np.isfinite(params), params, 0.0)
        self.intercept = float(params[0])
        self.coefficients = params[1:]

        residuals = y - self._raw_predict(X)
        dof = max(1, n - n_features - 1)
        self.residual_std_error = float(np.sqrt(np.sum(residuals ** 2) / dof))
        logger.info(
            "Trained linear model: %d rows x %d features, %d iterations, RSE %.3f",
            n, n_features, self.iterations_run, self.residual_std_error,
        )
        return self

    def _raw_predict(self, X: np.ndarray) -> np.ndarray:
        return self.intercept + X @ self.coefficients

    def predict_one(self, x: np.ndarray) -> float:
        x = np.asarray(x, dtype=float)
        x = np.where(np.isfinite(x), x, 0.0)
        value = float(self.intercept + x @ self.coefficients)
        return value if np.isfinite(value) else 0.0

    def prediction_interval(self, x: np.ndarray, confidence: float = 0.95) -> Tuple[float, float]:
        """Normal-approximation interval around a prediction using the residual standard error."""
        center = self.predict_one(x)
        z = float(stats.norm.ppf(0.5 + confidence / 2.0))
        half_width = z * self.residual_std_error
        return center - half_width, center + half_width

    def feature_importance(self, feature_names: List[str]) -> Dict[str, float]:
        """|coefficient| scaled by the feature's training standard deviation."""
        if len(self.coefficients) != len(feature_names):
            return {name: 0.0 for name in feature_names}
        scale = self.feature_scale if len(self.feature_scale) == len(self.coefficients) else np.ones(len(self.coefficients))
        return normalize_importance(np.abs(self.coefficients) * scale, feature_names)

    def to_dict(self) -> dict:
        return {
            "hyperparameters": self.hyperparameters,
            "intercept": self.intercept,
            "coefficients": [float(c) for c in self.coefficients],
            "residual_std_error": self.residual_std_error,
            "feature_scale": [float(s) for s in self.feature_scale],
            "iterations_run": self.iterations_run,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeightedLinearModel":
        model = cls(**data.get("hyperparameters", {}))
        model.intercept = float(data.get("intercept", 0.0))
        model.coefficients = np.asarray(data.get("coefficients", []), dtype=float)
        model.residual_std_error = float(data.get("residual_std_error", 0.0))
        model.feature_scale = np.asarray(data.get("feature_scale", []), dtype=float)
        model.iterations_run = int(data.get("iterations_run", 0))
        return model
