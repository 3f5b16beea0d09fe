"""Regression metrics for validating trained models."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

logger = logging.getLogger(__name__)


@dataclass
class RegressionMetrics:
    """Validation metrics for one model."""

    mae: float
    rmse: float
    r2: Optional[float]  # None when the targets have zero variance
    n_samples: int

    def __str__(self) -> str:
        r2 = f"{self.r2:.4f}" if self.r2 is not None else "n/a"
        return (
            f"Regression Metrics:\n"
            f"  MAE: {self.mae:.4f}\n"
            f"  RMSE: {self.rmse:.4f}\n"
            f"  R²: {r2}\n"
            f"  Samples: {self.n_samples}"
        )

    @property
    def r2_or_floor(self) -> float:
        """R² with a missing value treated as worse than any real score."""
        return self.r2 if self.r2 is not None else float("-inf")

    def to_dict(self) -> dict:
        return {"mae": self.mae, "rmse": self.rmse, "r2": self.r2, "n_samples": self.n_samples}

    @classmethod
    def from_dict(cls, data: dict) -> "RegressionMetrics":
        r2 = data.get("r2")
        return cls(
            mae=float(data.get("mae", 0.0)),
            rmse=float(data.get("rmse", 0.0)),
            r2=float(r2) if r2 is not None else None,
            n_samples=int(data.get("n_samples", 0)),
        )


def evaluate(y_true: np.ndarray, y_pred: np.ndarray) -> RegressionMetrics:
    """
    Compute MAE, RMSE and R² over the pairs where both values are finite.

    Args:
        y_true: Observed targets [N]
        y_pred: Model predictions [N]

    Returns:
        RegressionMetrics (all zero with R² None when nothing is scorable)
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    mask = np.isfinite(y_true) & np.isfinite(y_pred)
    y_true = y_true[mask]
    y_pred = y_pred[mask]

    if len(y_true) == 0:
        logger.warning("No finite prediction/target pairs to evaluate")
        return RegressionMetrics(0.0, 0.0, None, 0)

    mae = float(mean_absolute_error(y_true, y_pred))
    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    r2 = float(r2_score(y_true, y_pred)) if ss_tot > 0 and len(y_true) > 1 else None
    return RegressionMetrics(mae, rmse, r2, int(len(y_true)))
