"""
Chronological validation for game-level training data.

Games are ordered in time, so every split keeps training rows strictly
before validation rows to avoid look-ahead leakage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .metrics import RegressionMetrics, evaluate

logger = logging.getLogger(__name__)


@dataclass
class TemporalSplit:
    """A single temporal train/validation split."""

    train_indices: np.ndarray
    val_indices: np.ndarray
    fold_id: int


@dataclass
class FoldResult:
    """Validation metrics for one fold."""

    fold_id: int
    train_size: int
    val_size: int
    metrics: RegressionMetrics


@dataclass
class CrossValidationSummary:
    """Per-fold results plus the mean and standard deviation of each metric."""

    folds: List[FoldResult] = field(default_factory=list)
    average: Dict[str, float] = field(default_factory=dict)
    std: Dict[str, float] = field(default_factory=dict)


def chronological_split(
    n_samples: int, validation_fraction: float = 0.2, sort_keys: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split row indices into an earlier training block and a later validation block.

    Args:
        n_samples: Number of rows
        validation_fraction: Share of rows held out at the end
        sort_keys: Optional chronological keys; rows are ordered by them first

    Returns:
        (train_indices, val_indices)
    """
    indices = np.argsort(sort_keys, kind="mergesort") if sort_keys is not None else np.arange(n_samples)
    split_point = int(n_samples * (1.0 - validation_fraction))
    if n_samples >= 2:
        split_point = min(max(split_point, 1), n_samples - 1)
    return indices[:split_point], indices[split_point:]


class TemporalCrossValidator:
    """
    Expanding-window cross-validation over date-ordered player-games.

    The first 40 % of games (at least ``min_train_size``) seed the training
    window; the rest is cut into ``n_splits`` validation blocks, and each
    fold trains on every game before its block. A season of 300 rows and
    three splits gives validation blocks [120:180], [180:240], [240:300].
    """

    def __init__(self, n_splits: int = 5, min_train_size: int = 30):
        self.n_splits = n_splits
        self.min_train_size = min_train_size

    def split(self, n_samples: int, sort_keys: Optional[np.ndarray] = None) -> List[TemporalSplit]:
        """
        Generate temporal train/validation splits.

        Args:
            n_samples: Total number of samples
            sort_keys: Optional sort keys (e.g., game dates as ordinals)

        Returns:
            List of TemporalSplit objects
        """
        indices = np.argsort(sort_keys, kind="mergesort") if sort_keys is not None else np.arange(n_samples)

        initial_train = max(self.min_train_size, int(0.4 * n_samples))
        remaining = n_samples - initial_train

        if remaining < self.n_splits:
            train_idx, val_idx = chronological_split(n_samples, 0.2, sort_keys)
            return [TemporalSplit(train_idx, val_idx, 0)]

        val_size = remaining // self.n_splits
        splits = []
        for fold in range(self.n_splits):
            val_start = initial_train + fold * val_size
            val_end = val_start + val_size if fold < self.n_splits - 1 else n_samples
            splits.append(TemporalSplit(indices[:val_start], indices[val_start:val_end], fold))
        return splits

    def cross_validate(
        self,
        X: np.ndarray,
        y: np.ndarray,
        sort_keys: np.ndarray,
        train_fn: Callable[[np.ndarray, np.ndarray, np.ndarray], object],
        predict_fn: Callable[[object, np.ndarray], np.ndarray],
        sample_weight: Optional[np.ndarray] = None,
    ) -> CrossValidationSummary:
        """
        Run temporal cross-validation with arbitrary train/predict functions.

        Args:
            X: Feature matrix [N, D]
            y: Targets [N]
            sort_keys: Chronological sort keys
            train_fn: Callable(X_train, y_train, w_train) -> model
            predict_fn: Callable(model, X) -> predictions
            sample_weight: Optional per-row weights

        Returns:
            CrossValidationSummary
        """
        w = np.ones(len(y)) if sample_weight is None else np.asarray(sample_weight, dtype=float)
        folds = []
        for split in self.split(len(y), sort_keys):
            if len(split.train_indices) == 0 or len(split.val_indices) == 0:
                continue
            model = train_fn(X[split.train_indices], y[split.train_indices], w[split.train_indices])
            preds = predict_fn(model, X[split.val_indices])
            metrics = evaluate(y[split.val_indices], preds)
            folds.append(FoldResult(split.fold_id, len(split.train_indices), len(split.val_indices), metrics))
            logger.debug("Fold %d: MAE %.3f RMSE %.3f", split.fold_id, metrics.mae, metrics.rmse)

        summary = CrossValidationSummary(folds=folds)
        for name in ("mae", "rmse", "r2"):
            values = [getattr(f.metrics, name) for f in folds if getattr(f.metrics, name) is not None]
            if values:
                summary.average[name] = float(np.mean(values))
                summary.std[name] = float(np.std(values))
        return summary
