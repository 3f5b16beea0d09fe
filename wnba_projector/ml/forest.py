"""Bootstrap-aggregated ensemble of regression trees."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

import numpy as np

from ..config import ForestConfig
from .base import BaseRegressor, normalize_importance
from .tree import DecisionTreeTrainer, Node, node_from_dict, node_to_dict, predict_node, split_features

logger = logging.getLogger(__name__)


@dataclass
class ForestPrediction:
    """Averaged forest output plus how many trees contributed."""

    value: float
    valid_trees: int
    total_trees: int

    @property
    def valid(self) -> bool:
        """False when every tree produced a non-finite output."""
        return self.valid_trees > 0


class ForestEnsemble(BaseRegressor):
    """
    Random forest regressor.

    Each tree is grown on its own bootstrap resample of the training rows
    (with replacement, same size), carrying the rows' recency weights into
    its leaf means. Prediction averages the finite tree outputs.
    """

    def __init__(
        self,
        n_estimators: int = 125,
        max_depth: int = 12,
        min_samples_split: int = 5,
        min_samples_leaf: int = 2,
        max_features: str = "sqrt",
        random_state: Optional[int] = 42,
    ):
        super().__init__("forest")
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_features = max_features
        self.random_state = random_state
        self.trees: List[Node] = []
        self.split_counts = np.zeros(0)

    @classmethod
    def from_config(cls, config: ForestConfig) -> "ForestEnsemble":
        return cls(
            n_estimators=config.n_estimators,
            max_depth=config.max_depth,
            min_samples_split=config.min_samples_split,
            min_samples_leaf=config.min_samples_leaf,
            max_features=config.max_features,
            random_state=config.random_state,
        )

    @property
    def hyperparameters(self) -> Dict:
        return {
            "n_estimators": self.n_estimators,
            "max_depth": self.max_depth,
            "min_samples_split": self.min_samples_split,
            "min_samples_leaf": self.min_samples_leaf,
            "max_features": self.max_features,
            "random_state": self.random_state,
        }

    def fit(self, X: np.ndarray, y: np.ndarray, sample_weight: Optional[np.ndarray] = None) -> "ForestEnsemble":
        """
        Train ``n_estimators`` trees on independent bootstrap samples.

        Args:
            X: Feature matrix [N, D]
            y: Targets [N]
            sample_weight: Recency weights [N] (default: all ones)

        Returns:
            self
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float)
        n = len(y)
        w = np.ones(n) if sample_weight is None else np.asarray(sample_weight, dtype=float)
        n_features = X.shape[1] if X.ndim == 2 else 0

        self.trees = []
        self.split_counts = np.zeros(n_features)
        if n == 0:
            logger.warning("Forest fit called with no rows; ensemble is empty")
            return self

        rng = np.random.default_rng(self.random_state)
        counts = []
        for _ in range(self.n_estimators):
            idx = rng.integers(0, n, size=n)
            trainer = DecisionTreeTrainer(
                max_depth=self.max_depth,
                min_samples_split=self.min_samples_split,
                min_samples_leaf=self.min_samples_leaf,
                max_features=self.max_features,
                rng=rng,
            )
            self.trees.append(trainer.fit(X[idx], y[idx], w[idx]))
            counts.append(trainer.split_counts)

        self.split_counts = np.mean(counts, axis=0)
        logger.info("Trained forest: %d trees on %d rows x %d features", len(self.trees), n, n_features)
        return self

    def predict_detailed(self, x: np.ndarray) -> ForestPrediction:
        """Average tree outputs, skipping any that are NaN or infinite."""
        x = np.asarray(x, dtype=float)
        outputs = [predict_node(tree, x) for tree in self.trees]
        finite = [v for v in outputs if math.isfinite(v)]
        if not finite:
            if self.trees:
                logger.warning("No forest tree produced a finite prediction; returning 0")
            return ForestPrediction(0.0, 0, len(self.trees))
        return ForestPrediction(float(sum(finite) / len(finite)), len(finite), len(self.trees))

    def predict_one(self, x: np.ndarray) -> float:
        return self.predict_detailed(x).value

    def feature_importance(self, feature_names: List[str]) -> Dict[str, float]:
        """Split counts per feature, averaged over trees and normalized."""
        if len(self.split_counts) != len(feature_names):
            return {name: 0.0 for name in feature_names}
        return normalize_importance(self.split_counts, feature_names)

    def used_features(self) -> Set[int]:
        """Every feature index any tree splits on."""
        used: Set[int] = set()
        for tree in self.trees:
            used |= split_features(tree)
        return used

    def to_dict(self) -> dict:
        return {
            "hyperparameters": self.hyperparameters,
            "trees": [node_to_dict(tree) for tree in self.trees],
            "split_counts": [float(c) for c in self.split_counts],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ForestEnsemble":
        forest = cls(**data.get("hyperparameters", {}))
        forest.trees = [node_from_dict(tree) for tree in data.get("trees", [])]
        forest.split_counts = np.asarray(data.get("split_counts", []), dtype=float)
        return forest
