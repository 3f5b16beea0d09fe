"""
Regression tree grown by weighted variance reduction.

A tree is a tagged union of two immutable node types:

    Leaf(prediction)
    Split(feature_index, threshold, left, right)

Rows with ``x[feature_index] <= threshold`` go left. Recursion depth is
bounded by ``max_depth`` (12 by default), well inside Python's limit.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Set, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Leaf:
    """Terminal node holding the sample-weighted mean of its targets."""

    prediction: float


@dataclass(frozen=True)
class Split:
    """Internal node routing rows on a single feature threshold."""

    feature_index: int
    threshold: float
    left: "Node"
    right: "Node"


Node = Union[Leaf, Split]


def predict_node(node: Node, x: np.ndarray) -> float:
    """Walk a tree from ``node`` down to a leaf and return its prediction."""
    while True:
        if isinstance(node, Leaf):
            return node.prediction
        if isinstance(node, Split):
            node = node.left if x[node.feature_index] <= node.threshold else node.right
            continue
        raise TypeError(f"Not a tree node: {node!r}")


def tree_depth(node: Node) -> int:
    if isinstance(node, Leaf):
        return 0
    return 1 + max(tree_depth(node.left), tree_depth(node.right))


def count_leaves(node: Node) -> int:
    if isinstance(node, Leaf):
        return 1
    return count_leaves(node.left) + count_leaves(node.right)


def split_features(node: Node) -> Set[int]:
    """Feature indices used by any split in the tree."""
    if isinstance(node, Leaf):
        return set()
    return {node.feature_index} | split_features(node.left) | split_features(node.right)


def node_to_dict(node: Node) -> dict:
    """Serialize a tree to nested ``{"type": "leaf"|"split", ...}`` dicts."""
    if isinstance(node, Leaf):
        return {"type": "leaf", "prediction": node.prediction}
    if isinstance(node, Split):
        return {
            "type": "split",
            "feature_index": node.feature_index,
            "threshold": node.threshold,
            "left": node_to_dict(node.left),
            "right": node_to_dict(node.right),
        }
    raise TypeError(f"Not a tree node: {node!r}")


def node_from_dict(data: dict) -> Node:
    """
    Rebuild a tree from its serialized form.

    Raises:
        ValueError: If a node has an unknown type or is missing fields
    """
    if not isinstance(data, dict):
        raise ValueError(f"Tree node must be a dict, got {type(data).__name__}")
    node_type = data.get("type")
    if node_type == "leaf":
        if "prediction" not in data:
            raise ValueError("Leaf node is missing 'prediction'")
        return Leaf(float(data["prediction"]))
    if node_type == "split":
        missing = [k for k in ("feature_index", "threshold", "left", "right") if k not in data]
        if missing:
            raise ValueError(f"Split node is missing {missing}")
        feature_index = int(data["feature_index"])
        if feature_index < 0:
            raise ValueError(f"Split node has negative feature_index {feature_index}")
        return Split(
            feature_index=feature_index,
            threshold=float(data["threshold"]),
            left=node_from_dict(data["left"]),
            right=node_from_dict(data["right"]),
        )
    raise ValueError(f"Unknown tree node type: {node_type!r}")


def _weighted_mean(y: np.ndarray, w: np.ndarray) -> float:
    total = float(np.sum(w))
    if total <= 0:
        return 0.0
    return float(np.sum(w * y) / total)


def _weighted_sse(y: np.ndarray, w: np.ndarray) -> float:
    """Weighted sum of squared deviations from the weighted mean."""
    total = float(np.sum(w))
    if total <= 0:
        return 0.0
    mean = np.sum(w * y) / total
    return float(np.sum(w * (y - mean) ** 2))


class DecisionTreeTrainer:
    """
    Grows one regression tree on (already bootstrapped) weighted rows.

    Each split considers a random subset of ceil(sqrt(n_features)) features
    (or all features when ``max_features="all"``), tries every midpoint
    between consecutive distinct values, and keeps the split with the lowest
    weighted variance sum across both children.
    """

    def __init__(
        self,
        max_depth: int = 12,
        min_samples_split: int = 5,
        min_samples_leaf: int = 2,
        max_features: str = "sqrt",
        rng: Optional[np.random.Generator] = None,
    ):
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_features = max_features
        self.rng = rng if rng is not None else np.random.default_rng()
        self.split_counts = np.zeros(0)

    def n_candidate_features(self, n_features: int) -> int:
        if self.max_features == "sqrt":
            return max(1, min(n_features, math.ceil(math.sqrt(n_features))))
        return n_features

    def fit(self, X: np.ndarray, y: np.ndarray, sample_weight: Optional[np.ndarray] = None) -> Node:
        """
        Grow a tree.

        Args:
            X: Feature matrix [N, D]
            y: Targets [N]
            sample_weight: Per-row weights [N]

        Returns:
            Root node of the fitted tree
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float)
        w = np.ones(len(y)) if sample_weight is None else np.asarray(sample_weight, dtype=float)
        if X.ndim != 2 or len(X) != len(y) or len(w) != len(y):
            raise ValueError(f"Shape mismatch: X {X.shape}, y {y.shape}, w {w.shape}")
        self.split_counts = np.zeros(X.shape[1] if X.ndim == 2 else 0)
        return self._grow(X, y, w, depth=0)

    def _grow(self, X: np.ndarray, y: np.ndarray, w: np.ndarray, depth: int) -> Node:
        n = len(y)
        if n == 0:
            return Leaf(0.0)
        leaf_value = _weighted_mean(y, w)

        if depth >= self.max_depth or n <= self.min_samples_split or np.all(y == y[0]):
            return Leaf(leaf_value)

        best = self._best_split(X, y, w)
        if best is None:
            return Leaf(leaf_value)

        feature, threshold = best
        mask = X[:, feature] <= threshold
        if mask.all() or not mask.any():
            return Leaf(leaf_value)

        self.split_counts[feature] += 1
        return Split(
            feature_index=int(feature),
            threshold=float(threshold),
            left=self._grow(X[mask], y[mask], w[mask], depth + 1),
            right=self._grow(X[~mask], y[~mask], w[~mask], depth + 1),
        )

    def _best_split(self, X: np.ndarray, y: np.ndarray, w: np.ndarray) -> Optional[Tuple[int, float]]:
        n, n_features = X.shape
        k = self.n_candidate_features(n_features)
        candidates = self.rng.choice(n_features, size=k, replace=False)

        parent_sse = _weighted_sse(y, w)
        best_score = parent_sse
        best: Optional[Tuple[int, float]] = None
        leaf = self.min_samples_leaf

        for feature in candidates:
            order = np.argsort(X[:, feature], kind="mergesort")
            xs = X[order, feature]
            ys = y[order]
            ws = w[order]

            # Cumulative weighted sums give every left/right SSE in one pass
            cw = np.cumsum(ws)
            cwy = np.cumsum(ws * ys)
            cwyy = np.cumsum(ws * ys * ys)
            total_w, total_wy, total_wyy = cw[-1], cwy[-1], cwyy[-1]

            # Split after position i means left = rows[0..i]
            positions = np.arange(leaf - 1, n - leaf)
            if len(positions) == 0:
                continue
            positions = positions[xs[positions] < xs[positions + 1]]
            if len(positions) == 0:
                continue

            lw = cw[positions]
            rw = total_w - lw
            with np.errstate(divide="ignore", invalid="ignore"):
                left_sse = cwyy[positions] - np.where(lw > 0, cwy[positions] ** 2 / lw, 0.0)
                right_wy = total_wy - cwy[positions]
                right_sse = (total_wyy - cwyy[positions]) - np.where(rw > 0, right_wy ** 2 / rw, 0.0)
            scores = np.maximum(left_sse, 0.0) + np.maximum(right_sse, 0.0)
            scores = np.where(np.isfinite(scores), scores, np.inf)

            i = int(np.argmin(scores))
            if scores[i] < best_score:
                pos = positions[i]
                best_score = float(scores[i])
                best = (int(feature), float((xs[pos] + xs[pos + 1]) / 2.0))

        if best is None or best_score >= parent_sse - 1e-12 * max(1.0, parent_sse):
            return None
        return best
