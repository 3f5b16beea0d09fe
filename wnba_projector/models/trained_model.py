"""Persisted trained model record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from ..ml.base import BaseRegressor
from ..ml.forest import ForestEnsemble
from ..ml.linear import WeightedLinearModel
from ..ml.metrics import RegressionMetrics
from .projection import FeatureVector

MODEL_TYPES = ("forest", "linear")


@dataclass(frozen=True)
class TrainedModel:
    """
    One trained model per (stat_type, season).

    Immutable once built; a retrain produces a new record that replaces the
    old one wholesale in the model store. ``parameters`` maps each trained
    candidate's type to its serialized form (forest trees or linear
    coefficients) and ``model_type`` names the active one. ``metrics`` holds
    the validation metrics of both candidates.
    """

    stat_type: str
    season: str
    model_type: str
    feature_names: Tuple[str, ...]
    parameters: Dict[str, Dict]
    hyperparameters: Dict = field(default_factory=dict)
    metrics: Dict[str, RegressionMetrics] = field(default_factory=dict)
    low_confidence: bool = False
    warnings: Tuple[str, ...] = ()
    feature_importance: Dict[str, float] = field(default_factory=dict)
    metadata: Dict = field(default_factory=dict)
    _regressor: Optional[BaseRegressor] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        """Validate model type and freeze sequence fields."""
        if self.model_type not in MODEL_TYPES:
            raise ValueError(f"Invalid model type: {self.model_type}")
        if self.model_type not in self.parameters:
            raise ValueError(f"No serialized {self.model_type} model in parameters")
        unknown = set(self.parameters) - set(MODEL_TYPES)
        if unknown:
            raise ValueError(f"Unknown model types in parameters: {sorted(unknown)}")
        object.__setattr__(self, "feature_names", tuple(self.feature_names))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @property
    def key(self) -> Tuple[str, str]:
        return (self.stat_type, self.season)

    @property
    def active_metrics(self) -> Optional[RegressionMetrics]:
        return self.metrics.get(self.model_type)

    @property
    def r2(self) -> Optional[float]:
        metrics = self.active_metrics
        return metrics.r2 if metrics else None

    def build_regressor(self, model_type: Optional[str] = None) -> BaseRegressor:
        """
        Rebuild a candidate regressor from its serialized parameters.

        Args:
            model_type: Candidate to rebuild; defaults to the active one

        Raises:
            ValueError: If the candidate is missing, malformed, or reads
                features outside ``feature_names``
        """
        model_type = model_type or self.model_type
        if model_type not in self.parameters:
            raise ValueError(f"No serialized {model_type} model for {self.stat_type}")
        n_features = len(self.feature_names)
        if model_type == "forest":
            forest = ForestEnsemble.from_dict(self.parameters[model_type])
            bad = sorted(i for i in forest.used_features() if not 0 <= i < n_features)
            if bad:
                raise ValueError(f"Forest splits on feature indices {bad} but the model has {n_features} features")
            return forest
        linear = WeightedLinearModel.from_dict(self.parameters[model_type])
        if len(linear.coefficients) != n_features:
            raise ValueError(
                f"Linear model has {len(linear.coefficients)} coefficients for {n_features} features"
            )
        return linear

    @property
    def regressor(self) -> BaseRegressor:
        """Active regressor, rebuilt once and reused."""
        if self._regressor is None:
            object.__setattr__(self, "_regressor", self.build_regressor())
        return self._regressor

    def predict(self, vector: FeatureVector) -> float:
        """
        Score a feature vector with the active regressor.

        Args:
            vector: Feature vector built against this model's feature names

        Raises:
            ValueError: If the vector's names differ from ``feature_names``
                or the stored regressor cannot be rebuilt
        """
        if tuple(vector.names) != self.feature_names:
            raise ValueError(
                f"Feature vector does not match model features for {self.stat_type}: "
                f"{len(vector.names)} vs {len(self.feature_names)} names"
            )
        value = self.regressor.predict_one(np.asarray(vector.values, dtype=float))
        return value if np.isfinite(value) else 0.0

    def prediction_interval(self, vector: FeatureVector, confidence: float = 0.95) -> Optional[Tuple[float, float]]:
        """Prediction interval from the linear model; None when the active model is a forest."""
        regressor = self.regressor
        if not isinstance(regressor, WeightedLinearModel):
            return None
        if tuple(vector.names) != self.feature_names:
            raise ValueError(f"Feature vector does not match model features for {self.stat_type}")
        return regressor.prediction_interval(np.asarray(vector.values, dtype=float), confidence)

    def to_dict(self) -> dict:
        """Convert model to dictionary."""
        return {
            "stat_type": self.stat_type,
            "season": self.season,
            "model_type": self.model_type,
            "feature_names": list(self.feature_names),
            "parameters": self.parameters,
            "hyperparameters": self.hyperparameters,
            "metrics": {name: m.to_dict() for name, m in self.metrics.items()},
            "low_confidence": self.low_confidence,
            "warnings": list(self.warnings),
            "feature_importance": self.feature_importance,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrainedModel":
        """Create model from dictionary."""
        return cls(
            stat_type=data["stat_type"],
            season=str(data["season"]),
            model_type=data["model_type"],
            feature_names=tuple(data["feature_names"]),
            parameters=data.get("parameters", {}),
            hyperparameters=data.get("hyperparameters", {}),
            metrics={name: RegressionMetrics.from_dict(m) for name, m in data.get("metrics", {}).items()},
            low_confidence=bool(data.get("low_confidence", False)),
            warnings=tuple(data.get("warnings", [])),
            feature_importance=data.get("feature_importance", {}),
            metadata=data.get("metadata", {}),
        )
