"""Feature construction for training and projection."""

from .feature_builder import FEATURE_SETS, FeatureBuilder, FeatureContext, feature_default, feature_names_for
from .lineup import LineupShift, compute_lineup_shift, lineup_shift_multiplier
from .training_set import TrainingRow, TrainingSet, build_training_set

__all__ = [
    "FEATURE_SETS",
    "FeatureBuilder",
    "FeatureContext",
    "LineupShift",
    "TrainingRow",
    "TrainingSet",
    "build_training_set",
    "compute_lineup_shift",
    "feature_default",
    "feature_names_for",
    "lineup_shift_multiplier",
]
