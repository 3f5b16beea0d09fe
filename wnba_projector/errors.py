"""Exception types raised by the projection engine."""


class ProjectorError(Exception):
    """Base class for projection engine errors."""


class ConfigError(ProjectorError, ValueError):
    """Raised when a configuration value is invalid."""


class ModelNotFoundError(ProjectorError, KeyError):
    """Raised when no trained model exists for a (stat_type, season) pair."""


class TrainingDataError(ProjectorError, ValueError):
    """Raised when a training set has no usable rows."""
