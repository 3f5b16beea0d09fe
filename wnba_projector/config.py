"""
Configuration and league constants for the projection engine.

League constants live in module-level dicts. Tunable behaviour (model
hyperparameters, selection policy, recommendation thresholds, lookup
timeouts) lives in small dataclasses composed into ``ProjectorConfig``,
which can be built from a dict, a JSON file, or environment overrides.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Dict, Optional, Tuple

from .errors import ConfigError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# League constants
# ---------------------------------------------------------------------------

LEAGUE_AVERAGES: Dict[str, float] = {
    "points": 13.2,
    "rebounds": 5.4,
    "assists": 3.3,
    "turnovers": 2.3,
    "steals": 1.3,
    "blocks": 0.9,
    "minutes": 29.1,
}

STAT_TYPES: Tuple[str, ...] = tuple(LEAGUE_AVERAGES)

# Exponents applied to each factor by the combiner. seasonAverage is the base
# and carries its weight implicitly.
PROJECTION_WEIGHTS: Dict[str, float] = {
    "season_average": 0.24,
    "recent_form": 0.20,
    "opponent_defense": 0.18,
    "home_away": 0.12,
    "rest_factor": 0.08,
    "injury_impact": 0.07,
    "head_to_head": 0.05,
    "per_factor": 0.06,
}

ASSISTS_FACTOR_WEIGHTS: Dict[str, float] = {
    "opponent_defense": 1.0,
    "pace": 1.0,
    "usage": 1.0,
    "home_away": 0.8,
    "injury_impact": 0.8,
    "position": 0.8,
    "rest_factor": 0.6,
    "teammate_shooting": 0.6,
    "team_scheme": 0.6,
    "minutes": 0.6,
    "regression_to_mean": 0.6,
    "hollinger": 0.6,
}

LEAGUE_PACE = 95.0
LEAGUE_ASSISTS_ALLOWED = 18.5
LEAGUE_EFFECTIVE_FG_PCT = 50.5
LEAGUE_ASSIST_TO_FGM_RATIO = 0.60

REBOUND_CAPS: Dict[str, float] = {"G": 6.0, "F": 12.0, "C": 15.0}

# Continuous stats keep one decimal; counting stats round to whole numbers.
ROUNDING_DECIMALS: Dict[str, int] = {"points": 1, "minutes": 1}


def round_stat(stat_type: str, value: float) -> float:
    """Round a projected value per stat convention."""
    return float(round(value, ROUNDING_DECIMALS.get(stat_type, 0)))


# ---------------------------------------------------------------------------
# Tier tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TierTable:
    """
    Step function mapping a ratio to a multiplicative factor.

    ``above`` is checked first (value strictly greater than threshold, highest
    threshold first); ``below`` next (value strictly less than threshold,
    lowest threshold first). Anything else maps to ``neutral``.
    """

    above: Tuple[Tuple[float, float], ...] = ()
    below: Tuple[Tuple[float, float], ...] = ()
    neutral: float = 1.0

    def lookup(self, value: float) -> float:
        for threshold, factor in sorted(self.above, key=lambda t: -t[0]):
            if value > threshold:
                return factor
        for threshold, factor in sorted(self.below, key=lambda t: t[0]):
            if value < threshold:
                return factor
        return self.neutral

    def to_dict(self) -> dict:
        return {
            "above": [list(t) for t in self.above],
            "below": [list(t) for t in self.below],
            "neutral": self.neutral,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TierTable":
        return cls(
            above=tuple((float(t), float(f)) for t, f in data.get("above", [])),
            below=tuple((float(t), float(f)) for t, f in data.get("below", [])),
            neutral=float(data.get("neutral", 1.0)),
        )


# Average pace of both teams relative to league pace.
PACE_RATIO_TIERS = TierTable(
    above=((1.08, 1.25), (1.05, 1.20), (1.03, 1.15), (1.01, 1.10), (1.005, 1.05)),
    below=((0.90, 0.80), (0.93, 0.85), (0.96, 0.90), (0.99, 0.95)),
)

# Absolute opponent pace in possessions per 40 minutes.
PACE_ABSOLUTE_TIERS = TierTable(
    above=((97.39, 1.04), (96.74, 1.03), (96.09, 1.02)),
    below=((94.15, 0.98), (94.79, 0.99)),
)

# Opponent allowed-per-game relative to league average.
DEFENSE_RATIO_TIERS = TierTable(
    above=((1.2, 1.15), (1.1, 1.10)),
    below=((0.9, 0.90),),
)


# ---------------------------------------------------------------------------
# Tunable configuration
# ---------------------------------------------------------------------------


@dataclass
class ForestConfig:
    """Hyperparameters for the bootstrap tree ensemble."""

    n_estimators: int = 125
    max_depth: int = 12
    min_samples_split: int = 5
    min_samples_leaf: int = 2
    max_features: str = "sqrt"
    random_state: Optional[int] = 42

    def validate(self) -> None:
        if self.n_estimators < 1:
            raise ConfigError(f"n_estimators must be >= 1, got {self.n_estimators}")
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.min_samples_split < 2:
            raise ConfigError(f"min_samples_split must be >= 2, got {self.min_samples_split}")
        if self.min_samples_leaf < 1:
            raise ConfigError(f"min_samples_leaf must be >= 1, got {self.min_samples_leaf}")
        if self.max_features not in ("sqrt", "all"):
            raise ConfigError(f"max_features must be 'sqrt' or 'all', got {self.max_features!r}")


@dataclass
class LinearConfig:
    """Gradient-descent settings for the weighted linear model."""

    learning_rate: float = 0.01
    iterations: int = 1000
    gradient_clip: float = 1000.0

    def validate(self) -> None:
        if self.learning_rate <= 0:
            raise ConfigError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.iterations < 1:
            raise ConfigError(f"iterations must be >= 1, got {self.iterations}")
        if self.gradient_clip <= 0:
            raise ConfigError(f"gradient_clip must be positive, got {self.gradient_clip}")


@dataclass
class SelectionPolicy:
    """
    Model selection policy.

    Stats listed in ``prefer_linear_stats`` pick the linear model whenever its
    validation R² is positive and beats the forest. Every other stat picks
    the higher R².
    """

    prefer_linear_stats: Tuple[str, ...] = ("rebounds",)

    def prefers_linear(self, stat_type: str) -> bool:
        return stat_type in self.prefer_linear_stats


@dataclass
class TrainingConfig:
    """Training-set construction settings."""

    validation_fraction: float = 0.2
    min_minutes: float = 10.0
    current_season_weight: float = 2.5
    prior_season_weight: float = 1.0

    def validate(self) -> None:
        if not 0.0 < self.validation_fraction < 1.0:
            raise ConfigError(
                f"validation_fraction must be in (0, 1), got {self.validation_fraction}"
            )
        if self.current_season_weight <= 0 or self.prior_season_weight <= 0:
            raise ConfigError("recency weights must be positive")


@dataclass
class RecommendationConfig:
    """Thresholds for turning an edge into OVER/UNDER/PASS."""

    min_confidence: float = 0.5
    edge_thresholds: Dict[str, float] = field(
        default_factory=lambda: {"points": 1.0, "rebounds": 0.5, "assists": 0.5}
    )
    default_edge_threshold: float = 0.5
    max_confidence: float = 0.95

    def edge_threshold(self, stat_type: str) -> float:
        return self.edge_thresholds.get(stat_type, self.default_edge_threshold)

    def validate(self) -> None:
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ConfigError(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        if not 0.0 < self.max_confidence <= 1.0:
            raise ConfigError(f"max_confidence must be in (0, 1], got {self.max_confidence}")


@dataclass
class LookupConfig:
    """Bounds on external data-source lookups."""

    timeout_seconds: float = 2.0
    max_workers: int = 8
    recent_games: int = 10

    def validate(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass
class ProjectorConfig:
    """Top-level configuration for training and projection."""

    season: str = "2025"
    model_dir: str = "models"
    forest: ForestConfig = field(default_factory=ForestConfig)
    linear: LinearConfig = field(default_factory=LinearConfig)
    selection: SelectionPolicy = field(default_factory=SelectionPolicy)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    recommendation: RecommendationConfig = field(default_factory=RecommendationConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    pace_tiers: TierTable = PACE_RATIO_TIERS
    defense_tiers: TierTable = DEFENSE_RATIO_TIERS

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        self.forest.validate()
        self.linear.validate()
        self.training.validate()
        self.recommendation.validate()
        self.lookup.validate()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["selection"]["prefer_linear_stats"] = list(self.selection.prefer_linear_stats)
        data["pace_tiers"] = self.pace_tiers.to_dict()
        data["defense_tiers"] = self.defense_tiers.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectorConfig":
        """Build a config from a (possibly partial) nested dict."""
        try:
            selection = data.get("selection", {})
            return cls(
                season=str(data.get("season", "2025")),
                model_dir=data.get("model_dir", "models"),
                forest=ForestConfig(**data.get("forest", {})),
                linear=LinearConfig(**data.get("linear", {})),
                selection=SelectionPolicy(
                    prefer_linear_stats=tuple(selection.get("prefer_linear_stats", ("rebounds",)))
                ),
                training=TrainingConfig(**data.get("training", {})),
                recommendation=RecommendationConfig(**data.get("recommendation", {})),
                lookup=LookupConfig(**data.get("lookup", {})),
                pace_tiers=TierTable.from_dict(data["pace_tiers"]) if "pace_tiers" in data else PACE_RATIO_TIERS,
                defense_tiers=(
                    TierTable.from_dict(data["defense_tiers"]) if "defense_tiers" in data else DEFENSE_RATIO_TIERS
                ),
            )
        except TypeError as e:
            raise ConfigError(f"Unknown configuration key: {e}") from e

    @classmethod
    def from_json(cls, path: str) -> "ProjectorConfig":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_env(cls, base: Optional["ProjectorConfig"] = None) -> "ProjectorConfig":
        """
        Apply environment overrides on top of ``base`` (or the defaults).

        Recognised variables:
            WNBA_PROJECTOR_SEASON
            WNBA_PROJECTOR_MODEL_DIR
            WNBA_PROJECTOR_LOOKUP_TIMEOUT
        """
        config = base or cls()
        season = os.environ.get("WNBA_PROJECTOR_SEASON")
        if season:
            config.season = season
        model_dir = os.environ.get("WNBA_PROJECTOR_MODEL_DIR")
        if model_dir:
            config.model_dir = model_dir
        timeout = os.environ.get("WNBA_PROJECTOR_LOOKUP_TIMEOUT")
        if timeout:
            try:
                config.lookup.timeout_seconds = float(timeout)
            except ValueError as e:
                raise ConfigError(f"WNBA_PROJECTOR_LOOKUP_TIMEOUT must be a number, got {timeout!r}") from e
        config.validate()
        logger.debug("Loaded projector config for season %s", config.season)
        return config
