"""Projection request/result records and feature vectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from ..config import STAT_TYPES
from .context import InjuredTeammate
from .game_log import coerce_date


class RiskLevel(Enum):
    """Risk tier of a projection."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Recommendation(Enum):
    """Betting recommendation relative to a market line."""
    OVER = "OVER"
    UNDER = "UNDER"
    PASS = "PASS"


@dataclass
class FeatureVector:
    """Ordered feature values with a parallel list of names."""

    names: List[str]
    values: np.ndarray

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=float)
        if len(self.names) != len(self.values):
            raise ValueError(f"{len(self.names)} names for {len(self.values)} values")

    def __len__(self) -> int:
        return len(self.names)

    def as_dict(self) -> Dict[str, float]:
        return {name: float(value) for name, value in zip(self.names, self.values)}


@dataclass
class ProjectionRequest:
    """Inputs to a single projection."""

    player_id: str
    opponent: str
    stat_type: str
    game_date: date
    is_home: bool
    days_rest: Optional[int] = None
    market_line: Optional[float] = None
    injured_teammates: Optional[List[InjuredTeammate]] = None
    team: str = ""
    # Reference date for all time-dependent calculations; defaults to game_date
    as_of: Optional[date] = None

    def __post_init__(self):
        """Validate the stat type and normalize dates."""
        if self.stat_type not in STAT_TYPES:
            raise ValueError(f"Unknown stat type: {self.stat_type}")
        self.game_date = coerce_date(self.game_date)
        self.as_of = coerce_date(self.as_of) if self.as_of is not None else self.game_date


@dataclass
class ProjectionResult:
    """A completed projection. Built fresh per request."""

    player_id: str
    stat_type: str
    projected_value: float
    confidence_score: float
    factors: Dict[str, float]
    risk_level: RiskLevel
    edge: float
    recommendation: Recommendation
    breakdown: Dict = field(default_factory=dict)
    model_type: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate score ranges."""
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {self.confidence_score}")
        if self.projected_value < 0:
            raise ValueError(f"Projected value must be non-negative, got {self.projected_value}")

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "player_id": self.player_id,
            "stat_type": self.stat_type,
            "projected_value": self.projected_value,
            "confidence_score": self.confidence_score,
            "factors": dict(self.factors),
            "risk_level": self.risk_level.value,
            "edge": self.edge,
            "recommendation": self.recommendation.value,
            "breakdown": self.breakdown,
            "model_type": self.model_type,
            "warnings": list(self.warnings),
        }
