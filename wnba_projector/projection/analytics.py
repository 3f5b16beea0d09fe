"""
Performance analytics over a player's recent games.

Trend, moving averages, volatility, consistency and momentum describe how
a player has been producing. They are reported alongside a projection and
feed the enhanced confidence score.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy import stats

TREND_WINDOW = 10
MIN_TREND_GAMES = 3
STABLE_SLOPE = 0.1
MOVING_AVERAGE_WINDOWS = (3, 5, 10, 20)
MIN_CONSISTENCY_GAMES = 5
MOMENTUM_BASELINE_GAMES = 5


class TrendDirection(Enum):
    UP = "UP"
    DOWN = "DOWN"
    STABLE = "STABLE"


@dataclass
class Trend:
    """Least-squares line through recent games, oldest first."""

    direction: TrendDirection
    slope: float
    r_squared: float

    def to_dict(self) -> dict:
        return {"direction": self.direction.value, "slope": self.slope, "r_squared": self.r_squared}


@dataclass
class PerformanceSummary:
    trend: Trend
    moving_averages: Dict[str, float]
    volatility: float
    consistency: float
    momentum: float
    matchup_strength: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["trend"] = self.trend.to_dict()
        return data


def _finite(values: Sequence[float]) -> List[float]:
    return [float(v) for v in values if v is not None and math.isfinite(v)]


def trend(values: Sequence[float], window: int = TREND_WINDOW) -> Trend:
    """
    Args:
        values: Stat values in chronological order

    Returns:
        Trend over the last ``window`` games; STABLE with fewer than three
    """
    recent = _finite(values)[-window:]
    if len(recent) < MIN_TREND_GAMES or len(set(recent)) == 1:
        return Trend(TrendDirection.STABLE, 0.0, 0.0)
    fit = stats.linregress(np.arange(len(recent), dtype=float), np.asarray(recent))
    slope = float(fit.slope)
    r_squared = float(fit.rvalue ** 2) if math.isfinite(fit.rvalue) else 0.0
    if abs(slope) < STABLE_SLOPE:
        direction = TrendDirection.STABLE
    else:
        direction = TrendDirection.UP if slope > 0 else TrendDirection.DOWN
    return Trend(direction, slope, r_squared)


def moving_averages(values: Sequence[float], windows: Sequence[int] = MOVING_AVERAGE_WINDOWS) -> Dict[str, float]:
    """Average of the last N games for each window; 0 when there are fewer than N."""
    clean = _finite(values)
    return {
        f"last_{n}": float(np.mean(clean[-n:])) if len(clean) >= n else 0.0
        for n in windows
    }


def volatility(values: Sequence[float]) -> float:
    """Population standard deviation."""
    clean = _finite(values)
    return float(np.std(clean)) if clean else 0.0


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    clean = _finite(values)
    if not clean:
        return None
    mean = float(np.mean(clean))
    if mean <= 0:
        return None
    return float(np.std(clean)) / mean


def consistency(values: Sequence[float]) -> float:
    """1 - 2 * CV, floored at 0; 0.5 with fewer than five games."""
    clean = _finite(values)
    if len(clean) < MIN_CONSISTENCY_GAMES:
        return 0.5
    cv = coefficient_of_variation(clean)
    if cv is None:
        return 0.0
    return max(0.0, 1.0 - 2.0 * cv)


def momentum(values: Sequence[float], recent_games: int = 5) -> float:
    """
    Recent average against the preceding baseline, mapped to [0.1, 0.9].

    Needs ``recent_games`` games plus five more for the baseline, else 0.5.
    """
    clean = _finite(values)
    if len(clean) < recent_games + MOMENTUM_BASELINE_GAMES:
        return 0.5
    recent = float(np.mean(clean[-recent_games:]))
    baseline = float(np.mean(clean[:-recent_games]))
    if baseline <= 0:
        return 0.5
    ratio = recent / baseline
    if ratio >= 1.2:
        return 0.9
    if ratio >= 1.1:
        return 0.8
    if ratio >= 1.0:
        return 0.6
    if ratio >= 0.9:
        return 0.4
    if ratio >= 0.8:
        return 0.2
    return 0.1


def matchup_strength(head_to_head_values: Sequence[float], overall_average: float) -> float:
    """How well the player has done against this opponent; 0.5 with fewer than two meetings."""
    clean = _finite(head_to_head_values)
    if len(clean) < 2 or overall_average <= 0:
        return 0.5
    ratio = float(np.mean(clean)) / overall_average
    if ratio >= 1.3:
        return 0.9
    if ratio >= 1.15:
        return 0.8
    if ratio >= 1.05:
        return 0.7
    if ratio >= 0.95:
        return 0.5
    if ratio >= 0.85:
        return 0.3
    if ratio >= 0.7:
        return 0.2
    return 0.1


def summarize(values: Sequence[float], head_to_head_values: Sequence[float] = ()) -> PerformanceSummary:
    """All analytics for one player's stat history (chronological)."""
    clean = _finite(values)
    overall = float(np.mean(clean)) if clean else 0.0
    return PerformanceSummary(
        trend=trend(clean),
        moving_averages=moving_averages(clean),
        volatility=volatility(clean[-TREND_WINDOW:]),
        consistency=consistency(clean),
        momentum=momentum(clean),
        matchup_strength=matchup_strength(head_to_head_values, overall),
    )


def enhanced_confidence(base: float, summary: PerformanceSummary, values: Sequence[float],
                        max_confidence: float = 0.95) -> float:
    """
    Refine a confidence score with consistency, momentum, trend fit and CV.

    Args:
        base: Confidence from ConfidenceRiskCalculator
        summary: Analytics for the same history
        values: Stat values used for the CV adjustment

    Returns:
        Adjusted confidence in [0, max_confidence]
    """
    score = base + (summary.consistency - 0.5) * 0.1 + (summary.momentum - 0.5) * 0.08
    if summary.trend.r_squared > 0.7:
        score += 0.05
    elif summary.trend.r_squared < 0.3:
        score -= 0.05
    cv = coefficient_of_variation(values)
    if cv is not None:
        if cv < 0.2:
            score += 0.05
        elif cv > 0.5:
            score -= 0.05
    return max(0.0, min(max_confidence, score))
