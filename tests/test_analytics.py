"""Tests for performance analytics."""

import pytest

from wnba_projector.projection.analytics import (
    TrendDirection,
    consistency,
    enhanced_confidence,
    matchup_strength,
    momentum,
    moving_averages,
    summarize,
    trend,
    volatility,
)


class TestTrend:
    def test_rising(self):
        result = trend([10.0, 11.0, 12.0, 13.0, 14.0])
        assert result.direction == TrendDirection.UP
        assert result.slope == pytest.approx(1.0)
        assert result.r_squared == pytest.approx(1.0)

    def test_falling(self):
        assert trend([14.0, 13.0, 12.0, 11.0]).direction == TrendDirection.DOWN

    def test_flat_and_short(self):
        assert trend([10.0] * 6).direction == TrendDirection.STABLE
        assert trend([10.0, 20.0]).direction == TrendDirection.STABLE
        assert trend([10.0, 10.05, 10.1]).direction == TrendDirection.STABLE

    def test_window_uses_last_games(self):
        values = list(range(10)) + [5.0] * 10
        assert trend(values).slope == 0.0


class TestSummaryStatistics:
    def test_moving_averages(self):
        averages = moving_averages([float(v) for v in range(1, 11)])
        assert averages == {"last_3": 9.0, "last_5": 8.0, "last_10": 5.5, "last_20": 0.0}

    def test_volatility(self):
        assert volatility([2.0, 4.0]) == pytest.approx(1.0)
        assert volatility([]) == 0.0

    def test_consistency(self):
        assert consistency([10.0] * 4) == 0.5
        assert consistency([10.0] * 5) == 1.0
        assert consistency([0.0] * 5) == 0.0
        assert consistency([0.0, 20.0] * 3) == 0.0

    @pytest.mark.parametrize("values,expected", [
        ([10.0] * 5 + [13.0] * 5, 0.9),
        ([10.0] * 5 + [10.5] * 5, 0.6),
        ([10.0] * 5 + [8.5] * 5, 0.2),
        ([10.0] * 5 + [7.0] * 5, 0.1),
        ([10.0] * 6, 0.5),
    ])
    def test_momentum(self, values, expected):
        assert momentum(values) == expected

    def test_matchup_strength(self):
        assert matchup_strength([20.0, 20.0], 15.0) == 0.9
        assert matchup_strength([15.0, 15.0], 15.0) == 0.5
        assert matchup_strength([20.0], 15.0) == 0.5
        assert matchup_strength([5.0, 5.0], 15.0) == 0.1


class TestSummarize:
    def test_to_dict(self, season_logs):
        values = [g.points for g in season_logs]
        summary = summarize(values, [g.points for g in season_logs if g.opponent == "NYL"])
        data = summary.to_dict()
        assert data["trend"]["direction"] in ("UP", "DOWN", "STABLE")
        assert set(data["moving_averages"]) == {"last_3", "last_5", "last_10", "last_20"}
        assert 0.0 <= data["consistency"] <= 1.0

    def test_empty_history(self):
        summary = summarize([])
        assert summary.trend.direction == TrendDirection.STABLE
        assert summary.momentum == 0.5
        assert summary.matchup_strength == 0.5


class TestEnhancedConfidence:
    def test_steady_player(self):
        values = [10.0] * 10
        score = enhanced_confidence(0.6, summarize(values), values)
        assert score == pytest.approx(0.6 + 0.05 + 0.1 * 0.08 - 0.05 + 0.05)

    def test_clamped(self):
        values = [10.0] * 10
        assert enhanced_confidence(0.95, summarize(values), values) == 0.95
        assert enhanced_confidence(0.0, summarize([0.0, 20.0] * 5), [0.0, 20.0] * 5) >= 0.0
