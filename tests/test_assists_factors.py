"""Tests for assist-specific factors."""

from datetime import date

import pytest

from wnba_projector.features.feature_builder import FeatureContext
from wnba_projector.projection.assists import (
    compute_assist_factors,
    hollinger_factor,
    minutes_factor,
    position_defense_factor,
    team_scheme_factor,
    teammate_shooting_factor,
    usage_factor,
)


@pytest.mark.parametrize("usage,minutes,expected", [
    (None, None, 1.0),
    (24.0, None, 1.15),
    (24.0, 33.0, 1.15 * 1.08),
    (29.0, 29.0, 1.20 * 1.05),
    (5.0, None, 0.85),
])
def test_usage_factor(usage, minutes, expected):
    assert usage_factor(usage, minutes) == pytest.approx(expected)


@pytest.mark.parametrize("efg,expected", [(None, 1.0), (60.6, 1.20), (50.5, 1.05), (40.0, 0.85)])
def test_teammate_shooting_factor(efg, expected):
    assert teammate_shooting_factor(efg) == expected


@pytest.mark.parametrize("ratio,expected", [(None, 1.0), (0.75, 1.20), (0.69, 1.10), (0.60, 1.0), (0.50, 0.90)])
def test_team_scheme_factor(ratio, expected):
    assert team_scheme_factor(ratio) == expected


@pytest.mark.parametrize("minutes,expected", [(None, 1.0), (33.0, 1.15), (30.0, 1.10), (26.0, 1.05),
                                              (22.0, 1.0), (18.0, 0.90)])
def test_minutes_factor(minutes, expected):
    assert minutes_factor(minutes) == expected


@pytest.mark.parametrize("allowed,expected", [(None, 1.0), (23.0, 1.15), (20.5, 1.10), (18.5, 1.0), (15.0, 0.90)])
def test_position_defense_factor(allowed, expected):
    assert position_defense_factor(allowed) == expected


@pytest.mark.parametrize("ratio,expected", [(None, 1.0), (26.0, 1.03), (23.0, 1.02), (21.0, 1.01), (10.0, 1.0)])
def test_hollinger_factor(ratio, expected):
    assert hollinger_factor(ratio) == expected


class TestComputeAssistFactors:
    def test_point_guard(self, guard_stats, team_contexts):
        ctx = FeatureContext("p1", "assists", date(2025, 9, 1), advanced=guard_stats,
                             team_context=team_contexts[0], opponent_context=team_contexts[1])
        factors = compute_assist_factors(ctx)
        assert factors["usage"] == pytest.approx(1.15 * 1.05)
        assert factors["teammate_shooting"] == 1.05
        assert factors["team_scheme"] == 1.0
        assert factors["minutes"] == 1.10
        assert factors["position"] == 1.10
        assert factors["hollinger"] == 1.02

    def test_minutes_from_game_logs(self, logs_factory):
        ctx = FeatureContext("p1", "assists", date(2025, 9, 1), logs_factory([4.0, 5.0], stat="assists"))
        factors = compute_assist_factors(ctx)
        assert factors["minutes"] == 1.10
        assert factors["usage"] == 1.0
        assert factors["position"] == 1.0

    def test_no_context_is_neutral(self):
        factors = compute_assist_factors(FeatureContext("p1", "assists", date(2025, 9, 1)))
        assert set(factors.values()) == {1.0}
