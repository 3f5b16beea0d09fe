"""Tests for feature vector construction."""

import math
from datetime import date

import numpy as np
import pytest

from wnba_projector.config import LEAGUE_AVERAGES
from wnba_projector.features.feature_builder import (
    FEATURE_DEFAULTS,
    FEATURE_SETS,
    FeatureBuilder,
    FeatureContext,
    feature_default,
    feature_names_for,
)
from wnba_projector.models.context import InjuredTeammate, TeamContext
from wnba_projector.models.game_log import SeasonAggregate

AFTER_SEASON = date(2025, 9, 1)


@pytest.fixture
def builder():
    return FeatureBuilder()


class TestFeatureNames:
    def test_stat_specific_prefix(self):
        names = feature_names_for("points")
        assert names[:2] == ["season_average_points", "recent_form_points"]
        assert len(names) == len(set(names))

    def test_rebounds_and_assists_sets(self):
        assert "teammate_rebounding_strength" in FEATURE_SETS["rebounds"]
        assert "pace_difference" in FEATURE_SETS["assists"]
        assert "pace_difference" not in FEATURE_SETS["points"]

    def test_defaults(self):
        assert feature_default("season_average_points") == LEAGUE_AVERAGES["points"]
        assert feature_default("recent_form_assists") == LEAGUE_AVERAGES["assists"]
        assert feature_default("days_rest") == 2.0
        assert feature_default("not_a_feature") == 0.0


class TestFeatureContext:
    def test_filters_games_on_or_after_as_of(self, logs_factory):
        logs = logs_factory([10.0, 12.0, 14.0, 16.0, 18.0])
        ctx = FeatureContext("p1", "points", as_of=logs[3].game_date, game_logs=list(reversed(logs)))
        assert [g.points for g in ctx.game_logs] == [10.0, 12.0, 14.0]

    def test_resolved_days_rest(self, logs_factory):
        logs = logs_factory([10.0, 12.0])
        # Last game 2025-05-22, playing 2025-05-25 -> two full days off
        ctx = FeatureContext("p1", "points", as_of=date(2025, 5, 25), game_logs=logs)
        assert ctx.resolved_days_rest() == 2
        ctx = FeatureContext("p1", "points", as_of=date(2025, 5, 23), game_logs=logs)
        assert ctx.resolved_days_rest() == 0

    def test_explicit_days_rest_wins(self, logs_factory):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([10.0]), days_rest=3)
        assert ctx.resolved_days_rest() == 3

    def test_no_games_no_rest(self):
        assert FeatureContext("p1", "points", AFTER_SEASON).resolved_days_rest() is None

    def test_season_average_prefers_aggregate(self, logs_factory):
        agg = SeasonAggregate("p1", "2025", 10, {"points": 22.0})
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([10.0, 12.0]), aggregate=agg)
        assert ctx.season_average("points") == 22.0

    def test_season_average_from_current_season_logs(self, logs_factory):
        logs = logs_factory([30.0], season="2024") + logs_factory([10.0, 20.0])
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs, season="2025")
        assert ctx.season_average("points") == pytest.approx(15.0)

    def test_position_defaults_to_guard(self):
        assert FeatureContext("p1", "points", AFTER_SEASON).position == "G"


class TestFeatureBuilder:
    def test_empty_context_uses_defaults(self, builder):
        ctx = FeatureContext("p1", "points", AFTER_SEASON)
        names = feature_names_for("points")
        vector = builder.build(names, ctx)
        assert vector.names == names
        assert np.all(np.isfinite(vector.values))
        values = vector.as_dict()
        assert values["season_average_points"] == LEAGUE_AVERAGES["points"]
        assert values["days_rest"] == FEATURE_DEFAULTS["days_rest"]
        assert values["team_pace"] == FEATURE_DEFAULTS["team_pace"]
        assert values["pace_interaction"] == pytest.approx(FEATURE_DEFAULTS["pace_interaction"])
        assert values["games_played"] == 0.0
        assert values["time_decay_weight"] == 1.0

    def test_recent_form(self, builder, logs_factory):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([10.0, 12.0, 14.0, 16.0, 18.0, 20.0]))
        values = builder.build_dict(
            ["recent_form_points", "recent_form_composite", "recent_form_volatility", "games_played"], ctx
        )
        assert values["recent_form_points"] == pytest.approx(16.0)
        assert values["recent_form_composite"] == pytest.approx(0.6 * 16.0 + 0.4 * 15.0)
        assert values["recent_form_volatility"] == pytest.approx(np.std([10, 12, 14, 16, 18, 20]))
        assert values["games_played"] == 6.0

    def test_opponent_features(self, builder, team_contexts):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, opponent_context=team_contexts[1])
        values = builder.build_dict([
            "opponent_points_allowed_avg",
            "opponent_rebounds_allowed",
            "opponent_stat_allowed",
            "opponent_field_goal_percentage",
            "opponent_pace",
        ], ctx)
        assert values["opponent_points_allowed_avg"] == 84.0
        assert values["opponent_rebounds_allowed"] == FEATURE_DEFAULTS["opponent_rebounds_allowed"]
        assert values["opponent_stat_allowed"] == 15.7
        assert values["opponent_field_goal_percentage"] == pytest.approx(0.45)
        assert values["opponent_pace"] == pytest.approx(0.97)

    def test_position_specific_allowed(self, builder, team_contexts, guard_stats):
        ctx = FeatureContext("p1", "assists", AFTER_SEASON, advanced=guard_stats,
                             opponent_context=team_contexts[1])
        assert builder.resolve("opponent_stat_allowed", ctx) == 20.5

    def test_team_features(self, builder, team_contexts, guard_stats):
        ctx = FeatureContext("p1", "assists", AFTER_SEASON, advanced=guard_stats,
                             team_context=team_contexts[0], opponent_context=team_contexts[1])
        values = builder.build_dict(feature_names_for("assists"), ctx)
        assert values["teammate_shooting_efficiency"] == pytest.approx(35.0 / 68.0)
        assert values["teammate_assist_dependency"] == pytest.approx(20.0 / 31.0)
        assert values["pace_difference"] == pytest.approx(0.96 - 0.97)
        assert values["usage_rate"] == 24.0
        assert values["historical_minutes"] == 31.0
        assert values["is_starter"] == 1.0

    def test_star_status(self, builder, logs_factory):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([18.0, 20.0]))
        assert builder.resolve("star_status", ctx) == 1.0
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([8.0, 10.0]))
        assert builder.resolve("star_status", ctx) == 0.0

    def test_back_to_back(self, builder, logs_factory):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([10.0]), days_rest=0)
        assert builder.resolve("back_to_back", ctx) == 1.0
        assert builder.resolve("days_rest_log", ctx) == 0.0
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([10.0]), days_rest=2)
        assert builder.resolve("back_to_back", ctx) == 0.0
        assert builder.resolve("days_rest_log", ctx) == pytest.approx(math.log(3.0))

    def test_injury_features(self, builder):
        injured = [InjuredTeammate("A"), InjuredTeammate("B", status="Questionable")]
        ctx = FeatureContext("p1", "points", AFTER_SEASON, injured_teammates=injured, lineup_multiplier=1.02)
        assert builder.resolve("teammate_injuries", ctx) == 1.0
        assert builder.resolve("lineup_shift_multiplier", ctx) == 1.02

    def test_non_finite_replaced_by_default(self, builder):
        ctx = FeatureContext("p1", "points", AFTER_SEASON,
                             team_context=TeamContext("LVA", "2025", pace=None, rebound_share=float("nan")))
        assert builder.resolve("team_pace", ctx) == FEATURE_DEFAULTS["team_pace"]
        assert builder.resolve("teammate_rebounding_strength", ctx) == FEATURE_DEFAULTS["teammate_rebounding_strength"]

    def test_resolver_errors_use_default(self, builder):
        builder._resolvers["usage_rate"] = lambda c: 1 / 0
        ctx = FeatureContext("p1", "points", AFTER_SEASON)
        assert builder.resolve("usage_rate", ctx) == FEATURE_DEFAULTS["usage_rate"]

    def test_build_is_deterministic(self, builder, season_logs, team_contexts, guard_stats):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, season_logs, season="2025",
                             advanced=guard_stats, team_context=team_contexts[0],
                             opponent_context=team_contexts[1])
        names = feature_names_for("points")
        first = builder.build(names, ctx)
        second = builder.build(names, ctx)
        np.testing.assert_array_equal(first.values, second.values)
        assert first.as_dict() == builder.build_dict(names, ctx)

    def test_order_follows_requested_names(self, builder, logs_factory):
        ctx = FeatureContext("p1", "points", AFTER_SEASON, logs_factory([10.0, 20.0]))
        vector = builder.build(["games_played", "season_average_points"], ctx)
        assert list(vector.values) == [2.0, 15.0]
