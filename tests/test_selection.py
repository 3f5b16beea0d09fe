"""Tests for forest/linear model selection."""

import pytest

from wnba_projector.config import SelectionPolicy
from wnba_projector.ml.metrics import RegressionMetrics
from wnba_projector.ml.selection import FOREST, LINEAR, ModelSelector


def metrics(r2):
    return RegressionMetrics(mae=1.0, rmse=1.5, r2=r2, n_samples=20)


@pytest.fixture
def selector():
    return ModelSelector()


class TestModelSelector:
    def test_higher_forest_wins(self, selector):
        result = selector.select("points", metrics(0.4), metrics(0.3))
        assert result.model_type == FOREST
        assert not result.low_confidence
        assert result.active_metrics.r2 == 0.4

    def test_higher_linear_wins(self, selector):
        result = selector.select("assists", metrics(0.2), metrics(0.35))
        assert result.model_type == LINEAR
        assert result.reason == "higher validation R²"

    def test_tie_keeps_forest(self, selector):
        assert selector.select("points", metrics(0.3), metrics(0.3)).model_type == FOREST

    def test_rebounds_policy(self, selector):
        result = selector.select("rebounds", metrics(0.2), metrics(0.25))
        assert result.model_type == LINEAR
        assert "policy" in result.reason

    def test_rebounds_policy_needs_linear_ahead(self, selector):
        assert selector.select("rebounds", metrics(0.3), metrics(0.25)).model_type == FOREST

    def test_fallback_when_neither_positive(self, selector):
        result = selector.select("points", metrics(-0.1), metrics(0.0))
        assert result.model_type == FOREST
        assert result.reason == "fallback"
        assert result.low_confidence
        assert len(result.warnings) == 1

    def test_missing_r2_is_worst(self, selector):
        result = selector.select("points", metrics(None), metrics(0.1))
        assert result.model_type == LINEAR

    def test_both_missing_r2_falls_back(self, selector):
        result = selector.select("points", metrics(None), metrics(None))
        assert result.low_confidence

    def test_custom_policy(self):
        selector = ModelSelector(SelectionPolicy(prefer_linear_stats=("assists",)))
        assert selector.select("assists", metrics(0.1), metrics(0.12)).reason.startswith("policy")
        assert selector.select("rebounds", metrics(0.3), metrics(0.25)).model_type == FOREST
