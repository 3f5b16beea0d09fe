"""Tests for the regression tree, forest, linear model and metrics."""

import math

import numpy as np
import pytest

from wnba_projector.ml.forest import ForestEnsemble
from wnba_projector.ml.linear import WeightedLinearModel
from wnba_projector.ml.metrics import RegressionMetrics, evaluate
from wnba_projector.ml.tree import (
    DecisionTreeTrainer,
    Leaf,
    Split,
    count_leaves,
    node_from_dict,
    node_to_dict,
    predict_node,
    tree_depth,
)
from wnba_projector.models.projection import FeatureVector
from wnba_projector.models.trained_model import TrainedModel


@pytest.fixture
def step_data():
    X = np.arange(20, dtype=float).reshape(-1, 1)
    y = np.where(X[:, 0] < 10, 0.0, 10.0)
    return X, y


@pytest.fixture
def linear_data():
    x = np.linspace(0.0, 1.0, 50)
    return x.reshape(-1, 1), 2.0 + 3.0 * x


# ---------------------------------------------------------------------------
# Regression tree
# ---------------------------------------------------------------------------


class TestDecisionTree:
    def test_step_function(self, step_data):
        X, y = step_data
        trainer = DecisionTreeTrainer(min_samples_split=2, min_samples_leaf=1, max_features="all")
        tree = trainer.fit(X, y)
        assert isinstance(tree, Split)
        assert tree.threshold == pytest.approx(9.5)
        assert predict_node(tree, np.array([3.0])) == 0.0
        assert predict_node(tree, np.array([15.0])) == 10.0
        assert tree_depth(tree) == 1
        assert count_leaves(tree) == 2
        assert trainer.split_counts[0] == 1

    def test_constant_target_is_leaf(self):
        X = np.arange(10, dtype=float).reshape(-1, 1)
        tree = DecisionTreeTrainer().fit(X, np.full(10, 4.0))
        assert tree == Leaf(4.0)

    def test_max_depth_zero(self, step_data):
        X, y = step_data
        tree = DecisionTreeTrainer(max_depth=0).fit(X, y)
        assert tree == Leaf(5.0)

    def test_weighted_leaf_mean(self):
        X = np.array([[1.0], [1.0]])
        tree = DecisionTreeTrainer().fit(X, np.array([0.0, 10.0]), np.array([1.0, 3.0]))
        assert tree.prediction == pytest.approx(7.5)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            DecisionTreeTrainer().fit(np.zeros((3, 2)), np.zeros(4))

    def test_sqrt_feature_count(self):
        trainer = DecisionTreeTrainer()
        assert trainer.n_candidate_features(16) == 4
        assert trainer.n_candidate_features(10) == 4
        assert trainer.n_candidate_features(1) == 1

    def test_dict_round_trip(self, step_data):
        X, y = step_data
        tree = DecisionTreeTrainer(min_samples_split=2, min_samples_leaf=1).fit(X, y)
        assert node_from_dict(node_to_dict(tree)) == tree

    def test_bad_node_dicts(self):
        with pytest.raises(ValueError):
            node_from_dict({"type": "bush"})
        with pytest.raises(ValueError):
            node_from_dict({"type": "split", "threshold": 1.0})
        with pytest.raises(ValueError):
            node_from_dict({"type": "leaf"})
        with pytest.raises(ValueError):
            node_from_dict([1, 2])
        with pytest.raises(ValueError):
            node_from_dict({"type": "split", "feature_index": -1, "threshold": 0.0,
                            "left": {"type": "leaf", "prediction": 0.0}, "right": {"type": "leaf", "prediction": 1.0}})

    def test_predict_rejects_non_node(self):
        with pytest.raises(TypeError):
            predict_node("leaf", np.zeros(1))


# ---------------------------------------------------------------------------
# Forest
# ---------------------------------------------------------------------------


class TestForestEnsemble:
    def test_fit_and_predict(self, step_data):
        X, y = step_data
        forest = ForestEnsemble(n_estimators=10, min_samples_split=2, min_samples_leaf=1).fit(X, y)
        assert len(forest.trees) == 10
        assert forest.predict_one(np.array([1.0])) < forest.predict_one(np.array([18.0]))
        preds = forest.predict(X)
        assert preds.shape == (20,)
        assert np.all((preds >= 0.0) & (preds <= 10.0))

    def test_seeded_forests_agree(self, step_data):
        X, y = step_data
        a = ForestEnsemble(n_estimators=5, random_state=7).fit(X, y)
        b = ForestEnsemble(n_estimators=5, random_state=7).fit(X, y)
        np.testing.assert_allclose(a.predict(X), b.predict(X))

    def test_empty_fit(self):
        forest = ForestEnsemble(n_estimators=5).fit(np.zeros((0, 3)), np.zeros(0))
        assert forest.trees == []
        detailed = forest.predict_detailed(np.zeros(3))
        assert detailed.value == 0.0
        assert not detailed.valid

    def test_non_finite_trees_skipped(self):
        forest = ForestEnsemble(n_estimators=2)
        forest.trees = [Leaf(float("nan")), Leaf(4.0)]
        detailed = forest.predict_detailed(np.zeros(1))
        assert detailed.value == 4.0
        assert detailed.valid_trees == 1
        assert detailed.total_trees == 2

    def test_all_trees_non_finite(self):
        forest = ForestEnsemble(n_estimators=1)
        forest.trees = [Leaf(float("inf"))]
        assert forest.predict_one(np.zeros(1)) == 0.0
        assert not forest.predict_detailed(np.zeros(1)).valid

    def test_importance_ignores_constant_feature(self, step_data):
        X, y = step_data
        X = np.column_stack([X[:, 0], np.ones(len(X))])
        forest = ForestEnsemble(n_estimators=5, min_samples_split=2, min_samples_leaf=1).fit(X, y)
        importance = forest.feature_importance(["minutes", "constant"])
        assert importance["minutes"] == pytest.approx(1.0)
        assert importance["constant"] == 0.0

    def test_importance_name_mismatch(self, step_data):
        X, y = step_data
        forest = ForestEnsemble(n_estimators=2).fit(X, y)
        assert forest.feature_importance(["a", "b"]) == {"a": 0.0, "b": 0.0}

    def test_prediction_follows_leaf_paths(self):
        forest = ForestEnsemble(n_estimators=2)
        forest.trees = [
            Split(0, 5.0, Leaf(1.0), Leaf(3.0)),
            Split(1, 0.5, Leaf(10.0), Split(0, 2.0, Leaf(20.0), Leaf(30.0))),
        ]
        assert forest.predict_one(np.array([4.0, 1.0])) == pytest.approx((1.0 + 30.0) / 2)
        assert forest.predict_one(np.array([6.0, 0.0])) == pytest.approx((3.0 + 10.0) / 2)
        assert forest.predict_one(np.array([1.0, 0.9])) == pytest.approx((1.0 + 20.0) / 2)
        assert forest.used_features() == {0, 1}

    def test_fitted_forest_averages_its_trees(self, step_data):
        X, y = step_data
        forest = ForestEnsemble(n_estimators=6, min_samples_split=2, min_samples_leaf=1).fit(X, y)
        for row in X[::4]:
            expected = np.mean([predict_node(tree, row) for tree in forest.trees])
            assert forest.predict_one(row) == pytest.approx(expected)

    def test_dict_round_trip(self, step_data):
        X, y = step_data
        forest = ForestEnsemble(n_estimators=4, max_depth=3).fit(X, y)
        restored = ForestEnsemble.from_dict(forest.to_dict())
        assert restored.max_depth == 3
        np.testing.assert_allclose(restored.predict(X), forest.predict(X))


# ---------------------------------------------------------------------------
# Linear model
# ---------------------------------------------------------------------------


class TestWeightedLinearModel:
    def test_recovers_line(self, linear_data):
        X, y = linear_data
        model = WeightedLinearModel(learning_rate=0.1, iterations=5000).fit(X, y)
        assert model.intercept == pytest.approx(2.0, abs=1e-3)
        assert model.coefficients[0] == pytest.approx(3.0, abs=1e-3)
        assert model.iterations_run == 5000

    def test_large_features_stay_finite(self):
        X = np.array([[1e6], [2e6], [3e6], [4e6]])
        y = np.array([10.0, 20.0, 30.0, 40.0])
        model = WeightedLinearModel().fit(X, y)
        assert math.isfinite(model.intercept)
        assert np.all(np.isfinite(model.coefficients))
        assert math.isfinite(model.predict_one(np.array([5e6])))

    def test_empty_fit(self):
        model = WeightedLinearModel().fit(np.zeros((0, 3)), np.zeros(0))
        assert list(model.coefficients) == [0.0, 0.0, 0.0]
        assert model.predict_one(np.array([1.0, 2.0, 3.0])) == 0.0

    def test_non_finite_inputs(self, linear_data):
        X, y = linear_data
        X = X.copy()
        y = y.copy()
        X[3, 0] = np.nan
        y[5] = np.inf
        model = WeightedLinearModel(learning_rate=0.1, iterations=200).fit(X, y)
        assert np.all(np.isfinite(model.coefficients))
        assert math.isfinite(model.predict_one(np.array([np.nan])))

    def test_prediction_interval(self, linear_data):
        X, y = linear_data
        noisy = y + np.tile([0.5, -0.5], len(y) // 2)
        model = WeightedLinearModel(learning_rate=0.1, iterations=2000).fit(X, noisy)
        center = model.predict_one(np.array([0.5]))
        low, high = model.prediction_interval(np.array([0.5]))
        assert low < center < high
        assert high - center == pytest.approx(center - low)

    def test_importance_sums_to_one(self):
        rng = np.random.default_rng(0)
        X = rng.normal(size=(60, 2))
        y = 4.0 * X[:, 0] + 0.5 * X[:, 1]
        model = WeightedLinearModel(learning_rate=0.1, iterations=2000).fit(X, y)
        importance = model.feature_importance(["usage", "pace"])
        assert sum(importance.values()) == pytest.approx(1.0)
        assert importance["usage"] > importance["pace"]

    def test_dict_round_trip(self, linear_data):
        X, y = linear_data
        model = WeightedLinearModel(learning_rate=0.1, iterations=500).fit(X, y)
        restored = WeightedLinearModel.from_dict(model.to_dict())
        assert restored.predict_one(np.array([0.3])) == pytest.approx(model.predict_one(np.array([0.3])))


# ---------------------------------------------------------------------------
# Metrics and the persisted model record
# ---------------------------------------------------------------------------


class TestMetrics:
    def test_perfect_fit(self):
        metrics = evaluate(np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0]))
        assert metrics.mae == 0.0
        assert metrics.rmse == 0.0
        assert metrics.r2 == pytest.approx(1.0)
        assert metrics.n_samples == 3

    def test_constant_targets_have_no_r2(self):
        metrics = evaluate(np.array([5.0, 5.0, 5.0]), np.array([4.0, 5.0, 6.0]))
        assert metrics.r2 is None
        assert metrics.r2_or_floor == float("-inf")
        assert metrics.mae == pytest.approx(2.0 / 3.0)

    def test_non_finite_pairs_dropped(self):
        metrics = evaluate(np.array([1.0, np.nan, 3.0]), np.array([1.0, 2.0, np.inf]))
        assert metrics.n_samples == 1

    def test_empty(self):
        metrics = evaluate(np.array([]), np.array([]))
        assert metrics.n_samples == 0
        assert metrics.r2 is None

    def test_dict_round_trip(self):
        metrics = RegressionMetrics(1.2, 1.5, None, 40)
        assert RegressionMetrics.from_dict(metrics.to_dict()) == metrics


class TestTrainedModel:
    @pytest.fixture
    def trained(self, linear_data):
        X, y = linear_data
        model = WeightedLinearModel(learning_rate=0.1, iterations=3000).fit(X, y)
        return TrainedModel(
            stat_type="points",
            season="2025",
            model_type="linear",
            feature_names=["season_average_points"],
            parameters={"linear": model.to_dict()},
            metrics={"linear": RegressionMetrics(0.1, 0.2, 0.9, 10)},
        )

    def test_predict(self, trained):
        vector = FeatureVector(["season_average_points"], np.array([1.0]))
        assert trained.predict(vector) == pytest.approx(5.0, abs=1e-2)
        assert trained.r2 == 0.9

    def test_predict_rejects_mismatched_names(self, trained):
        with pytest.raises(ValueError):
            trained.predict(FeatureVector(["recent_form_points"], np.array([1.0])))

    def test_invalid_model_type(self):
        with pytest.raises(ValueError):
            TrainedModel("points", "2025", "xgboost", (), {})

    def test_dict_round_trip(self, trained):
        restored = TrainedModel.from_dict(trained.to_dict())
        assert restored.feature_names == trained.feature_names
        assert restored.active_metrics == trained.active_metrics
        assert restored.key == ("points", "2025")

    def test_regressor_built_once(self, trained):
        assert trained.regressor is trained.regressor
        assert isinstance(trained.regressor, WeightedLinearModel)

    def test_prediction_interval(self, trained):
        vector = FeatureVector(["season_average_points"], np.array([1.0]))
        low, high = trained.prediction_interval(vector)
        assert low < trained.predict(vector) < high

    def test_missing_active_parameters(self):
        with pytest.raises(ValueError):
            TrainedModel("points", "2025", "forest", ["season_average_points"], {"linear": {}})
        with pytest.raises(ValueError):
            TrainedModel("points", "2025", "linear", ["season_average_points"], {"linear": {}, "xgboost": {}})

    def test_both_candidates_rebuildable(self, trained):
        forest = ForestEnsemble(n_estimators=1)
        forest.trees = [Leaf(7.0)]
        model = TrainedModel(
            "points", "2025", "linear", trained.feature_names,
            {"linear": trained.parameters["linear"], "forest": forest.to_dict()},
        )
        assert isinstance(model.build_regressor("forest"), ForestEnsemble)
        assert model.prediction_interval(FeatureVector(["season_average_points"], np.array([0.0]))) is not None
        forest_model = TrainedModel("points", "2025", "forest", trained.feature_names, model.parameters)
        assert forest_model.prediction_interval(FeatureVector(["season_average_points"], np.array([0.0]))) is None

    @pytest.mark.parametrize("feature_index", [1, 999, -1])
    def test_forest_split_outside_features(self, feature_index):
        forest = ForestEnsemble(n_estimators=1)
        forest.trees = [Split(feature_index, 0.5, Leaf(1.0), Leaf(2.0))]
        model = TrainedModel("points", "2025", "forest", ["season_average_points"], {"forest": forest.to_dict()})
        with pytest.raises(ValueError):
            model.build_regressor()
        with pytest.raises(ValueError):
            model.predict(FeatureVector(["season_average_points"], np.array([1.0])))

    def test_linear_coefficient_count_mismatch(self, trained):
        params = dict(trained.parameters["linear"], coefficients=[1.0, 2.0])
        model = TrainedModel("points", "2025", "linear", trained.feature_names, {"linear": params})
        with pytest.raises(ValueError):
            model.build_regressor()
