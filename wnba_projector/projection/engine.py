"""
Projection engine entry points.

``ProjectionEngine.project`` gathers a player's data through guarded,
concurrent lookups, computes factors, blends in the trained model for the
stat, and scores the result. ``ProjectionEngine.train`` fits both model
families on a training set and keeps the better one.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..config import ProjectorConfig
from ..data.guarded import GuardedPorts, PendingLookup
from ..data.model_store import ModelStore
from ..data.sources import DataPorts
from ..data.team_name_resolver import TeamNameResolver, default_resolver
from ..errors import TrainingDataError
from ..features.feature_builder import FeatureBuilder, FeatureContext
from ..features.lineup import lineup_shift_multiplier
from ..features.training_set import TrainingSet
from ..ml.forest import ForestEnsemble
from ..ml.linear import WeightedLinearModel
from ..ml.metrics import evaluate
from ..ml.selection import FOREST, LINEAR, ModelSelector
from ..ml.validation import CrossValidationSummary, TemporalCrossValidator, chronological_split
from ..models.context import InjuredTeammate
from ..models.game_log import SeasonAggregate
from ..models.projection import ProjectionRequest, ProjectionResult
from ..models.trained_model import TrainedModel
from . import analytics
from .combiner import ProjectionCombiner
from .confidence import ConfidenceRiskCalculator
from .factors import FactorEngine, head_to_head_games
from .recommendation import RecommendationEngine

logger = logging.getLogger(__name__)


class ProjectionEngine:
    """
    Stateless projection service over injected data ports.

    Args:
        ports: Data sources for game logs, advanced stats, team context, injuries
        model_store: Where trained models are read from and saved to
        config: Projector configuration
        resolver: Team name resolver shared by every team-keyed lookup
    """

    def __init__(
        self,
        ports: Optional[DataPorts] = None,
        model_store: Optional[ModelStore] = None,
        config: Optional[ProjectorConfig] = None,
        resolver: Optional[TeamNameResolver] = None,
    ):
        self.ports = ports
        self.model_store = model_store
        self.config = config or ProjectorConfig()
        self.resolver = resolver or default_resolver()
        self.builder = FeatureBuilder()
        self.factor_engine = FactorEngine(self.config, self.resolver)
        self.combiner = ProjectionCombiner()
        self.calculator = ConfidenceRiskCalculator(self.config.recommendation.max_confidence)
        self.recommender = RecommendationEngine(self.config.recommendation)
        self.selector = ModelSelector(self.config.selection)
        self._guarded = GuardedPorts(ports, self.config.lookup) if ports is not None else None

    def close(self) -> None:
        if self._guarded is not None:
            self._guarded.close()

    def __enter__(self) -> "ProjectionEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- Projection ------------------------------------------------------------

    def project(
        self,
        player_id: str,
        opponent: str,
        stat_type: str,
        game_date,
        is_home: bool,
        days_rest: Optional[int] = None,
        market_line: Optional[float] = None,
        injured_teammates: Optional[List[InjuredTeammate]] = None,
        team: str = "",
        as_of=None,
    ) -> Optional[ProjectionResult]:
        """
        Project one player's stat for one game.

        Args:
            player_id: Player identifier
            opponent: Opponent team (any spelling)
            stat_type: points, rebounds, assists, ...
            game_date: Date of the game
            is_home: Whether the player's team is at home
            days_rest: Rest days before the game; derived from the logs when None
            market_line: Betting line to compare against
            injured_teammates: Known injuries; fetched from the injury source when None
            team: Player's team; defaults to the team in the latest game log
            as_of: Reference date for history (defaults to game_date)

        Returns:
            ProjectionResult, or None when the player has no games before the
            date. A failed game-log lookup projects from league averages and
            adds a warning instead.
        """
        if self._guarded is None:
            raise ValueError("ProjectionEngine.project requires data ports")
        request = ProjectionRequest(
            player_id=player_id,
            opponent=opponent,
            stat_type=stat_type,
            game_date=game_date,
            is_home=is_home,
            days_rest=days_rest,
            market_line=market_line,
            injured_teammates=injured_teammates,
            team=team,
            as_of=as_of,
        )
        return self.project_request(request)

    def project_request(self, request: ProjectionRequest) -> Optional[ProjectionResult]:
        guarded = self._guarded
        season = self.config.season
        stat_type = request.stat_type

        # Phase 1: everything keyed only by player or opponent
        logs_lookup = guarded.game_logs(request.player_id)
        advanced_lookup = guarded.advanced_stats(request.player_id, season)
        opponent_lookup = guarded.team_context(request.opponent, season)
        model_lookup = self._model_lookup(stat_type, season)

        logs = [g for g in logs_lookup.result() if g.game_date < request.as_of]
        if logs_lookup.failed:
            logger.warning(
                "Game logs for %s unavailable; projecting %s from league averages", request.player_id, stat_type
            )
        elif not logs:
            logger.info("No games before %s for %s; no projection", request.as_of, request.player_id)
            return None
        logs.sort(key=lambda g: (g.game_date, g.game_id))

        # Phase 2: lookups that need the player's team
        team = request.team or (logs[-1].team if logs else "")
        team_lookup = guarded.team_context(team, season)
        if request.injured_teammates is not None:
            injuries_lookup = PendingLookup.resolved("injuries", request.injured_teammates)
        else:
            injuries_lookup = guarded.injured_teammates(team, request.as_of)

        advanced = advanced_lookup.result()
        opponent_context = opponent_lookup.result()
        team_context = team_lookup.result()
        injured = injuries_lookup.result()
        model: Optional[TrainedModel] = model_lookup.result()

        warnings = [
            f"{p.label} lookup failed; using default"
            for p in (logs_lookup, advanced_lookup, opponent_lookup, team_lookup, injuries_lookup, model_lookup)
            if p.failed
        ]

        aggregate = None
        if logs_lookup.failed:
            # Empty aggregate; every average resolves to the league average.
            aggregate = SeasonAggregate(request.player_id, season)
        elif any(g.season == season for g in logs):
            aggregate = SeasonAggregate.from_game_logs(request.player_id, season, logs)

        lineup_multiplier = lineup_shift_multiplier(stat_type, injured)
        context = FeatureContext(
            player_id=request.player_id,
            stat_type=stat_type,
            as_of=request.as_of,
            game_logs=logs,
            season=season,
            opponent=request.opponent,
            is_home=request.is_home,
            days_rest=request.days_rest,
            aggregate=aggregate,
            advanced=advanced,
            team_context=team_context,
            opponent_context=opponent_context,
            injured_teammates=injured,
            lineup_multiplier=lineup_multiplier,
        )

        factor_set = self.factor_engine.compute(context)
        factor_value = self.combiner.combine(factor_set, stat_type)
        values = context.values(stat_type)
        recent_values = values[-self.config.lookup.recent_games:]
        games = len(logs)
        line = request.market_line

        model_value = None
        interval = None
        r2 = None
        if model is not None:
            model_value, interval = self._predict(model, context, warnings)
            r2 = model.r2
            warnings.extend(model.warnings)
        else:
            warnings.append(f"No trained {stat_type} model for season {season}; using factors only")

        factor_edge = None if line is None else factor_value - line
        factor_confidence = self.calculator.confidence(
            None, games, factor_set.factors, factor_set.recent_form, factor_set.season_average, factor_edge
        )
        model_confidence = 0.0 if model is None or model.low_confidence else max(0.0, min(1.0, r2 or 0.0))
        if factor_value == 0:
            # A zero base stays zero; the model is not blended in.
            blended, weights = 0.0, None
        else:
            blended, weights = self.combiner.blend(factor_value, model_value, model_confidence, factor_confidence)

        position = advanced.position if advanced else None
        projected = self.combiner.finalize(blended, stat_type, lineup_multiplier, position)

        edge = self.recommender.edge(projected, line)
        confidence = self.calculator.confidence(
            r2, games, factor_set.factors, factor_set.recent_form, factor_set.season_average,
            None if line is None else edge,
        )
        risk = self.calculator.risk(r2, projected, line, recent_values, games)
        recommendation = self.recommender.recommend(stat_type, projected, line, confidence)

        h2h_values = [g.stat(stat_type) for g in head_to_head_games(logs, request.opponent, self.resolver)]
        summary = analytics.summarize(values, h2h_values)

        breakdown = {
            "factor_projection": round(factor_value, 3),
            "model_projection": None if model_value is None else round(model_value, 3),
            "blend_weights": None if weights is None else {"factor": weights.factor, "model": weights.model},
            "model_interval": None if interval is None else [round(interval[0], 3), round(interval[1], 3)],
            "model_confidence": round(model_confidence, 3),
            "lineup_multiplier": lineup_multiplier,
            "games_played": games,
            "team": team,
            "risk": risk.to_dict(),
            "analytics": summary.to_dict(),
            "enhanced_confidence": analytics.enhanced_confidence(
                confidence, summary, values, self.config.recommendation.max_confidence
            ),
        }

        logger.info(
            "Projected %s %s vs %s: %.1f (confidence %.2f, %s, %s)",
            request.player_id, stat_type, request.opponent, projected, confidence,
            risk.level.value, recommendation.value,
        )
        return ProjectionResult(
            player_id=request.player_id,
            stat_type=stat_type,
            projected_value=projected,
            confidence_score=confidence,
            factors=factor_set.as_dict(),
            risk_level=risk.level,
            edge=edge,
            recommendation=recommendation,
            breakdown=breakdown,
            model_type=model.model_type if model is not None else None,
            warnings=warnings,
        )

    def _model_lookup(self, stat_type: str, season: str) -> PendingLookup:
        if self.model_store is None:
            return PendingLookup.resolved("model", None)
        return self._guarded.submit("model", lambda: self.model_store.get(stat_type, season), None)

    def _predict(
        self, model: TrainedModel, context: FeatureContext, warnings: List[str]
    ) -> Tuple[Optional[float], Optional[Tuple[float, float]]]:
        """Model prediction plus its 95 % interval (linear models only)."""
        vector = self.builder.build(model.feature_names, context)
        try:
            value = model.predict(vector)
            interval = model.prediction_interval(vector)
        except (ValueError, IndexError) as e:
            logger.warning("Model for %s unusable: %s", model.stat_type, e)
            warnings.append(f"Model prediction failed: {e}")
            return None, None
        if not math.isfinite(value):
            return None, None
        return value, interval

    # -- Training --------------------------------------------------------------

    def train(self, stat_type: str, training_set: TrainingSet, save: bool = True) -> TrainedModel:
        """
        Fit the forest and the linear model, validate both, keep the better one.

        Args:
            stat_type: Stat the training set targets
            training_set: Rows built by ``build_training_set``
            save: Persist the result to the model store when one is configured

        Returns:
            Immutable TrainedModel

        Raises:
            TrainingDataError: If no rows remain after filtering
        """
        if training_set.stat_type != stat_type:
            raise ValueError(f"Training set targets {training_set.stat_type}, not {stat_type}")
        config = self.config
        prepared = training_set.prepared(config.training, config.season)
        if len(prepared) == 0:
            raise TrainingDataError(
                f"No {stat_type} training rows with at least {config.training.min_minutes:.0f} minutes"
            )

        X, y, w, dates = prepared.to_arrays()
        train_idx, val_idx = chronological_split(len(y), config.training.validation_fraction, dates)
        logger.info("Training %s models on %d rows, validating on %d", stat_type, len(train_idx), len(val_idx))

        forest = ForestEnsemble.from_config(config.forest).fit(X[train_idx], y[train_idx], w[train_idx])
        linear = WeightedLinearModel.from_config(config.linear).fit(X[train_idx], y[train_idx], w[train_idx])

        forest_metrics = evaluate(y[val_idx], forest.predict(X[val_idx]))
        linear_metrics = evaluate(y[val_idx], linear.predict(X[val_idx]))
        logger.info("Forest: %s", forest_metrics)
        logger.info("Linear: %s", linear_metrics)

        selection = self.selector.select(stat_type, forest_metrics, linear_metrics)
        active = forest if selection.model_type == FOREST else linear
        names = list(prepared.feature_names)

        model = TrainedModel(
            stat_type=stat_type,
            season=config.season,
            model_type=selection.model_type,
            feature_names=tuple(names),
            parameters={FOREST: forest.to_dict(), LINEAR: linear.to_dict()},
            hyperparameters=active.hyperparameters,
            metrics=selection.metrics,
            low_confidence=selection.low_confidence,
            warnings=tuple(selection.warnings),
            feature_importance=active.feature_importance(names),
            metadata={
                "trained_at": datetime.now(timezone.utc).isoformat(),
                "selection_reason": selection.reason,
                "n_rows": int(len(y)),
                "n_train": int(len(train_idx)),
                "n_validation": int(len(val_idx)),
                "n_dropped": len(training_set) - len(prepared),
                "target_mean": float(np.mean(y)),
            },
        )
        if save and self.model_store is not None:
            self.model_store.save(model)
        return model

    def cross_validate(
        self, stat_type: str, training_set: TrainingSet, n_splits: int = 5
    ) -> Dict[str, CrossValidationSummary]:
        """
        Expanding-window cross-validation of both model families.

        Returns:
            {"forest": summary, "linear": summary}

        Raises:
            TrainingDataError: If no rows remain after filtering
        """
        config = self.config
        prepared = training_set.prepared(config.training, config.season)
        if len(prepared) == 0:
            raise TrainingDataError(f"No {stat_type} training rows to cross-validate")
        X, y, w, dates = prepared.to_arrays()
        cv = TemporalCrossValidator(n_splits=n_splits, min_train_size=min(30, max(1, len(y) // 2)))

        summaries = {
            FOREST: cv.cross_validate(
                X, y, dates,
                lambda X_, y_, w_: ForestEnsemble.from_config(config.forest).fit(X_, y_, w_),
                lambda model, X_: model.predict(X_),
                w,
            ),
            LINEAR: cv.cross_validate(
                X, y, dates,
                lambda X_, y_, w_: WeightedLinearModel.from_config(config.linear).fit(X_, y_, w_),
                lambda model, X_: model.predict(X_),
                w,
            ),
        }
        for name, summary in summaries.items():
            logger.info("%s %s CV over %d folds: %s", stat_type, name, len(summary.folds), summary.average)
        return summaries


def project(
    ports: DataPorts,
    player_id: str,
    opponent: str,
    stat_type: str,
    game_date: date,
    is_home: bool,
    days_rest: Optional[int] = None,
    market_line: Optional[float] = None,
    injured_teammates: Optional[List[InjuredTeammate]] = None,
    model_store: Optional[ModelStore] = None,
    config: Optional[ProjectorConfig] = None,
) -> Optional[ProjectionResult]:
    """One-off projection with a short-lived engine."""
    with ProjectionEngine(ports, model_store, config) as engine:
        return engine.project(
            player_id, opponent, stat_type, game_date, is_home,
            days_rest=days_rest, market_line=market_line, injured_teammates=injured_teammates,
        )


def train(
    stat_type: str,
    training_set: TrainingSet,
    config: Optional[ProjectorConfig] = None,
    model_store: Optional[ModelStore] = None,
) -> TrainedModel:
    """Train a model for one stat; saved when a model store is given."""
    return ProjectionEngine(model_store=model_store, config=config).train(stat_type, training_set)
