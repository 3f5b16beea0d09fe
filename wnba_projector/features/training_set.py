"""
Training-set construction from game logs.

Each row is one player-game. Its features are built from the games that
player played strictly before that date, so no row can see its own target.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import TrainingConfig
from ..data.sources import DataPorts
from ..models.context import TeamContext
from ..models.game_log import GameLogRecord
from .feature_builder import FeatureBuilder, FeatureContext, feature_names_for

logger = logging.getLogger(__name__)

COMPOSITE_MIN_MINUTES = 12.0


@dataclass
class TrainingRow:
    """One player-game example."""

    player_id: str
    game_date: date
    season: str
    minutes: float
    target: float
    features: Dict[str, float]
    weight: float = 1.0


@dataclass
class TrainingSet:
    """Rows plus the canonical feature order every row is read in."""

    stat_type: str
    feature_names: List[str]
    rows: List[TrainingRow] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def to_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Returns:
            (X, y, sample_weight, date_ordinals)
        """
        n, k = len(self.rows), len(self.feature_names)
        X = np.zeros((n, k))
        for i, row in enumerate(self.rows):
            X[i] = [row.features.get(name, 0.0) for name in self.feature_names]
        y = np.array([r.target for r in self.rows], dtype=float)
        w = np.array([r.weight for r in self.rows], dtype=float)
        dates = np.array([r.game_date.toordinal() for r in self.rows], dtype=np.int64)
        return X, y, w, dates

    def to_frame(self) -> pd.DataFrame:
        """One column per feature plus the target and bookkeeping columns."""
        records = []
        for row in self.rows:
            record = {name: row.features.get(name, 0.0) for name in self.feature_names}
            record.update({
                "player_id": row.player_id,
                "game_date": row.game_date,
                "season": row.season,
                "minutes": row.minutes,
                "weight": row.weight,
                "target": row.target,
            })
            records.append(record)
        return pd.DataFrame(records)

    def prepared(self, config: TrainingConfig, current_season: str) -> "TrainingSet":
        """
        Drop low-minute rows and attach recency weights.

        Args:
            config: Minutes floor and season weights
            current_season: Rows from this season get the heavier weight

        Returns:
            A new TrainingSet sorted by game date
        """
        kept = []
        for row in self.rows:
            if row.minutes < config.min_minutes or not math.isfinite(row.target):
                continue
            weight = config.current_season_weight if row.season == current_season else config.prior_season_weight
            kept.append(replace(row, weight=weight))
        kept.sort(key=lambda r: (r.game_date, r.player_id))
        dropped = len(self.rows) - len(kept)
        if dropped:
            logger.info("Dropped %d of %d %s rows below %.0f minutes", dropped, len(self.rows),
                        self.stat_type, config.min_minutes)
        return TrainingSet(self.stat_type, list(self.feature_names), kept)


def composite_rebounds_target(history: Sequence[GameLogRecord], season: str) -> Optional[float]:
    """
    Smoothed rebounds target: 0.3 * last 5 + 0.3 * last 15 + 0.4 * season.

    Only games with more than 12 minutes count. ``history`` ends with the
    row's own game.
    """
    games = [g for g in history if g.minutes > COMPOSITE_MIN_MINUTES]
    if not games:
        return None
    values = [g.rebounds for g in games]
    season_values = [g.rebounds for g in games if g.season == season] or values
    last5 = float(np.mean(values[-5:]))
    last15 = float(np.mean(values[-15:]))
    return 0.3 * last5 + 0.3 * last15 + 0.4 * float(np.mean(season_values))


def build_training_set(
    game_logs: Iterable[GameLogRecord],
    stat_type: str,
    ports: Optional[DataPorts] = None,
    feature_names: Optional[List[str]] = None,
    builder: Optional[FeatureBuilder] = None,
    min_history: int = 1,
    use_composite_target: bool = False,
) -> TrainingSet:
    """
    Build training rows for one stat type.

    Args:
        game_logs: Game logs for any number of players
        stat_type: Target stat
        ports: Optional sources for advanced stats and team context
        feature_names: Feature order (defaults to the stat's canonical list)
        builder: Feature builder to use
        min_history: Prior games a player needs before a row is emitted
        use_composite_target: Use the smoothed rebounds target

    Returns:
        TrainingSet in chronological order, unweighted
    """
    names = list(feature_names or feature_names_for(stat_type))
    builder = builder or FeatureBuilder()

    by_player: Dict[str, List[GameLogRecord]] = defaultdict(list)
    for log in game_logs:
        by_player[log.player_id].append(log)

    context_cache: Dict[Tuple[str, str], Optional[TeamContext]] = {}

    def team_context(team: str, season: str) -> Optional[TeamContext]:
        if ports is None or ports.team_context is None or not team:
            return None
        key = (team, season)
        if key not in context_cache:
            context_cache[key] = ports.team_context.get_team_context(team, season)
        return context_cache[key]

    rows: List[TrainingRow] = []
    for player_id, logs in by_player.items():
        logs.sort(key=lambda g: (g.game_date, g.game_id))
        advanced_by_season = {}
        for i, game in enumerate(logs):
            prior = [g for g in logs[:i] if g.game_date < game.game_date]
            if len(prior) < min_history:
                continue

            if use_composite_target and stat_type == "rebounds":
                target = composite_rebounds_target(logs[: i + 1], game.season)
                if target is None:
                    continue
            else:
                target = game.stat(stat_type)

            if game.season not in advanced_by_season:
                advanced_by_season[game.season] = (
                    ports.advanced_stats.get_advanced_stats(player_id, game.season)
                    if ports is not None and ports.advanced_stats is not None else None
                )

            context = FeatureContext(
                player_id=player_id,
                stat_type=stat_type,
                as_of=game.game_date,
                game_logs=prior,
                season=game.season,
                opponent=game.opponent,
                is_home=game.is_home,
                advanced=advanced_by_season[game.season],
                team_context=team_context(game.team, game.season),
                opponent_context=team_context(game.opponent, game.season),
            )
            rows.append(TrainingRow(
                player_id=player_id,
                game_date=game.game_date,
                season=game.season,
                minutes=game.minutes,
                target=target,
                features=builder.build_dict(names, context),
            ))

    rows.sort(key=lambda r: (r.game_date, r.player_id))
    logger.info("Built %d %s training rows from %d players", len(rows), stat_type, len(by_player))
    return TrainingSet(stat_type, names, rows)
