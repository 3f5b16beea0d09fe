"""Data loader for game logs and projection datasets."""

from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ..models.context import AdvancedStats, InjuredTeammate, TeamContext
from ..models.game_log import GameLogRecord
from .sources import (
    DataPorts,
    InMemoryAdvancedStatsSource,
    InMemoryGameLogSource,
    InMemoryInjurySource,
    InMemoryTeamContextSource,
)
from .team_name_resolver import TeamNameResolver

logger = logging.getLogger(__name__)

# Source column spellings -> record field names
_COLUMN_ALIASES = {
    "playerId": "player_id",
    "playerName": "player_name",
    "gameId": "game_id",
    "gameDate": "game_date",
    "date": "game_date",
    "isHome": "is_home",
    "home": "is_home",
    "min": "minutes",
    "pts": "points",
    "reb": "rebounds",
    "ast": "assists",
    "stl": "steals",
    "blk": "blocks",
    "tov": "turnovers",
    "fgm": "field_goals_made",
    "fga": "field_goals_attempted",
    "fg3m": "three_pointers_made",
    "fg3a": "three_pointers_attempted",
    "ftm": "free_throws_made",
    "fta": "free_throws_attempted",
}

_NUMERIC_COLUMNS = [
    "minutes", "points", "rebounds", "assists", "steals", "blocks", "turnovers",
    "field_goals_made", "field_goals_attempted", "three_pointers_made",
    "three_pointers_attempted", "free_throws_made", "free_throws_attempted",
]

_TRUE_STRINGS = {"1", "true", "t", "yes", "y", "home", "h"}


class DataLoader:
    """Loads game logs and projection datasets from CSV/JSON files."""

    @staticmethod
    def game_logs_from_frame(df: pd.DataFrame) -> List[GameLogRecord]:
        """
        Convert a box-score DataFrame into game log records.

        Column names may use the snake_case field names or common feed
        spellings (gameDate, pts, reb, ...). Rows without a player, game or
        parseable date are dropped; non-numeric stat cells become 0.

        Args:
            df: One row per player-game

        Returns:
            List of GameLogRecord objects
        """
        df = df.rename(columns={k: v for k, v in _COLUMN_ALIASES.items() if k in df.columns})
        for required in ("player_id", "game_id", "game_date"):
            if required not in df.columns:
                raise ValueError(f"Game log data is missing column: {required}")

        df = df.copy()
        df["game_date"] = pd.to_datetime(df["game_date"], errors="coerce")
        before = len(df)
        df = df.dropna(subset=["player_id", "game_id", "game_date"])
        if len(df) < before:
            logger.warning("Dropped %d game log rows with missing ids or dates", before - len(df))

        for col in _NUMERIC_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).clip(lower=0.0)
            else:
                df[col] = 0.0

        for col in ("team", "opponent", "player_name"):
            if col in df.columns:
                df[col] = df[col].fillna("").astype(str)

        if "is_home" in df.columns:
            df["is_home"] = df["is_home"].map(lambda v: str(v).strip().lower() in _TRUE_STRINGS)
        else:
            df["is_home"] = False

        records = []
        for row in df.to_dict(orient="records"):
            row["player_id"] = str(row["player_id"])
            row["game_id"] = str(row["game_id"])
            season = row.get("season")
            row["season"] = "" if season is None or (isinstance(season, float) and np.isnan(season)) else str(season)
            records.append(GameLogRecord.from_dict(row))
        return records

    @staticmethod
    def load_game_logs(file_path: str) -> List[GameLogRecord]:
        """
        Load game logs from a CSV file or a JSON file.

        JSON may be a list of rows or an object with a ``game_logs`` list.

        Args:
            file_path: Path to the file

        Returns:
            List of GameLogRecord objects
        """
        path = Path(file_path)
        if path.suffix.lower() == ".csv":
            df = pd.read_csv(path)
        else:
            with open(path, "r") as f:
                payload = json.load(f)
            rows = payload.get("game_logs", []) if isinstance(payload, dict) else payload
            df = pd.DataFrame(rows)
        if df.empty:
            return []
        return DataLoader.game_logs_from_frame(df)

    @staticmethod
    def game_logs_to_frame(records: List[GameLogRecord]) -> pd.DataFrame:
        """Convert records back into a DataFrame sorted by player and date."""
        df = pd.DataFrame([r.to_dict() for r in records])
        if df.empty:
            return df
        df["game_date"] = pd.to_datetime(df["game_date"])
        return df.sort_values(["player_id", "game_date", "game_id"]).reset_index(drop=True)

    @staticmethod
    def load_dataset(file_path: str, resolver: Optional[TeamNameResolver] = None) -> DataPorts:
        """
        Load a projection dataset JSON into in-memory data ports.

        Expected format:
        {
            "game_logs": [ {...GameLogRecord fields...} ],
            "advanced_stats": [ {...AdvancedStats fields...} ],
            "team_context": [ {...TeamContext fields...} ],
            "injuries": { "LVA": [ {"name": ..., "status": "Out", ...} ] }
        }
        """
        with open(file_path, "r") as f:
            payload = json.load(f)

        rows = payload.get("game_logs", [])
        logs = DataLoader.game_logs_from_frame(pd.DataFrame(rows)) if rows else []
        advanced = [AdvancedStats.from_dict(s) for s in payload.get("advanced_stats", [])]
        contexts = [TeamContext.from_dict(c) for c in payload.get("team_context", [])]
        injuries: Dict[str, List[InjuredTeammate]] = {
            team: [InjuredTeammate.from_dict(p) for p in players]
            for team, players in payload.get("injuries", {}).items()
        }
        logger.info(
            "Loaded dataset: %d game logs, %d advanced stat rows, %d team contexts",
            len(logs), len(advanced), len(contexts),
        )
        return DataPorts(
            game_logs=InMemoryGameLogSource(logs),
            advanced_stats=InMemoryAdvancedStatsSource(advanced),
            team_context=InMemoryTeamContextSource(contexts, resolver),
            injuries=InMemoryInjurySource(injuries, resolver),
        )

    @staticmethod
    def create_sample_dataset(output_path: str, season: str = "2025", seed: int = 7) -> None:
        """
        Write a small synthetic dataset for trying the CLI.

        Args:
            output_path: Path to save sample data
            season: Season label for every row
            seed: RNG seed so the file is reproducible
        """
        rng = np.random.default_rng(seed)
        players = [
            ("p_guard", "Sample Guard", "LVA", "G", 16.0, 3.5, 5.5, 24.0),
            ("p_forward", "Sample Forward", "NYL", "F", 13.0, 7.5, 2.5, 21.0),
            ("p_center", "Sample Center", "SEA", "C", 11.0, 9.5, 1.5, 19.0),
        ]
        opponents = ["ATL", "CHI", "CON", "DAL", "IND", "MIN", "PHX", "WAS", "LAS", "GSV"]
        start = date(int(season), 5, 16)

        game_logs = []
        for player_id, name, team, _, pts, reb, ast, _ in players:
            for i in range(30):
                game_logs.append({
                    "player_id": player_id,
                    "player_name": name,
                    "game_id": f"{player_id}_{i:03d}",
                    "game_date": (start + timedelta(days=3 * i)).isoformat(),
                    "season": season,
                    "team": team,
                    "opponent": opponents[i % len(opponents)],
                    "is_home": bool(i % 2),
                    "minutes": round(float(rng.normal(30, 3)), 1),
                    "points": int(max(0, rng.normal(pts, 4))),
                    "rebounds": int(max(0, rng.normal(reb, 2))),
                    "assists": int(max(0, rng.normal(ast, 1.5))),
                    "steals": int(max(0, rng.normal(1.2, 0.8))),
                    "blocks": int(max(0, rng.normal(0.8, 0.7))),
                    "turnovers": int(max(0, rng.normal(2.2, 1.0))),
                    "field_goals_made": int(max(0, rng.normal(pts / 2.4, 1.5))),
                    "field_goals_attempted": int(max(1, rng.normal(pts / 1.1, 2.5))),
                    "three_pointers_made": int(max(0, rng.normal(1.5, 1.0))),
                    "free_throws_attempted": int(max(0, rng.normal(3.0, 1.5))),
                })

        sample_data = {
            "game_logs": game_logs,
            "advanced_stats": [
                {
                    "player_id": player_id,
                    "season": season,
                    "position": position,
                    "usage_rate": usage,
                    "per": 15.0 + usage / 2.0,
                    "minutes_per_game": 30.0,
                    "points_per_game": pts,
                    "field_goal_pct": 44.0,
                    "three_point_pct": 34.0,
                    "free_throw_pct": 82.0,
                    "assists": ast * 30,
                    "field_goals_attempted": pts / 1.1 * 30,
                    "free_throws_attempted": 90.0,
                    "turnovers": 66.0,
                }
                for player_id, _, _, position, pts, _, ast, usage in players
            ],
            "team_context": [
                {
                    "team": team,
                    "season": season,
                    "pace": round(float(rng.normal(95.0, 1.5)), 2),
                    "allowed": {
                        "points": round(float(rng.normal(13.2, 1.0)), 2),
                        "rebounds": round(float(rng.normal(5.4, 0.5)), 2),
                        "assists": round(float(rng.normal(3.3, 0.4)), 2),
                        "team_points": round(float(rng.normal(80.0, 3.0)), 2),
                        "team_rebounds": round(float(rng.normal(33.0, 1.5)), 2),
                        "team_assists": round(float(rng.normal(18.5, 1.5)), 2),
                    },
                    "position_allowed": {
                        "G": {"assists": round(float(rng.normal(18.5, 1.5)), 2)},
                        "F": {"assists": round(float(rng.normal(18.5, 1.5)), 2)},
                        "C": {"assists": round(float(rng.normal(18.5, 1.5)), 2)},
                    },
                    "field_goals_made": 30.0,
                    "field_goals_attempted": 68.0,
                    "three_pointers_made": 8.0,
                    "assists": 19.5,
                }
                for team in opponents + ["LVA", "NYL", "SEA"]
            ],
            "injuries": {
                "LVA": [{"name": "Sample Teammate", "position": "F", "status": "Out",
                         "usage_rate": 22.0, "minutes_per_game": 28.0}],
            },
        }

        with open(output_path, "w") as f:
            json.dump(sample_data, f, indent=2)
