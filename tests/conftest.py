"""Shared fixtures for projection engine tests."""

from datetime import date, timedelta

import pytest

from wnba_projector.models.context import AdvancedStats, TeamContext
from wnba_projector.models.game_log import GameLogRecord


def make_log(player_id="p1", index=0, start=date(2025, 5, 20), days_between=2, **stats):
    """Build one game log; ``index`` spaces games ``days_between`` days apart."""
    defaults = {
        "team": "LVA",
        "opponent": "NYL",
        "is_home": index % 2 == 0,
        "minutes": 30.0,
        "points": 15.0,
        "rebounds": 6.0,
        "assists": 4.0,
        "season": "2025",
    }
    defaults.update(stats)
    return GameLogRecord(
        player_id=player_id,
        game_id=f"{player_id}_{index:03d}",
        game_date=start + timedelta(days=days_between * index),
        **defaults,
    )


def make_logs(values, stat="points", player_id="p1", **stats):
    """One game per value, oldest first."""
    return [make_log(player_id, i, **{stat: v}, **stats) for i, v in enumerate(values)]


@pytest.fixture
def log_factory():
    return make_log


@pytest.fixture
def logs_factory():
    return make_logs


@pytest.fixture
def season_logs():
    """Twenty-four games of a steady scorer, alternating opponents."""
    opponents = ["NYL", "SEA", "ATL", "CHI"]
    return [
        make_log(
            "p1", i,
            opponent=opponents[i % len(opponents)],
            points=14.0 + (i % 5),
            rebounds=5.0 + (i % 3),
            assists=3.0 + (i % 4),
            minutes=28.0 + (i % 4),
        )
        for i in range(24)
    ]


@pytest.fixture
def team_contexts():
    return [
        TeamContext(
            team="LVA", season="2025", pace=96.0,
            allowed={"points": 13.0, "rebounds": 5.5, "assists": 3.2},
            field_goals_made=31.0, field_goals_attempted=68.0, three_pointers_made=8.0,
            assists=20.0, rebound_share=0.52,
        ),
        TeamContext(
            team="New York Liberty", season="2025", pace=97.0,
            allowed={"points": 15.7, "rebounds": 5.8, "assists": 3.6, "team_points": 84.0},
            position_allowed={"G": {"assists": 20.5}},
            opponent_field_goal_pct=45.0,
        ),
    ]


@pytest.fixture
def guard_stats():
    return AdvancedStats(
        player_id="p1", season="2025", position="PG", usage_rate=24.0, per=23.0,
        minutes_per_game=31.0, points_per_game=16.0, field_goal_pct=46.0,
        three_point_pct=36.0, free_throw_pct=85.0,
        assists=150.0, field_goals_attempted=380.0, free_throws_attempted=90.0, turnovers=60.0,
    )
