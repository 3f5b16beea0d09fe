"""Tests for pace factors and data-derived tier tables."""

import pytest

from wnba_projector.config import DEFENSE_RATIO_TIERS, PACE_RATIO_TIERS, TierTable
from wnba_projector.projection.pace import absolute_pace_factor, pace_factor, pace_ratio
from wnba_projector.projection.thresholds import derive_defense_tiers, derive_pace_tiers


class TestPace:
    def test_ratio(self):
        assert pace_ratio(96.0, 97.0) == pytest.approx(96.5 / 95.0)
        assert pace_ratio(100.0, None) == pytest.approx(100.0 / 95.0)
        assert pace_ratio(None, None) is None

    @pytest.mark.parametrize("team,opponent,expected", [
        (96.0, 97.0, 1.10),
        (100.0, None, 1.20),
        (85.0, 85.0, 0.80),
        (95.0, 95.0, 1.0),
        (None, None, 1.0),
    ])
    def test_pace_factor(self, team, opponent, expected):
        assert pace_factor(team, opponent) == expected

    def test_custom_tiers(self):
        tiers = TierTable(above=((1.0, 2.0),))
        assert pace_factor(100.0, 100.0, tiers) == 2.0

    @pytest.mark.parametrize("pace,expected", [(98.0, 1.04), (95.0, 1.0), (94.5, 0.99), (94.0, 0.98), (None, 1.0)])
    def test_absolute_pace_factor(self, pace, expected):
        assert absolute_pace_factor(pace) == expected


class TestDerivedTiers:
    def test_pace_tiers_from_league(self):
        paces = [90.0, 92.0, 95.0, 98.0, 100.0]
        tiers = derive_pace_tiers(paces)
        assert len(tiers.above) == 3
        assert len(tiers.below) == 3
        assert tiers.lookup(100.0 / 95.0) == 1.15
        assert tiers.lookup(90.0 / 95.0) == 0.85
        assert tiers.lookup(1.0) == 1.0

    def test_too_few_teams_uses_defaults(self):
        assert derive_pace_tiers([90.0, None, float("nan"), 95.0, 100.0, 98.0]) is PACE_RATIO_TIERS
        assert derive_defense_tiers([14.0, 15.0]) is DEFENSE_RATIO_TIERS

    def test_defense_tiers(self):
        allowed = [11.0, 12.0, 13.0, 13.5, 14.0, 16.0]
        tiers = derive_defense_tiers(allowed, league_average=13.2)
        assert len(tiers.above) == 2
        assert len(tiers.below) == 1
        assert tiers.lookup(16.0 / 13.2) == 1.15
        assert tiers.lookup(11.0 / 13.2) == 0.90

    def test_thresholds_are_ordered(self):
        tiers = derive_pace_tiers([88.0, 91.0, 93.0, 95.0, 96.0, 97.0, 99.0, 102.0])
        above = [t for t, _ in tiers.above]
        below = [t for t, _ in tiers.below]
        assert above == sorted(above, reverse=True)
        assert below == sorted(below)
