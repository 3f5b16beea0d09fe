"""Tests for data-source adapters and timeout-guarded lookups."""

import threading
from datetime import date

import pytest
import requests

from wnba_projector.config import LookupConfig
from wnba_projector.data.guarded import GuardedPorts, PendingLookup
from wnba_projector.data.sources import (
    DataPorts,
    GameLogSource,
    HttpInjurySource,
    InjurySource,
    InMemoryGameLogSource,
    InMemoryInjurySource,
    InMemoryTeamContextSource,
)
from wnba_projector.models.context import InjuredTeammate

AS_OF = date(2025, 7, 1)


class TestInMemorySources:
    def test_game_logs_deduplicated_and_ordered(self, log_factory):
        logs = [log_factory("p1", 2), log_factory("p1", 0), log_factory("p1", 2, points=30.0)]
        source = InMemoryGameLogSource(logs)
        result = source.get_game_logs("p1")
        assert [g.game_id for g in result] == ["p1_000", "p1_002"]
        assert result[1].points == 30.0
        assert source.get_game_logs("unknown") == []

    def test_returned_list_is_a_copy(self, log_factory):
        source = InMemoryGameLogSource([log_factory("p1", 0)])
        source.get_game_logs("p1").clear()
        assert len(source.get_game_logs("p1")) == 1

    def test_team_context_any_spelling(self, team_contexts):
        source = InMemoryTeamContextSource(team_contexts)
        assert source.get_team_context("NYL", "2025").pace == 97.0
        assert source.get_team_context("Las Vegas Aces", "2025").pace == 96.0
        assert source.get_team_context("NYL", "2024") is None
        assert sorted(source.league_paces("2025")) == [96.0, 97.0]
        assert source.position_allowed("2025", "assists") == [20.5]
        assert source.position_allowed("2025", "points") == []

    def test_injuries(self):
        source = InMemoryInjurySource({"LVA": [InjuredTeammate("Star Forward", "F")]})
        assert len(source.get_injured_teammates("Las Vegas Aces", AS_OF)) == 1
        assert source.get_injured_teammates("SEA", AS_OF) == []


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        return self.response


class TestHttpInjurySource:
    TEAMS_PAYLOAD = {
        "teams": {
            "LVA": {"players": [
                {"name": "Star Forward", "position": "F", "status": "Out", "usage_rate": 26.0},
                {"name": "Bench Guard", "position": "G", "status": "Questionable"},
            ]},
            "SEA": {"players": [{"name": "Other", "status": "Out"}]},
        }
    }

    ROWS_PAYLOAD = {
        "injuries": [
            {"teamAbbrev": "LVA", "playerName": "Star Forward", "status": "Out", "minutes_per_game": 31.0},
            {"teamAbbrev": "NYL", "playerName": "Liberty Center", "status": "Out"},
            {"team": "Las Vegas Aces", "name": "Backup Center", "position": "C", "status": "Day-To-Day"},
        ]
    }

    def test_parse_teams_payload(self):
        source = HttpInjurySource("http://feed", session=FakeSession(None))
        players = source.parse_payload(self.TEAMS_PAYLOAD, "Las Vegas Aces")
        assert [p.name for p in players] == ["Star Forward", "Bench Guard"]
        assert players[0].usage_rate == 26.0

    def test_parse_rows_payload(self):
        source = HttpInjurySource("http://feed", session=FakeSession(None))
        players = source.parse_payload(self.ROWS_PAYLOAD, "LV")
        assert [p.name for p in players] == ["Star Forward", "Backup Center"]
        assert players[0].minutes_per_game == 31.0

    def test_unknown_team(self):
        source = HttpInjurySource("http://feed", session=FakeSession(None))
        assert source.parse_payload(self.TEAMS_PAYLOAD, "CHI") == []

    def test_fetch_keeps_players_out(self):
        session = FakeSession(FakeResponse(self.TEAMS_PAYLOAD))
        source = HttpInjurySource("http://feed/injuries", timeout=1.5, session=session)
        players = source.get_injured_teammates("LVA", AS_OF)
        assert [p.name for p in players] == ["Star Forward"]
        assert session.calls == [("http://feed/injuries", {"date": "2025-07-01"}, 1.5)]
        assert session.headers["Accept"] == "application/json"

    def test_http_error_propagates(self):
        source = HttpInjurySource("http://feed", session=FakeSession(FakeResponse({}, status=503)))
        with pytest.raises(requests.HTTPError):
            source.get_injured_teammates("LVA", AS_OF)


class BlockingGameLogSource(GameLogSource):
    def __init__(self):
        self.release = threading.Event()

    def get_game_logs(self, player_id):
        self.release.wait(5.0)
        return []


class FailingInjurySource(InjurySource):
    def get_injured_teammates(self, team, as_of):
        raise requests.ConnectionError("feed unreachable")


class TestGuardedPorts:
    @pytest.fixture
    def fast_config(self):
        return LookupConfig(timeout_seconds=0.05)

    def test_timeout_returns_default(self, fast_config):
        source = BlockingGameLogSource()
        with GuardedPorts(DataPorts(game_logs=source), fast_config) as guarded:
            pending = guarded.game_logs("p1")
            assert pending.result() == []
            assert pending.failed is True
            source.release.set()

    def test_failure_returns_default(self, fast_config):
        ports = DataPorts(game_logs=InMemoryGameLogSource(), injuries=FailingInjurySource())
        with GuardedPorts(ports, fast_config) as guarded:
            pending = guarded.injured_teammates("LVA", AS_OF)
            assert pending.result() is None
            assert pending.failed is True

    def test_successful_lookups(self, log_factory, team_contexts):
        ports = DataPorts(
            game_logs=InMemoryGameLogSource([log_factory("p1", 0)]),
            team_context=InMemoryTeamContextSource(team_contexts),
            injuries=InMemoryInjurySource({}),
        )
        with GuardedPorts(ports) as guarded:
            logs = guarded.game_logs("p1")
            context = guarded.team_context("NYL", "2025")
            injuries = guarded.injured_teammates("LVA", AS_OF)
            assert len(logs.result()) == 1
            assert context.result().pace == 97.0
            assert injuries.result() == []
            assert not (logs.failed or context.failed or injuries.failed)

    def test_missing_sources_resolve_immediately(self):
        with GuardedPorts(DataPorts(game_logs=InMemoryGameLogSource())) as guarded:
            assert guarded.advanced_stats("p1", "2025").result() is None
            assert guarded.team_context("NYL", "2025").result() is None
            assert guarded.injured_teammates("LVA", AS_OF).result() is None

    def test_none_value_becomes_default(self):
        with GuardedPorts(DataPorts(game_logs=InMemoryGameLogSource())) as guarded:
            assert guarded.call("lookup", lambda: None, 42) == 42

    def test_shared_executor_not_closed(self, fast_config):
        from concurrent.futures import ThreadPoolExecutor

        executor = ThreadPoolExecutor(max_workers=1)
        try:
            with GuardedPorts(DataPorts(game_logs=InMemoryGameLogSource()), fast_config, executor) as guarded:
                assert guarded.call("lookup", lambda: 1, 0) == 1
            assert executor.submit(lambda: 2).result() == 2
        finally:
            executor.shutdown()


def test_resolved_lookup():
    pending = PendingLookup.resolved("injuries", [InjuredTeammate("Star")])
    assert pending.result()[0].name == "Star"
    assert pending.failed is False
