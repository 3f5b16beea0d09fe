"""
Bounded-time access to external data sources.

``GuardedPorts`` wraps a ``DataPorts`` bundle so that every lookup runs on a
shared thread pool with a timeout. A lookup that times out or raises is
logged and replaced by its documented default, so a slow or failing source
can only neutralize the factor that depends on it.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import date
from typing import Callable, List, Optional, TypeVar

from ..config import LookupConfig
from ..models.context import AdvancedStats, InjuredTeammate, TeamContext
from ..models.game_log import GameLogRecord
from .sources import DataPorts

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GuardedPorts:
    """Timeout-and-default wrapper around the engine's data ports."""

    def __init__(self, ports: DataPorts, config: Optional[LookupConfig] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.ports = ports
        self.config = config or LookupConfig()
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="lookup"
        )

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False)

    def __enter__(self) -> "GuardedPorts":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def submit(self, label: str, fn: Callable[[], T], default: T) -> "PendingLookup[T]":
        """Start a lookup in the background. Resolve it with ``.result()``."""
        return PendingLookup(label, self.executor.submit(fn), default, self.config.timeout_seconds)

    def call(self, label: str, fn: Callable[[], T], default: T) -> T:
        """Run a lookup and wait for it within the timeout."""
        return self.submit(label, fn, default).result()

    # -- Port-specific helpers ---------------------------------------------

    def game_logs(self, player_id: str) -> "PendingLookup[List[GameLogRecord]]":
        return self.submit("game_logs", lambda: self.ports.game_logs.get_game_logs(player_id), [])

    def advanced_stats(self, player_id: str, season: str) -> "PendingLookup[Optional[AdvancedStats]]":
        source = self.ports.advanced_stats
        if source is None:
            return PendingLookup.resolved("advanced_stats", None)
        return self.submit("advanced_stats", lambda: source.get_advanced_stats(player_id, season), None)

    def team_context(self, team: str, season: str) -> "PendingLookup[Optional[TeamContext]]":
        source = self.ports.team_context
        if source is None or not team:
            return PendingLookup.resolved("team_context", None)
        return self.submit(f"team_context[{team}]", lambda: source.get_team_context(team, season), None)

    def injured_teammates(self, team: str, as_of: date) -> "PendingLookup[Optional[List[InjuredTeammate]]]":
        """Resolves to None (not []) when the injury source is missing or fails."""
        source = self.ports.injuries
        if source is None or not team:
            return PendingLookup.resolved("injuries", None)
        return self.submit("injuries", lambda: source.get_injured_teammates(team, as_of), None)


class PendingLookup:
    """A lookup in flight, resolved to its value or its default."""

    def __init__(self, label: str, future: Optional[Future], default, timeout: float):
        self.label = label
        self.future = future
        self.default = default
        self.timeout = timeout
        self.failed = False

    @classmethod
    def resolved(cls, label: str, value) -> "PendingLookup":
        return cls(label, None, value, 0.0)

    def result(self):
        if self.future is None:
            return self.default
        try:
            value = self.future.result(timeout=self.timeout)
        except FutureTimeoutError:
            self.failed = True
            self.future.cancel()
            logger.warning("Lookup %s timed out after %.1fs; using default", self.label, self.timeout)
            return self.default
        except Exception as e:
            self.failed = True
            logger.warning("Lookup %s failed: %s; using default", self.label, e)
            return self.default
        return self.default if value is None else value
