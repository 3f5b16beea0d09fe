"""Data-source ports, adapters, loaders and model persistence."""

from .guarded import GuardedPorts
from .loader import DataLoader
from .model_store import InMemoryModelStore, JsonModelStore, ModelStore
from .sources import (
    AdvancedStatsSource,
    DataPorts,
    GameLogSource,
    HttpInjurySource,
    InMemoryAdvancedStatsSource,
    InMemoryGameLogSource,
    InMemoryInjurySource,
    InMemoryTeamContextSource,
    InjurySource,
    TeamContextSource,
)
from .team_name_resolver import TeamNameResolver

__all__ = [
    "AdvancedStatsSource",
    "DataLoader",
    "DataPorts",
    "GameLogSource",
    "GuardedPorts",
    "HttpInjurySource",
    "InMemoryAdvancedStatsSource",
    "InMemoryGameLogSource",
    "InMemoryInjurySource",
    "InMemoryModelStore",
    "InMemoryTeamContextSource",
    "InjurySource",
    "JsonModelStore",
    "ModelStore",
    "TeamContextSource",
    "TeamNameResolver",
]
