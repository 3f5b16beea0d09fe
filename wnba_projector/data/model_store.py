"""
Persistence for trained models.

One JSON document per (stat_type, season). Saving writes a temporary file
in the same directory and ``os.replace``s it over the old document, so a
concurrent reader sees either the previous model or the new one in full.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..errors import ModelNotFoundError
from ..models.trained_model import TrainedModel

logger = logging.getLogger(__name__)


class ModelStore(ABC):
    """Storage port for trained models."""

    @abstractmethod
    def save(self, model: TrainedModel) -> None:
        """Persist a model, replacing any existing one for the same key."""

    @abstractmethod
    def load(self, stat_type: str, season: str) -> TrainedModel:
        """
        Load a model.

        Raises:
            ModelNotFoundError: If no model exists for the key
        """

    @abstractmethod
    def keys(self) -> List[Tuple[str, str]]:
        """All stored (stat_type, season) pairs."""

    def get(self, stat_type: str, season: str) -> Optional[TrainedModel]:
        """Load a model, or None when it is missing or unusable."""
        try:
            model = self.load(stat_type, season)
            model.regressor  # raises ValueError when the stored regressor cannot be rebuilt
            return model
        except ModelNotFoundError:
            return None
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Could not read model %s/%s: %s", stat_type, season, e)
            return None


class InMemoryModelStore(ModelStore):
    """Dict-backed store; swaps are atomic under a lock."""

    def __init__(self):
        self._models: Dict[Tuple[str, str], TrainedModel] = {}
        self._lock = threading.Lock()

    def save(self, model: TrainedModel) -> None:
        with self._lock:
            self._models[model.key] = model

    def load(self, stat_type: str, season: str) -> TrainedModel:
        with self._lock:
            model = self._models.get((stat_type, season))
        if model is None:
            raise ModelNotFoundError(f"No model for {stat_type}/{season}")
        return model

    def keys(self) -> List[Tuple[str, str]]:
        with self._lock:
            return sorted(self._models)


def _safe_component(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", value)


class JsonModelStore(ModelStore):
    """Directory of ``<stat_type>__<season>.json`` documents."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, stat_type: str, season: str) -> Path:
        return self.directory / f"{_safe_component(stat_type)}__{_safe_component(season)}.json"

    def save(self, model: TrainedModel) -> None:
        target = self.path_for(model.stat_type, model.season)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(model.to_dict(), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info("Saved %s model for %s/%s to %s", model.model_type, model.stat_type, model.season, target)

    def load(self, stat_type: str, season: str) -> TrainedModel:
        path = self.path_for(stat_type, season)
        if not path.exists():
            raise ModelNotFoundError(f"No model for {stat_type}/{season} at {path}")
        with open(path, "r") as f:
            return TrainedModel.from_dict(json.load(f))

    def keys(self) -> List[Tuple[str, str]]:
        result = []
        for path in sorted(self.directory.glob("*__*.json")):
            stat_type, _, season = path.stem.partition("__")
            result.append((stat_type, season))
        return result
