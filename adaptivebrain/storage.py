from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field

from .config import EngineConfig

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return json.JSONEncoder.default(self, obj)


# ---------------------- Persisted schema ----------------------
class ContextPayload(BaseModel):
    current_level: int
    recent_accuracy: float = 0.5
    recent_speed: float = 0.5
    session_length_minutes: float = 0.0
    time_of_day: str = "afternoon"
    previous_difficulty_multiplier: float = 1.0
    streak_count: int = 0
    user_type: str = "balanced"
    frustration_level: float = 0.0
    engagement_level: float = 0.5
    success_rate: float = 0.5
    extras: Dict[str, float] = Field(default_factory=dict)


class ActionRewardPayload(BaseModel):
    action: Dict[str, Any]
    context: ContextPayload
    reward: float = Field(ge=-100.0, le=100.0)
    timestamp: int


class BanditStatePayload(BaseModel):
    """Shape of the single record each domain keeps in the key-value store."""

    history: List[ActionRewardPayload] = Field(default_factory=list)
    weights: List[Tuple[str, List[float]]] = Field(default_factory=list)
    # never below the default exploration floor: epsilon only decays
    epsilon: float = Field(default=0.1, ge=0.01, le=1.0)


# ---------------------- Key-value backends ----------------------
class KeyValueStore(ABC):
    """String-to-string store holding one serialized record per key."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileStore(KeyValueStore):
    def __init__(self, state_dir: str):
        self.state_dir = state_dir
        os.makedirs(self.state_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = key.replace("/", "_")
        return os.path.join(self.state_dir, f"{safe}.json")

    def get(self, key: str) -> Optional[str]:
        p = self._path(key)
        if not os.path.exists(p):
            return None
        with open(p, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        with open(self._path(key), "w", encoding="utf-8") as f:
            f.write(value)

    def delete(self, key: str) -> None:
        p = self._path(key)
        if os.path.exists(p):
            os.remove(p)


class RedisStore(KeyValueStore):
    """
    Redis-backed store. Keys are namespaced:
      difficulty:<storage_key> -> JSON string
    """

    def __init__(self, url: str, prefix: str = "difficulty:"):
        import redis

        self.prefix = prefix
        self._redis = redis.from_url(url, decode_responses=True)  # str <-> str

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        return self._redis.get(self._k(key))

    def set(self, key: str, value: str) -> None:
        self._redis.set(self._k(key), value)

    def delete(self, key: str) -> None:
        self._redis.delete(self._k(key))


def get_store(config: Optional[EngineConfig] = None) -> KeyValueStore:
    """Factory: Redis when a URL is configured, otherwise files under state_dir."""
    cfg = config or EngineConfig.from_env()
    if cfg.redis_url:
        return RedisStore(cfg.redis_url)
    return FileStore(cfg.state_dir)


# ---------------------- State storage ----------------------
class StateStorage:
    """Serializes bandit state records into a KeyValueStore."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else MemoryStore()

    def save_state(self, key: str, state: Dict[str, Any]) -> bool:
        try:
            self.store.set(key, json.dumps(state, cls=NumpyEncoder))
            return True
        except Exception as e:  # OSError, redis errors
            logger.warning("failed to persist %s: %s", key, e)
            return False

    def load_state(self, key: str) -> Optional[BanditStatePayload]:
        """Returns None when the record is absent or unreadable."""
        try:
            raw = self.store.get(key)
        except Exception as e:
            logger.warning("failed to read %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return BanditStatePayload.model_validate(json.loads(raw))
        except ValueError as e:  # JSONDecodeError and ValidationError both subclass it
            logger.warning("discarding corrupt state for %s: %s", key, e)
            return None

    def delete_state(self, key: str) -> None:
        try:
            self.store.delete(key)
        except Exception as e:
            logger.warning("failed to delete %s: %s", key, e)
