"""Tunable parameters of the difficulty engine.

Only constants and a frozen dataclass live here; callers build an
``EngineConfig`` directly or via ``EngineConfig.from_env()``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class EngineConfig:
    # bandit
    initial_epsilon: float = 0.1
    min_epsilon: float = 0.01
    epsilon_decay: float = 0.995
    learning_rate: float = 0.1
    history_limit: int = 100

    # analytics / context
    session_buffer: int = 20
    context_window: int = 5
    level_window: int = 5
    stats_window: int = 10
    max_level: int = 25

    # persistence
    state_dir: str = "./difficulty_state"
    redis_url: Optional[str] = None

    @staticmethod
    def from_env() -> "EngineConfig":
        cfg = EngineConfig(
            state_dir=os.getenv("STATE_DIR", "./difficulty_state"),
            redis_url=os.getenv("REDIS_URL") or None,
        )
        eps = os.getenv("BANDIT_EPSILON")
        if eps:
            cfg = replace(cfg, initial_epsilon=min(1.0, max(cfg.min_epsilon, float(eps))))
        lr = os.getenv("BANDIT_LEARNING_RATE")
        if lr:
            cfg = replace(cfg, learning_rate=float(lr))
        return cfg


DEFAULT_CONFIG = EngineConfig()
