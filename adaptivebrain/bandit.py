from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

import numpy as np

from .actions import action_key, action_to_dict
from .config import DEFAULT_CONFIG, EngineConfig
from .domains import GameDomain
from .models import ActionRewardRecord, Context, PerformanceMetrics
from .reward import REWARD_MAX, REWARD_MIN, calculate_reward
from .storage import StateStorage
from .utils import clamp, mean, now_ms

logger = logging.getLogger(__name__)

DIRECTIONS = ("easier", "same", "harder")
PROGRESS_THRESHOLD = 60.0
REGRESS_THRESHOLD = 20.0


class EpsilonGreedyBandit:
    """
    Epsilon-greedy contextual bandit over a domain's action catalog.

    Each action key owns a linear weight vector; the expected reward of an
    action is the dot product of its weights with the featurized context.
    After every round the chosen action's weights take one gradient step on
    the squared prediction error. This is plain online linear
    regression on the immediate reward.

    State (weights, epsilon, bounded history) is written to storage on every
    update and read back at construction.
    """

    def __init__(
        self,
        domain: GameDomain,
        storage: Optional[StateStorage] = None,
        config: Optional[EngineConfig] = None,
        seed: Optional[int] = None,
    ):
        self.domain = domain
        self.catalog = domain.catalog
        self.config = config or DEFAULT_CONFIG
        self.storage = storage if storage is not None else StateStorage()
        self.rng = random.Random(seed)

        self.feature_dim = domain.feature_dim
        self.learning_rate = self.config.learning_rate
        self.epsilon = self.config.initial_epsilon
        self.weights: Dict[str, np.ndarray] = {}
        self.history: List[ActionRewardRecord] = []

        self._load()

    # ---------------------- Public API ----------------------
    def featurize(self, context: Context) -> np.ndarray:
        return self.domain.featurize(context, self.config.max_level)

    def predict_reward(self, context: Context, action: Any) -> float:
        w = self._weights_for(action_key(action))
        if w is None:
            return 0.0
        return float(w @ self.featurize(context))

    def select_action(self, context: Context) -> Any:
        if self.rng.random() < self.epsilon:
            action = self.rng.choice(self.catalog.actions)
            logger.debug("[%s] exploring: %s", self.domain.key, action_key(action))
            return action

        x = self.featurize(context)
        scores = np.array([self._score(k, x) for k in self.catalog.keys], dtype=np.float64)
        best = int(np.argmax(scores))  # first maximum wins ties
        logger.debug("[%s] exploiting: %s (%.2f)", self.domain.key, self.catalog.keys[best], scores[best])
        return self.catalog[best]

    def update_model(
        self,
        context: Context,
        action: Any,
        reward: float,
        metrics: Optional[PerformanceMetrics] = None,
    ) -> None:
        reward = clamp(float(reward), REWARD_MIN, REWARD_MAX)
        key = action_key(action)
        x = self.featurize(context)
        w = self._weights_for(key)
        if w is None:
            w = np.zeros(self.feature_dim, dtype=np.float64)

        prediction = float(w @ x)
        error = reward - prediction
        self.weights[key] = w + self.learning_rate * error * x

        self.history.append(ActionRewardRecord(
            action=action,
            context=context,
            reward=reward,
            timestamp=int(now_ms()),
        ))
        if len(self.history) > self.config.history_limit:
            self.history = self.history[-self.config.history_limit:]

        self.epsilon = max(self.config.min_epsilon, self.epsilon * self.config.epsilon_decay)
        self._save()

        logger.debug(
            "[%s] updated %s: reward=%.1f error=%.2f epsilon=%.4f completed=%s",
            self.domain.key, key, reward, error, self.epsilon,
            metrics.completed if metrics is not None else None,
        )

    def calculate_reward(self, metrics: PerformanceMetrics) -> float:
        return calculate_reward(metrics)

    def get_optimal_level(self, context: Context) -> int:
        max_level = self.config.max_level
        level = min(max(1, int(context.current_level)), max_level)
        rewards = self.recent_rewards(self.config.level_window)
        if not rewards:
            return level
        avg = mean(rewards)
        if avg > PROGRESS_THRESHOLD:
            return min(level + 1, max_level)
        if avg < REGRESS_THRESHOLD:
            return max(level - 1, 1)
        return level

    def predict_next_difficulty(self, context: Context) -> str:
        optimal = self.get_optimal_level(context)
        if optimal > context.current_level:
            return "harder"
        if optimal < context.current_level:
            return "easier"
        return "same"

    def get_performance_insight(self, context: Context) -> str:
        msgs = self.domain.insights
        rewards = self.recent_rewards(self.config.level_window)
        if not rewards:
            return msgs.steady
        avg = mean(rewards)
        if avg > PROGRESS_THRESHOLD:
            return msgs.excellent
        if avg >= 40.0:
            return msgs.good
        if context.frustration_level > 0.6:
            return msgs.frustrated
        if avg < REGRESS_THRESHOLD:
            return msgs.struggling
        return msgs.steady

    def get_stats(self) -> Dict[str, Any]:
        rewards = self.recent_rewards(self.config.stats_window)
        avg = mean(rewards) if rewards else None
        if avg is None:
            skill = 1
        else:
            # map [-100, 100] onto levels 1..max_level
            skill = int(round(1 + (self.config.max_level - 1) * (avg - REWARD_MIN) / (REWARD_MAX - REWARD_MIN)))
        return {
            "epsilon": self.epsilon,
            "skill_level": skill,
            "total_pulls": len(self.history),
            "recent_average_reward": avg,
            "explored_actions": len(self.weights),
        }

    def recent_rewards(self, n: int) -> List[float]:
        if n <= 0:
            return []
        return [r.reward for r in self.history[-n:]]

    def reset(self) -> None:
        self.weights = {}
        self.history = []
        self.epsilon = self.config.initial_epsilon
        self.storage.delete_state(self.domain.storage_key)
        logger.info("[%s] bandit reset", self.domain.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": [
                {
                    "action": action_to_dict(r.action),
                    "context": r.context.to_dict(),
                    "reward": r.reward,
                    "timestamp": r.timestamp,
                }
                for r in self.history[-self.config.history_limit:]
            ],
            "weights": [[k, w] for k, w in self.weights.items()],
            "epsilon": self.epsilon,
        }

    # ---------------------- Internal helpers ----------------------
    def _score(self, key: str, x: np.ndarray) -> float:
        w = self._weights_for(key)
        return float(w @ x) if w is not None else 0.0

    def _weights_for(self, key: str) -> Optional[np.ndarray]:
        w = self.weights.get(key)
        if w is None:
            return None
        if w.shape != (self.feature_dim,):
            # stale schema: behave as if this action had never been pulled
            logger.debug("[%s] ignoring %s weights of shape %s", self.domain.key, key, w.shape)
            return None
        return w

    def _save(self) -> None:
        self.storage.save_state(self.domain.storage_key, self.to_dict())

    def _load(self) -> None:
        payload = self.storage.load_state(self.domain.storage_key)
        if payload is None:
            return
        try:
            history = [
                ActionRewardRecord(
                    action=self.domain.action_from_dict(h.action),
                    context=Context.from_dict(h.context.model_dump()),
                    reward=h.reward,
                    timestamp=h.timestamp,
                )
                for h in payload.history
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("[%s] discarding persisted state: %s", self.domain.key, e)
            return
        self.history = history[-self.config.history_limit:]
        self.weights = {k: np.asarray(v, dtype=np.float64) for k, v in payload.weights}
        self.epsilon = clamp(payload.epsilon, self.config.min_epsilon, 1.0)
        logger.info(
            "[%s] loaded state: %d records, %d weight vectors, epsilon=%.3f",
            self.domain.key, len(self.history), len(self.weights), self.epsilon,
        )
