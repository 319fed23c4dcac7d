from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .actions import action_key, action_to_dict
from .analytics import SessionAnalyticsRecorder
from .bandit import EpsilonGreedyBandit
from .config import DEFAULT_CONFIG, EngineConfig
from .context import build_context
from .domains import GameDomain, get_domain, move_efficiency
from .models import Context, PerformanceMetrics, SessionRecord
from .predictor import LevelPredictor, LevelRecommendation
from .storage import StateStorage, get_store
from .utils import clamp, now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundOutcome:
    session: SessionRecord
    metrics: PerformanceMetrics
    reward: float
    recommendation: LevelRecommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session": self.session.to_dict(),
            "metrics": self.metrics.to_dict(),
            "reward": self.reward,
            "recommendation": self.recommendation.to_dict(),
        }


class DifficultyEngine:
    """
    Adaptive difficulty for one game domain.

    - start_round: builds the context from recent rounds and asks the bandit
      for a configuration
    - record_move / record_match: raw telemetry while the round is played
    - finish_round: reduces telemetry to metrics, scores the round, updates
      the bandit and recommends the next level

    Time values passed in (remaining_time) use the same unit as the action's
    time_limit (seconds); move timestamps are epoch milliseconds.
    """

    def __init__(
        self,
        domain: Union[GameDomain, str],
        storage: Optional[StateStorage] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        seed: Optional[int] = None,
    ):
        self.domain = domain if isinstance(domain, GameDomain) else get_domain(domain)
        self.config = config or DEFAULT_CONFIG
        self.clock = clock or now_ms
        self.storage = storage if storage is not None else StateStorage()

        self.bandit = EpsilonGreedyBandit(self.domain, self.storage, self.config, seed=seed)
        self.recorder = SessionAnalyticsRecorder(
            clock=self.clock,
            history_limit=self.config.session_buffer,
            window=self.config.context_window,
        )
        self.predictor = LevelPredictor(self.bandit)
        self._pending: Optional[Tuple[Context, Any]] = None

    # ---------------------- Public API ----------------------
    def context(self, level: int) -> Context:
        return build_context(
            level,
            self.recorder.sessions,
            domain=self.domain,
            now=self.clock(),
            window=self.config.context_window,
        )

    def start_round(self, level: int, started_at: Optional[float] = None) -> Any:
        ctx = self.context(level)
        action = self.bandit.select_action(ctx)
        self.recorder.start_session(
            ctx.current_level,
            optimal_moves=self.domain.optimal_moves(action),
            difficulty_multiplier=getattr(action, "difficulty_multiplier", 1.0),
            config=action_to_dict(action),
            started_at=started_at,
        )
        self._pending = (ctx, action)
        return action

    def record_move(self, is_correct: bool, timestamp: Optional[float] = None) -> None:
        self.recorder.record_move(is_correct, timestamp)

    def record_match(self) -> None:
        self.recorder.record_match()

    def finish_round(self, completed: bool, remaining_time: float) -> Optional[RoundOutcome]:
        if self._pending is None:
            return None
        ctx, action = self._pending
        session = self.recorder.end_session(completed, remaining_time)
        self._pending = None
        if session is None:
            return None

        metrics = self.metrics_for(session, action)
        reward = self.bandit.calculate_reward(metrics)
        self.bandit.update_model(ctx, action, reward, metrics)
        recommendation = self.predictor.recommend(self.context(session.level))
        logger.debug(
            "[%s] round %s finished: reward=%.1f next=%d (%s)",
            self.domain.key, action_key(action), reward, recommendation.level, recommendation.direction,
        )
        return RoundOutcome(session=session, metrics=metrics, reward=reward, recommendation=recommendation)

    def abandon_round(self) -> Optional[RoundOutcome]:
        return self.finish_round(False, 0)

    def metrics_for(self, session: SessionRecord, action: Any) -> PerformanceMetrics:
        limit = self.domain.time_limit(action)
        time_eff = clamp(session.remaining_time / limit, 0.0, 1.0) if limit > 0 else 0.0
        optimal = session.expected_moves
        return PerformanceMetrics(
            completed=session.completed,
            accuracy=session.accuracy,
            time_efficiency=time_eff,
            engagement=self.recorder.calculate_engagement_level(),
            frustration=self.recorder.calculate_frustration_level(),
            move_efficiency=move_efficiency(optimal, session.moves),
            avg_reaction_time=session.avg_reaction_time,
            optimal_moves=optimal,
            actual_moves=session.moves,
        )

    def recommend(self, level: int) -> LevelRecommendation:
        return self.predictor.recommend(self.context(level))

    def stats(self) -> Dict[str, Any]:
        return self.bandit.get_stats()

    @property
    def round_in_progress(self) -> bool:
        return self._pending is not None


def build_engine(
    domain_key: str,
    config: Optional[EngineConfig] = None,
    storage: Optional[StateStorage] = None,
    seed: Optional[int] = None,
) -> DifficultyEngine:
    """Engine wired to the configured key-value store (files or Redis)."""
    cfg = config or EngineConfig.from_env()
    if storage is None:
        storage = StateStorage(get_store(cfg))
    return DifficultyEngine(domain_key, storage=storage, config=cfg, seed=seed)
