from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import EngineConfig
from .core import DifficultyEngine, RoundOutcome
from .storage import StateStorage
from .utils import clamp, mean, now_ms


class SimClock:
    """Manually advanced millisecond clock shared by engine and player."""

    def __init__(self, start: Optional[float] = None):
        self.t = float(start if start is not None else now_ms())

    def __call__(self) -> float:
        return self.t

    def advance(self, ms: float) -> float:
        self.t += ms
        return self.t


@dataclass
class SimulatedPlayer:
    skill: float = 0.6
    seed: Optional[int] = None
    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self):
        self.rng = random.Random(self.seed)

    def success_probability(self, action: Any) -> float:
        # multipliers run from 1.0 up to ~3.4 across the catalogs
        difficulty = float(getattr(action, "difficulty_multiplier", 1.0))
        return clamp(0.5 + self.skill - (difficulty - 1.0) / 2.5, 0.05, 0.98)

    def play_round(self, engine: DifficultyEngine, level: int, clock: SimClock) -> Optional[RoundOutcome]:
        action = engine.start_round(level)
        p = self.success_probability(action)
        needed = max(1, engine.domain.optimal_moves(action))
        limit_ms = engine.domain.time_limit(action) * 1000.0
        max_moves = needed * 3

        elapsed = 0.0
        correct = moves = 0
        while correct < needed and moves < max_moves:
            gap = self.rng.uniform(400.0, 1600.0) / max(0.3, self.skill + 0.2)
            if elapsed + gap > limit_ms:
                break
            elapsed += gap
            ok = self.rng.random() < p
            engine.record_move(ok, clock.advance(gap))
            moves += 1
            if ok:
                correct += 1
                if engine.domain.key == "matching" and correct % 2 == 0:
                    engine.record_match()

        if correct < needed:
            # ran out of time or patience: a timeout
            return engine.finish_round(False, 0)
        return engine.finish_round(True, (limit_ms - elapsed) / 1000.0)


def run_simulation(
    domain_key: str,
    rounds: int = 50,
    skill: float = 0.6,
    seed: Optional[int] = 0,
    storage: Optional[StateStorage] = None,
    config: Optional[EngineConfig] = None,
) -> Dict[str, Any]:
    clock = SimClock(start=0.0)
    engine = DifficultyEngine(domain_key, storage=storage, config=config, clock=clock, seed=seed)
    player = SimulatedPlayer(skill=skill, seed=seed)
    level = 1
    levels: List[int] = []
    rewards: List[float] = []
    for _ in range(rounds):
        outcome = player.play_round(engine, level, clock)
        if outcome is None:
            break
        rewards.append(outcome.reward)
        level = outcome.recommendation.level
        levels.append(level)
        clock.advance(5000.0)
    return {
        "domain": domain_key,
        "rounds": len(rewards),
        "levels": levels,
        "rewards": rewards,
        "mean_reward": mean(rewards),
        "final_level": level,
        "stats": engine.stats(),
    }
