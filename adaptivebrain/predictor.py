from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .bandit import EpsilonGreedyBandit
from .models import Context


@dataclass(frozen=True)
class LevelRecommendation:
    level: int
    direction: str  # easier / same / harder
    insight: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LevelPredictor:
    """Single entry point for the game UI: next level, trend and a hint."""

    def __init__(self, bandit: EpsilonGreedyBandit):
        self.bandit = bandit

    def recommend(self, context: Context) -> LevelRecommendation:
        return LevelRecommendation(
            level=self.bandit.get_optimal_level(context),
            direction=self.bandit.predict_next_difficulty(context),
            insight=self.bandit.get_performance_insight(context),
        )
