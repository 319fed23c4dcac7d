from __future__ import annotations

from .models import PerformanceMetrics
from .utils import clamp

REWARD_MIN = -100.0
REWARD_MAX = 100.0

COMPLETION_BONUS = 50.0
ACCURACY_WEIGHT = 30.0
TIME_WEIGHT = 20.0
ENGAGEMENT_WEIGHT = 15.0
FRUSTRATION_PENALTY = 25.0


def calculate_reward(metrics: PerformanceMetrics) -> float:
    reward = COMPLETION_BONUS if metrics.completed else 0.0
    reward += metrics.accuracy * ACCURACY_WEIGHT
    reward += metrics.time_efficiency * TIME_WEIGHT
    reward += metrics.engagement * ENGAGEMENT_WEIGHT
    reward -= metrics.frustration * FRUSTRATION_PENALTY
    return clamp(reward, REWARD_MIN, REWARD_MAX)
