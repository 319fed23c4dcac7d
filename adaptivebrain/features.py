from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .models import Context
from .utils import TIMES_OF_DAY, USER_TYPES, clamp, one_hot

# level, accuracy, speed, session hours, prev multiplier, streak,
# frustration, engagement, success rate, time of day (3), user type (3)
BASE_FEATURE_DIM = 9 + len(TIMES_OF_DAY) + len(USER_TYPES)


@dataclass(frozen=True)
class FeatureSpec:
    """Domain-specific context field appended to the base feature vector."""

    name: str
    default: float
    scale: float = 1.0

    def encode(self, context: Context) -> float:
        v = float(context.extras.get(self.name, self.default))
        return clamp(v / self.scale, 0.0, 1.0)


def base_features(context: Context, max_level: int = 25) -> np.ndarray:
    head = np.array([
        context.current_level / float(max_level),
        context.recent_accuracy,
        context.recent_speed,
        context.session_length_minutes / 60.0,
        context.previous_difficulty_multiplier,
        context.streak_count / 10.0,
        context.frustration_level,
        context.engagement_level,
        context.success_rate,
    ], dtype=np.float64)
    tod = one_hot(_index(TIMES_OF_DAY, context.time_of_day), len(TIMES_OF_DAY))
    ut = one_hot(_index(USER_TYPES, context.user_type), len(USER_TYPES))
    return np.concatenate([head, tod, ut])


def featurize(context: Context, extras: Sequence[FeatureSpec] = (), max_level: int = 25) -> np.ndarray:
    base = base_features(context, max_level)
    if not extras:
        return base
    tail = np.array([spec.encode(context) for spec in extras], dtype=np.float64)
    return np.concatenate([base, tail])


def feature_dim(extras: Sequence[FeatureSpec] = ()) -> int:
    return BASE_FEATURE_DIM + len(extras)


def _index(options: Sequence[str], value: str) -> int:
    try:
        return options.index(value)
    except ValueError:
        return -1
