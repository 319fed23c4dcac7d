from __future__ import annotations

import time
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

TIMES_OF_DAY = ("morning", "afternoon", "evening")
USER_TYPES = ("speed_focused", "accuracy_focused", "balanced")


def now_ms() -> float:
    return time.time() * 1000.0


def one_hot(i: int, n: int) -> np.ndarray:
    v = np.zeros(n, dtype=np.float64)
    if 0 <= i < n:
        v[i] = 1.0
    return v


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def mean(values: Sequence[float], default: float = 0.0) -> float:
    if not values:
        return default
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def time_of_day(ts_ms: Optional[float] = None) -> str:
    """Bucket the local wall-clock hour of ``ts_ms`` (default: now)."""
    ts = (ts_ms if ts_ms is not None else now_ms()) / 1000.0
    hour = datetime.fromtimestamp(ts).hour
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


def coefficient_of_variation(values: Sequence[float]) -> float:
    x = np.asarray(values, dtype=np.float64)
    mu = float(np.mean(x))
    if mu <= 0:
        return 0.0
    return float(np.std(x) / mu)
