from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from .analytics import engagement_level, frustration_level
from .models import Context, SessionRecord
from .utils import clamp, mean, now_ms, time_of_day

if TYPE_CHECKING:
    from .domains import GameDomain

USER_TYPE_MARGIN = 0.15
DEFAULT_STREAK_THRESHOLD = 0.7


def classify_user_type(recent_speed: float, recent_accuracy: float, margin: float = USER_TYPE_MARGIN) -> str:
    if recent_speed > recent_accuracy + margin:
        return "speed_focused"
    if recent_accuracy > recent_speed + margin:
        return "accuracy_focused"
    return "balanced"


def streak_count(sessions: Sequence[SessionRecord], threshold: float = DEFAULT_STREAK_THRESHOLD) -> int:
    streak = 0
    for s in reversed(sessions):
        if s.completed and s.accuracy > threshold:
            streak += 1
        else:
            break
    return streak


def build_context(
    level: int,
    session_history: Sequence[SessionRecord],
    domain: Optional["GameDomain"] = None,
    now: Optional[float] = None,
    window: int = 5,
) -> Context:
    """
    Summarise the last ``window`` reduced sessions into a Context.

    Pure apart from the wall clock (``now`` in epoch ms overrides it). An empty
    history gives neutral defaults: 0.5 accuracy and speed, no streak.
    """
    ts = now if now is not None else now_ms()
    sessions = list(session_history)
    recent = sessions[-window:] if window > 0 else []

    accuracy = clamp(mean([s.accuracy for s in recent], default=0.5), 0.0, 1.0)
    speed = clamp(mean([s.speed for s in recent], default=0.5), 0.0, 1.0)
    length_min = max(0.0, (ts - sessions[0].start_time) / 60000.0) if sessions else 0.0
    prev_mult = recent[-1].difficulty_multiplier if recent else 1.0
    threshold = domain.streak_threshold if domain is not None else DEFAULT_STREAK_THRESHOLD
    success = mean([1.0 if s.completed else 0.0 for s in recent], default=0.5)

    return Context(
        current_level=max(1, int(level)),
        recent_accuracy=accuracy,
        recent_speed=speed,
        session_length_minutes=length_min,
        time_of_day=time_of_day(ts),
        previous_difficulty_multiplier=prev_mult if prev_mult > 0 else 1.0,
        streak_count=streak_count(recent, threshold),
        user_type=classify_user_type(speed, accuracy),
        frustration_level=frustration_level(recent, window),
        engagement_level=engagement_level(recent, window),
        success_rate=success,
        extras=domain.context_extras(recent) if domain is not None else {},
    )
