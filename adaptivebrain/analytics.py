from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import SessionRecord
from .utils import clamp, coefficient_of_variation, mean, now_ms

logger = logging.getLogger(__name__)

DEFAULT_CLICK_INTERVAL_MS = 1000.0
SPEED_REFERENCE_MS = 2000.0


# ---------------------- Rolling-buffer reducers ----------------------
def click_consistency(intervals: Sequence[float]) -> float:
    # 1 - coefficient of variation of inter-move intervals
    if len(intervals) < 3:
        return 0.5
    return clamp(1.0 - coefficient_of_variation(intervals), 0.0, 1.0)


def session_engagement(s: SessionRecord) -> float:
    score = 0.4 if s.completed else 0.0
    score += 0.3 * s.accuracy
    score += 0.3 * click_consistency(s.move_intervals)
    return clamp(score, 0.0, 1.0)


def session_frustration(s: SessionRecord) -> float:
    score = 0.0 if s.completed else 0.3
    if s.accuracy < 0.4:
        score += 0.2
    expected = s.expected_moves
    if expected > 0:
        excess = max(0, s.moves - expected)
        score += 0.5 * min(1.0, excess / float(expected))
    return clamp(score, 0.0, 1.0)


def engagement_level(sessions: Sequence[SessionRecord], window: int = 5) -> float:
    recent = list(sessions)[-window:] if window > 0 else []
    return clamp(mean([session_engagement(s) for s in recent], default=0.5), 0.0, 1.0)


def frustration_level(sessions: Sequence[SessionRecord], window: int = 5) -> float:
    recent = list(sessions)[-window:] if window > 0 else []
    return clamp(mean([session_frustration(s) for s in recent], default=0.0), 0.0, 1.0)


class SessionAnalyticsRecorder:
    """
    Collects raw move telemetry for the round in progress and reduces it into a
    SessionRecord when the round ends. Finished rounds go into a bounded
    rolling buffer that the context builder and the reducers above read from.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        history_limit: int = 20,
        window: int = 5,
    ):
        self.clock = clock or now_ms
        self.history_limit = history_limit
        self.window = window
        self.sessions: List[SessionRecord] = []
        self._current: Optional[SessionRecord] = None
        self._move_times: List[float] = []
        self._reaction_times: List[float] = []
        self._origin = 0.0

    @property
    def current(self) -> Optional[SessionRecord]:
        return self._current

    def start_session(
        self,
        level: int,
        optimal_moves: Optional[int] = None,
        difficulty_multiplier: float = 1.0,
        config: Optional[Dict[str, Any]] = None,
        started_at: Optional[float] = None,
    ) -> SessionRecord:
        """
        ``started_at`` is the round start on the clock that will stamp moves
        (a client clock); the first reaction time is measured from it.
        """
        if self._current is not None:
            logger.debug("starting level %d discards an unfinished round", level)
        self._current = SessionRecord(
            level=int(level),
            start_time=float(self.clock()),
            optimal_moves=optimal_moves,
            difficulty_multiplier=float(difficulty_multiplier),
            config=dict(config or {}),
        )
        self._origin = float(started_at) if started_at is not None else self._current.start_time
        self._move_times = []
        self._reaction_times = []
        return self._current

    def record_move(self, is_correct: bool, timestamp: Optional[float] = None) -> None:
        s = self._current
        if s is None:
            return
        t = float(timestamp) if timestamp is not None else float(self.clock())
        prev = self._move_times[-1] if self._move_times else self._origin
        self._reaction_times.append(max(0.0, t - prev))
        self._move_times.append(t)
        s.moves += 1
        if is_correct:
            s.correct_moves += 1

    def record_match(self) -> None:
        if self._current is not None:
            self._current.matches += 1

    def end_session(self, completed: bool, remaining_time: float) -> Optional[SessionRecord]:
        s = self._current
        if s is None:
            return None
        times = self._move_times
        intervals = [b - a for a, b in zip(times, times[1:])]
        avg_interval = mean(intervals, default=DEFAULT_CLICK_INTERVAL_MS)

        s.end_time = float(self.clock())
        s.completed = bool(completed)
        s.remaining_time = max(0.0, float(remaining_time))
        s.accuracy = s.correct_moves / s.moves if s.moves > 0 else 0.0
        s.speed = min(1.0, SPEED_REFERENCE_MS / avg_interval) if avg_interval > 0 else 1.0
        s.avg_reaction_time = mean(self._reaction_times, default=0.0)
        s.move_intervals = intervals

        self.sessions.append(s)
        if len(self.sessions) > self.history_limit:
            self.sessions = self.sessions[-self.history_limit:]
        self._current = None
        self._move_times = []
        self._reaction_times = []
        return s

    def calculate_engagement_level(self) -> float:
        return engagement_level(self.sessions, self.window)

    def calculate_frustration_level(self) -> float:
        return frustration_level(self.sessions, self.window)
