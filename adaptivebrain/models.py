from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Context:
    """Player situation fed to the bandit; rebuilt before every selection."""

    current_level: int
    recent_accuracy: float = 0.5
    recent_speed: float = 0.5
    session_length_minutes: float = 0.0
    time_of_day: str = "afternoon"
    previous_difficulty_multiplier: float = 1.0
    streak_count: int = 0
    user_type: str = "balanced"
    frustration_level: float = 0.0
    engagement_level: float = 0.5
    success_rate: float = 0.5
    # domain-specific fields (preferred grid size, auditory memory, ...)
    extras: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["extras"] = dict(self.extras)
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Context":
        return Context(
            current_level=int(d["current_level"]),
            recent_accuracy=float(d.get("recent_accuracy", 0.5)),
            recent_speed=float(d.get("recent_speed", 0.5)),
            session_length_minutes=float(d.get("session_length_minutes", 0.0)),
            time_of_day=str(d.get("time_of_day", "afternoon")),
            previous_difficulty_multiplier=float(d.get("previous_difficulty_multiplier", 1.0)),
            streak_count=int(d.get("streak_count", 0)),
            user_type=str(d.get("user_type", "balanced")),
            frustration_level=float(d.get("frustration_level", 0.0)),
            engagement_level=float(d.get("engagement_level", 0.5)),
            success_rate=float(d.get("success_rate", 0.5)),
            extras={k: float(v) for k, v in (d.get("extras") or {}).items()},
        )


@dataclass(frozen=True)
class PerformanceMetrics:
    completed: bool
    accuracy: float
    time_efficiency: float
    engagement: float
    frustration: float
    move_efficiency: float = 0.5
    avg_reaction_time: float = 0.0
    optimal_moves: int = 0
    actual_moves: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionRecord:
    """One round reduced from raw telemetry; kept in the rolling buffer."""

    level: int
    start_time: float
    end_time: float = 0.0
    moves: int = 0
    correct_moves: int = 0
    matches: int = 0
    completed: bool = False
    remaining_time: float = 0.0
    accuracy: float = 0.0
    speed: float = 0.0
    avg_reaction_time: float = 0.0
    move_intervals: List[float] = field(default_factory=list)
    optimal_moves: Optional[int] = None
    difficulty_multiplier: float = 1.0
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def expected_moves(self) -> int:
        if self.optimal_moves is not None:
            return int(self.optimal_moves)
        return self.matches * 2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ActionRewardRecord:
    action: Any
    context: Context
    reward: float
    timestamp: int
