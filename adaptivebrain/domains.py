"""
Game domains the engine is instantiated for.

Each domain contributes an Action dataclass, its catalog over levels 1-25,
the domain-specific context fields appended to the feature vector, and the
theoretical move minimum used by the frustration heuristic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple, Type

import numpy as np

from .actions import ActionCatalog, action_from_dict
from .features import FeatureSpec, feature_dim, featurize
from .models import Context, SessionRecord
from .utils import clamp, mean

LEVELS = range(1, 26)


class UnknownDomainError(KeyError):
    pass


@dataclass(frozen=True)
class InsightMessages:
    excellent: str
    good: str
    frustrated: str
    struggling: str
    steady: str


@dataclass(frozen=True)
class GameDomain:
    key: str
    title: str
    storage_key: str
    action_type: Type[Any]
    catalog: ActionCatalog
    extra_features: Tuple[FeatureSpec, ...]
    streak_threshold: float
    optimal_moves: Callable[[Any], int]
    context_extras: Callable[[Sequence[SessionRecord]], Dict[str, float]]
    insights: InsightMessages

    @property
    def feature_dim(self) -> int:
        return feature_dim(self.extra_features)

    def featurize(self, context: Context, max_level: int = 25) -> np.ndarray:
        return featurize(context, self.extra_features, max_level)

    def time_limit(self, action: Any) -> float:
        return float(getattr(action, "time_limit", 120))

    def action_from_dict(self, d: Dict[str, Any]) -> Any:
        return action_from_dict(self.action_type, d)


def _last_config_value(sessions: Sequence[SessionRecord], name: str, default: float) -> float:
    for s in reversed(sessions):
        if name in s.config:
            return float(s.config[name])
    return default


# ---------------------- Matching pairs ----------------------
@dataclass(frozen=True)
class MatchingAction:
    grid_size: int
    time_limit: int
    symbol_count: int
    flip_duration: int
    preview_time: int
    difficulty_multiplier: float
    hint_enabled: bool


def _matching_level(level: int) -> List[MatchingAction]:
    grid = min(4 + (level - 1) // 3, 8)
    symbols = min(grid * grid // 2, 12)
    out: List[MatchingAction] = []
    for time_mod in (0.8, 1.0, 1.2):
        for speed_mod in (0.8, 1.0, 1.2):
            out.append(MatchingAction(
                grid_size=grid,
                time_limit=int(round((60 + level * 10) * time_mod)),
                symbol_count=symbols,
                flip_duration=int(round(1000 * speed_mod)),
                preview_time=max(1000, 3000 - level * 50),
                difficulty_multiplier=round(1 + (level - 1) * 0.1, 2),
                hint_enabled=time_mod > 1.0,
            ))
    return out


def _matching_extras(sessions: Sequence[SessionRecord]) -> Dict[str, float]:
    return {"preferred_grid_size": _last_config_value(sessions, "grid_size", 4)}


MATCHING = GameDomain(
    key="matching",
    title="Matching pairs",
    storage_key="matching_bandit_state",
    action_type=MatchingAction,
    catalog=ActionCatalog.generate(_matching_level, LEVELS),
    extra_features=(FeatureSpec("preferred_grid_size", 4, 8),),
    streak_threshold=0.7,
    optimal_moves=lambda a: a.symbol_count * 2,
    context_extras=_matching_extras,
    insights=InsightMessages(
        excellent="Sharp memory! Bigger boards are coming.",
        good="Nice matching. Try to remember where each card was.",
        frustrated="Slow down and use the preview to memorise the board.",
        struggling="Focus on one corner of the board at a time.",
        steady="Keep going - consistency builds memory.",
    ),
)


# ---------------------- Tone sequence ----------------------
@dataclass(frozen=True)
class ToneSequenceAction:
    sequence_length: int
    trial_count: int
    tone_count: int
    playback_speed: float
    repeat_allowed: bool
    time_limit: int
    difficulty_multiplier: float
    level: int


def _tone_level(level: int) -> List[ToneSequenceAction]:
    seq = min(3 + (level - 1) // 4, 12)
    trials = 4 + level // 3
    tones = min(4 + (level - 1) // 6, 8)
    base_time = 60 + level * 10
    variations = [
        (1.2, 0.8, True, tones),
        (1.0, 1.0, False, tones),
        (0.8, 1.2, False, min(tones + 1, 8)),
    ]
    out: List[ToneSequenceAction] = []
    for idx, (time_mod, speed, repeat, tone_count) in enumerate(variations):
        out.append(ToneSequenceAction(
            sequence_length=seq,
            trial_count=trials,
            tone_count=tone_count,
            playback_speed=speed,
            repeat_allowed=repeat,
            time_limit=int(round(base_time * time_mod)),
            difficulty_multiplier=round(1 + (level - 1) * 0.08 + idx * 0.05, 2),
            level=level,
        ))
    return out


def auditory_memory_strength(sessions: Sequence[SessionRecord], start: float = 0.5) -> float:
    strength = start
    for s in sessions:
        wrong = s.moves - s.correct_moves
        strength = clamp(strength + 0.02 * s.correct_moves - 0.01 * wrong, 0.0, 1.0)
    return strength


def _tone_extras(sessions: Sequence[SessionRecord]) -> Dict[str, float]:
    return {
        "preferred_sequence_length": _last_config_value(sessions, "sequence_length", 4),
        "auditory_memory_strength": auditory_memory_strength(sessions),
        "avg_response_time": mean([s.avg_reaction_time for s in sessions if s.moves > 0], default=2000.0),
    }


TONE_SEQUENCE = GameDomain(
    key="tone_sequence",
    title="Tone sequence",
    storage_key="tone_sequence_bandit_state",
    action_type=ToneSequenceAction,
    catalog=ActionCatalog.generate(_tone_level, LEVELS),
    extra_features=(
        FeatureSpec("preferred_sequence_length", 4, 12),
        FeatureSpec("auditory_memory_strength", 0.5),
        FeatureSpec("avg_response_time", 2000.0, 5000.0),
    ),
    streak_threshold=0.6,
    optimal_moves=lambda a: a.sequence_length * a.trial_count,
    context_extras=_tone_extras,
    insights=InsightMessages(
        excellent="Exceptional auditory memory! Advancing to longer sequences.",
        good="Great listening skills! Keep building your memory.",
        frustrated="Take a breath - focus on the rhythm of tones.",
        struggling="Try visualizing the tones as colors.",
        steady="Practice makes perfect - keep training!",
    ),
)


# ---------------------- Disk puzzle ----------------------
@dataclass(frozen=True)
class DiskPuzzleAction:
    disk_count: int
    time_limit: int
    show_move_counter: bool
    show_optimal_moves: bool
    hint_enabled: bool
    difficulty_multiplier: float
    level: int


def _disk_level(level: int) -> List[DiskPuzzleAction]:
    disks = min(3 + (level - 1) // 5, 9)
    base_time = 60 + level * 30
    variations = [
        (1.2, True, True, True),
        (1.0, True, False, False),
        (0.8, False, False, False),
    ]
    out: List[DiskPuzzleAction] = []
    for idx, (time_mod, counter, optimal, hint) in enumerate(variations):
        out.append(DiskPuzzleAction(
            disk_count=disks,
            time_limit=int(round(base_time * time_mod)),
            show_move_counter=counter,
            show_optimal_moves=optimal,
            hint_enabled=hint,
            difficulty_multiplier=round(1 + (level - 1) * 0.08 + idx * 0.05, 2),
            level=level,
        ))
    return out


def move_efficiency(optimal_moves: int, actual_moves: int) -> float:
    if actual_moves <= 0 or optimal_moves <= 0:
        return 0.5
    return min(1.0, optimal_moves / float(actual_moves))


def _disk_extras(sessions: Sequence[SessionRecord]) -> Dict[str, float]:
    eff = [move_efficiency(s.expected_moves, s.moves) for s in sessions if s.moves > 0]
    return {
        "preferred_disk_count": _last_config_value(sessions, "disk_count", 3),
        "avg_move_efficiency": mean(eff, default=0.5),
    }


DISK_PUZZLE = GameDomain(
    key="disk_puzzle",
    title="Disk puzzle",
    storage_key="disk_puzzle_bandit_state",
    action_type=DiskPuzzleAction,
    catalog=ActionCatalog.generate(_disk_level, LEVELS),
    extra_features=(
        FeatureSpec("preferred_disk_count", 3, 9),
        FeatureSpec("avg_move_efficiency", 0.5),
    ),
    streak_threshold=0.6,
    optimal_moves=lambda a: 2 ** a.disk_count - 1,
    context_extras=_disk_extras,
    insights=InsightMessages(
        excellent="Excellent planning! Ready for more complex puzzles.",
        good="Good progress! Focus on move efficiency.",
        frustrated="Take your time - planning is key!",
        struggling="Try to minimize moves by planning ahead.",
        steady="Keep practicing to improve your strategy!",
    ),
)


DOMAINS: Dict[str, GameDomain] = {d.key: d for d in (MATCHING, TONE_SEQUENCE, DISK_PUZZLE)}


def get_domain(key: str) -> GameDomain:
    try:
        return DOMAINS[key]
    except KeyError:
        raise UnknownDomainError(key) from None
