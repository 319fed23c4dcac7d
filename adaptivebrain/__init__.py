from .actions import ActionCatalog, action_key
from .analytics import SessionAnalyticsRecorder
from .bandit import EpsilonGreedyBandit
from .config import EngineConfig
from .context import build_context
from .core import DifficultyEngine, RoundOutcome, build_engine
from .domains import (
    DISK_PUZZLE,
    DOMAINS,
    MATCHING,
    TONE_SEQUENCE,
    DiskPuzzleAction,
    GameDomain,
    MatchingAction,
    ToneSequenceAction,
    UnknownDomainError,
    get_domain,
)
from .models import ActionRewardRecord, Context, PerformanceMetrics, SessionRecord
from .predictor import LevelPredictor, LevelRecommendation
from .reward import calculate_reward
from .storage import FileStore, MemoryStore, RedisStore, StateStorage, get_store

__all__ = [
    "ActionCatalog",
    "ActionRewardRecord",
    "Context",
    "DISK_PUZZLE",
    "DOMAINS",
    "DifficultyEngine",
    "DiskPuzzleAction",
    "EngineConfig",
    "EpsilonGreedyBandit",
    "FileStore",
    "GameDomain",
    "LevelPredictor",
    "LevelRecommendation",
    "MATCHING",
    "MatchingAction",
    "MemoryStore",
    "PerformanceMetrics",
    "RedisStore",
    "RoundOutcome",
    "SessionAnalyticsRecorder",
    "SessionRecord",
    "StateStorage",
    "TONE_SEQUENCE",
    "ToneSequenceAction",
    "UnknownDomainError",
    "action_key",
    "build_context",
    "build_engine",
    "calculate_reward",
    "get_domain",
    "get_store",
]
