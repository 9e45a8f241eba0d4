"""
Domain models for the progress engine.

These models are independent of infrastructure concerns (remote store, local
cache) and serialize to plain JSON so that a record written to one storage
tier can be read back from the other without loss.

These models represent the core business concepts:
- UserProgress: XP, level, program position and unlocked achievements
- UserGamificationStats: streaks, lifetime totals and weekly statistics
- Achievement: read-only catalog entry with its unlock criteria
- ExerciseSetTracking / SetData: per-set workout data
- WorkoutSessionData / CompletedSession: guided sessions and workout history

Usage:
    >>> from domain.models import UserProgress

    >>> progress = UserProgress(user_id="user-1")
    >>> json_str = progress.model_dump_json()
    >>> UserProgress.model_validate_json(json_str) == progress
    True
"""

from domain.models.achievement import (
    Achievement,
    MetricType,
    Rarity,
    Timeframe,
    UnlockCriteria,
)
from domain.models.progress import (
    Challenge,
    ChallengeType,
    UserGamificationStats,
    UserProgress,
    WeeklyStats,
)
from domain.models.set_tracking import (
    CompletedSession,
    ExerciseSetTracking,
    ExerciseSpec,
    SessionStatus,
    SetData,
    SetTrackingPreferences,
    TrainingPreferences,
    WorkoutSessionData,
)

__all__ = [
    # Achievements
    "Achievement",
    "MetricType",
    "Rarity",
    "Timeframe",
    "UnlockCriteria",
    # Progress
    "Challenge",
    "ChallengeType",
    "UserGamificationStats",
    "UserProgress",
    "WeeklyStats",
    # Set tracking
    "CompletedSession",
    "ExerciseSetTracking",
    "ExerciseSpec",
    "SessionStatus",
    "SetData",
    "SetTrackingPreferences",
    "TrainingPreferences",
    "WorkoutSessionData",
]
