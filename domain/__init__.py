"""
Domain layer for the progress engine.

This package contains pure domain models that are independent of
infrastructure concerns (remote store, local cache, presentation layer).
"""

from domain.models import (
    Achievement,
    ExerciseSetTracking,
    MetricType,
    SetData,
    UserGamificationStats,
    UserProgress,
    WeeklyStats,
    WorkoutSessionData,
)

__all__ = [
    "Achievement",
    "ExerciseSetTracking",
    "MetricType",
    "SetData",
    "UserGamificationStats",
    "UserProgress",
    "WeeklyStats",
    "WorkoutSessionData",
]
