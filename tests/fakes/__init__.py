"""
Fake Implementations for Testing.

This package provides in-memory fake implementations of the storage and
catalog ports for fast, isolated testing. No database or network required.

Features:
- All fakes implement the same Protocol interfaces as real implementations
- The remote store can be taken offline (whole or per table) to exercise
  the local-cache fallback
- Factory functions for common test scenarios

Usage:
    from tests.fakes import FakeRemoteStore, InMemoryLocalCache, create_catalog

    remote = FakeRemoteStore()
    remote.offline = True
"""
from typing import List, Optional

from domain.models import Achievement, MetricType, UnlockCriteria
from infrastructure.catalog import StaticAchievementCatalog

from tests.fakes.local_cache import InMemoryLocalCache
from tests.fakes.remote_store import FakeRemoteStore


# =============================================================================
# Factory Functions
# =============================================================================


def make_achievement(
    achievement_id: str,
    metric_type: MetricType,
    target: float,
    xp_reward: int = 50,
) -> Achievement:
    """Build a catalog entry with only the fields evaluation cares about."""
    return Achievement(
        id=achievement_id,
        name=achievement_id.replace("-", " ").title(),
        xp_reward=xp_reward,
        unlock_criteria=UnlockCriteria(type=metric_type, target=target),
    )


def create_catalog(achievements: Optional[List[Achievement]] = None) -> StaticAchievementCatalog:
    """
    Create a catalog, by default a small one covering every metric type.

    Returns:
        StaticAchievementCatalog in the given order
    """
    if achievements is None:
        achievements = [
            make_achievement("first-workout", MetricType.WORKOUTS, 1, 50),
            make_achievement("workout-warrior", MetricType.WORKOUTS, 50, 200),
            make_achievement("streak-starter", MetricType.STREAK, 3, 75),
            make_achievement("foundation-graduate", MetricType.PROGRAM_COMPLETION, 1, 500),
            make_achievement("nutrition-novice", MetricType.NUTRITION, 100, 150),
            make_achievement("consistent-performer", MetricType.CONSISTENCY, 90, 100),
            make_achievement("perfect-week", MetricType.CONSISTENCY, 100, 200),
        ]
    return StaticAchievementCatalog(achievements)


__all__ = [
    "FakeRemoteStore",
    "InMemoryLocalCache",
    "create_catalog",
    "make_achievement",
]
