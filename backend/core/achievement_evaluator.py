"""
Achievement Evaluator.

Decides which catalog achievements a metric value qualifies for and records
the unlocks on the user's progress record. Every qualifying achievement of a
pass unlocks at once: the ids and the summed XP reward go into a single
progress write, and the level is recomputed in that same write.
"""
from typing import Iterable, List
import logging

from application.exceptions import ProgressUnavailableError
from application.gateway import GAMIFICATION_STATS, PROGRESS, ProgressGateway
from application.ports.achievement_catalog import AchievementCatalog
from backend.core.level_calculator import apply_xp
from domain.models import (
    Achievement,
    MetricType,
    UserGamificationStats,
    UserProgress,
)

logger = logging.getLogger(__name__)


def select_unlockable(
    metric_type: MetricType,
    current_value: float,
    unlocked: Iterable[str],
    catalog: Iterable[Achievement],
) -> List[Achievement]:
    """
    Pick the achievements that unlock for a metric value.

    Args:
        metric_type: Metric being evaluated
        current_value: Its current value
        unlocked: Ids the user already holds
        catalog: Achievements in catalog order

    Returns:
        Qualifying achievements in catalog order (never sorted by target)
    """
    metric_type = MetricType(metric_type)
    held = set(unlocked)
    return [
        achievement
        for achievement in catalog
        if achievement.metric_type == metric_type
        and achievement.target <= current_value
        and achievement.id not in held
    ]


def metric_value(
    metric_type: MetricType,
    stats: UserGamificationStats,
    progress: UserProgress,
) -> float:
    """Current value of a metric as recorded on the user's stats and progress."""
    metric_type = MetricType(metric_type)
    if metric_type == MetricType.WORKOUTS:
        return stats.total_workouts
    if metric_type == MetricType.STREAK:
        return stats.current_streak
    if metric_type == MetricType.NUTRITION:
        return stats.total_nutrition_goals
    if metric_type == MetricType.CONSISTENCY:
        return stats.weekly_stats.consistency_percentage
    return len(progress.programs_completed)


async def read_progress(gateway: ProgressGateway, user_id: str) -> UserProgress:
    """
    Resolve the progress record XP is added to.

    Raises:
        ProgressUnavailableError: No record can be resolved for the user
    """
    if not user_id or not user_id.strip():
        raise ProgressUnavailableError("Cannot resolve progress without a user id")
    progress = await gateway.read(PROGRESS, user_id)
    if progress is None:
        raise ProgressUnavailableError(f"No progress record for user {user_id}")
    return progress


class AchievementEvaluator:
    """Evaluates and records achievement unlocks for one catalog."""

    def __init__(self, gateway: ProgressGateway, catalog: AchievementCatalog):
        self._gateway = gateway
        self._catalog = catalog

    async def check_achievements(
        self,
        user_id: str,
        metric_type: MetricType,
        current_value: float,
    ) -> List[str]:
        """
        Unlock every achievement `current_value` qualifies for.

        Calling this again with the same value is a no-op, since ids already
        held are never candidates.

        Returns:
            Newly unlocked achievement ids, in catalog order
        """
        progress = await read_progress(self._gateway, user_id)
        catalog = await self._catalog.list_achievements()
        unlocked = select_unlockable(
            metric_type, current_value, progress.achievements_unlocked, catalog
        )
        if not unlocked:
            return []

        ids = [achievement.id for achievement in unlocked]
        reward = sum(achievement.xp_reward for achievement in unlocked)
        updated = apply_xp(progress, reward).model_copy(
            update={"achievements_unlocked": progress.achievements_unlocked + ids}
        )
        await self._gateway.write(PROGRESS, user_id, updated)

        logger.info(
            f"User {user_id} unlocked {ids} on {MetricType(metric_type).value}={current_value} "
            f"(+{reward} XP, level {progress.current_level} -> {updated.current_level})"
        )
        return ids

    async def achievement_progress(self, user_id: str, achievement_id: str) -> float:
        """
        Percentage (0-100) toward an achievement.

        Unknown achievements report 0; unlocked ones report 100.
        """
        achievement = await self._catalog.get(achievement_id)
        if achievement is None:
            return 0.0

        progress = await read_progress(self._gateway, user_id)
        if progress.has_achievement(achievement_id):
            return 100.0

        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        value = metric_value(achievement.metric_type, stats, progress)
        return min(100.0, value / achievement.target * 100)
