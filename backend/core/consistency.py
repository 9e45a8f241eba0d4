"""
Weekly Consistency Aggregator.

Weeks are ISO weeks: every call site measures "this week" from the most recent
Monday 00:00 in the timezone of `now`, through `week_start`.
"""
from datetime import datetime, timedelta
from typing import Iterable, Optional
import logging

from application.gateway import COMPLETED_SESSIONS, GAMIFICATION_STATS, ProgressGateway
from backend.core.achievement_evaluator import AchievementEvaluator
from domain.models import CompletedSession, MetricType, WeeklyStats

logger = logging.getLogger(__name__)

DEFAULT_WEEKLY_TARGET = 3


def week_start(now: datetime) -> datetime:
    """Most recent Monday 00:00, keeping the timezone of `now`."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=now.weekday())


def consistency_percentage(sessions_this_week: int, target: int = DEFAULT_WEEKLY_TARGET) -> int:
    """
    Share of the weekly target met, as a whole percentage.

    Formula: min(100, round(sessions / target * 100)), rounding halves up.

    Args:
        sessions_this_week: Completed sessions since week_start
        target: Sessions per week that count as 100%

    Returns:
        Percentage in 0..100
    """
    if target <= 0 or sessions_this_week <= 0:
        return 0
    # Integer form of floor(sessions / target * 100 + 0.5)
    rounded = (200 * sessions_this_week + target) // (2 * target)
    return min(100, rounded)


def _align(timestamp: datetime, now: datetime) -> datetime:
    if timestamp.tzinfo is None and now.tzinfo is not None:
        return timestamp.replace(tzinfo=now.tzinfo)
    if timestamp.tzinfo is not None and now.tzinfo is None:
        return timestamp.replace(tzinfo=None)
    return timestamp


def sessions_since(sessions: Iterable[CompletedSession], start: datetime, now: datetime) -> int:
    """Count sessions completed at or after `start`."""
    return sum(1 for session in sessions if _align(session.created_at, now) >= start)


class WeeklyConsistencyAggregator:
    """Maintains the weekly statistics block of a user's gamification record."""

    def __init__(
        self,
        gateway: ProgressGateway,
        achievements: AchievementEvaluator,
        weekly_target: int = DEFAULT_WEEKLY_TARGET,
    ):
        self._gateway = gateway
        self._achievements = achievements
        self._weekly_target = weekly_target

    async def calculate_weekly_consistency(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Recompute this week's consistency and store it in weekly stats.

        An achievement pass for `consistency` follows the write.

        Returns:
            The consistency percentage
        """
        now = now or datetime.now().astimezone()
        start = week_start(now)
        history = await self._gateway.read_log(COMPLETED_SESSIONS, user_id)
        count = sessions_since(history, start, now)
        percentage = consistency_percentage(count, self._weekly_target)

        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        weekly = stats.weekly_stats.model_copy(update={"consistency_percentage": percentage})
        await self._gateway.write(
            GAMIFICATION_STATS, user_id, stats.model_copy(update={"weekly_stats": weekly})
        )
        logger.debug(f"User {user_id}: {count} sessions since {start.isoformat()} -> {percentage}%")

        await self._achievements.check_achievements(user_id, MetricType.CONSISTENCY, percentage)
        return percentage

    async def reset_weekly_stats(self, user_id: str) -> WeeklyStats:
        """Zero every weekly counter in one write."""
        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        stored = await self._gateway.write(
            GAMIFICATION_STATS, user_id, stats.model_copy(update={"weekly_stats": WeeklyStats()})
        )
        logger.info(f"Weekly stats reset for user {user_id}")
        return stored.weekly_stats
