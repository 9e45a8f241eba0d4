"""
Workout Completion Orchestrator.

Turns a finished workout's tallies into durable progress. Steps run in a
fixed order, each awaited before the next, because later steps read what
earlier ones wrote:

    1. compute workout and nutrition XP
    2. update lifetime and weekly stats
    3. evaluate the streak against the last recorded session
    4. write stats (one write)
    5. add XP to progress and recompute the level (one write), then append
       the session to the workout history
    6. achievement passes for workouts, streak and nutrition

Steps are not rolled back. A step whose data could not be stored in either
tier is logged and listed in `failed_steps`, and the remaining steps still run.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging
import uuid

from application.exceptions import PersistenceError, ProgressUnavailableError
from application.gateway import (
    COMPLETED_SESSIONS,
    GAMIFICATION_STATS,
    PROGRESS,
    ProgressGateway,
)
from backend.core.achievement_evaluator import AchievementEvaluator, read_progress
from backend.core.level_calculator import apply_xp
from backend.core.streak_evaluator import evaluate_streak
from domain.models import CompletedSession, MetricType, UserGamificationStats

logger = logging.getLogger(__name__)

MAX_WORKOUT_XP = 50
MAX_NUTRITION_XP = 30


def completion_xp(
    exercises_completed: int,
    total_exercises: int,
    nutrition_completed: int,
    total_nutrition: int,
) -> Tuple[int, int]:
    """
    XP for a workout's completion rates.

    Formula:
        workout_xp = floor(exercises_completed / total_exercises * 50)
        nutrition_xp = floor(nutrition_completed / total_nutrition * 30)

    A zero total yields 0 for that part.

    Returns:
        (workout_xp, nutrition_xp)
    """
    workout_xp = 0
    if total_exercises > 0:
        workout_xp = (max(0, exercises_completed) * MAX_WORKOUT_XP) // total_exercises
    nutrition_xp = 0
    if total_nutrition > 0:
        nutrition_xp = (max(0, nutrition_completed) * MAX_NUTRITION_XP) // total_nutrition
    return workout_xp, nutrition_xp


@dataclass
class WorkoutCompletionResult:
    """What a logged workout changed."""
    user_id: str
    workout_xp: int
    nutrition_xp: int
    old_level: Optional[int] = None
    new_level: Optional[int] = None
    total_xp: Optional[int] = None
    current_streak: Optional[int] = None
    longest_streak: Optional[int] = None
    total_workouts: Optional[int] = None
    unlocked_achievements: List[str] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)

    @property
    def xp_awarded(self) -> int:
        return self.workout_xp + self.nutrition_xp

    @property
    def leveled_up(self) -> bool:
        return (
            self.old_level is not None
            and self.new_level is not None
            and self.new_level > self.old_level
        )

    @property
    def succeeded(self) -> bool:
        return not self.failed_steps


class WorkoutCompletionOrchestrator:
    """Single entry point for logging a completed workout."""

    def __init__(self, gateway: ProgressGateway, achievements: AchievementEvaluator):
        self._gateway = gateway
        self._achievements = achievements

    async def log_workout_completion(
        self,
        user_id: str,
        exercises_completed: int,
        total_exercises: int,
        nutrition_completed: int,
        total_nutrition: int,
        now: Optional[datetime] = None,
        *,
        day_name: Optional[str] = None,
        week: Optional[int] = None,
        phase: Optional[str] = None,
        program_id: Optional[str] = None,
    ) -> WorkoutCompletionResult:
        """
        Log a completed workout.

        Args:
            user_id: User who completed the workout
            exercises_completed: Exercises done
            total_exercises: Exercises planned
            nutrition_completed: Nutrition goals hit
            total_nutrition: Nutrition goals planned
            now: Completion time (defaults to the current UTC time)
            day_name, week, phase, program_id: Optional context stored with
                the history entry

        Returns:
            WorkoutCompletionResult describing what changed

        Raises:
            ProgressUnavailableError: No progress record can be resolved
        """
        if not user_id or not user_id.strip():
            raise ProgressUnavailableError("Cannot log a workout without a user id")

        now = now or datetime.now(timezone.utc)
        nutrition_completed = max(0, nutrition_completed)
        workout_xp, nutrition_xp = completion_xp(
            exercises_completed, total_exercises, nutrition_completed, total_nutrition
        )
        result = WorkoutCompletionResult(
            user_id=user_id, workout_xp=workout_xp, nutrition_xp=nutrition_xp
        )

        # Steps 2-4
        stats = await self._update_stats(user_id, nutrition_completed, result, now)

        # Step 5
        try:
            progress = await read_progress(self._gateway, user_id)
            result.old_level = progress.current_level
            stored = await self._gateway.write(
                PROGRESS, user_id, apply_xp(progress, result.xp_awarded)
            )
            result.new_level = stored.current_level
            result.total_xp = stored.total_xp
        except PersistenceError:
            logger.exception(f"Could not store workout XP for user {user_id}")
            result.failed_steps.append("award_xp")

        session = CompletedSession(
            user_id=user_id,
            id=uuid.uuid4().hex,
            day_name=day_name,
            week=week,
            phase=phase,
            program_id=program_id,
            exercises_completed=max(0, exercises_completed),
            total_exercises=max(0, total_exercises),
            nutrition_completed=nutrition_completed,
            total_nutrition=max(0, total_nutrition),
            xp_earned=result.xp_awarded,
            created_at=now,
        )
        try:
            await self._gateway.append_log(COMPLETED_SESSIONS, user_id, session)
        except PersistenceError:
            logger.exception(f"Could not record workout history for user {user_id}")
            result.failed_steps.append("record_session")

        # Step 6
        passes = [
            (MetricType.WORKOUTS, stats.total_workouts),
            (MetricType.STREAK, stats.current_streak),
            (MetricType.NUTRITION, stats.total_nutrition_goals),
        ]
        for metric_type, value in passes:
            try:
                unlocked = await self._achievements.check_achievements(user_id, metric_type, value)
                result.unlocked_achievements.extend(unlocked)
            except PersistenceError:
                logger.exception(f"Achievement pass {metric_type.value} failed for user {user_id}")
                result.failed_steps.append(f"achievements:{metric_type.value}")

        if result.unlocked_achievements:
            final = await read_progress(self._gateway, user_id)
            result.new_level = final.current_level
            result.total_xp = final.total_xp

        logger.info(
            f"Workout logged for user {user_id}: +{result.xp_awarded} XP, "
            f"streak {result.current_streak}, unlocked {result.unlocked_achievements}"
        )
        return result

    async def _update_stats(
        self,
        user_id: str,
        nutrition_completed: int,
        result: WorkoutCompletionResult,
        now: datetime,
    ) -> UserGamificationStats:
        """
        Apply the workout to lifetime, weekly and streak stats and write them once.

        Returns the updated stats even when the write failed, so the
        achievement passes still see this workout.
        """
        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)

        try:
            history = await self._gateway.read_log(COMPLETED_SESSIONS, user_id, limit=1)
            last_workout_at = history[0].created_at if history else None
            streak = evaluate_streak(
                stats.current_streak, stats.longest_streak, last_workout_at, now
            )
            current_streak, longest_streak = streak.current_streak, streak.longest_streak
        except PersistenceError:
            # Without the history the streak cannot be evaluated; keep it as is
            logger.exception(f"Workout history unavailable for user {user_id}")
            result.failed_steps.append("read_history")
            current_streak = stats.current_streak
            longest_streak = max(stats.longest_streak, current_streak)

        weekly = stats.weekly_stats
        updated = stats.model_copy(
            update={
                "total_workouts": stats.total_workouts + 1,
                "total_nutrition_goals": stats.total_nutrition_goals + nutrition_completed,
                "current_streak": current_streak,
                "longest_streak": longest_streak,
                "weekly_stats": weekly.model_copy(
                    update={
                        "workouts_completed": weekly.workouts_completed + 1,
                        "nutrition_goals_hit": weekly.nutrition_goals_hit + nutrition_completed,
                        "xp_earned": weekly.xp_earned + result.xp_awarded,
                    }
                ),
            }
        )

        try:
            updated = await self._gateway.write(GAMIFICATION_STATS, user_id, updated)
        except PersistenceError:
            logger.exception(f"Could not store workout stats for user {user_id}")
            result.failed_steps.append("update_stats")

        result.current_streak = updated.current_streak
        result.longest_streak = updated.longest_streak
        result.total_workouts = updated.total_workouts
        return updated
