"""
Progress engine factory and facade.

create_engine() wires settings, the Supabase client, the local cache, the
achievement catalog and the core services into a ProgressEngine, the single
object a presentation layer talks to. Every operation takes the user id
explicitly; the engine holds no per-user state.

Usage:
    from backend.engine import create_engine

    engine = await create_engine()
    result = await engine.log_workout_completion("user-1", 8, 10, 12, 13)

    # Tests: assemble from fakes
    engine = ProgressEngine.from_components(remote, local, catalog)
"""

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Union

import sentry_sdk
from supabase import acreate_client

from application.gateway import (
    COMPLETED_SESSIONS,
    EXERCISE_SET_TRACKING,
    GAMIFICATION_STATS,
    PREFERENCES,
    PROGRESS,
    ProgressGateway,
    RecordKind,
)
from application.ports import AchievementCatalog, LocalCache, RemoteRecordStore
from backend.core.achievement_evaluator import AchievementEvaluator
from backend.core.consistency import WeeklyConsistencyAggregator
from backend.core.level_calculator import LevelProgress, level_of, level_progress
from backend.core.progress_service import ProgramCompletion, ProgressService, XPAward
from backend.core.set_tracking import ExerciseProgress, SetTrackingRecorder, WorkoutAnalytics
from backend.core.streak_evaluator import StreakResult, evaluate_streak
from backend.core.workout_completion import WorkoutCompletionOrchestrator, WorkoutCompletionResult
from backend.settings import Settings, get_settings
from domain.models import (
    Achievement,
    Challenge,
    CompletedSession,
    ExerciseSetTracking,
    ExerciseSpec,
    MetricType,
    SetData,
    SetTrackingPreferences,
    UserGamificationStats,
    UserProgress,
    WeeklyStats,
    WorkoutSessionData,
)
from infrastructure.cache import SqliteLocalCache
from infrastructure.catalog import SupabaseAchievementCatalog, load_yaml_catalog
from infrastructure.db import SupabaseRecordStore, UnconfiguredRecordStore

logger = logging.getLogger(__name__)

_APP_LOGGERS = ("application", "backend", "domain", "infrastructure")


class ProgressEngine:
    """Facade over the progress and gamification services."""

    def __init__(
        self,
        gateway: ProgressGateway,
        catalog: AchievementCatalog,
        weekly_workout_target: int = 3,
    ):
        self.gateway = gateway
        self.catalog = catalog
        self.achievements = AchievementEvaluator(gateway, catalog)
        self.consistency = WeeklyConsistencyAggregator(
            gateway, self.achievements, weekly_workout_target
        )
        self.progress = ProgressService(gateway, self.achievements)
        self.set_tracking = SetTrackingRecorder(gateway)
        self.workouts = WorkoutCompletionOrchestrator(gateway, self.achievements)

    @classmethod
    def from_components(
        cls,
        remote: RemoteRecordStore,
        local: LocalCache,
        catalog: AchievementCatalog,
        *,
        weekly_workout_target: int = 3,
        retry_attempts: int = 1,
        retry_min_wait: float = 0,
        retry_max_wait: float = 0,
    ) -> "ProgressEngine":
        gateway = ProgressGateway(
            remote,
            local,
            retry_attempts=retry_attempts,
            retry_min_wait=retry_min_wait,
            retry_max_wait=retry_max_wait,
        )
        return cls(gateway, catalog, weekly_workout_target)

    # -------------------------------------------------------------------------
    # Pure calculations
    # -------------------------------------------------------------------------

    @staticmethod
    def level_of(total_xp: int) -> int:
        return level_of(total_xp)

    @staticmethod
    def level_progress(total_xp: int) -> LevelProgress:
        return level_progress(total_xp)

    @staticmethod
    def evaluate_streak(
        current_streak: int,
        longest_streak: int,
        last_workout_at: Optional[datetime],
        now: datetime,
    ) -> StreakResult:
        return evaluate_streak(current_streak, longest_streak, last_workout_at, now)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    async def get_progress(self, user_id: str) -> UserProgress:
        return await self.gateway.read(PROGRESS, user_id)

    async def get_gamification_stats(self, user_id: str) -> UserGamificationStats:
        return await self.gateway.read(GAMIFICATION_STATS, user_id)

    async def get_workout_history(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[CompletedSession]:
        return await self.gateway.read_log(COMPLETED_SESSIONS, user_id, limit=limit)

    async def list_achievements(self) -> List[Achievement]:
        return await self.catalog.list_achievements()

    async def ensure_user_records(self, user_id: str) -> None:
        await self.progress.ensure_user_records(user_id)

    async def resync(self, user_id: str) -> List[str]:
        """
        Refresh the local copies of a user's per-user records from the remote.

        Returns:
            Tables whose local copy was refreshed
        """
        kinds: List[RecordKind] = [PROGRESS, GAMIFICATION_STATS, PREFERENCES, COMPLETED_SESSIONS]
        refreshed = []
        for kind in kinds:
            if await self.gateway.resync(kind, user_id):
                refreshed.append(kind.table)
        return refreshed

    async def resync_exercise(self, user_id: str, exercise_id: str) -> bool:
        return await self.gateway.resync(EXERCISE_SET_TRACKING, user_id, exercise_id)

    # -------------------------------------------------------------------------
    # Progress and gamification
    # -------------------------------------------------------------------------

    async def log_workout_completion(
        self,
        user_id: str,
        exercises_completed: int,
        total_exercises: int,
        nutrition_completed: int,
        total_nutrition: int,
        now: Optional[datetime] = None,
        **context: Any,
    ) -> WorkoutCompletionResult:
        return await self.workouts.log_workout_completion(
            user_id,
            exercises_completed,
            total_exercises,
            nutrition_completed,
            total_nutrition,
            now,
            **context,
        )

    async def check_achievements(
        self, user_id: str, metric_type: Union[MetricType, str], current_value: float
    ) -> List[str]:
        return await self.achievements.check_achievements(
            user_id, MetricType(metric_type), current_value
        )

    async def achievement_progress(self, user_id: str, achievement_id: str) -> float:
        return await self.achievements.achievement_progress(user_id, achievement_id)

    async def calculate_weekly_consistency(
        self, user_id: str, now: Optional[datetime] = None
    ) -> int:
        return await self.consistency.calculate_weekly_consistency(user_id, now)

    async def reset_weekly_stats(self, user_id: str) -> WeeklyStats:
        return await self.consistency.reset_weekly_stats(user_id)

    async def award_xp(self, user_id: str, amount: int, source: str) -> Optional[XPAward]:
        return await self.progress.award_xp(user_id, amount, source)

    async def switch_program(self, user_id: str, program_id: str) -> UserProgress:
        return await self.progress.switch_program(user_id, program_id)

    async def complete_program(self, user_id: str, program_id: str) -> ProgramCompletion:
        return await self.progress.complete_program(user_id, program_id)

    async def advance_week(self, user_id: str) -> UserProgress:
        return await self.progress.advance_week(user_id)

    async def get_current_challenges(self, user_id: str) -> List[Challenge]:
        return await self.progress.current_challenges(user_id)

    async def update_challenge_progress(
        self, user_id: str, challenge_id: str, value: int
    ) -> Optional[Challenge]:
        return await self.progress.update_challenge_progress(user_id, challenge_id, value)

    # -------------------------------------------------------------------------
    # Set tracking
    # -------------------------------------------------------------------------

    async def initialize_exercise(
        self,
        user_id: str,
        day_name: str,
        exercise_index: int,
        exercise: Union[ExerciseSpec, Mapping[str, Any]],
        week: int,
    ) -> ExerciseSetTracking:
        return await self.set_tracking.initialize_exercise(
            user_id, day_name, exercise_index, exercise, week
        )

    async def update_set_data(
        self, user_id: str, exercise_id: str, set_id: str, **changes: Any
    ) -> ExerciseSetTracking:
        return await self.set_tracking.update_set_data(user_id, exercise_id, set_id, **changes)

    async def complete_set(
        self,
        user_id: str,
        exercise_id: str,
        set_data: SetData,
        now: Optional[datetime] = None,
    ) -> int:
        return await self.set_tracking.complete_set(user_id, exercise_id, set_data, now)

    async def complete_exercise(
        self, user_id: str, exercise_id: str, now: Optional[datetime] = None
    ) -> ExerciseSetTracking:
        return await self.set_tracking.complete_exercise(user_id, exercise_id, now)

    async def start_workout_session(
        self,
        user_id: str,
        day_name: str,
        exercises: Sequence[Union[ExerciseSpec, Mapping[str, Any]]],
        week: int,
        phase: str = "",
        program_id: str = "",
        now: Optional[datetime] = None,
    ) -> WorkoutSessionData:
        return await self.set_tracking.start_workout_session(
            user_id, day_name, exercises, week, phase, program_id, now
        )

    async def save_workout_session(
        self, user_id: str, session: WorkoutSessionData
    ) -> WorkoutSessionData:
        return await self.set_tracking.save_workout_session(user_id, session)

    async def get_workout_session(
        self, user_id: str, session_id: str
    ) -> Optional[WorkoutSessionData]:
        return await self.set_tracking.get_workout_session(user_id, session_id)

    async def get_preferences(self, user_id: str) -> SetTrackingPreferences:
        return await self.set_tracking.get_preferences(user_id)

    async def update_preferences(self, user_id: str, **changes: Any) -> SetTrackingPreferences:
        return await self.set_tracking.update_preferences(user_id, **changes)

    async def toggle_guided_mode(self, user_id: str) -> bool:
        return await self.set_tracking.toggle_guided_mode(user_id)

    async def exercise_progress(
        self, user_id: str, exercise_id: str
    ) -> Optional[ExerciseProgress]:
        return await self.set_tracking.exercise_progress(user_id, exercise_id)

    async def workout_analytics(
        self, user_id: str, session_id: str
    ) -> Optional[WorkoutAnalytics]:
        return await self.set_tracking.workout_analytics(user_id, session_id)


# =============================================================================
# Factory
# =============================================================================


async def create_engine(settings: Optional[Settings] = None) -> ProgressEngine:
    """
    Create a ProgressEngine from settings.

    Without Supabase credentials the engine runs on the local cache alone.

    Args:
        settings: Optional Settings instance. If not provided, uses
                  get_settings() which loads from environment variables.

    Returns:
        Configured ProgressEngine
    """
    if settings is None:
        settings = get_settings()

    _configure_logging(settings)
    _init_sentry(settings)

    client = None
    if settings.supabase_configured:
        client = await acreate_client(settings.supabase_url, settings.supabase_key)
        remote: RemoteRecordStore = SupabaseRecordStore(client)
    else:
        log = logger.error if settings.is_production else logger.warning
        log("Supabase credentials not configured. Progress is stored locally only.")
        remote = UnconfiguredRecordStore()

    local = SqliteLocalCache(settings.local_cache_path)
    catalog = _build_catalog(settings, client)

    gateway = ProgressGateway(
        remote,
        local,
        retry_attempts=settings.remote_retry_attempts,
        retry_min_wait=settings.remote_retry_min_wait_seconds,
        retry_max_wait=settings.remote_retry_max_wait_seconds,
    )
    return ProgressEngine(gateway, catalog, settings.weekly_workout_target)


def _build_catalog(settings: Settings, client: Any) -> AchievementCatalog:
    """Bundled/YAML catalog, optionally fronted by the remote achievements table."""
    file_catalog = load_yaml_catalog(settings.achievement_catalog_path)
    if settings.achievement_catalog_source == "remote":
        if client is not None:
            return SupabaseAchievementCatalog(client, fallback=file_catalog)
        logger.warning("Remote achievement catalog requested without Supabase, using file catalog")
    return file_catalog


def _configure_logging(settings: Settings) -> None:
    """Apply the configured level to the application loggers."""
    level = logging.getLevelName(settings.log_level)
    for name in _APP_LOGGERS:
        logging.getLogger(name).setLevel(level)


def _init_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured, except in the test environment."""
    if settings.sentry_dsn and not settings.is_test:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
        )
        logger.info("Sentry initialized for progress engine")
