"""
Unit tests for the achievement evaluator.

Tests cover:
- Candidate selection (type, threshold, already unlocked, order)
- Simultaneous unlock with summed XP and level recompute
- Idempotence
- Progress toward an achievement
"""
import pytest

from application.exceptions import ProgressUnavailableError
from application.gateway import GAMIFICATION_STATS, PROGRESS
from backend.core.achievement_evaluator import AchievementEvaluator, select_unlockable
from domain.models import MetricType, UserGamificationStats, UserProgress
from tests.fakes import create_catalog, make_achievement

pytestmark = pytest.mark.unit


@pytest.fixture
def workout_catalog():
    return create_catalog([
        make_achievement("ten", MetricType.WORKOUTS, 10, 30),
        make_achievement("one", MetricType.WORKOUTS, 1, 50),
        make_achievement("streak-one", MetricType.STREAK, 1, 20),
        make_achievement("fifty", MetricType.WORKOUTS, 50, 100),
    ])


class TestSelectUnlockable:

    @pytest.mark.asyncio
    async def test_filters_by_type_and_target(self, workout_catalog):
        catalog = await workout_catalog.list_achievements()
        selected = select_unlockable(MetricType.WORKOUTS, 10, [], catalog)
        assert [a.id for a in selected] == ["ten", "one"]

    @pytest.mark.asyncio
    async def test_excludes_unlocked(self, workout_catalog):
        catalog = await workout_catalog.list_achievements()
        selected = select_unlockable(MetricType.WORKOUTS, 10, ["one"], catalog)
        assert [a.id for a in selected] == ["ten"]

    @pytest.mark.asyncio
    async def test_accepts_metric_name(self, workout_catalog):
        catalog = await workout_catalog.list_achievements()
        selected = select_unlockable("streak", 1, [], catalog)
        assert [a.id for a in selected] == ["streak-one"]

    @pytest.mark.asyncio
    async def test_nothing_below_target(self, workout_catalog):
        catalog = await workout_catalog.list_achievements()
        assert select_unlockable(MetricType.WORKOUTS, 0, [], catalog) == []


class TestCheckAchievements:
    """Tests for persisting unlocks."""

    @pytest.mark.asyncio
    async def test_unlocks_all_qualifying_in_catalog_order(self, gateway, workout_catalog, user_id):
        evaluator = AchievementEvaluator(gateway, workout_catalog)

        unlocked = await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 12)

        assert unlocked == ["ten", "one"]
        progress = await gateway.read(PROGRESS, user_id)
        assert progress.achievements_unlocked == ["ten", "one"]
        assert progress.total_xp == 80
        assert progress.current_level == 1

    @pytest.mark.asyncio
    async def test_single_progress_write(self, gateway, remote, workout_catalog, user_id):
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 12)
        assert remote.calls.count("upsert:user_progress") == 1

    @pytest.mark.asyncio
    async def test_second_call_is_noop(self, gateway, remote, workout_catalog, user_id):
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 12)

        again = await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 12)

        assert again == []
        progress = await gateway.read(PROGRESS, user_id)
        assert progress.total_xp == 80
        assert remote.calls.count("upsert:user_progress") == 1

    @pytest.mark.asyncio
    async def test_threshold_crossing_unlocks_once(self, gateway, user_id):
        catalog = create_catalog([make_achievement("fifty", MetricType.WORKOUTS, 50, 200)])
        evaluator = AchievementEvaluator(gateway, catalog)
        await gateway.write(PROGRESS, user_id, UserProgress(user_id=user_id, total_xp=250, current_level=2))

        assert await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 49) == []
        assert await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 50) == ["fifty"]
        assert await evaluator.check_achievements(user_id, MetricType.WORKOUTS, 51) == []

        progress = await gateway.read(PROGRESS, user_id)
        assert progress.total_xp == 450
        assert progress.current_level == 3

    @pytest.mark.asyncio
    async def test_blank_user_is_fatal(self, gateway, workout_catalog):
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        with pytest.raises(ProgressUnavailableError):
            await evaluator.check_achievements("  ", MetricType.WORKOUTS, 1)


class TestAchievementProgress:

    @pytest.mark.asyncio
    async def test_percentage_of_target(self, gateway, workout_catalog, user_id):
        await gateway.write(
            GAMIFICATION_STATS, user_id, UserGamificationStats(user_id=user_id, total_workouts=5)
        )
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        assert await evaluator.achievement_progress(user_id, "ten") == 50.0

    @pytest.mark.asyncio
    async def test_capped_at_100(self, gateway, workout_catalog, user_id):
        await gateway.write(
            GAMIFICATION_STATS, user_id, UserGamificationStats(user_id=user_id, current_streak=4)
        )
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        assert await evaluator.achievement_progress(user_id, "streak-one") == 100.0

    @pytest.mark.asyncio
    async def test_unlocked_is_100(self, gateway, workout_catalog, user_id):
        await gateway.write(
            PROGRESS, user_id, UserProgress(user_id=user_id, achievements_unlocked=["fifty"])
        )
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        assert await evaluator.achievement_progress(user_id, "fifty") == 100.0

    @pytest.mark.asyncio
    async def test_unknown_achievement_is_zero(self, gateway, workout_catalog, user_id):
        evaluator = AchievementEvaluator(gateway, workout_catalog)
        assert await evaluator.achievement_progress(user_id, "missing") == 0.0
