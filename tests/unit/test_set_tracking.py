"""
Unit tests for the set-tracking recorder.

Tests cover:
- Set scheme, rep range and rest parsing
- Set XP bonuses
- Exercise initialization, set updates and completion
- Sessions, preferences and analytics
"""
from datetime import datetime, timezone

import pytest

from application.exceptions import ExerciseTrackingNotFoundError
from application.gateway import EXERCISE_SET_TRACKING
from backend.core.set_tracking import (
    SetTrackingRecorder,
    calculate_set_xp,
    exercise_id_for,
    parse_rep_range,
    parse_rest_time,
    parse_set_scheme,
)
from domain.models import ExerciseSpec, SetData

pytestmark = pytest.mark.unit

SQUAT = {"name": "Goblet Squat", "sets": "3 x 8-10", "rest": "2 min"}


def _set(target_reps="8-10", actual_reps=None, rpe=None) -> SetData:
    return SetData(id="x-set1", set_number=1, target_reps=target_reps, actual_reps=actual_reps, rpe=rpe)


# =============================================================================
# Parsing
# =============================================================================


class TestParseRestTime:

    @pytest.mark.parametrize(
        "rest,expected",
        [
            ("2 min", 120),
            ("90 sec", 90),
            ("1.5 min", 90),
            ("45SEC", 45),
            ("N/A", 0),
            ("as needed", 90),
            ("", 90),
            (None, 90),
        ],
    )
    def test_parse(self, rest, expected):
        assert parse_rest_time(rest) == expected


class TestParseSetScheme:

    def test_count_and_range(self):
        assert parse_set_scheme("4 x 8-10") == (4, "8-10")

    def test_single_rep_target(self):
        assert parse_set_scheme("3x12") == (3, "12")

    def test_defaults(self):
        assert parse_set_scheme("AMRAP") == (4, "8-10")
        assert parse_set_scheme("") == (4, "8-10")
        assert parse_set_scheme("0 x 5") == (4, "5")


class TestParseRepRange:

    def test_range(self):
        assert parse_rep_range("8-10") == (8, 10)

    def test_single_value_has_no_upper_bound(self):
        assert parse_rep_range("12") == (12, None)

    def test_garbage(self):
        assert parse_rep_range("max") is None
        assert parse_rep_range("") is None


class TestCalculateSetXp:
    """Tests for set completion XP bonuses."""

    def test_base_only(self):
        assert calculate_set_xp(_set()) == 5

    def test_reps_in_range(self):
        assert calculate_set_xp(_set(actual_reps=9)) == 7

    def test_reps_exceeding_range_replaces_in_range_bonus(self):
        assert calculate_set_xp(_set(actual_reps=12)) == 10

    def test_reps_below_range(self):
        assert calculate_set_xp(_set(actual_reps=6)) == 5

    @pytest.mark.parametrize("rpe", [7, 8])
    def test_optimal_rpe(self, rpe):
        assert calculate_set_xp(_set(rpe=rpe)) == 8

    @pytest.mark.parametrize("rpe", [6, 9])
    def test_rpe_outside_band(self, rpe):
        assert calculate_set_xp(_set(rpe=rpe)) == 5

    def test_bonuses_add_up(self):
        assert calculate_set_xp(_set(actual_reps=9, rpe=8)) == 10
        assert calculate_set_xp(_set(actual_reps=11, rpe=7)) == 13

    def test_single_value_target_is_a_minimum(self):
        assert calculate_set_xp(_set(target_reps="12", actual_reps=15)) == 7
        assert calculate_set_xp(_set(target_reps="12", actual_reps=10)) == 5


# =============================================================================
# Recorder
# =============================================================================


@pytest.fixture
def recorder(gateway):
    return SetTrackingRecorder(gateway)


class TestInitializeExercise:

    @pytest.mark.asyncio
    async def test_creates_sets(self, recorder, user_id):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 2)

        assert tracking.exercise_id == "Monday-0-week2"
        assert tracking.exercise_name == "Goblet Squat"
        assert tracking.total_sets == 3
        assert tracking.target_rest_seconds == 120
        assert [s.id for s in tracking.sets] == [
            "Monday-0-week2-set1", "Monday-0-week2-set2", "Monday-0-week2-set3"
        ]
        assert [s.set_number for s in tracking.sets] == [1, 2, 3]
        assert all(s.target_reps == "8-10" and not s.completed for s in tracking.sets)
        assert tracking.current_set_index == 1

    @pytest.mark.asyncio
    async def test_idempotent(self, recorder, gateway, user_id):
        first = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 2)
        await recorder.update_set_data(user_id, first.exercise_id, "Monday-0-week2-set1", weight=20)

        again = await recorder.initialize_exercise(
            user_id, "Monday", 0, {"name": "Something else", "sets": "5 x 5"}, 2
        )

        assert again.exercise_name == "Goblet Squat"
        assert again.sets[0].weight == 20

    @pytest.mark.asyncio
    async def test_accepts_exercise_spec(self, recorder, user_id):
        spec = ExerciseSpec(name="Plank", sets="3 x 30", rest="N/A")
        tracking = await recorder.initialize_exercise(user_id, "Friday", 4, spec, 1)
        assert tracking.exercise_id == exercise_id_for("Friday", 4, 1)
        assert tracking.target_rest_seconds == 0


class TestCompleteSet:

    @pytest.mark.asyncio
    async def test_marks_set_and_advances(self, recorder, gateway, user_id, now):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        done = tracking.sets[0].model_copy(update={"weight": 24, "actual_reps": 10, "rpe": 7})

        xp = await recorder.complete_set(user_id, tracking.exercise_id, done, now)

        assert xp == 10
        stored = await gateway.read(EXERCISE_SET_TRACKING, user_id, tracking.exercise_id)
        assert stored.sets[0].completed is True
        assert stored.sets[0].completed_at == now
        assert stored.sets[0].weight == 24
        assert stored.current_set_index == 2
        assert stored.completed is False

    @pytest.mark.asyncio
    async def test_last_set_completes_exercise(self, recorder, gateway, user_id, now):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        for set_data in tracking.sets:
            await recorder.complete_set(user_id, tracking.exercise_id, set_data, now)

        stored = await gateway.read(EXERCISE_SET_TRACKING, user_id, tracking.exercise_id)
        assert stored.completed is True
        assert stored.completed_at == now
        assert stored.current_set_index == stored.total_sets
        assert len(stored.completed_sets) == 3

    @pytest.mark.asyncio
    async def test_set_number_cannot_change(self, recorder, gateway, user_id):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        tampered = tracking.sets[1].model_copy(update={"set_number": 3})

        await recorder.complete_set(user_id, tracking.exercise_id, tampered)

        stored = await gateway.read(EXERCISE_SET_TRACKING, user_id, tracking.exercise_id)
        assert [s.set_number for s in stored.sets] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_unknown_exercise(self, recorder, user_id):
        with pytest.raises(ExerciseTrackingNotFoundError) as exc_info:
            await recorder.complete_set(user_id, "Nope-0-week1", _set())
        assert exc_info.value.exercise_id == "Nope-0-week1"

    @pytest.mark.asyncio
    async def test_unknown_set(self, recorder, user_id):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        with pytest.raises(ValueError):
            await recorder.complete_set(user_id, tracking.exercise_id, _set())


class TestUpdateSetData:

    @pytest.mark.asyncio
    async def test_merges_without_completing(self, recorder, user_id):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        set_id = tracking.sets[1].id

        updated = await recorder.update_set_data(
            user_id, tracking.exercise_id, set_id, weight=30, actual_reps=8
        )

        changed = updated.find_set(set_id)
        assert changed.weight == 30
        assert changed.actual_reps == 8
        assert changed.completed is False
        assert updated.current_set_index == 1

    @pytest.mark.asyncio
    async def test_rejects_structural_fields(self, recorder, user_id):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        with pytest.raises(ValueError):
            await recorder.update_set_data(
                user_id, tracking.exercise_id, tracking.sets[0].id, set_number=9
            )


class TestCompleteExercise:

    @pytest.mark.asyncio
    async def test_force_completes(self, recorder, user_id, now):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)

        completed = await recorder.complete_exercise(user_id, tracking.exercise_id, now)

        assert completed.completed is True
        assert completed.completed_at == now
        assert completed.completed_sets == []

    @pytest.mark.asyncio
    async def test_unknown_exercise(self, recorder, user_id):
        with pytest.raises(ExerciseTrackingNotFoundError):
            await recorder.complete_exercise(user_id, "Nope-0-week1")


class TestSessions:

    @pytest.mark.asyncio
    async def test_start_reuses_tracked_exercises(self, recorder, user_id, now):
        tracked = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        await recorder.complete_set(user_id, tracked.exercise_id, tracked.sets[0], now)

        session = await recorder.start_workout_session(
            user_id,
            "Monday",
            [SQUAT, {"name": "Row", "sets": "4 x 10", "rest": "60 sec"}],
            week=1,
            phase="Foundation",
            program_id="foundation-builder",
            now=now,
        )

        assert session.id == f"Monday-{int(now.timestamp() * 1000)}"
        assert session.status == "in_progress"
        assert session.exercises[0].sets[0].completed is True
        assert session.exercises[1].exercise_id == "Monday-1-week1"
        assert session.exercises[1].total_sets == 4

    @pytest.mark.asyncio
    async def test_save_and_get(self, recorder, user_id, now):
        session = await recorder.start_workout_session(user_id, "Monday", [SQUAT], 1, now=now)
        await recorder.save_workout_session(user_id, session)

        loaded = await recorder.get_workout_session(user_id, session.id)

        assert loaded == session

    @pytest.mark.asyncio
    async def test_missing_session_is_none(self, recorder, user_id):
        assert await recorder.get_workout_session(user_id, "missing") is None


class TestPreferences:

    @pytest.mark.asyncio
    async def test_defaults(self, recorder, user_id):
        preferences = await recorder.get_preferences(user_id)
        assert preferences.default_rest_seconds == 90
        assert preferences.guided_workout_mode is False

    @pytest.mark.asyncio
    async def test_update_merges(self, recorder, user_id):
        await recorder.update_preferences(user_id, track_rpe=True)
        preferences = await recorder.update_preferences(user_id, default_rest_seconds=120)
        assert preferences.track_rpe is True
        assert preferences.default_rest_seconds == 120

    @pytest.mark.asyncio
    async def test_toggle_guided_mode(self, recorder, user_id):
        assert await recorder.toggle_guided_mode(user_id) is True
        assert await recorder.toggle_guided_mode(user_id) is False


class TestAnalytics:

    @pytest.mark.asyncio
    async def test_exercise_progress(self, recorder, user_id, now):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        first, second, _ = tracking.sets
        await recorder.complete_set(
            user_id, tracking.exercise_id,
            first.model_copy(update={"weight": 20, "actual_reps": 10, "rpe": 7}), now,
        )
        await recorder.complete_set(
            user_id, tracking.exercise_id,
            second.model_copy(update={"weight": 30, "actual_reps": 8, "rpe": 9}), now,
        )

        progress = await recorder.exercise_progress(user_id, tracking.exercise_id)

        assert progress.completed_sets == 2
        assert progress.total_sets == 3
        assert progress.average_weight == 25
        assert progress.average_reps == 9
        assert progress.average_rpe == 8

    @pytest.mark.asyncio
    async def test_exercise_progress_untracked(self, recorder, user_id):
        assert await recorder.exercise_progress(user_id, "Nope-0-week1") is None

    @pytest.mark.asyncio
    async def test_workout_analytics(self, recorder, user_id, now):
        tracking = await recorder.initialize_exercise(user_id, "Monday", 0, SQUAT, 1)
        first, second, _ = tracking.sets
        await recorder.complete_set(
            user_id, tracking.exercise_id,
            first.model_copy(update={"weight": 20, "actual_reps": 10, "rpe": 7}), now,
        )
        await recorder.complete_set(
            user_id, tracking.exercise_id,
            second.model_copy(update={"weight": 30, "actual_reps": 8}), now,
        )
        session = await recorder.start_workout_session(user_id, "Monday", [SQUAT], 1, now=now)
        await recorder.save_workout_session(user_id, session)

        analytics = await recorder.workout_analytics(user_id, session.id)

        assert analytics.completed_sets == 2
        assert analytics.total_volume == 20 * 10 + 30 * 8
        assert analytics.average_rpe == 7

    @pytest.mark.asyncio
    async def test_workout_analytics_without_completed_sets(self, recorder, user_id, now):
        session = await recorder.start_workout_session(user_id, "Monday", [SQUAT], 1, now=now)
        await recorder.save_workout_session(user_id, session)
        assert await recorder.workout_analytics(user_id, session.id) is None
