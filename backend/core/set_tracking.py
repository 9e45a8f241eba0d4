"""
Set-Tracking Recorder.

Records weight, reps and RPE set by set for the exercises of a program day,
along with guided workout sessions and the user's set-tracking preferences.

Exercise records are stored as one nested structure, so every mutation
re-persists the whole ExerciseSetTracking through the gateway.

Exercise ids are stable per (day, exercise index, week):
    "Monday-0-week3", with sets "Monday-0-week3-set1" .. "-setN"
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import logging
import re

from application.exceptions import ExerciseTrackingNotFoundError
from application.gateway import (
    EXERCISE_SET_TRACKING,
    PREFERENCES,
    WORKOUT_SESSION,
    ProgressGateway,
)
from domain.models import (
    ExerciseSetTracking,
    ExerciseSpec,
    SetData,
    SetTrackingPreferences,
    WorkoutSessionData,
)
from domain.models.set_tracking import (
    DEFAULT_REST_SECONDS,
    DEFAULT_SET_COUNT,
    DEFAULT_TARGET_REPS,
    OPTIMAL_RPE_BONUS,
    OPTIMAL_RPE_RANGE,
    SET_COMPLETION_XP,
    TARGET_REPS_EXCEEDED_BONUS,
    TARGET_REPS_HIT_BONUS,
)

logger = logging.getLogger(__name__)

NO_REST = "N/A"

_SET_COUNT_RE = re.compile(r"^\s*(\d+)")
_TARGET_REPS_RE = re.compile(r"x\s*(\d+(?:-\d+)?)")
_REST_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(min|sec)", re.IGNORECASE)

# Fields a caller may change on a set before completing it
EDITABLE_SET_FIELDS = {"weight", "target_reps", "actual_reps", "rpe", "notes"}


# =============================================================================
# Parsing
# =============================================================================


def exercise_id_for(day_name: str, exercise_index: int, week: int) -> str:
    return f"{day_name}-{exercise_index}-week{week}"


def set_id_for(exercise_id: str, set_number: int) -> str:
    return f"{exercise_id}-set{set_number}"


def parse_rest_time(rest: Optional[str]) -> int:
    """
    Parse a rest duration into seconds.

    Examples:
        "2 min" -> 120, "90 sec" -> 90, "1.5 min" -> 90, "N/A" -> 0

    Unparseable or missing values fall back to 90 seconds.
    """
    if rest is None:
        return DEFAULT_REST_SECONDS
    if rest.strip() == NO_REST:
        return 0
    match = _REST_RE.search(rest)
    if not match:
        return DEFAULT_REST_SECONDS
    value = float(match.group(1))
    if match.group(2).lower() == "min":
        value *= 60
    return int(round(value))


def parse_set_scheme(scheme: Optional[str]) -> Tuple[int, str]:
    """
    Parse a set scheme such as "4 x 8-10" into (set count, target reps).

    A missing or zero count defaults to 4 sets, a missing rep target to "8-10".
    """
    scheme = scheme or ""
    count_match = _SET_COUNT_RE.match(scheme.split("x")[0])
    set_count = int(count_match.group(1)) if count_match else 0
    reps_match = _TARGET_REPS_RE.search(scheme)
    target_reps = reps_match.group(1) if reps_match else DEFAULT_TARGET_REPS
    return set_count or DEFAULT_SET_COUNT, target_reps


def parse_rep_range(target_reps: Optional[str]) -> Optional[Tuple[int, Optional[int]]]:
    """
    Parse a rep target into (minimum, maximum).

    A single value ("12") is a minimum with no upper bound. Returns None when
    the target cannot be parsed.
    """
    if not target_reps:
        return None
    parts = target_reps.split("-")
    try:
        low = int(parts[0].strip())
    except ValueError:
        return None
    high = None
    if len(parts) > 1:
        try:
            high = int(parts[1].strip())
        except ValueError:
            high = None
    return low, high


def calculate_set_xp(set_data: SetData) -> int:
    """
    XP for completing one set.

    - base completion XP (5)
    - +2 when actual reps land inside the target range
    - +5 instead when actual reps exceed the range's upper bound
    - +3 when RPE is 7 or 8, independent of the rep bonus
    """
    xp = SET_COMPLETION_XP

    rep_range = parse_rep_range(set_data.target_reps)
    if set_data.actual_reps and rep_range is not None:
        low, high = rep_range
        if high is not None and set_data.actual_reps > high:
            xp += TARGET_REPS_EXCEEDED_BONUS
        elif set_data.actual_reps >= low:
            xp += TARGET_REPS_HIT_BONUS

    low_rpe, high_rpe = OPTIMAL_RPE_RANGE
    if set_data.rpe is not None and low_rpe <= set_data.rpe <= high_rpe:
        xp += OPTIMAL_RPE_BONUS

    return xp


def build_exercise_tracking(
    exercise_id: str,
    exercise: ExerciseSpec,
    started_at: Optional[datetime] = None,
) -> ExerciseSetTracking:
    """Create tracking with one empty set per set in the exercise's scheme."""
    set_count, target_reps = parse_set_scheme(exercise.sets)
    sets = [
        SetData(
            id=set_id_for(exercise_id, number),
            set_number=number,
            weight=0,
            target_reps=target_reps,
        )
        for number in range(1, set_count + 1)
    ]
    return ExerciseSetTracking(
        exercise_id=exercise_id,
        exercise_name=exercise.name,
        total_sets=set_count,
        target_rest_seconds=parse_rest_time(exercise.rest),
        sets=sets,
        started_at=started_at,
    )


def _as_spec(exercise: Union[ExerciseSpec, Mapping[str, Any]]) -> ExerciseSpec:
    if isinstance(exercise, ExerciseSpec):
        return exercise
    return ExerciseSpec.model_validate(dict(exercise))


# =============================================================================
# Analytics DTOs
# =============================================================================


@dataclass
class ExerciseProgress:
    """Summary of the sets recorded so far for one exercise."""
    exercise_id: str
    exercise_name: str
    total_sets: int
    completed_sets: int
    average_weight: float
    average_reps: float
    average_rpe: float
    last_completed: Optional[datetime] = None


@dataclass
class WorkoutAnalytics:
    """Volume and intensity of a session's completed sets."""
    session_id: str
    completed_sets: int
    total_volume: float  # sum of weight * reps
    average_rpe: float


def _average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _volume(sets: Sequence[SetData]) -> float:
    return sum(s.weight * (s.actual_reps or 0) for s in sets)


# =============================================================================
# Recorder
# =============================================================================


class SetTrackingRecorder:
    """Per-set workout recording on top of the persistence gateway."""

    def __init__(self, gateway: ProgressGateway):
        self._gateway = gateway

    async def get_exercise(self, user_id: str, exercise_id: str) -> Optional[ExerciseSetTracking]:
        return await self._gateway.read(EXERCISE_SET_TRACKING, user_id, exercise_id)

    async def _require_exercise(self, user_id: str, exercise_id: str) -> ExerciseSetTracking:
        tracking = await self.get_exercise(user_id, exercise_id)
        if tracking is None:
            raise ExerciseTrackingNotFoundError(exercise_id)
        return tracking

    async def _save(self, user_id: str, tracking: ExerciseSetTracking) -> ExerciseSetTracking:
        return await self._gateway.write(
            EXERCISE_SET_TRACKING, user_id, tracking, key=tracking.exercise_id
        )

    async def initialize_exercise(
        self,
        user_id: str,
        day_name: str,
        exercise_index: int,
        exercise: Union[ExerciseSpec, Mapping[str, Any]],
        week: int,
    ) -> ExerciseSetTracking:
        """
        Start tracking an exercise, or return the tracking that already exists.

        Args:
            user_id: Owner of the record
            day_name: Program day the exercise belongs to
            exercise_index: Position of the exercise within the day
            exercise: Exercise with its set scheme and rest
            week: Program week

        Returns:
            The existing record unchanged, or the newly created one
        """
        exercise_id = exercise_id_for(day_name, exercise_index, week)
        existing = await self.get_exercise(user_id, exercise_id)
        if existing is not None:
            return existing

        tracking = build_exercise_tracking(exercise_id, _as_spec(exercise))
        logger.debug(f"Initialized {exercise_id} with {tracking.total_sets} sets for user {user_id}")
        return await self._save(user_id, tracking)

    async def update_set_data(
        self,
        user_id: str,
        exercise_id: str,
        set_id: str,
        **changes: Any,
    ) -> ExerciseSetTracking:
        """
        Merge field changes into one set without completing it.

        Only weight, target_reps, actual_reps, rpe and notes can be changed.

        Raises:
            ExerciseTrackingNotFoundError: The exercise was never initialized
            ValueError: Unknown set id or non-editable field
        """
        unknown = set(changes) - EDITABLE_SET_FIELDS
        if unknown:
            raise ValueError(f"Cannot update set fields: {sorted(unknown)}")

        tracking = await self._require_exercise(user_id, exercise_id)
        current = tracking.find_set(set_id)
        if current is None:
            raise ValueError(f"Set {set_id} not found in {exercise_id}")

        updated_set = SetData.model_validate({**current.model_dump(), **changes})
        sets = [updated_set if s.id == set_id else s for s in tracking.sets]
        return await self._save(user_id, tracking.model_copy(update={"sets": sets}))

    async def complete_set(
        self,
        user_id: str,
        exercise_id: str,
        set_data: SetData,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Record a completed set.

        The set is stored as completed and timestamped, the current set index
        advances (never past total_sets) and the exercise is marked complete
        once every set is done.

        Returns:
            XP earned for the set. The caller decides whether to award it.

        Raises:
            ExerciseTrackingNotFoundError: The exercise was never initialized
            ValueError: The set does not belong to the exercise
        """
        now = now or datetime.now(timezone.utc)
        tracking = await self._require_exercise(user_id, exercise_id)
        current = tracking.find_set(set_data.id)
        if current is None:
            raise ValueError(f"Set {set_data.id} not found in {exercise_id}")

        completed_set = set_data.model_copy(
            update={"set_number": current.set_number, "completed": True, "completed_at": now}
        )
        sets = [completed_set if s.id == set_data.id else s for s in tracking.sets]
        all_done = all(s.completed for s in sets)

        update: Dict[str, Any] = {
            "sets": sets,
            "current_set_index": min(tracking.current_set_index + 1, tracking.total_sets),
            "completed": all_done,
        }
        if tracking.started_at is None:
            update["started_at"] = now
        if all_done and tracking.completed_at is None:
            update["completed_at"] = now
        await self._save(user_id, tracking.model_copy(update=update))

        xp = calculate_set_xp(completed_set)
        logger.debug(f"User {user_id} completed {set_data.id} (+{xp} XP)")
        return xp

    async def complete_exercise(
        self,
        user_id: str,
        exercise_id: str,
        now: Optional[datetime] = None,
    ) -> ExerciseSetTracking:
        """
        Force-complete an exercise whatever state its sets are in.

        Raises:
            ExerciseTrackingNotFoundError: The exercise was never initialized
        """
        tracking = await self._require_exercise(user_id, exercise_id)
        completed = tracking.model_copy(
            update={"completed": True, "completed_at": now or datetime.now(timezone.utc)}
        )
        return await self._save(user_id, completed)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

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
        """
        Build an in-progress session for a program day.

        Exercises already tracked are reused as stored. The session itself is
        not persisted until save_workout_session is called.
        """
        now = now or datetime.now(timezone.utc)
        trackings = []
        for index, exercise in enumerate(exercises):
            exercise_id = exercise_id_for(day_name, index, week)
            existing = await self.get_exercise(user_id, exercise_id)
            trackings.append(existing or build_exercise_tracking(exercise_id, _as_spec(exercise)))

        return WorkoutSessionData(
            id=f"{day_name}-{int(now.timestamp() * 1000)}",
            day_name=day_name,
            week_number=week,
            phase=phase,
            program_id=program_id,
            exercises=trackings,
            started_at=now,
        )

    async def save_workout_session(self, user_id: str, session: WorkoutSessionData) -> WorkoutSessionData:
        return await self._gateway.write(WORKOUT_SESSION, user_id, session, key=session.id)

    async def get_workout_session(self, user_id: str, session_id: str) -> Optional[WorkoutSessionData]:
        return await self._gateway.read(WORKOUT_SESSION, user_id, session_id)

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    async def get_preferences(self, user_id: str) -> SetTrackingPreferences:
        preferences = await self._gateway.read(PREFERENCES, user_id)
        return preferences.set_tracking

    async def update_preferences(self, user_id: str, **changes: Any) -> SetTrackingPreferences:
        """Merge changes into the stored set-tracking preferences."""
        preferences = await self._gateway.read(PREFERENCES, user_id)
        set_tracking = SetTrackingPreferences.model_validate(
            {**preferences.set_tracking.model_dump(), **changes}
        )
        stored = await self._gateway.write(
            PREFERENCES, user_id, preferences.model_copy(update={"set_tracking": set_tracking})
        )
        return stored.set_tracking

    async def toggle_guided_mode(self, user_id: str) -> bool:
        """Flip guided workout mode and return the new setting."""
        current = await self.get_preferences(user_id)
        updated = await self.update_preferences(
            user_id, guided_workout_mode=not current.guided_workout_mode
        )
        return updated.guided_workout_mode

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    async def exercise_progress(self, user_id: str, exercise_id: str) -> Optional[ExerciseProgress]:
        """Averages over the completed sets of one exercise, or None if untracked."""
        tracking = await self.get_exercise(user_id, exercise_id)
        if tracking is None:
            return None

        done = tracking.completed_sets
        return ExerciseProgress(
            exercise_id=tracking.exercise_id,
            exercise_name=tracking.exercise_name,
            total_sets=tracking.total_sets,
            completed_sets=len(done),
            average_weight=_average([s.weight for s in done]),
            average_reps=_average([s.actual_reps for s in done if s.actual_reps]),
            average_rpe=_average([s.rpe for s in done if s.rpe]),
            last_completed=tracking.completed_at,
        )

    async def workout_analytics(self, user_id: str, session_id: str) -> Optional[WorkoutAnalytics]:
        """
        Volume and average RPE over a saved session's completed sets.

        Returns None when the session is unknown or has no completed sets.
        """
        session = await self.get_workout_session(user_id, session_id)
        if session is None:
            return None

        done: List[SetData] = [s for exercise in session.exercises for s in exercise.completed_sets]
        if not done:
            return None

        return WorkoutAnalytics(
            session_id=session_id,
            completed_sets=len(done),
            total_volume=_volume(done),
            average_rpe=_average([s.rpe for s in done if s.rpe]),
        )
