"""
Per-set workout tracking records.

An ExerciseSetTracking is persisted as one nested structure (its sets travel
with it), keyed by a stable exercise id derived from day, exercise index and
program week.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# XP awarded by the set-tracking flow
SET_COMPLETION_XP = 5
TARGET_REPS_HIT_BONUS = 2
TARGET_REPS_EXCEEDED_BONUS = 5
OPTIMAL_RPE_BONUS = 3
OPTIMAL_RPE_RANGE = (7, 8)

DEFAULT_SET_COUNT = 4
DEFAULT_TARGET_REPS = "8-10"
DEFAULT_REST_SECONDS = 90


class ExerciseSpec(BaseModel):
    """
    An exercise as written in a training program.

    Examples:
        >>> ExerciseSpec(name="Goblet Squat", sets="4 x 8-10", rest="90 sec")
    """

    name: str = Field(..., min_length=1)
    sets: str = Field(default="", description="Set scheme such as '4 x 8-10'")
    rest: str = Field(default="", description="Rest between sets such as '2 min' or 'N/A'")

    model_config = {"extra": "ignore"}


class SetData(BaseModel):
    """A single set within an exercise."""

    id: str = Field(..., min_length=1)
    set_number: int = Field(..., ge=1)
    weight: float = Field(default=0, ge=0, description="Load used for the set")
    target_reps: str = Field(
        default=DEFAULT_TARGET_REPS,
        description="Target reps as a range ('8-10') or single value ('12')",
    )
    actual_reps: Optional[int] = Field(default=None, ge=0)
    rpe: Optional[int] = Field(default=None, ge=1, le=10, description="Rate of perceived exertion")
    completed: bool = False
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None


class ExerciseSetTracking(BaseModel):
    """
    Set-level tracking for one exercise on one program day.

    `current_set_index` is 1-based and never exceeds `total_sets`.
    Set numbers are unique and contiguous from 1 to `total_sets`.
    """

    exercise_id: str = Field(..., min_length=1)
    exercise_name: str
    total_sets: int = Field(..., ge=1)
    target_rest_seconds: int = Field(default=DEFAULT_REST_SECONDS, ge=0)
    sets: List[SetData] = Field(default_factory=list)
    current_set_index: int = Field(default=1, ge=1)
    completed: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_set_numbers(self) -> "ExerciseSetTracking":
        numbers = [s.set_number for s in self.sets]
        if numbers and numbers != list(range(1, self.total_sets + 1)):
            raise ValueError(
                f"Set numbers for {self.exercise_id} must run 1..{self.total_sets}, got {numbers}"
            )
        if self.current_set_index > self.total_sets:
            raise ValueError("current_set_index cannot exceed total_sets")
        return self

    def find_set(self, set_id: str) -> Optional[SetData]:
        for set_data in self.sets:
            if set_data.id == set_id:
                return set_data
        return None

    @property
    def completed_sets(self) -> List[SetData]:
        return [s for s in self.sets if s.completed]


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"
    ABANDONED = "abandoned"


class WorkoutSessionData(BaseModel):
    """A guided workout session and the exercises tracked within it."""

    id: str = Field(..., min_length=1)
    day_name: str
    week_number: int = Field(..., ge=1)
    phase: str = ""
    program_id: str = ""
    exercises: List[ExerciseSetTracking] = Field(default_factory=list)
    started_at: datetime
    completed_at: Optional[datetime] = None
    xp_earned: int = Field(default=0, ge=0)
    status: SessionStatus = SessionStatus.IN_PROGRESS
    session_notes: Optional[str] = None


class CompletedSession(BaseModel):
    """
    One entry of a user's workout history.

    The history is what the streak and the weekly consistency computations
    read; entries are appended and never rewritten.
    """

    user_id: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)
    day_name: Optional[str] = None
    week: Optional[int] = None
    phase: Optional[str] = None
    program_id: Optional[str] = None
    exercises_completed: int = Field(default=0, ge=0)
    total_exercises: int = Field(default=0, ge=0)
    nutrition_completed: int = Field(default=0, ge=0)
    total_nutrition: int = Field(default=0, ge=0)
    xp_earned: int = Field(default=0, ge=0)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC so the history sorts as one timeline."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SetTrackingPreferences(BaseModel):
    """User-facing switches for the guided set-tracking flow."""

    auto_start_timer: bool = True
    auto_advance_on_complete: bool = False
    show_rest_reminders: bool = True
    track_rpe: bool = False
    track_actual_reps: bool = True
    default_rest_seconds: int = Field(default=DEFAULT_REST_SECONDS, ge=0)
    sound_notifications: bool = True
    vibration_notifications: bool = True
    guided_workout_mode: bool = False
    show_progress_analytics: bool = True


class TrainingPreferences(BaseModel):
    """Per-user preference record."""

    user_id: str = Field(..., min_length=1)
    set_tracking: SetTrackingPreferences = Field(default_factory=SetTrackingPreferences)
