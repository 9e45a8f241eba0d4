"""
User progress and gamification statistics records.

One UserProgress and one UserGamificationStats record exist per user. Both are
created lazily with default values the first time they are read, and both
round-trip through the remote store and the local cache as plain JSON.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _dedupe(values: List[str]) -> List[str]:
    """Drop repeated ids while keeping first-seen order."""
    seen = set()
    unique = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


class UserProgress(BaseModel):
    """
    Long-lived progression state for a single user.

    `current_level` is derived from `total_xp` and is only ever written
    together with a recomputation (see backend.core.level_calculator.apply_xp).
    `programs_completed` and `achievements_unlocked` have set semantics but are
    stored as ordered lists so that unlock order is preserved.
    """

    user_id: str = Field(..., min_length=1, description="Owner of the record")
    current_level: int = Field(default=1, ge=1, description="Level derived from total_xp")
    total_xp: int = Field(default=0, ge=0, description="Cumulative experience points")
    current_program_id: str = Field(default="", description="Program the user follows")
    current_week: int = Field(default=1, ge=1, description="Week within the current program")
    programs_completed: List[str] = Field(default_factory=list)
    achievements_unlocked: List[str] = Field(default_factory=list)

    @field_validator("programs_completed", "achievements_unlocked")
    @classmethod
    def unique_ids(cls, v: List[str]) -> List[str]:
        """Each id is stored at most once."""
        return _dedupe(v)

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements_unlocked


class WeeklyStats(BaseModel):
    """Counters for the current week; reset all at once at a week boundary."""

    workouts_completed: int = Field(default=0, ge=0)
    nutrition_goals_hit: int = Field(default=0, ge=0)
    consistency_percentage: int = Field(default=0, ge=0, le=100)
    xp_earned: int = Field(default=0, ge=0)


class ChallengeType(str, Enum):
    """Metric a time-boxed challenge tracks."""

    WORKOUT = "workout"
    NUTRITION = "nutrition"
    STREAK = "streak"
    CONSISTENCY = "consistency"


class Challenge(BaseModel):
    """A time-boxed goal attached to a user's gamification record."""

    id: str
    name: str
    description: str = ""
    type: ChallengeType
    target_value: int = Field(..., gt=0)
    current_value: int = Field(default=0, ge=0)
    xp_reward: int = Field(default=0, ge=0)
    badge_reward: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.current_value >= self.target_value


class UserGamificationStats(BaseModel):
    """
    Streak, lifetime totals and weekly statistics for a single user.

    Invariant: longest_streak >= current_streak.
    """

    user_id: str = Field(..., min_length=1)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    total_workouts: int = Field(default=0, ge=0)
    total_nutrition_goals: int = Field(default=0, ge=0)
    badges_earned: List[str] = Field(default_factory=list)
    current_challenges: List[Challenge] = Field(default_factory=list)
    weekly_stats: WeeklyStats = Field(default_factory=WeeklyStats)

    @model_validator(mode="after")
    def longest_covers_current(self) -> "UserGamificationStats":
        # Records written by older clients may lag behind; repair on load.
        if self.longest_streak < self.current_streak:
            self.longest_streak = self.current_streak
        return self
