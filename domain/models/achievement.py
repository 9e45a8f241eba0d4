"""
Achievement catalog entries.

Achievements are read-only at runtime. Unlocking one is recorded in
UserProgress.achievements_unlocked, never by mutating the catalog.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class MetricType(str, Enum):
    """Metric an achievement's unlock criteria is measured against."""

    WORKOUTS = "workouts"
    STREAK = "streak"
    PROGRAM_COMPLETION = "program_completion"
    NUTRITION = "nutrition"
    CONSISTENCY = "consistency"


class Timeframe(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class UnlockCriteria(BaseModel):
    """Threshold a metric has to reach for the achievement to unlock."""

    type: MetricType = Field(..., description="Metric compared against target")
    target: float = Field(..., gt=0, description="Value the metric must reach")
    timeframe: Optional[Timeframe] = Field(default=Timeframe.ALL_TIME)

    model_config = {"frozen": True}


class Achievement(BaseModel):
    """
    Immutable catalog entry.

    Examples:
        >>> Achievement(
        ...     id="first-workout",
        ...     name="First Steps",
        ...     xp_reward=50,
        ...     unlock_criteria=UnlockCriteria(type="workouts", target=1),
        ... )
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    icon: str = ""
    badge_icon: Optional[str] = None
    xp_reward: int = Field(..., gt=0)
    unlock_criteria: UnlockCriteria
    rarity: Rarity = Rarity.COMMON

    @property
    def metric_type(self) -> MetricType:
        return self.unlock_criteria.type

    @property
    def target(self) -> float:
        return self.unlock_criteria.target

    model_config = {"frozen": True}
