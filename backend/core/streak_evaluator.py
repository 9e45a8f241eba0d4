"""
Streak Evaluator.

A streak counts consecutive calendar days with at least one workout. Calendar
days are taken in the timezone of `now`, so a workout at 23:30 and another at
00:15 the next local day extend the streak even though less than an hour
passed between them.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class StreakResult:
    current_streak: int
    longest_streak: int
    days_since_last_workout: Optional[int] = None


def calendar_days_between(earlier: datetime, later: datetime) -> int:
    """
    Whole calendar days from `earlier` to `later`.

    Aware datetimes are converted to the timezone of `later` before taking
    the date, naive ones are compared as-is.
    """
    if earlier.tzinfo is not None and later.tzinfo is not None:
        earlier = earlier.astimezone(later.tzinfo)
    return (later.date() - earlier.date()).days


def evaluate_streak(
    current_streak: int,
    longest_streak: int,
    last_workout_at: Optional[datetime],
    now: datetime,
) -> StreakResult:
    """
    Compute the streak after a workout completed at `now`.

    Args:
        current_streak: Streak before this workout
        longest_streak: Best streak before this workout
        last_workout_at: When the previous workout was completed, if any
        now: Completion time of this workout

    Returns:
        StreakResult with the new current and longest streak
    """
    days = None
    if last_workout_at is None:
        new_streak = 1
    else:
        days = calendar_days_between(last_workout_at, now)
        if days <= 0:
            # Same day, or an out-of-order event
            new_streak = current_streak
        elif days == 1:
            new_streak = current_streak + 1
        else:
            new_streak = 1

    return StreakResult(
        current_streak=new_streak,
        longest_streak=max(longest_streak, new_streak),
        days_since_last_workout=days,
    )
