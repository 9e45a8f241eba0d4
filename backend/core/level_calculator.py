"""
Level Calculator.

Maps cumulative XP to a level and to progress within that level. Levels grow
quadratically: reaching level n+1 takes n² * 100 total XP.

    XP      0   100   400   900   1600
    Level   1     2     3     4      5
"""
from dataclasses import dataclass
from math import isqrt

from domain.models import UserProgress

XP_PER_LEVEL_UNIT = 100


def level_of(total_xp: int) -> int:
    """
    Calculate the level for a cumulative XP total.

    Formula: level = floor(sqrt(total_xp / 100)) + 1

    Integer square root keeps the thresholds exact (399 -> 2, 400 -> 3).

    Args:
        total_xp: Cumulative XP; negative values are treated as 0

    Returns:
        Level, always >= 1
    """
    if total_xp <= 0:
        return 1
    return isqrt(int(total_xp) // XP_PER_LEVEL_UNIT) + 1


def xp_required_for_level(level: int) -> int:
    """Total XP at which `level` is completed, i.e. the threshold of level + 1."""
    return level * level * XP_PER_LEVEL_UNIT


@dataclass
class LevelProgress:
    """Where a user stands inside their current level."""
    current_level: int
    current_level_xp: int
    xp_needed_for_next_level: int
    progress_percent: float


def level_progress(total_xp: int) -> LevelProgress:
    """
    Describe progress within the current level.

    Args:
        total_xp: Cumulative XP

    Returns:
        LevelProgress with XP earned inside the level, the XP size of the
        whole level and an unrounded percentage capped at 100

    Examples:
        Level 2 spans 100..400, so 150 XP is 50 of 300 XP (about 16.67%).
    """
    total_xp = max(0, int(total_xp))
    current_level = level_of(total_xp)
    level_floor = xp_required_for_level(current_level - 1)
    level_ceiling = xp_required_for_level(current_level)

    current_level_xp = total_xp - level_floor
    span = level_ceiling - level_floor

    if span <= 0:
        percent = 100.0
    else:
        percent = min(100.0, current_level_xp / span * 100)

    return LevelProgress(
        current_level=current_level,
        current_level_xp=current_level_xp,
        xp_needed_for_next_level=max(0, span),
        progress_percent=percent,
    )


def apply_xp(progress: UserProgress, delta: int) -> UserProgress:
    """
    Return a copy of `progress` with `delta` XP added and the level recomputed.

    This is the only way XP changes, so `current_level` can never drift from
    `total_xp`.
    """
    total_xp = max(0, progress.total_xp + delta)
    return progress.model_copy(
        update={"total_xp": total_xp, "current_level": level_of(total_xp)}
    )
