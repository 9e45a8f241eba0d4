"""
Progress Service.

Program position, direct XP awards and challenge bookkeeping for a user.

Every operation is a read-modify-write through the gateway with no locking:
two concurrent awards for the same user can lose one of the updates. Callers
are expected to run one flow at a time per user.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from application.gateway import GAMIFICATION_STATS, PROGRESS, ProgressGateway
from backend.core.achievement_evaluator import AchievementEvaluator, read_progress
from backend.core.level_calculator import apply_xp
from domain.models import Challenge, MetricType, UserGamificationStats, UserProgress

logger = logging.getLogger(__name__)

PROGRAM_COMPLETION_XP = 1000


@dataclass
class XPAward:
    """Outcome of an XP award."""
    amount: int
    source: str
    old_level: int
    new_level: int
    total_xp: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


@dataclass
class ProgramCompletion:
    """Outcome of completing a program."""
    progress: UserProgress
    xp_awarded: int
    unlocked_achievements: List[str] = field(default_factory=list)


class ProgressService:
    """Direct mutations of a user's progress and gamification records."""

    def __init__(self, gateway: ProgressGateway, achievements: AchievementEvaluator):
        self._gateway = gateway
        self._achievements = achievements

    async def award_xp(self, user_id: str, amount: int, source: str) -> Optional[XPAward]:
        """
        Add XP to the user's total and to this week's earned XP.

        Non-positive amounts are ignored.

        Returns:
            The award, or None when nothing was added

        Raises:
            ProgressUnavailableError: No progress record can be resolved
        """
        if amount <= 0:
            return None

        progress = await read_progress(self._gateway, user_id)
        updated = await self._gateway.write(PROGRESS, user_id, apply_xp(progress, amount))

        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        weekly = stats.weekly_stats.model_copy(
            update={"xp_earned": stats.weekly_stats.xp_earned + amount}
        )
        await self._gateway.write(
            GAMIFICATION_STATS, user_id, stats.model_copy(update={"weekly_stats": weekly})
        )

        award = XPAward(
            amount=amount,
            source=source,
            old_level=progress.current_level,
            new_level=updated.current_level,
            total_xp=updated.total_xp,
        )
        if award.leveled_up:
            logger.info(f"User {user_id} reached level {award.new_level} ({source})")
        return award

    async def switch_program(self, user_id: str, program_id: str) -> UserProgress:
        """Move the user to another program, starting again at week 1."""
        progress = await read_progress(self._gateway, user_id)
        return await self._gateway.write(
            PROGRESS,
            user_id,
            progress.model_copy(update={"current_program_id": program_id, "current_week": 1}),
        )

    async def advance_week(self, user_id: str) -> UserProgress:
        progress = await read_progress(self._gateway, user_id)
        return await self._gateway.write(
            PROGRESS,
            user_id,
            progress.model_copy(update={"current_week": progress.current_week + 1}),
        )

    async def complete_program(self, user_id: str, program_id: str) -> ProgramCompletion:
        """
        Record a finished program.

        The program id is added once and awards 1000 XP the first time only.
        A `program_completion` achievement pass runs after the write, against
        the updated number of completed programs.
        """
        progress = await read_progress(self._gateway, user_id)
        if program_id in progress.programs_completed:
            return ProgramCompletion(progress=progress, xp_awarded=0)

        updated = apply_xp(progress, PROGRAM_COMPLETION_XP).model_copy(
            update={"programs_completed": progress.programs_completed + [program_id]}
        )
        stored = await self._gateway.write(PROGRESS, user_id, updated)
        logger.info(f"User {user_id} completed program {program_id}")

        unlocked = await self._achievements.check_achievements(
            user_id, MetricType.PROGRAM_COMPLETION, len(stored.programs_completed)
        )
        if unlocked:
            stored = await read_progress(self._gateway, user_id)
        return ProgramCompletion(
            progress=stored,
            xp_awarded=PROGRAM_COMPLETION_XP,
            unlocked_achievements=unlocked,
        )

    async def ensure_user_records(self, user_id: str) -> None:
        """
        Persist default progress and stats records for users who have none.

        Existing records are left untouched.
        """
        progress = await read_progress(self._gateway, user_id)
        if progress == UserProgress(user_id=user_id):
            await self._gateway.write(PROGRESS, user_id, progress)

        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        if stats == UserGamificationStats(user_id=user_id):
            await self._gateway.write(GAMIFICATION_STATS, user_id, stats)

    async def current_challenges(self, user_id: str) -> List[Challenge]:
        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        return list(stats.current_challenges)

    async def update_challenge_progress(
        self,
        user_id: str,
        challenge_id: str,
        value: int,
    ) -> Optional[Challenge]:
        """
        Set a challenge's current value.

        Returns:
            The updated challenge, or None if the user has no such challenge
        """
        stats = await self._gateway.read(GAMIFICATION_STATS, user_id)
        target = next((c for c in stats.current_challenges if c.id == challenge_id), None)
        if target is None:
            return None

        updated = target.model_copy(update={"current_value": max(0, value)})
        challenges = [updated if c.id == challenge_id else c for c in stats.current_challenges]
        await self._gateway.write(
            GAMIFICATION_STATS, user_id, stats.model_copy(update={"current_challenges": challenges})
        )
        return updated
