"""XP, level and streak progression applied on plan completion."""

import asyncio
from collections import defaultdict
from typing import Any

import structlog

from study_planner.exceptions import ConcurrentUpdateError
from study_planner.models.profile import Profile, level_for_xp
from study_planner.models.study_plan import PlanStatus, StudyPlan
from study_planner.models.study_session import StudySession
from study_planner.storage.base import PlanStore

logger = structlog.get_logger()

DEFAULT_XP_PER_COMPLETION = 50
DEFAULT_SESSION_MINUTES = 30


def compute_progression(profile: Profile | None, xp_amount: int) -> dict[str, Any]:
    """Progression fields after one completion.

    An absent profile counts as no progress yet. The streak grows by one on
    every completion; there is no decay for inactivity.
    """
    total_xp = profile.total_xp if profile else 0
    current_streak = profile.current_streak if profile else 0
    longest_streak = profile.longest_streak if profile else 0

    new_total_xp = total_xp + xp_amount
    new_streak = current_streak + 1
    return {
        "total_xp": new_total_xp,
        "level": level_for_xp(new_total_xp),
        "current_streak": new_streak,
        "longest_streak": max(new_streak, longest_streak),
    }


class ProgressionEngine:
    """Turns completion events into durable profile updates.

    The profile read-modify-write is guarded twice: completions for one user
    are serialized inside this process, and the store write is conditional on
    the profile version that was read, so writers in other processes cannot
    cause a lost update. A version conflict re-reads and recomputes, up to
    ``max_retries`` attempts.

    Args:
        store: Backing PlanStore.
        xp_per_completion: XP granted per completed plan.
        session_minutes: Placeholder duration written to the session record.
        max_retries: Attempts before giving up on a contended profile.
    """

    def __init__(
        self,
        store: PlanStore,
        xp_per_completion: int = DEFAULT_XP_PER_COMPLETION,
        session_minutes: int = DEFAULT_SESSION_MINUTES,
        max_retries: int = 5,
    ):
        if xp_per_completion <= 0:
            raise ValueError("xp_per_completion must be a positive integer")
        self.store = store
        self.xp_per_completion = xp_per_completion
        self.session_minutes = session_minutes
        self.max_retries = max_retries
        self._user_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def award_completion(
        self,
        user_id: str,
        xp_amount: int | None = None,
        plan: StudyPlan | None = None,
        expected_plan_status: PlanStatus | None = None,
    ) -> Profile:
        """Grant XP for one completion and append its study session.

        When ``plan`` is given, its new status is written in the same store
        operation, so either everything lands or nothing does.

        Args:
            user_id: Owner of the profile.
            xp_amount: XP to grant; defaults to ``xp_per_completion``.
            plan: Completed plan to persist alongside the award.
            expected_plan_status: Status the stored plan must still have.

        Returns:
            Updated profile snapshot.

        Raises:
            PersistenceError: If the store fails or the profile stays contended.
        """
        xp = self.xp_per_completion if xp_amount is None else xp_amount
        if not isinstance(xp, int) or xp <= 0:
            raise ValueError("xp_amount must be a positive integer")

        async with self._user_locks[user_id]:
            for attempt in range(1, self.max_retries + 1):
                current = await self.store.get_profile(user_id)
                expected_version = current.version if current else 0
                fields = compute_progression(current, xp)
                session = StudySession(
                    user_id=user_id,
                    duration_minutes=self.session_minutes,
                    xp_earned=xp,
                    session_type="study",
                    plan_id=plan.id if plan else None,
                )
                try:
                    profile = await self.store.record_completion(
                        user_id,
                        fields,
                        expected_version,
                        session,
                        plan=plan,
                        expected_plan_status=expected_plan_status,
                    )
                except ConcurrentUpdateError as e:
                    if e.entity != "profile":
                        raise
                    logger.warning(
                        "profile_update_conflict",
                        user_id=user_id,
                        attempt=attempt,
                        expected_version=expected_version,
                    )
                    continue

                logger.info(
                    "xp_awarded",
                    user_id=user_id,
                    xp=xp,
                    total_xp=profile.total_xp,
                    level=profile.level,
                    current_streak=profile.current_streak,
                    session_id=session.id,
                )
                return profile

        logger.error("profile_update_gave_up", user_id=user_id, attempts=self.max_retries)
        raise ConcurrentUpdateError("profile", user_id)
