"""Study plan status state machine."""

from collections.abc import Callable
from datetime import datetime

import structlog
from pydantic import BaseModel

from study_planner.exceptions import InvalidTransition
from study_planner.models.study_plan import PlanStatus, StudyPlan

logger = structlog.get_logger()

LEGAL_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.PENDING: frozenset({PlanStatus.IN_PROGRESS}),
    PlanStatus.IN_PROGRESS: frozenset({PlanStatus.COMPLETED, PlanStatus.PAUSED}),
    PlanStatus.PAUSED: frozenset({PlanStatus.IN_PROGRESS}),
    PlanStatus.COMPLETED: frozenset(),
}

# Buttons offered for each status, in display order.
PLAN_ACTIONS: dict[PlanStatus, list[tuple[str, PlanStatus]]] = {
    PlanStatus.PENDING: [("Start", PlanStatus.IN_PROGRESS)],
    PlanStatus.IN_PROGRESS: [("Complete", PlanStatus.COMPLETED), ("Pause", PlanStatus.PAUSED)],
    PlanStatus.PAUSED: [("Resume", PlanStatus.IN_PROGRESS)],
    PlanStatus.COMPLETED: [],
}


class CompletionEvent(BaseModel):
    """Fired once when a plan enters ``completed``."""

    plan_id: str
    user_id: str
    completed_at: datetime


class TransitionResult(BaseModel):
    plan: StudyPlan
    previous_status: PlanStatus
    changed: bool
    event: CompletionEvent | None = None


class PlanLifecycle:
    """Validates and applies status transitions on a single study plan.

    Transitions return a new plan; the input plan is never mutated. Moving a
    plan to the status it already has is a no-op that fires no event.

    Args:
        clock: Source of the current time, overridable in tests.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    @staticmethod
    def is_legal(current: PlanStatus, target: PlanStatus) -> bool:
        return target in LEGAL_TRANSITIONS[current]

    @staticmethod
    def actions_for(status: PlanStatus) -> list[tuple[str, PlanStatus]]:
        return list(PLAN_ACTIONS[status])

    def transition(self, plan: StudyPlan, target: PlanStatus | str) -> TransitionResult:
        """Move ``plan`` to ``target``.

        Args:
            plan: Current plan record.
            target: Requested status.

        Returns:
            The transition result, carrying a ``CompletionEvent`` when the
            plan entered ``completed``.

        Raises:
            InvalidTransition: If ``target`` is unknown or the edge is not legal.
        """
        try:
            target = PlanStatus(target)
        except ValueError:
            raise InvalidTransition(plan.status.value, str(target))

        if target == plan.status:
            return TransitionResult(plan=plan, previous_status=plan.status, changed=False)

        if not self.is_legal(plan.status, target):
            logger.warning(
                "plan_transition_rejected",
                plan_id=plan.id,
                current=plan.status.value,
                target=target.value,
            )
            raise InvalidTransition(plan.status.value, target.value)

        now = self._clock()
        completed_at = now if target == PlanStatus.COMPLETED else None
        updated = StudyPlan.model_validate({
            **plan.model_dump(),
            "status": target,
            "completed_at": completed_at,
            "updated_at": now,
        })

        event = None
        if completed_at is not None:
            event = CompletionEvent(plan_id=plan.id, user_id=plan.user_id, completed_at=completed_at)

        logger.info(
            "plan_transitioned",
            plan_id=plan.id,
            previous=plan.status.value,
            status=target.value,
        )
        return TransitionResult(
            plan=updated, previous_status=plan.status, changed=True, event=event
        )
