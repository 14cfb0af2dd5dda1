"""Store interface consumed by the progression core.

The lifecycle, engine, ranker and dashboard only type against ``PlanStore``;
``JsonPlanStore`` is the file-backed implementation shipped with the app.
"""

from datetime import datetime
from typing import Any, Protocol

from study_planner.models.profile import Profile
from study_planner.models.study_plan import PlanStatus, StudyPlan
from study_planner.models.study_session import StudySession


class PlanStore(Protocol):
    """Durable storage for profiles, study plans and study sessions.

    Every method may suspend. Failures surface as ``PersistenceError``;
    a failed precondition as ``ConcurrentUpdateError``; a missing record
    as ``NotFound``.
    """

    async def get_profile(self, user_id: str) -> Profile | None: ...

    async def ensure_profile(self, user_id: str) -> Profile: ...

    async def update_profile(
        self,
        user_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Profile: ...

    async def list_profiles(self, limit: int | None = None) -> list[Profile]: ...

    async def insert_study_session(self, session: StudySession) -> str: ...

    async def list_study_sessions(self, user_id: str) -> list[StudySession]: ...

    async def get_study_plan(self, plan_id: str) -> StudyPlan: ...

    async def insert_study_plan(self, plan: StudyPlan) -> StudyPlan: ...

    async def list_study_plans(self, user_id: str) -> list[StudyPlan]: ...

    async def update_study_plan_status(
        self,
        plan_id: str,
        status: PlanStatus,
        completed_at: datetime | None,
        expected_status: PlanStatus | None = None,
    ) -> StudyPlan: ...

    async def record_completion(
        self,
        user_id: str,
        fields: dict[str, Any],
        expected_version: int,
        session: StudySession,
        plan: StudyPlan | None = None,
        expected_plan_status: PlanStatus | None = None,
    ) -> Profile:
        """Apply a profile update, a session append and an optional plan
        status change as a single all-or-nothing write."""
        ...
