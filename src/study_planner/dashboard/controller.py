"""Dashboard orchestration: user actions in, view state and notices out."""

from typing import Literal

import structlog
from pydantic import BaseModel

from study_planner.coach.advisor import CoachReply, classify_intent, respond
from study_planner.exceptions import NotFound, StudyPlannerError
from study_planner.models.profile import Profile, ProfileDetailsUpdate, level_for_xp
from study_planner.models.study_plan import PlanStatus, StudyPlan, StudyPlanCreate
from study_planner.progression.engine import ProgressionEngine
from study_planner.progression.leaderboard import DEFAULT_LIMIT, LeaderboardEntry, LeaderboardRanker
from study_planner.progression.lifecycle import PlanLifecycle
from study_planner.storage.base import PlanStore

logger = structlog.get_logger()


class Notice(BaseModel):
    """Transient message shown to the user after an action."""

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class DashboardStats(BaseModel):
    total_plans: int
    completed: int
    in_progress: int
    level: int
    level_progress: int
    total_xp: int
    current_streak: int
    longest_streak: int


class DashboardController:
    """Sequences lifecycle and progression calls for one signed-in user.

    This is the recovery boundary: any ``StudyPlannerError`` from the layers
    below is logged, recorded as a destructive notice and kept in
    ``last_error``, and the view state (``profile`` and ``plans``) is left
    exactly as it was before the action.

    Args:
        user_id: Stable identifier supplied by the identity provider.
        store: Backing PlanStore.
        engine: Progression engine used for completions.
        lifecycle: Status state machine.
        ranker: Leaderboard ranker.
    """

    def __init__(
        self,
        user_id: str,
        store: PlanStore,
        engine: ProgressionEngine,
        lifecycle: PlanLifecycle | None = None,
        ranker: LeaderboardRanker | None = None,
    ):
        self.user_id = user_id
        self.store = store
        self.engine = engine
        self.lifecycle = lifecycle or PlanLifecycle()
        self.ranker = ranker or LeaderboardRanker(store)

        self.profile: Profile | None = None
        self.plans: list[StudyPlan] = []
        self.notices: list[Notice] = []
        self.last_error: StudyPlannerError | None = None

    # -- helpers ---------------------------------------------------------------

    def _notify(self, title: str, description: str) -> None:
        self.notices.append(Notice(title=title, description=description))

    def _fail(self, title: str, error: StudyPlannerError) -> None:
        logger.warning(
            "dashboard_action_failed",
            user_id=self.user_id,
            action=title,
            error_type=type(error).__name__,
            error=str(error),
        )
        self.last_error = error
        self.notices.append(Notice(title=title, description=str(error), variant="destructive"))

    def pop_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def _find_plan(self, plan_id: str) -> StudyPlan:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        raise NotFound("study_plan", plan_id)

    # -- view state ------------------------------------------------------------

    @property
    def stats(self) -> DashboardStats:
        profile = self.profile
        total_xp = profile.total_xp if profile else 0
        return DashboardStats(
            total_plans=len(self.plans),
            completed=sum(1 for p in self.plans if p.status == PlanStatus.COMPLETED),
            in_progress=sum(1 for p in self.plans if p.status == PlanStatus.IN_PROGRESS),
            level=level_for_xp(total_xp),
            level_progress=profile.level_progress if profile else 0,
            total_xp=total_xp,
            current_streak=profile.current_streak if profile else 0,
            longest_streak=profile.longest_streak if profile else 0,
        )

    async def load(self) -> bool:
        """Refresh profile and plans from the store."""
        self.last_error = None
        try:
            profile = await self.store.get_profile(self.user_id)
            plans = await self.store.list_study_plans(self.user_id)
        except StudyPlannerError as e:
            self._fail("Error loading data", e)
            return False
        self.profile = profile
        self.plans = plans
        return True

    # -- actions -----------------------------------------------------------------

    async def create_plan(self, data: StudyPlanCreate) -> StudyPlan | None:
        self.last_error = None
        plan = StudyPlan.new(self.user_id, data)
        try:
            plan = await self.store.insert_study_plan(plan)
        except StudyPlannerError as e:
            self._fail("Error creating study plan", e)
            return None

        self.plans = [plan, *self.plans]
        logger.info("plan_created", user_id=self.user_id, plan_id=plan.id)
        self._notify("Study plan created!", "Your new study plan has been added successfully.")
        return plan

    async def update_plan_status(self, plan_id: str, status: PlanStatus | str) -> StudyPlan | None:
        """Apply a status change; completions award XP before success is reported."""
        self.last_error = None
        try:
            plan = self._find_plan(plan_id)
            result = self.lifecycle.transition(plan, status)
            if not result.changed:
                return plan

            profile = self.profile
            if result.event is not None:
                # Plan status, profile and session are written together.
                profile = await self.engine.award_completion(
                    self.user_id,
                    plan=result.plan,
                    expected_plan_status=result.previous_status,
                )
                updated = result.plan
            else:
                updated = await self.store.update_study_plan_status(
                    plan.id,
                    result.plan.status,
                    result.plan.completed_at,
                    expected_status=result.previous_status,
                )
        except StudyPlannerError as e:
            self._fail("Error updating study plan", e)
            return None

        self.plans = [updated if p.id == plan_id else p for p in self.plans]
        self.profile = profile
        if result.event is not None:
            self._notify(
                "Congratulations!",
                f"Study plan completed! You earned {self.engine.xp_per_completion} XP points.",
            )
        return updated

    async def update_profile_details(self, update: ProfileDetailsUpdate) -> Profile | None:
        self.last_error = None
        fields = update.model_dump(exclude_none=True)
        try:
            await self.store.ensure_profile(self.user_id)
            profile = await self.store.update_profile(self.user_id, fields)
        except StudyPlannerError as e:
            self._fail("Error updating profile", e)
            return None

        self.profile = profile
        self._notify("Profile updated!", "Your profile has been successfully updated.")
        return profile

    async def leaderboard(self, limit: int = DEFAULT_LIMIT) -> list[LeaderboardEntry] | None:
        self.last_error = None
        try:
            return await self.ranker.rank(limit)
        except StudyPlannerError as e:
            self._fail("Error loading leaderboard", e)
            return None

    def ask_coach(self, text: str) -> CoachReply:
        return respond(classify_intent(text))
