"""REST API routes for the study dashboard, leaderboard and coach."""

import functools

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel

from study_planner.coach.advisor import (
    SUGGESTIONS,
    CoachReply,
    classify_intent,
    greeting,
    respond,
)
from study_planner.config import get_settings
from study_planner.dashboard.controller import DashboardController
from study_planner.exceptions import (
    ConcurrentUpdateError,
    InvalidTransition,
    NotFound,
    PersistenceError,
)
from study_planner.models.profile import Profile, ProfileDetailsUpdate
from study_planner.models.study_plan import StudyPlan, StudyPlanCreate
from study_planner.progression.engine import ProgressionEngine
from study_planner.progression.lifecycle import PlanLifecycle
from study_planner.storage.json_store import JsonPlanStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

# Checked in order; subclasses before their bases.
ERROR_STATUS_CODES: list[tuple[type[Exception], int]] = [
    (InvalidTransition, 409),
    (NotFound, 404),
    (ConcurrentUpdateError, 409),
    (PersistenceError, 503),
]


class StatusChange(BaseModel):
    status: str


class CoachMessage(BaseModel):
    message: str


@functools.lru_cache
def _build_engine(
    store_path: str, xp_per_completion: int, session_minutes: int, max_retries: int
) -> ProgressionEngine:
    # One engine per store so per-user completion locks are shared by all requests.
    return ProgressionEngine(
        JsonPlanStore(store_path),
        xp_per_completion=xp_per_completion,
        session_minutes=session_minutes,
        max_retries=max_retries,
    )


def get_engine() -> ProgressionEngine:
    settings = get_settings()
    return _build_engine(
        str(settings.store_path),
        settings.xp_per_completion,
        settings.default_session_minutes,
        settings.max_update_retries,
    )


def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """User id forwarded by the identity provider."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not signed in")
    return x_user_id.strip()


def raise_for_error(controller: DashboardController) -> None:
    error = controller.last_error
    for exc_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, exc_type):
            raise HTTPException(status_code=status_code, detail=str(error))
    raise HTTPException(status_code=500, detail="Unexpected error")


async def get_dashboard(
    user_id: str = Depends(get_current_user),
    engine: ProgressionEngine = Depends(get_engine),
) -> DashboardController:
    controller = DashboardController(user_id, engine.store, engine)
    if not await controller.load():
        raise_for_error(controller)
    return controller


def _plan_view(plan: StudyPlan) -> dict:
    return {
        **plan.model_dump(mode="json"),
        "status_label": plan.status.label,
        "status_color": plan.status.color,
        "priority_color": plan.priority.color,
        "actions": [
            {"label": label, "status": target.value}
            for label, target in PlanLifecycle.actions_for(plan.status)
        ],
    }


def _profile_view(controller: DashboardController) -> dict:
    profile = controller.profile or Profile(user_id=controller.user_id)
    return {
        **profile.model_dump(mode="json", exclude={"version"}),
        "shown_name": profile.shown_name,
        "level_progress": profile.level_progress,
    }


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/dashboard")
async def get_dashboard_view(controller: DashboardController = Depends(get_dashboard)) -> dict:
    """Profile, statistics and plans for the signed-in user."""
    return {
        "profile": _profile_view(controller),
        "stats": controller.stats.model_dump(),
        "plans": [_plan_view(p) for p in controller.plans],
    }


@router.get("/plans")
async def list_plans(controller: DashboardController = Depends(get_dashboard)) -> list[dict]:
    return [_plan_view(p) for p in controller.plans]


@router.post("/plans", status_code=201)
async def create_plan(
    data: StudyPlanCreate,
    controller: DashboardController = Depends(get_dashboard),
) -> dict:
    plan = await controller.create_plan(data)
    if plan is None:
        raise_for_error(controller)
    return {
        "plan": _plan_view(plan),
        "notices": [n.model_dump() for n in controller.pop_notices()],
    }


@router.post("/plans/{plan_id}/status")
async def change_plan_status(
    plan_id: str,
    change: StatusChange,
    controller: DashboardController = Depends(get_dashboard),
) -> dict:
    """Start, pause, resume or complete a plan."""
    plan = await controller.update_plan_status(plan_id, change.status)
    if plan is None:
        raise_for_error(controller)
    return {
        "plan": _plan_view(plan),
        "profile": _profile_view(controller),
        "notices": [n.model_dump() for n in controller.pop_notices()],
    }


@router.get("/profile")
async def get_profile(controller: DashboardController = Depends(get_dashboard)) -> dict:
    return _profile_view(controller)


@router.patch("/profile")
async def update_profile(
    update: ProfileDetailsUpdate,
    controller: DashboardController = Depends(get_dashboard),
) -> dict:
    if await controller.update_profile_details(update) is None:
        raise_for_error(controller)
    return {
        "profile": _profile_view(controller),
        "notices": [n.model_dump() for n in controller.pop_notices()],
    }


@router.get("/leaderboard")
async def get_leaderboard(
    limit: int | None = Query(default=None, gt=0),
    controller: DashboardController = Depends(get_dashboard),
) -> list[dict]:
    """Top profiles by total XP."""
    entries = await controller.leaderboard(limit or get_settings().leaderboard_limit)
    if entries is None:
        raise_for_error(controller)
    return [
        {
            "rank": entry.rank,
            "podium": entry.on_podium,
            "initial": entry.initial,
            "name": entry.profile.shown_name,
            "user_id": entry.profile.user_id,
            "level": entry.profile.level,
            "total_xp": entry.profile.total_xp,
            "current_streak": entry.profile.current_streak,
        }
        for entry in entries
    ]


@router.get("/coach/suggestions")
async def coach_suggestions() -> dict:
    return {"greeting": greeting().model_dump(), "suggestions": SUGGESTIONS}


@router.post("/coach")
async def ask_coach(
    message: CoachMessage,
    user_id: str = Depends(get_current_user),
) -> CoachReply:
    if not message.message.strip():
        raise HTTPException(status_code=400, detail="Message is empty")
    reply = respond(classify_intent(message.message))
    logger.debug("coach_replied", user_id=user_id, intent=reply.intent.value)
    return reply
