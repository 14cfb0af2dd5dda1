"""File-backed PlanStore (single JSON document + fcntl.flock + atomic write).

All collections share one document so that a completion (profile, session
and plan status) is persisted by a single ``os.replace``.
"""

import asyncio
import fcntl
import json
import os
import tempfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from study_planner.exceptions import (
    ConcurrentUpdateError,
    NotFound,
    PersistenceError,
    StudyPlannerError,
)
from study_planner.models.profile import Profile, ranking_key
from study_planner.models.study_plan import PlanStatus, StudyPlan
from study_planner.models.study_session import StudySession

logger = structlog.get_logger()


def _empty_document() -> dict:
    return {"profiles": {}, "study_plans": {}, "study_sessions": []}


class JsonPlanStore:
    """PlanStore persisted to a JSON file.

    Reads take a shared lock and writes an exclusive lock on a sibling
    ``.lock`` file, so conditional updates are atomic across processes.

    Args:
        path: Location of the JSON document. Created on first write.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    # -- low level ---------------------------------------------------------

    def _read_document(self) -> dict:
        if not self.path.exists():
            return _empty_document()
        data = json.loads(self.path.read_text(encoding="utf-8"))
        for key, value in _empty_document().items():
            data.setdefault(key, value)
        return data

    def _load(self) -> dict:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_SH)
            try:
                return self._read_document()
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _mutate(self, change: Callable[[dict], Any]) -> Any:
        """Run ``change`` on the document under an exclusive lock and persist it.

        Nothing is written if ``change`` raises.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            try:
                data = self._read_document()
                result = change(data)
                with tempfile.NamedTemporaryFile(
                    "w", dir=self.path.parent, delete=False, suffix=".json", encoding="utf-8"
                ) as tmp:
                    json.dump(data, tmp, indent=2)
                os.replace(tmp.name, self.path)
                return result
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    async def _run(self, fn: Callable, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except StudyPlannerError:
            raise
        except (OSError, ValueError) as e:
            logger.error("store_operation_failed", path=str(self.path), error=str(e))
            raise PersistenceError(str(e)) from e

    # -- document helpers (called under the exclusive lock) ----------------

    @staticmethod
    def _apply_profile(
        data: dict,
        user_id: str,
        fields: dict[str, Any],
        expected_version: int | None,
    ) -> Profile:
        raw = data["profiles"].get(user_id)
        current = Profile.model_validate(raw) if raw is not None else None

        if expected_version is not None:
            actual = current.version if current is not None else 0
            if actual != expected_version:
                raise ConcurrentUpdateError("profile", user_id)
        if current is None:
            if expected_version != 0:
                raise NotFound("profile", user_id)
            current = Profile(user_id=user_id)

        merged = current.model_dump()
        merged.update(fields)
        merged["user_id"] = user_id
        merged["version"] = current.version + 1
        merged["updated_at"] = datetime.now()
        updated = Profile.model_validate(merged)
        data["profiles"][user_id] = updated.model_dump(mode="json")
        return updated

    @staticmethod
    def _apply_plan_status(
        data: dict,
        plan_id: str,
        status: PlanStatus,
        completed_at: datetime | None,
        expected_status: PlanStatus | None,
    ) -> StudyPlan:
        raw = data["study_plans"].get(plan_id)
        if raw is None:
            raise NotFound("study_plan", plan_id)
        current = StudyPlan.model_validate(raw)
        if expected_status is not None and current.status != expected_status:
            raise ConcurrentUpdateError("study_plan", plan_id)

        updated = StudyPlan.model_validate({
            **current.model_dump(),
            "status": status,
            "completed_at": completed_at,
            "updated_at": datetime.now(),
        })
        data["study_plans"][plan_id] = updated.model_dump(mode="json")
        return updated

    # -- profiles ------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Profile | None:
        def _get() -> Profile | None:
            raw = self._load()["profiles"].get(user_id)
            return Profile.model_validate(raw) if raw is not None else None

        return await self._run(_get)

    async def ensure_profile(self, user_id: str) -> Profile:
        def _ensure(data: dict) -> Profile:
            raw = data["profiles"].get(user_id)
            if raw is not None:
                return Profile.model_validate(raw)
            logger.info("profile_created", user_id=user_id)
            return self._apply_profile(data, user_id, {}, expected_version=0)

        return await self._run(self._mutate, _ensure)

    async def update_profile(
        self,
        user_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Profile:
        return await self._run(
            self._mutate,
            lambda data: self._apply_profile(data, user_id, fields, expected_version),
        )

    async def list_profiles(self, limit: int | None = None) -> list[Profile]:
        def _list() -> list[Profile]:
            profiles = [
                Profile.model_validate(raw) for raw in self._load()["profiles"].values()
            ]
            profiles.sort(key=ranking_key)
            return profiles if limit is None else profiles[:limit]

        return await self._run(_list)

    # -- study sessions ------------------------------------------------------

    async def insert_study_session(self, session: StudySession) -> str:
        def _insert(data: dict) -> str:
            data["study_sessions"].append(session.model_dump(mode="json"))
            return session.id

        return await self._run(self._mutate, _insert)

    async def list_study_sessions(self, user_id: str) -> list[StudySession]:
        def _list() -> list[StudySession]:
            sessions = [
                StudySession.model_validate(raw)
                for raw in self._load()["study_sessions"]
                if raw.get("user_id") == user_id
            ]
            sessions.sort(key=lambda s: s.created_at, reverse=True)
            return sessions

        return await self._run(_list)

    # -- study plans ---------------------------------------------------------

    async def get_study_plan(self, plan_id: str) -> StudyPlan:
        def _get() -> StudyPlan:
            raw = self._load()["study_plans"].get(plan_id)
            if raw is None:
                raise NotFound("study_plan", plan_id)
            return StudyPlan.model_validate(raw)

        return await self._run(_get)

    async def insert_study_plan(self, plan: StudyPlan) -> StudyPlan:
        def _insert(data: dict) -> StudyPlan:
            if plan.id in data["study_plans"]:
                raise PersistenceError(f"study_plan {plan.id} already exists")
            data["study_plans"][plan.id] = plan.model_dump(mode="json")
            return plan

        return await self._run(self._mutate, _insert)

    async def list_study_plans(self, user_id: str) -> list[StudyPlan]:
        def _list() -> list[StudyPlan]:
            plans = [
                StudyPlan.model_validate(raw)
                for raw in self._load()["study_plans"].values()
                if raw.get("user_id") == user_id
            ]
            plans.sort(key=lambda p: p.created_at, reverse=True)
            return plans

        return await self._run(_list)

    async def update_study_plan_status(
        self,
        plan_id: str,
        status: PlanStatus,
        completed_at: datetime | None,
        expected_status: PlanStatus | None = None,
    ) -> StudyPlan:
        return await self._run(
            self._mutate,
            lambda data: self._apply_plan_status(
                data, plan_id, status, completed_at, expected_status
            ),
        )

    # -- progression -----------------------------------------------------------

    async def record_completion(
        self,
        user_id: str,
        fields: dict[str, Any],
        expected_version: int,
        session: StudySession,
        plan: StudyPlan | None = None,
        expected_plan_status: PlanStatus | None = None,
    ) -> Profile:
        def _record(data: dict) -> Profile:
            if plan is not None:
                self._apply_plan_status(
                    data, plan.id, plan.status, plan.completed_at, expected_plan_status
                )
            profile = self._apply_profile(data, user_id, fields, expected_version)
            data["study_sessions"].append(session.model_dump(mode="json"))
            return profile

        return await self._run(self._mutate, _record)
