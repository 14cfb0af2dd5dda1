"""Smoke tests for the JSON plan store."""

from datetime import datetime, timedelta

import pytest

from study_planner.exceptions import ConcurrentUpdateError, NotFound, PersistenceError
from study_planner.models.study_plan import PlanStatus, StudyPlan
from study_planner.models.study_session import StudySession
from study_planner.storage.json_store import JsonPlanStore


@pytest.fixture
def store(tmp_path):
    return JsonPlanStore(tmp_path / "data" / "store.json")


def make_plan(user_id="alice", title="Biology", created_at=None):
    return StudyPlan(
        user_id=user_id,
        title=title,
        subject="Science",
        created_at=created_at or datetime.now(),
    )


class TestProfiles:
    async def test_missing_profile_is_none(self, store):
        assert await store.get_profile("nobody") is None

    async def test_ensure_profile_creates_once(self, store):
        first = await store.ensure_profile("alice")
        second = await store.ensure_profile("alice")

        assert first.total_xp == 0
        assert first.level == 1
        assert first.version == 1
        assert second.version == 1

    async def test_update_bumps_version(self, store):
        await store.ensure_profile("alice")
        updated = await store.update_profile("alice", {"display_name": "Alice"})

        assert updated.display_name == "Alice"
        assert updated.version == 2

    async def test_update_missing_profile(self, store):
        with pytest.raises(NotFound):
            await store.update_profile("ghost", {"display_name": "Ghost"})

    async def test_stale_version_rejected(self, store):
        profile = await store.ensure_profile("alice")
        await store.update_profile("alice", {"total_xp": 50, "current_streak": 1, "longest_streak": 1})

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            await store.update_profile("alice", {"total_xp": 50}, expected_version=profile.version)
        assert exc_info.value.entity == "profile"
        assert (await store.get_profile("alice")).total_xp == 50

    async def test_constraint_violation_is_persistence_error(self, store):
        await store.ensure_profile("alice")
        with pytest.raises(PersistenceError):
            await store.update_profile("alice", {"current_streak": 5, "longest_streak": 2})


class TestStudyPlans:
    async def test_insert_and_get(self, store):
        plan = await store.insert_study_plan(make_plan())
        loaded = await store.get_study_plan(plan.id)
        assert loaded == plan

    async def test_get_missing_plan(self, store):
        with pytest.raises(NotFound):
            await store.get_study_plan("missing")

    async def test_list_newest_first_and_filtered(self, store):
        now = datetime.now()
        await store.insert_study_plan(make_plan(title="old", created_at=now - timedelta(days=2)))
        await store.insert_study_plan(make_plan(title="new", created_at=now))
        await store.insert_study_plan(make_plan(user_id="bob", title="other"))

        plans = await store.list_study_plans("alice")
        assert [p.title for p in plans] == ["new", "old"]

    async def test_status_update_with_expected_status(self, store):
        plan = await store.insert_study_plan(make_plan())

        started = await store.update_study_plan_status(
            plan.id, PlanStatus.IN_PROGRESS, None, expected_status=PlanStatus.PENDING
        )
        assert started.status == PlanStatus.IN_PROGRESS

        with pytest.raises(ConcurrentUpdateError):
            await store.update_study_plan_status(
                plan.id, PlanStatus.IN_PROGRESS, None, expected_status=PlanStatus.PENDING
            )

    async def test_status_update_keeps_completed_at_invariant(self, store):
        plan = await store.insert_study_plan(make_plan())
        with pytest.raises(PersistenceError):
            await store.update_study_plan_status(plan.id, PlanStatus.COMPLETED, None)
        assert (await store.get_study_plan(plan.id)).status == PlanStatus.PENDING


class TestRecordCompletion:
    async def test_all_or_nothing_on_plan_conflict(self, store):
        plan = await store.insert_study_plan(make_plan())
        completed = plan.model_copy(
            update={"status": PlanStatus.COMPLETED, "completed_at": datetime.now()}
        )
        session = StudySession(user_id="alice", duration_minutes=30, xp_earned=50)

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            await store.record_completion(
                "alice",
                {"total_xp": 50, "current_streak": 1, "longest_streak": 1},
                0,
                session,
                plan=completed,
                expected_plan_status=PlanStatus.IN_PROGRESS,
            )

        assert exc_info.value.entity == "study_plan"
        assert await store.get_profile("alice") is None
        assert await store.list_study_sessions("alice") == []
        assert (await store.get_study_plan(plan.id)).status == PlanStatus.PENDING

    async def test_writes_everything_together(self, store):
        plan = await store.insert_study_plan(make_plan())
        completed = plan.model_copy(
            update={"status": PlanStatus.COMPLETED, "completed_at": datetime.now()}
        )
        session = StudySession(user_id="alice", duration_minutes=30, xp_earned=50, plan_id=plan.id)

        profile = await store.record_completion(
            "alice",
            {"total_xp": 50, "current_streak": 1, "longest_streak": 1},
            0,
            session,
            plan=completed,
            expected_plan_status=PlanStatus.PENDING,
        )

        assert profile.total_xp == 50
        assert (await store.get_study_plan(plan.id)).status == PlanStatus.COMPLETED
        sessions = await store.list_study_sessions("alice")
        assert [s.id for s in sessions] == [session.id]


async def test_corrupt_file_raises_persistence_error(store):
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text("{not json")
    with pytest.raises(PersistenceError):
        await store.get_profile("alice")


async def test_insert_study_session_returns_id(store):
    session = StudySession(user_id="alice", duration_minutes=30, xp_earned=50)
    assert await store.insert_study_session(session) == session.id
    assert len(await store.list_study_sessions("alice")) == 1
