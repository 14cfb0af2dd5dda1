"""Tests for XP, level and streak progression."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from study_planner.exceptions import ConcurrentUpdateError, PersistenceError
from study_planner.models.profile import level_for_xp
from study_planner.progression.engine import ProgressionEngine, compute_progression
from study_planner.storage.json_store import JsonPlanStore


@pytest.fixture
def store(tmp_path):
    return JsonPlanStore(tmp_path / "store.json")


@pytest.fixture
def engine(store):
    return ProgressionEngine(store, xp_per_completion=50, session_minutes=30)


async def seed_profile(store, user_id="alice", **fields):
    return await store.update_profile(user_id, fields, expected_version=0)


class TestComputeProgression:
    def test_absent_profile_starts_from_zero(self):
        fields = compute_progression(None, 50)
        assert fields == {"total_xp": 50, "level": 1, "current_streak": 1, "longest_streak": 1}

    @pytest.mark.parametrize("xp,level", [(0, 1), (99, 1), (100, 2), (130, 2), (250, 3)])
    def test_level_formula(self, xp, level):
        assert level_for_xp(xp) == level


class TestAwardCompletion:
    async def test_award_from_80_xp(self, store, engine):
        await seed_profile(store, total_xp=80, current_streak=2, longest_streak=2)

        profile = await engine.award_completion("alice", 50)

        assert profile.total_xp == 130
        assert profile.level == 2
        assert profile.current_streak == 3
        assert profile.longest_streak == 3
        sessions = await store.list_study_sessions("alice")
        assert len(sessions) == 1
        assert sessions[0].xp_earned == 50
        assert sessions[0].duration_minutes == 30
        assert sessions[0].session_type == "study"

    async def test_absent_profile_is_created(self, store, engine):
        profile = await engine.award_completion("newcomer")

        assert profile.total_xp == 50
        assert profile.level == 1
        assert profile.current_streak == 1
        stored = await store.get_profile("newcomer")
        assert stored is not None
        assert stored.total_xp == 50

    async def test_longest_streak_kept_when_higher(self, store, engine):
        await seed_profile(store, total_xp=10, current_streak=1, longest_streak=7)

        profile = await engine.award_completion("alice")

        assert profile.current_streak == 2
        assert profile.longest_streak == 7

    async def test_invariants_hold_over_many_awards(self, store, engine):
        previous_xp = 0
        for _ in range(7):
            profile = await engine.award_completion("alice")
            assert profile.level == profile.total_xp // 100 + 1
            assert profile.longest_streak >= profile.current_streak
            assert profile.total_xp > previous_xp
            previous_xp = profile.total_xp
        assert previous_xp == 350

    @pytest.mark.parametrize("bad", [0, -5, 2.5])
    async def test_rejects_non_positive_award(self, engine, bad):
        with pytest.raises(ValueError):
            await engine.award_completion("alice", bad)

    def test_rejects_non_positive_default(self, store):
        with pytest.raises(ValueError):
            ProgressionEngine(store, xp_per_completion=0)


class TestConcurrentCompletions:
    async def test_same_engine_serializes(self, store, engine):
        await asyncio.gather(
            engine.award_completion("alice", 50),
            engine.award_completion("alice", 50),
        )
        profile = await store.get_profile("alice")
        assert profile.total_xp == 100
        assert profile.current_streak == 2
        assert len(await store.list_study_sessions("alice")) == 2

    async def test_separate_engines_do_not_lose_updates(self, tmp_path):
        path = tmp_path / "store.json"
        first = ProgressionEngine(JsonPlanStore(path))
        second = ProgressionEngine(JsonPlanStore(path))

        await asyncio.gather(
            first.award_completion("alice", 50),
            second.award_completion("alice", 50),
        )

        profile = await JsonPlanStore(path).get_profile("alice")
        assert profile.total_xp == 100
        assert profile.level == 2

    async def test_write_between_read_and_update_is_retried(self, tmp_path, store, engine, monkeypatch):
        other = ProgressionEngine(JsonPlanStore(tmp_path / "store.json"))
        real_record = store.record_completion
        raced = False

        async def racing_record(*args, **kwargs):
            nonlocal raced
            if not raced:
                raced = True
                await other.award_completion("alice", 50)
            return await real_record(*args, **kwargs)

        monkeypatch.setattr(store, "record_completion", racing_record)

        profile = await engine.award_completion("alice", 50)

        assert profile.total_xp == 100
        assert profile.current_streak == 2
        assert len(await store.list_study_sessions("alice")) == 2

    async def test_gives_up_after_max_retries(self, store):
        engine = ProgressionEngine(store, max_retries=3)
        store.record_completion = AsyncMock(side_effect=ConcurrentUpdateError("profile", "alice"))

        with pytest.raises(ConcurrentUpdateError):
            await engine.award_completion("alice")
        assert store.record_completion.await_count == 3

    async def test_plan_conflict_is_not_retried(self, store, engine):
        store.record_completion = AsyncMock(side_effect=ConcurrentUpdateError("study_plan", "p1"))

        with pytest.raises(ConcurrentUpdateError):
            await engine.award_completion("alice")
        assert store.record_completion.await_count == 1


class TestFailures:
    async def test_read_failure_aborts_before_write(self, store, engine):
        store.get_profile = AsyncMock(side_effect=PersistenceError("store unreachable"))
        store.record_completion = AsyncMock()

        with pytest.raises(PersistenceError):
            await engine.award_completion("alice")
        store.record_completion.assert_not_awaited()

    async def test_write_failure_leaves_profile_and_sessions(self, store, engine):
        await seed_profile(store, total_xp=80, current_streak=2, longest_streak=2)
        store.record_completion = AsyncMock(side_effect=PersistenceError("disk full"))

        with pytest.raises(PersistenceError):
            await engine.award_completion("alice")

        profile = await store.get_profile("alice")
        assert profile.total_xp == 80
        assert profile.current_streak == 2
        assert await store.list_study_sessions("alice") == []
