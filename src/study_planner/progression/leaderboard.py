"""Leaderboard ranking over all profiles."""

import structlog
from pydantic import BaseModel

from study_planner.models.profile import Profile, ranking_key
from study_planner.storage.base import PlanStore

logger = structlog.get_logger()

DEFAULT_LIMIT = 50
PODIUM_SIZE = 3


class LeaderboardEntry(BaseModel):
    rank: int
    profile: Profile

    @property
    def on_podium(self) -> bool:
        return self.rank <= PODIUM_SIZE

    @property
    def initial(self) -> str:
        return self.profile.initial(fallback=str(self.rank))


class LeaderboardRanker:
    """Ranks profiles by total XP.

    Equal XP is ordered by profile creation time (earliest first), then by
    user id, so the ranking is identical on every read of the same data.
    """

    def __init__(self, store: PlanStore):
        self.store = store

    async def rank(self, limit: int = DEFAULT_LIMIT) -> list[LeaderboardEntry]:
        """Return at most ``limit`` entries numbered 1..N."""
        if limit <= 0:
            raise ValueError("limit must be a positive integer")

        profiles = await self.store.list_profiles()
        ordered = sorted(profiles, key=ranking_key)[:limit]
        logger.debug("leaderboard_ranked", profiles=len(profiles), returned=len(ordered))
        return [
            LeaderboardEntry(rank=position, profile=profile)
            for position, profile in enumerate(ordered, start=1)
        ]
