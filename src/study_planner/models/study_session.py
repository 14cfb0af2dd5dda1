"""Study session audit record."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class StudySession(BaseModel):
    """One XP-granting event. Append-only."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    duration_minutes: int = Field(gt=0)
    xp_earned: int = Field(gt=0)
    session_type: str = "study"
    plan_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
