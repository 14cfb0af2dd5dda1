"""Study plan data models."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class PlanStatus(StrEnum):
    """Study plan lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")

    @property
    def color(self) -> str:
        return _STATUS_COLORS[self]


class Priority(StrEnum):
    """Study plan priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def color(self) -> str:
        return _PRIORITY_COLORS[self]


_STATUS_COLORS: dict[PlanStatus, str] = {
    PlanStatus.COMPLETED: "green",
    PlanStatus.IN_PROGRESS: "blue",
    PlanStatus.PAUSED: "yellow",
    PlanStatus.PENDING: "gray",
}

_PRIORITY_COLORS: dict[Priority, str] = {
    Priority.URGENT: "red",
    Priority.HIGH: "orange",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}


class StudyPlanCreate(BaseModel):
    """Fields a user supplies when creating a study plan."""

    title: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    due_date: datetime | None = None
    estimated_hours: float = Field(default=1, ge=1)


class StudyPlan(BaseModel):
    """A user's study plan.

    ``completed_at`` is set if and only if ``status`` is ``completed``.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    title: str
    description: str = ""
    subject: str
    priority: Priority = Priority.MEDIUM
    status: PlanStatus = PlanStatus.PENDING
    due_date: datetime | None = None
    estimated_hours: float = Field(default=1, gt=0)
    actual_hours: float = Field(default=0, ge=0)
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _check_completed_at(self) -> "StudyPlan":
        if (self.status == PlanStatus.COMPLETED) != (self.completed_at is not None):
            raise ValueError("completed_at must be set exactly when status is 'completed'")
        return self

    @classmethod
    def new(cls, user_id: str, data: StudyPlanCreate) -> "StudyPlan":
        """Build a fresh pending plan owned by ``user_id``."""
        return cls(user_id=user_id, **data.model_dump())
