"""Profile model holding a user's progression state."""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field, model_validator

XP_PER_LEVEL = 100


def level_for_xp(total_xp: int) -> int:
    """Level derived from accumulated XP: one level every 100 XP, starting at 1."""
    return total_xp // XP_PER_LEVEL + 1


class Profile(BaseModel):
    user_id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    total_xp: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    # Incremented by the store on every write; used for conditional updates.
    version: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def level(self) -> int:
        return level_for_xp(self.total_xp)

    @model_validator(mode="after")
    def _check_streaks(self) -> "Profile":
        if self.longest_streak < self.current_streak:
            raise ValueError("longest_streak cannot be lower than current_streak")
        return self

    @property
    def level_progress(self) -> int:
        """XP earned towards the next level (0-99)."""
        return self.total_xp % XP_PER_LEVEL

    @property
    def shown_name(self) -> str:
        return self.display_name or self.username or "Anonymous"

    def initial(self, fallback: str = "U") -> str:
        name = self.display_name or self.username
        return name[0].upper() if name else fallback


def ranking_key(profile: Profile) -> tuple:
    """Sort key: most XP first, ties broken by earliest sign-up, then user id."""
    return (-profile.total_xp, profile.created_at, profile.user_id)


class ProfileDetailsUpdate(BaseModel):
    """User-editable profile fields. Progression fields are never accepted here."""

    username: str | None = None
    display_name: str | None = None
