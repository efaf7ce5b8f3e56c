"""Presence models served by /api/presence."""

from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


PresenceStatus = Literal["online", "idle", "dnd", "offline", "unknown"]


class PresenceActivity(BaseModel):
    """One activity shown on a member's profile."""
    name: str
    type: str


class PresenceView(BaseModel):
    """Presence of one roster member."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Member ID")
    username: str = Field(default="unknown", description="Username, 'unknown' when not resolvable")
    status: PresenceStatus = Field(default="unknown")
    activities: list[PresenceActivity] = Field(default_factory=list)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")

    @classmethod
    def unknown(cls, member_id: str) -> "PresenceView":
        """Placeholder for a roster id the guild cannot resolve."""
        return cls(id=member_id, username="unknown", status="unknown", activities=[])


class PresenceSnapshot(BaseModel):
    """Team presence captured at one point in time."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    updated_at: datetime = Field(..., alias="updatedAt")
    team: list[PresenceView] = Field(default_factory=list)

    def to_payload(self) -> dict:
        """JSON body for the HTTP response."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
