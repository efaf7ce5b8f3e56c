"""Task models."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator


PRIORITY_HIGH = 1
PRIORITY_NORMAL = 2
PRIORITY_LOW = 3


def clamp_priority(value: Optional[int]) -> int:
    """Clamp any priority input into 1 (high) .. 3 (low); None means normal."""
    if value is None:
        return PRIORITY_NORMAL
    return min(PRIORITY_LOW, max(PRIORITY_HIGH, int(value)))


class TaskFilter(str, Enum):
    """Listing filters for /task list."""
    OPEN = "open"
    CLAIMED = "claimed"
    DONE = "done"
    ALL = "all"


class TaskState(str, Enum):
    """Lifecycle state derived from the stored fields."""
    OPEN = "open"
    CLAIMED = "claimed"
    DONE = "done"


class Task(BaseModel):
    """Guild task - one row of the tasks table, mirrored by one chat message."""
    id: str = Field(..., description="Task ID (text, immutable)")
    guild_id: str = Field(..., description="Owning guild ID")
    channel_id: str = Field(..., description="Channel the task is bound to")
    title: str = Field(..., min_length=1, description="Task title")
    notes: Optional[str] = Field(None, description="Task notes")
    due_at: Optional[datetime] = Field(None, description="Due date")
    priority: int = Field(default=PRIORITY_NORMAL, description="1=high, 2=normal, 3=low")
    created_by: str = Field(..., description="Creator user ID")
    created_at: datetime = Field(..., description="Creation timestamp")
    claimed_by: Optional[str] = None
    claimed_at: Optional[datetime] = None
    done: bool = False
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    message_id: Optional[str] = Field(None, description="Mirror message ID (null for ghost tasks)")

    @field_validator("priority", mode="before")
    @classmethod
    def _clamp_priority(cls, value: Any) -> int:
        return clamp_priority(value)

    @model_validator(mode="after")
    def _check_pairs(self) -> "Task":
        """claimed_* and completed_* are set and cleared together."""
        if (self.claimed_by is None) != (self.claimed_at is None):
            raise ValueError("claimed_by and claimed_at must both be set or both be null")
        if (self.completed_by is None) != (self.completed_at is None):
            raise ValueError("completed_by and completed_at must both be set or both be null")
        if self.completed_by is not None and not self.done:
            raise ValueError("completed_by is only set on done tasks")
        return self

    @property
    def state(self) -> TaskState:
        if self.done:
            return TaskState.DONE
        if self.claimed_by:
            return TaskState.CLAIMED
        return TaskState.OPEN

    @property
    def is_ghost(self) -> bool:
        return not self.message_id


class NewTask(BaseModel):
    """Fields supplied by the add command; the store assigns id and created_at."""
    guild_id: str
    channel_id: str
    title: str = Field(..., min_length=1)
    notes: Optional[str] = None
    due_at: Optional[datetime] = None
    priority: int = PRIORITY_NORMAL
    created_by: str

    @field_validator("priority", mode="before")
    @classmethod
    def _clamp_priority(cls, value: Any) -> int:
        return clamp_priority(value)


class Actor(BaseModel):
    """Member issuing a command."""
    user_id: str
    is_moderator: bool = Field(default=False, description="Holds Manage Messages in the issuing channel")


class CommandContext(BaseModel):
    """Where a command was issued."""
    guild_id: str
    channel_id: Optional[str] = None
