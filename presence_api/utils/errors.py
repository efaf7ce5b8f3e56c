"""Error handling utilities."""

from typing import Optional


class PresenceApiError(Exception):
    """Base exception for the presence API bot."""
    pass


class ConfigError(PresenceApiError):
    """Required configuration is missing or invalid."""
    pass


class SupabaseError(PresenceApiError):
    """Supabase operation error."""
    pass


class MirrorPostError(PresenceApiError):
    """Posting a task's mirror message failed."""
    pass


class TaskError(PresenceApiError):
    """Task command failure that is reported back to the member."""

    def __init__(self, user_message: str, detail: Optional[str] = None):
        super().__init__(detail or user_message)
        self.user_message = user_message


class TaskValidationError(TaskError):
    """Command input could not be accepted."""
    pass


class TaskAuthorizationError(TaskError):
    """Actor is not allowed to perform the command."""
    pass


class TaskNotFoundError(TaskError):
    """No task matches the given id or prefix."""
    pass


class AmbiguousTaskError(TaskError):
    """More than one task matches the given id prefix."""
    pass


class TaskChannelError(TaskError):
    """Command was issued outside the task channel, or the channel is unusable."""
    pass


class TaskCreationError(TaskError):
    """Task could not be posted; the stored record was rolled back."""
    pass
