"""Task lifecycle controller - the state machine behind /task and the task buttons."""

from datetime import datetime, timezone, tzinfo
from typing import Optional

from pydantic import BaseModel

from presence_api.models.task import (
    Actor,
    CommandContext,
    NewTask,
    Task,
    TaskFilter,
    clamp_priority,
)
from presence_api.services.message_mirror import MessageMirror
from presence_api.services.task_channel import TaskChannelResolver
from presence_api.services.task_presenter import parse_due, render_listing, short_id
from presence_api.services.task_store import (
    LIST_LIMIT,
    SCAN_LIMIT,
    UNIQUE_CHECK_LIMIT,
    TaskStore,
)
from presence_api.utils.errors import (
    AmbiguousTaskError,
    MirrorPostError,
    SupabaseError,
    TaskAuthorizationError,
    TaskChannelError,
    TaskCreationError,
    TaskNotFoundError,
    TaskValidationError,
)
from presence_api.utils.logging import get_structured_logger, mask_user_id, sanitize_message_text

logger = get_structured_logger(__name__)

MIN_PREFIX_LENGTH = 6
CREATION_ERROR_LIMIT = 300


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_filter(value: Optional[str]) -> TaskFilter:
    """Map the list filter option to TaskFilter; missing means open."""
    if value is None or not value.strip():
        return TaskFilter.OPEN
    try:
        return TaskFilter(value.strip().lower())
    except ValueError:
        raise TaskValidationError("Filter must be one of: open, claimed, done, all.") from None


class CommandOutcome(BaseModel):
    """Result of a lifecycle command: an optional reply and the affected task."""
    message: Optional[str] = None
    task: Optional[Task] = None


class TaskLifecycleController:
    """
    Validates task commands against task state and actor, mutates the store,
    then brings the mirror message up to date.

    Writes are last-writer-wins: there is no locking or version check, so
    racing claims or completions settle on whichever update lands last.
    Mirror refresh/remove failures never fail a command.
    """

    def __init__(
        self,
        store: TaskStore,
        mirror: MessageMirror,
        channels: TaskChannelResolver,
        enforce_channel: bool = True,
        tz: tzinfo = timezone.utc
    ):
        self.store = store
        self.mirror = mirror
        self.channels = channels
        self.enforce_channel = enforce_channel
        self.tz = tz

    async def _require_task_channel(self, ctx: CommandContext) -> Optional[str]:
        """Task channel id when the restriction is on, None when it is off."""
        if not self.enforce_channel:
            return None

        allowed = await self.channels.resolve()
        if not allowed:
            raise TaskChannelError("Admin: set **TODO_CHANNEL_ID** to the task channel's ID.")
        if ctx.channel_id != allowed:
            raise TaskChannelError(f"Use this command in <#{allowed}>.")
        return allowed

    async def _load_for_action(self, ctx: CommandContext, task_id: str) -> Task:
        task = await self.store.get(task_id)
        if task is None or task.guild_id != ctx.guild_id:
            raise TaskNotFoundError("That task no longer exists.")

        if self.enforce_channel:
            allowed = self.channels.channel_id or await self.channels.resolve()
            if allowed and task.channel_id != allowed:
                raise TaskChannelError(f"This task is locked to <#{allowed}>.")
        return task

    @staticmethod
    def _authorize_delete(task: Task, actor: Actor) -> None:
        if task.created_by != actor.user_id and not actor.is_moderator:
            raise TaskAuthorizationError("You are not allowed to delete this task.")

    async def _roll_back_creation(self, created: Task, posted: Optional[Task]) -> None:
        """Remove a half-created task: its message if one was posted, then its row."""
        if posted is not None:
            await self.mirror.remove(posted)
        try:
            await self.store.delete(created.id)
        except Exception as e:
            logger.error("Task rollback failed", task_id=created.id, error=str(e), exc_info=True)

    async def add(
        self,
        ctx: CommandContext,
        actor: Actor,
        title: str,
        notes: Optional[str] = None,
        due: Optional[str] = None,
        priority: Optional[int] = None,
        channel_id: Optional[str] = None
    ) -> CommandOutcome:
        """Create an open task, post its message, and record the message id."""
        title = (title or "").strip()
        if not title:
            raise TaskValidationError("Title cannot be empty.")

        allowed = await self._require_task_channel(ctx)
        if allowed:
            if channel_id and channel_id != allowed:
                raise TaskChannelError(f"Tasks can only be posted in <#{allowed}>.")
            target = allowed
        else:
            target = channel_id or ctx.channel_id
        if not target:
            raise TaskChannelError("Pick a text channel for the task.")

        if not await self.mirror.can_post(target):
            raise TaskChannelError(
                f"Missing permissions in <#{target}> (need View Channel, Send Messages, Embed Links)."
            )

        created = await self.store.create(NewTask(
            guild_id=ctx.guild_id,
            channel_id=target,
            title=title,
            notes=(notes or "").strip() or None,
            due_at=parse_due(due, self.tz),
            priority=clamp_priority(priority),
            created_by=actor.user_id,
        ))

        posted: Optional[Task] = None
        try:
            message_id = await self.mirror.post(created)
            posted = created.model_copy(update={"message_id": message_id})
            task = await self.store.update(created.id, {"message_id": message_id})
        except (MirrorPostError, SupabaseError, TaskNotFoundError) as e:
            # Store write and chat post are not atomic; undo both
            await self._roll_back_creation(created, posted)
            logger.warning("Task creation rolled back", task_id=created.id, error=str(e))
            raise TaskCreationError(f"Could not create the task in <#{target}>: {e}"[:CREATION_ERROR_LIMIT]) from e

        logger.info(
            "Task created",
            task_id=task.id,
            channel_id=target,
            priority=task.priority,
            title_preview=sanitize_message_text(title, max_length=80),
            actor=mask_user_id(actor.user_id),
        )
        return CommandOutcome(message=f"Task created in <#{target}>.", task=task)

    async def list_tasks(self, ctx: CommandContext, filter_value: Optional[str] = None) -> CommandOutcome:
        """Render up to 20 tasks for the filter."""
        task_filter = parse_filter(filter_value)
        tasks = await self.store.list_tasks(ctx.guild_id, task_filter, limit=LIST_LIMIT)
        return CommandOutcome(message=render_listing(task_filter, tasks))

    async def toggle_claim(self, ctx: CommandContext, actor: Actor, task_id: str) -> CommandOutcome:
        """Claim for the actor, or unclaim when the actor already holds it."""
        task = await self._load_for_action(ctx, task_id)

        if task.claimed_by == actor.user_id:
            patch = {"claimed_by": None, "claimed_at": None}
        else:
            patch = {"claimed_by": actor.user_id, "claimed_at": _utcnow()}

        updated = await self.store.update(task.id, patch)
        await self.mirror.refresh(updated)
        logger.info(
            "Task claim toggled",
            task_id=task.id,
            claimed=updated.claimed_by is not None,
            previous_claimer=mask_user_id(task.claimed_by) if task.claimed_by else None,
            actor=mask_user_id(actor.user_id),
        )
        return CommandOutcome(task=updated)

    async def complete(self, ctx: CommandContext, actor: Actor, task_id: str) -> CommandOutcome:
        """Mark done once; a second completion leaves the task untouched."""
        task = await self._load_for_action(ctx, task_id)
        if task.done:
            return CommandOutcome(message="That task is already done.", task=task)

        updated = await self.store.update(task.id, {
            "done": True,
            "completed_by": actor.user_id,
            "completed_at": _utcnow(),
        })
        await self.mirror.refresh(updated)
        logger.info("Task completed", task_id=task.id, actor=mask_user_id(actor.user_id))
        return CommandOutcome(task=updated)

    async def _delete(self, task: Task, actor: Actor) -> None:
        self._authorize_delete(task, actor)
        await self.store.delete(task.id)
        await self.mirror.remove(task)
        logger.info(
            "Task deleted",
            task_id=task.id,
            by_creator=task.created_by == actor.user_id,
            actor=mask_user_id(actor.user_id),
        )

    async def delete_by_prefix(self, ctx: CommandContext, actor: Actor, id_input: str) -> CommandOutcome:
        """Delete the single task whose id starts with the given prefix."""
        await self._require_task_channel(ctx)

        prefix = (id_input or "").strip()
        if len(prefix) < MIN_PREFIX_LENGTH:
            raise TaskValidationError(f"Use at least {MIN_PREFIX_LENGTH} characters of the task ID.")

        hits = await self.store.find_by_id_prefix(ctx.guild_id, prefix, limit=UNIQUE_CHECK_LIMIT)
        if not hits:
            raise TaskNotFoundError("No task matches that ID.")
        if len(hits) > 1:
            raise AmbiguousTaskError("Several tasks match that prefix. Give the full ID.")

        task = hits[0]
        await self._delete(task, actor)
        return CommandOutcome(message=f"Deleted `{short_id(task)}`.", task=task)

    async def delete_by_id(self, ctx: CommandContext, actor: Actor, task_id: str) -> CommandOutcome:
        """Delete from the task's own Delete button."""
        task = await self._load_for_action(ctx, task_id)
        await self._delete(task, actor)
        return CommandOutcome(task=task)

    async def cleanup(self, ctx: CommandContext, actor: Actor) -> CommandOutcome:
        """Remove ghost tasks (no mirror message) in the guild; moderators only."""
        await self._require_task_channel(ctx)
        if not actor.is_moderator:
            raise TaskAuthorizationError("Only moderators (Manage Messages) can run cleanup.")

        ghosts = await self.store.find_ghosts(ctx.guild_id, limit=SCAN_LIMIT)
        removed = 0
        for task in ghosts:
            try:
                await self.store.delete(task.id)
            except TaskNotFoundError:
                continue
            removed += 1

        logger.info("Ghost task cleanup finished", guild_id=ctx.guild_id, found=len(ghosts), removed=removed)
        return CommandOutcome(message=f"Cleanup: removed {removed} tasks without a message.")
