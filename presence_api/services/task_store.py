"""Task store - guild task rows in the Supabase tasks table."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional
from presence_api.models.task import NewTask, Task, TaskFilter
from presence_api.services.supabase_client import SupabaseClient, execute
from presence_api.utils.errors import SupabaseError, TaskNotFoundError
from presence_api.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

DEFAULT_TABLE = "guild_tasks"

# Result caps
UNIQUE_CHECK_LIMIT = 2
LIST_LIMIT = 20
SCAN_LIMIT = 200

IMMUTABLE_FIELDS = frozenset({"id", "guild_id", "channel_id", "created_by", "created_at"})


def generate_task_id() -> str:
    """Generate a text-based task ID with a uniformly random prefix."""
    return uuid.uuid4().hex


def escape_like(prefix: str) -> str:
    """Escape LIKE metacharacters so a prefix matches literally."""
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _serialize(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert datetimes to ISO strings for the PostgREST JSON body."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


def _to_tasks(rows: Optional[list[dict]]) -> list[Task]:
    return [Task.model_validate(row) for row in rows or []]


class TaskStore:
    """
    CRUD and lookups over the tasks table.

    Performs no business validation beyond rejecting patches to immutable
    columns; state rules live in the lifecycle controller.
    """

    def __init__(self, table: str = DEFAULT_TABLE):
        self.table = table

    async def create(self, fields: NewTask) -> Task:
        """Insert a new open task; assigns id and created_at."""
        row = fields.model_dump(mode="json")
        row.update({
            "id": generate_task_id(),
            "created_at": datetime.now(timezone.utc).isoformat(),
            "done": False,
        })

        async with SupabaseClient() as client:
            try:
                result = await execute(client.table(self.table).insert(row))
            except Exception as e:
                raise SupabaseError(f"Failed to create task: {e}")

        if not result.data:
            raise SupabaseError("Failed to create task: no data returned")

        task = Task.model_validate(result.data[0])
        logger.debug("Task row created", task_id=task.id, guild_id=task.guild_id)
        return task

    async def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID, None if it does not exist."""
        async with SupabaseClient() as client:
            try:
                result = await execute(
                    client.table(self.table).select("*").eq("id", task_id).limit(1)
                )
            except Exception as e:
                raise SupabaseError(f"Failed to get task: {e}")

        tasks = _to_tasks(result.data)
        return tasks[0] if tasks else None

    async def find_by_id_prefix(
        self,
        guild_id: str,
        prefix: str,
        limit: int = UNIQUE_CHECK_LIMIT
    ) -> list[Task]:
        """Find tasks in a guild whose ID starts with prefix (case-sensitive)."""
        async with SupabaseClient() as client:
            try:
                result = await execute(
                    client.table(self.table)
                    .select("*")
                    .eq("guild_id", guild_id)
                    .like("id", f"{escape_like(prefix)}%")
                    .limit(limit)
                )
            except Exception as e:
                raise SupabaseError(f"Failed to find tasks by prefix: {e}")

        return _to_tasks(result.data)

    async def update(self, task_id: str, patch: dict[str, Any]) -> Task:
        """Merge patch into a task and return the stored row."""
        touched = IMMUTABLE_FIELDS.intersection(patch)
        if touched:
            raise ValueError(f"Immutable task fields cannot be updated: {sorted(touched)}")

        async with SupabaseClient() as client:
            try:
                result = await execute(
                    client.table(self.table).update(_serialize(patch)).eq("id", task_id)
                )
            except Exception as e:
                raise SupabaseError(f"Failed to update task: {e}")

        if not result.data:
            raise TaskNotFoundError("That task no longer exists.", f"Task not found: {task_id}")
        return Task.model_validate(result.data[0])

    async def delete(self, task_id: str) -> None:
        """Delete a task row; raises TaskNotFoundError if it is already gone."""
        async with SupabaseClient() as client:
            try:
                result = await execute(
                    client.table(self.table).delete().eq("id", task_id)
                )
            except Exception as e:
                raise SupabaseError(f"Failed to delete task: {e}")

        if not result.data:
            raise TaskNotFoundError("That task no longer exists.", f"Task not found: {task_id}")
        logger.debug("Task row deleted", task_id=task_id)

    async def list_tasks(
        self,
        guild_id: str,
        task_filter: TaskFilter = TaskFilter.OPEN,
        limit: int = LIST_LIMIT
    ) -> list[Task]:
        """
        List tasks in a guild.

        Open tasks come before done ones, then by due date (undated last),
        then by creation time.
        """
        async with SupabaseClient() as client:
            query = client.table(self.table).select("*").eq("guild_id", guild_id)

            if task_filter == TaskFilter.OPEN:
                query = query.eq("done", False)
            elif task_filter == TaskFilter.CLAIMED:
                query = query.eq("done", False).not_.is_("claimed_by", "null")
            elif task_filter == TaskFilter.DONE:
                query = query.eq("done", True)

            # Ascending order puts NULL due dates last in Postgres
            query = query.order("done").order("due_at").order("created_at").limit(limit)

            try:
                result = await execute(query)
            except Exception as e:
                raise SupabaseError(f"Failed to list tasks: {e}")

        return _to_tasks(result.data)

    async def find_ghosts(self, guild_id: str, limit: int = SCAN_LIMIT) -> list[Task]:
        """Find tasks in a guild that have no mirror message."""
        async with SupabaseClient() as client:
            try:
                result = await execute(
                    client.table(self.table)
                    .select("*")
                    .eq("guild_id", guild_id)
                    .or_("message_id.is.null,message_id.eq.")
                    .limit(limit)
                )
            except Exception as e:
                raise SupabaseError(f"Failed to find ghost tasks: {e}")

        return _to_tasks(result.data)
