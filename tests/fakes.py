"""In-memory stand-ins for the task store, the message mirror and the channel resolver."""

from datetime import datetime, timezone
from typing import Any, Optional

from presence_api.models.task import NewTask, Task, TaskFilter
from presence_api.services.task_store import IMMUTABLE_FIELDS, generate_task_id
from presence_api.utils.errors import MirrorPostError, SupabaseError, TaskNotFoundError


_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class InMemoryTaskStore:
    """TaskStore with the same contract, backed by a dict."""

    def __init__(self):
        self.rows: dict[str, Task] = {}
        self.deleted: list[str] = []
        self.next_ids: list[str] = []
        self.fail_update = False
        self.fail_delete = False

    def seed(self, task: Task) -> Task:
        self.rows[task.id] = task
        return task

    async def create(self, fields: NewTask) -> Task:
        task_id = self.next_ids.pop(0) if self.next_ids else generate_task_id()
        task = Task(
            id=task_id,
            created_at=datetime.now(timezone.utc),
            done=False,
            **fields.model_dump(),
        )
        self.rows[task.id] = task
        return task

    async def get(self, task_id: str) -> Optional[Task]:
        return self.rows.get(task_id)

    async def find_by_id_prefix(self, guild_id: str, prefix: str, limit: int = 2) -> list[Task]:
        hits = [t for t in self.rows.values() if t.guild_id == guild_id and t.id.startswith(prefix)]
        return hits[:limit]

    async def update(self, task_id: str, patch: dict[str, Any]) -> Task:
        if self.fail_update:
            raise SupabaseError("Failed to update task: connection reset")
        touched = IMMUTABLE_FIELDS.intersection(patch)
        if touched:
            raise ValueError(f"Immutable task fields cannot be updated: {sorted(touched)}")
        current = self.rows.get(task_id)
        if current is None:
            raise TaskNotFoundError("That task no longer exists.")
        updated = Task.model_validate({**current.model_dump(), **patch})
        self.rows[task_id] = updated
        return updated

    async def delete(self, task_id: str) -> None:
        if self.fail_delete:
            raise SupabaseError("Failed to delete task: connection reset")
        if self.rows.pop(task_id, None) is None:
            raise TaskNotFoundError("That task no longer exists.")
        self.deleted.append(task_id)

    async def list_tasks(
        self,
        guild_id: str,
        task_filter: TaskFilter = TaskFilter.OPEN,
        limit: int = 20
    ) -> list[Task]:
        tasks = [t for t in self.rows.values() if t.guild_id == guild_id]
        if task_filter == TaskFilter.OPEN:
            tasks = [t for t in tasks if not t.done]
        elif task_filter == TaskFilter.CLAIMED:
            tasks = [t for t in tasks if not t.done and t.claimed_by]
        elif task_filter == TaskFilter.DONE:
            tasks = [t for t in tasks if t.done]
        tasks.sort(key=lambda t: (t.done, t.due_at or _FAR_FUTURE, t.created_at))
        return tasks[:limit]

    async def find_ghosts(self, guild_id: str, limit: int = 200) -> list[Task]:
        ghosts = [t for t in self.rows.values() if t.guild_id == guild_id and t.is_ghost]
        return ghosts[:limit]


class FakeMirror:
    """Records mirror calls instead of talking to Discord."""

    def __init__(self, postable: bool = True, fail_post: bool = False):
        self.postable = postable
        self.fail_post = fail_post
        self.posted: list[Task] = []
        self.refreshed: list[Task] = []
        self.removed: list[Task] = []
        self._next_message = 900000000000000000

    async def can_post(self, channel_id: str) -> bool:
        return self.postable

    async def post(self, task: Task) -> str:
        if self.fail_post:
            raise MirrorPostError("Missing Access")
        self.posted.append(task)
        self._next_message += 1
        return str(self._next_message)

    async def refresh(self, task: Task) -> None:
        self.refreshed.append(task)

    async def remove(self, task: Task) -> None:
        self.removed.append(task)


class FakeChannelResolver:
    """Task channel resolver with a fixed answer."""

    def __init__(self, channel_id: Optional[str]):
        self._channel_id = channel_id
        self.resolve_calls = 0

    @property
    def channel_id(self) -> Optional[str]:
        return self._channel_id

    async def resolve(self) -> Optional[str]:
        self.resolve_calls += 1
        return self._channel_id
