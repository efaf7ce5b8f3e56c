"""Tests for routing slash commands and buttons into the controller."""

import pytest
from unittest.mock import AsyncMock

from presence_api.models.task import CommandContext
from presence_api.services.task_commands import GENERIC_FAILURE, TaskCommandRouter
from tests.utils.factories import GUILD_ID, OTHER_CHANNEL_ID, create_done_task, create_task


@pytest.mark.unit
@pytest.mark.asyncio
async def test_add_command(router, store, todo_ctx, creator):
    reply = await router.dispatch_command("add", todo_ctx, creator, {"title": "Book venue", "priority": 1})

    assert reply.ok
    assert reply.content.startswith("Task created in")
    assert [t.title for t in store.rows.values()] == ["Book venue"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_command(router, store, todo_ctx, member):
    store.seed(create_task(title="Book venue"))
    reply = await router.dispatch_command("list", todo_ctx, member, {"filter": "open"})
    assert reply.ok
    assert "Book venue" in reply.content


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rejection_becomes_user_message(router, todo_ctx, member):
    reply = await router.dispatch_command("delete", todo_ctx, member, {"id": "abc"})
    assert not reply.ok
    assert reply.content == "Use at least 6 characters of the task ID."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_channel_restriction_reply(router, creator):
    ctx = CommandContext(guild_id=GUILD_ID, channel_id=OTHER_CHANNEL_ID)
    reply = await router.dispatch_command("cleanup", ctx, creator, {})
    assert not reply.ok
    assert reply.content.startswith("Use this command in <#")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_subcommand(router, todo_ctx, member):
    reply = await router.dispatch_command("archive", todo_ctx, member, {})
    assert not reply.ok
    assert reply.content == GENERIC_FAILURE


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_failure_is_contained(controller, todo_ctx, member):
    controller.list_tasks = AsyncMock(side_effect=RuntimeError("boom"))
    reply = await TaskCommandRouter(controller).dispatch_command("list", todo_ctx, member, {})
    assert not reply.ok
    assert reply.content == GENERIC_FAILURE


@pytest.mark.unit
@pytest.mark.asyncio
async def test_claim_button(router, store, mirror, todo_ctx, member):
    task = store.seed(create_task())

    reply = await router.dispatch_button(f"task:claim:{task.id}", todo_ctx, member)

    assert reply.ok
    assert reply.content is None
    assert store.rows[task.id].claimed_by == member.user_id
    assert len(mirror.refreshed) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_done_button_twice(router, store, todo_ctx, member):
    task = store.seed(create_done_task())
    reply = await router.dispatch_button(f"task:done:{task.id}", todo_ctx, member)
    assert reply.content == "That task is already done."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_button_refused_for_other_member(router, store, todo_ctx, member):
    task = store.seed(create_task())
    reply = await router.dispatch_button(f"task:del:{task.id}", todo_ctx, member)
    assert not reply.ok
    assert reply.content == "You are not allowed to delete this task."
    assert task.id in store.rows


@pytest.mark.unit
@pytest.mark.asyncio
async def test_button_for_missing_task(router, todo_ctx, member):
    reply = await router.dispatch_button("task:done:gone", todo_ctx, member)
    assert reply.content == "That task no longer exists."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_foreign_button_ignored(router, todo_ctx, member):
    assert await router.dispatch_button("poll:vote:1", todo_ctx, member) is None
