"""Command router - one dispatch path from slash commands and buttons into the controller."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from presence_api.models.task import Actor, CommandContext
from presence_api.services.task_controller import CommandOutcome, TaskLifecycleController
from presence_api.services.task_presenter import TaskActionKind, parse_action_custom_id
from presence_api.utils.errors import TaskError
from presence_api.utils.logging import (
    correlation_context,
    generate_correlation_id,
    get_structured_logger,
    log_timing,
    mask_user_id,
)

logger = get_structured_logger(__name__)

GENERIC_FAILURE = "Something went wrong 🤕"


class TaskCommand(str, Enum):
    """/task subcommands."""
    ADD = "add"
    LIST = "list"
    DELETE = "delete"
    CLEANUP = "cleanup"


class Reply(BaseModel):
    """What to tell the member; ok is False for rejections and failures."""
    content: Optional[str] = None
    ok: bool = True


class TaskCommandRouter:
    """
    Routes /task subcommands and task:<verb>:<id> buttons to the lifecycle
    controller and turns every outcome into a Reply.

    TaskError subclasses become their user message; anything unexpected is
    logged and answered with a generic apology so one failing handler never
    takes the bot down.
    """

    def __init__(self, controller: TaskLifecycleController):
        self.controller = controller

    async def _run_command(
        self,
        command: TaskCommand,
        ctx: CommandContext,
        actor: Actor,
        options: dict[str, Any]
    ) -> CommandOutcome:
        if command == TaskCommand.ADD:
            return await self.controller.add(
                ctx,
                actor,
                title=options.get("title") or "",
                notes=options.get("notes"),
                due=options.get("due"),
                priority=options.get("priority"),
                channel_id=options.get("channel_id"),
            )
        if command == TaskCommand.LIST:
            return await self.controller.list_tasks(ctx, options.get("filter"))
        if command == TaskCommand.DELETE:
            return await self.controller.delete_by_prefix(ctx, actor, options.get("id") or "")
        return await self.controller.cleanup(ctx, actor)

    async def _run_action(
        self,
        kind: TaskActionKind,
        task_id: str,
        ctx: CommandContext,
        actor: Actor
    ) -> CommandOutcome:
        if kind == TaskActionKind.CLAIM:
            return await self.controller.toggle_claim(ctx, actor, task_id)
        if kind == TaskActionKind.DONE:
            return await self.controller.complete(ctx, actor, task_id)
        return await self.controller.delete_by_id(ctx, actor, task_id)

    async def dispatch_command(
        self,
        name: str,
        ctx: CommandContext,
        actor: Actor,
        options: Optional[dict[str, Any]] = None
    ) -> Reply:
        """Run a /task subcommand and build the ephemeral reply."""
        with correlation_context(generate_correlation_id("cmd")):
            try:
                command = TaskCommand(name)
            except ValueError:
                logger.warning("Unknown task subcommand", subcommand=name)
                return Reply(content=GENERIC_FAILURE, ok=False)

            try:
                with log_timing("task_command", logger=logger, subcommand=command.value):
                    outcome = await self._run_command(command, ctx, actor, options or {})
                return Reply(content=outcome.message, ok=True)
            except TaskError as e:
                logger.info(
                    "Task command rejected",
                    subcommand=command.value,
                    reason=type(e).__name__,
                    actor=mask_user_id(actor.user_id),
                )
                return Reply(content=e.user_message, ok=False)
            except Exception as e:
                logger.error(
                    "Task command failed",
                    subcommand=command.value,
                    error=str(e),
                    exc_info=True,
                )
                return Reply(content=GENERIC_FAILURE, ok=False)

    async def dispatch_button(
        self,
        custom_id: str,
        ctx: CommandContext,
        actor: Actor
    ) -> Optional[Reply]:
        """Run a task button action; None if the custom id is not a task button."""
        parsed = parse_action_custom_id(custom_id)
        if parsed is None:
            return None
        kind, task_id = parsed

        with correlation_context(generate_correlation_id("btn")):
            try:
                with log_timing("task_button", logger=logger, action=kind.value, task_id=task_id):
                    outcome = await self._run_action(kind, task_id, ctx, actor)
                return Reply(content=outcome.message, ok=True)
            except TaskError as e:
                logger.info(
                    "Task button rejected",
                    action=kind.value,
                    task_id=task_id,
                    reason=type(e).__name__,
                    actor=mask_user_id(actor.user_id),
                )
                return Reply(content=e.user_message, ok=False)
            except Exception as e:
                logger.error(
                    "Task button failed",
                    action=kind.value,
                    task_id=task_id,
                    error=str(e),
                    exc_info=True,
                )
                return Reply(content=GENERIC_FAILURE, ok=False)
