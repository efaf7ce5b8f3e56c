"""Task presenter - pure rendering of tasks into chat text, embeds and buttons."""

from datetime import datetime, tzinfo, timezone
from enum import Enum
from typing import Optional, Sequence

import discord
from pydantic import BaseModel

from presence_api.models.task import Task, TaskFilter, TaskState
from presence_api.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

SHORT_ID_LENGTH = 6
NO_DUE_DATE = "—"
EMBED_TITLE_LIMIT = 256
EMBED_DESCRIPTION_LIMIT = 4096
MESSAGE_LIMIT = 2000

PRIORITY_GLYPHS = {1: "🔥", 2: "•", 3: "⬇️"}

CUSTOM_ID_PREFIX = "task"


class TaskActionKind(str, Enum):
    """Button actions; the value is the custom_id verb."""
    CLAIM = "claim"
    DONE = "done"
    DELETE = "del"


class TaskSummary(BaseModel):
    """Display fields for one task."""
    title_line: str
    status_text: str
    due_text: str
    footer: str
    description: str
    created_by_text: str


class TaskAction(BaseModel):
    """One button on a task message."""
    kind: TaskActionKind
    label: str
    custom_id: str
    disabled: bool


def mention(user_id: str) -> str:
    return f"<@{user_id}>"


def short_id(task: Task) -> str:
    """First characters of the task ID, as shown in footers and replies."""
    return task.id[:SHORT_ID_LENGTH]


def priority_glyph(priority: int) -> str:
    return PRIORITY_GLYPHS.get(priority, PRIORITY_GLYPHS[2])


def discord_timestamp(moment: datetime, style: str = "f") -> str:
    """Discord timestamp marker, rendered in each reader's locale."""
    return f"<t:{int(moment.timestamp())}:{style}>"


def message_link(task: Task) -> Optional[str]:
    """Jump link to the mirror message, None for ghost tasks."""
    if not task.message_id:
        return None
    return f"https://discord.com/channels/{task.guild_id}/{task.channel_id}/{task.message_id}"


def action_custom_id(kind: TaskActionKind, task_id: str) -> str:
    return f"{CUSTOM_ID_PREFIX}:{kind.value}:{task_id}"


def parse_action_custom_id(custom_id: str) -> Optional[tuple[TaskActionKind, str]]:
    """Split task:<verb>:<id>; None for anything that is not a task button."""
    parts = (custom_id or "").split(":")
    if len(parts) != 3 or parts[0] != CUSTOM_ID_PREFIX or not parts[2]:
        return None
    try:
        return TaskActionKind(parts[1]), parts[2]
    except ValueError:
        return None


def parse_due(value: Optional[str], tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """
    Parse a due date given as YYYY-MM-DD or YYYY-MM-DD HH:mm.

    A bare date means midnight. The value is interpreted in tz. Blank or
    unparseable input gives None.
    """
    if not value or not value.strip():
        return None

    text = value.strip()
    for fmt in ("%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=tz)
        except ValueError:
            continue

    logger.info("Ignoring unparseable due date", due_input=text[:40])
    return None


def status_text(task: Task) -> str:
    state = task.state
    if state == TaskState.DONE:
        return f"✅ done by {mention(task.completed_by)}" if task.completed_by else "✅ done"
    if state == TaskState.CLAIMED:
        return f"🧑‍💻 claimed by {mention(task.claimed_by)}"
    return "🟢 open"


def render_summary(task: Task) -> TaskSummary:
    """Render the status line, due marker and footer for a task."""
    title_line = f"{priority_glyph(task.priority)} {task.title}"
    return TaskSummary(
        title_line=title_line[:EMBED_TITLE_LIMIT],
        status_text=status_text(task),
        due_text=discord_timestamp(task.due_at, "f") if task.due_at else NO_DUE_DATE,
        footer=f"ID: {short_id(task)}",
        description=(task.notes or "")[:EMBED_DESCRIPTION_LIMIT],
        created_by_text=mention(task.created_by),
    )


def render_actions(task: Task) -> list[TaskAction]:
    """Claim/Unclaim, Done and Delete buttons; all disabled once done."""
    claim_label = "Unclaim" if task.claimed_by else "Claim"
    return [
        TaskAction(
            kind=TaskActionKind.CLAIM,
            label=claim_label,
            custom_id=action_custom_id(TaskActionKind.CLAIM, task.id),
            disabled=task.done,
        ),
        TaskAction(
            kind=TaskActionKind.DONE,
            label="Done",
            custom_id=action_custom_id(TaskActionKind.DONE, task.id),
            disabled=task.done,
        ),
        TaskAction(
            kind=TaskActionKind.DELETE,
            label="Delete",
            custom_id=action_custom_id(TaskActionKind.DELETE, task.id),
            disabled=task.done,
        ),
    ]


_BUTTON_STYLES = {
    TaskActionKind.CLAIM: discord.ButtonStyle.primary,
    TaskActionKind.DONE: discord.ButtonStyle.success,
    TaskActionKind.DELETE: discord.ButtonStyle.danger,
}


def build_embed(task: Task) -> discord.Embed:
    summary = render_summary(task)
    embed = discord.Embed(
        title=summary.title_line,
        description=summary.description,
        timestamp=task.created_at,
    )
    embed.add_field(name="Status", value=summary.status_text, inline=True)
    embed.add_field(name="Due", value=summary.due_text, inline=True)
    embed.add_field(name="Created by", value=summary.created_by_text, inline=True)
    embed.set_footer(text=summary.footer)
    return embed


def build_view(task: Task) -> discord.ui.View:
    """Button row for a task message; must be called with a running event loop."""
    view = discord.ui.View(timeout=None)
    for action in render_actions(task):
        view.add_item(
            discord.ui.Button(
                label=action.label,
                style=_BUTTON_STYLES[action.kind],
                custom_id=action.custom_id,
                disabled=action.disabled,
            )
        )
    return view


def render_listing_line(task: Task) -> str:
    if task.done:
        who = f"✅ {mention(task.completed_by)}" if task.completed_by else "✅"
    elif task.claimed_by:
        who = f"🧑‍💻 {mention(task.claimed_by)}"
    else:
        who = "🟢"

    due = f"— {discord_timestamp(task.due_at, 'R')}" if task.due_at else ""
    tail = message_link(task) or f"(ID: {short_id(task)})"
    ghost = "⚠️ " if task.is_ghost else ""

    parts = [f"{ghost}{who}", priority_glyph(task.priority), f"**{task.title}**"]
    if due:
        parts.append(due)
    parts.append(tail)
    return " ".join(parts)


def render_listing(task_filter: TaskFilter, tasks: Sequence[Task]) -> str:
    """Reply body for /task list."""
    header = f"**Tasks ({task_filter.value})**"
    if not tasks:
        return f"{header}\nNo tasks."
    body = header + "\n" + "\n".join(render_listing_line(t) for t in tasks)
    if len(body) > MESSAGE_LIMIT:
        body = body[: MESSAGE_LIMIT - 3] + "..."
    return body
