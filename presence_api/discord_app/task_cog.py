"""/task slash commands and task button handling."""

from typing import Any, Optional

import discord
from discord.ext import commands

from presence_api.models.task import Actor, CommandContext
from presence_api.services.task_channel import TaskChannelResolver
from presence_api.services.task_commands import GENERIC_FAILURE, TaskCommandRouter
from presence_api.services.task_presenter import CUSTOM_ID_PREFIX
from presence_api.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

FILTER_CHOICES = ["open", "claimed", "done", "all"]


def actor_from_interaction(interaction: discord.Interaction) -> Actor:
    """Issuing member; Manage Messages in the channel makes it a moderator."""
    perms = interaction.permissions
    return Actor(
        user_id=str(interaction.user.id),
        is_moderator=bool(perms is not None and perms.manage_messages),
    )


def context_from_interaction(interaction: discord.Interaction) -> CommandContext:
    return CommandContext(
        guild_id=str(interaction.guild_id),
        channel_id=str(interaction.channel_id) if interaction.channel_id else None,
    )


class TaskCog(commands.Cog):
    """Thin adapter from Discord interactions to the task command router."""

    task = discord.SlashCommandGroup(name="task", description="Server to-do list")

    def __init__(self, bot: discord.Bot, router: TaskCommandRouter, channels: TaskChannelResolver) -> None:
        self.bot = bot
        self.router = router
        self.channels = channels

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        logger.info("Discord ready", bot_user=str(self.bot.user))
        try:
            await self.channels.resolve()
        except discord.DiscordException as e:
            logger.warning("Could not resolve task channel at startup", error=str(e))

    async def _run(self, ctx: discord.ApplicationContext, subcommand: str, options: dict[str, Any]) -> None:
        # Acknowledge within the 3 second interaction window
        await ctx.defer(ephemeral=True)
        if ctx.guild_id is None:
            await ctx.respond("Use this command in a server.", ephemeral=True)
            return

        reply = await self.router.dispatch_command(
            subcommand,
            context_from_interaction(ctx.interaction),
            actor_from_interaction(ctx.interaction),
            options,
        )
        await ctx.respond(reply.content or "Done.", ephemeral=True)

    @task.command(name="add", description="Add a task")
    async def add(
        self,
        ctx: discord.ApplicationContext,
        title: str = discord.Option(str, description="Title", required=True),
        notes: str = discord.Option(str, description="Notes", required=False, default=None),
        due: str = discord.Option(str, description="YYYY-MM-DD or YYYY-MM-DD HH:mm", required=False, default=None),
        priority: int = discord.Option(int, description="1=high, 2=normal, 3=low", required=False, default=None),
        channel: discord.TextChannel = discord.Option(
            discord.TextChannel,
            description="Channel to post the task in",
            required=False,
            default=None,
        ),
    ) -> None:
        await self._run(ctx, "add", {
            "title": title,
            "notes": notes,
            "due": due,
            "priority": priority,
            "channel_id": str(channel.id) if channel is not None else None,
        })

    @task.command(name="list", description="List tasks")
    async def list_tasks(
        self,
        ctx: discord.ApplicationContext,
        filter: str = discord.Option(str, description="open|claimed|done|all", choices=FILTER_CHOICES, required=False, default="open"),
    ) -> None:
        await self._run(ctx, "list", {"filter": filter})

    @task.command(name="delete", description="Delete a task by ID or ID prefix (6+ characters)")
    async def delete(
        self,
        ctx: discord.ApplicationContext,
        id: str = discord.Option(str, description="Task ID or prefix", required=True),
    ) -> None:
        await self._run(ctx, "delete", {"id": id})

    @task.command(name="cleanup", description="Remove ghost tasks without a message (moderators)")
    async def cleanup(self, ctx: discord.ApplicationContext) -> None:
        await self._run(ctx, "cleanup", {})

    async def cog_command_error(self, ctx: discord.ApplicationContext, error: Exception) -> None:
        logger.error("Slash command handler failed", error=str(error), exc_info=True)
        try:
            await ctx.respond(GENERIC_FAILURE, ephemeral=True)
        except discord.DiscordException as e:
            logger.debug("Could not send failure reply", error=str(e))

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Buttons keyed task:<claim|done|del>:<id>, including ones posted before a restart."""
        if interaction.type != discord.InteractionType.component:
            return
        custom_id: Optional[str] = (interaction.data or {}).get("custom_id")
        if not custom_id or not custom_id.startswith(f"{CUSTOM_ID_PREFIX}:"):
            return

        try:
            await interaction.response.defer()
            if interaction.guild_id is None:
                return
            reply = await self.router.dispatch_button(
                custom_id,
                context_from_interaction(interaction),
                actor_from_interaction(interaction),
            )
            if reply is not None and reply.content:
                await interaction.followup.send(reply.content, ephemeral=True)
        except discord.DiscordException as e:
            logger.warning("Could not answer task button", custom_id=custom_id, error=str(e))
