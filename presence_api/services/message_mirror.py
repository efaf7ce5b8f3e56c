"""Message mirror - keep each task's chat message in step with its stored row."""

from typing import Optional

import discord

from presence_api.models.task import Task
from presence_api.services.task_presenter import build_embed, build_view, short_id
from presence_api.utils.errors import MirrorPostError
from presence_api.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class MessageMirror:
    """
    Posts, edits and deletes task messages through the Discord client.

    Only post() reports failure; refresh() and remove() are best effort,
    log what went wrong and never retry.
    """

    def __init__(self, client: discord.Client):
        self.client = client

    async def _text_channel(self, channel_id: str) -> Optional[discord.TextChannel]:
        channel = self.client.get_channel(int(channel_id))
        if channel is None:
            channel = await self.client.fetch_channel(int(channel_id))
        return channel if isinstance(channel, discord.TextChannel) else None

    async def _fetch_message(self, task: Task) -> Optional[discord.Message]:
        channel = await self._text_channel(task.channel_id)
        if channel is None:
            logger.info("Task channel is gone or not a text channel", task_id=task.id, channel_id=task.channel_id)
            return None
        try:
            return await channel.fetch_message(int(task.message_id))
        except discord.NotFound:
            logger.info("Task message no longer exists", task_id=task.id, message_id=task.message_id)
            return None

    async def can_post(self, channel_id: str) -> bool:
        """Whether the bot can view, send and embed in the channel."""
        try:
            channel = await self._text_channel(channel_id)
        except discord.DiscordException as e:
            logger.warning("Could not resolve task channel", channel_id=channel_id, error=str(e))
            return False
        if channel is None:
            return False

        perms = channel.permissions_for(channel.guild.me)
        return bool(perms.view_channel and perms.send_messages and perms.embed_links)

    async def post(self, task: Task) -> str:
        """Send the task message and return its ID; raises MirrorPostError."""
        try:
            channel = await self._text_channel(task.channel_id)
            if channel is None:
                raise MirrorPostError(f"Channel {task.channel_id} is not a text channel")
            message = await channel.send(embed=build_embed(task), view=build_view(task))
        except MirrorPostError:
            raise
        except Exception as e:
            logger.warning("Failed to post task message", task_id=task.id, channel_id=task.channel_id, error=str(e))
            raise MirrorPostError(str(e)) from e

        logger.info("Task message posted", task_id=task.id, message_id=str(message.id))
        return str(message.id)

    async def refresh(self, task: Task) -> None:
        """Edit the task message to match the task; no-op if it is gone."""
        if not task.message_id:
            return
        try:
            message = await self._fetch_message(task)
            if message is None:
                return
            await message.edit(embed=build_embed(task), view=build_view(task))
            logger.debug("Task message refreshed", task_id=task.id, short_id=short_id(task))
        except Exception as e:
            logger.warning("Could not update task message", task_id=task.id, error=str(e))

    async def remove(self, task: Task) -> None:
        """Delete the task message; no-op if it is gone."""
        if not task.message_id:
            return
        try:
            message = await self._fetch_message(task)
            if message is None:
                return
            await message.delete()
            logger.debug("Task message deleted", task_id=task.id, short_id=short_id(task))
        except Exception as e:
            logger.warning("Could not delete task message", task_id=task.id, error=str(e))
