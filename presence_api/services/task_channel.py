"""Designated task channel lookup, resolved once and then memoized."""

from typing import Optional

import discord

from presence_api.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

DEFAULT_CHANNEL_NAME = "todo"


class TaskChannelResolver:
    """Resolve the task channel: configured id first, else the #todo text channel."""

    def __init__(
        self,
        client: discord.Client,
        guild_id: str,
        configured_id: Optional[str] = None,
        channel_name: str = DEFAULT_CHANNEL_NAME
    ):
        self.client = client
        self.guild_id = guild_id
        self.channel_name = channel_name
        self._channel_id: Optional[str] = configured_id

    @property
    def channel_id(self) -> Optional[str]:
        """Resolved channel id without triggering a lookup."""
        return self._channel_id

    async def resolve(self) -> Optional[str]:
        """Return the task channel id, looking it up by name on first use."""
        if self._channel_id:
            return self._channel_id

        guild = self.client.get_guild(int(self.guild_id))
        if guild is None:
            guild = await self.client.fetch_guild(int(self.guild_id))

        channels = await guild.fetch_channels()
        match = next(
            (
                c for c in channels
                if isinstance(c, discord.TextChannel) and c.name.lower() == self.channel_name
            ),
            None
        )

        if match is None:
            logger.warning(
                "Task channel not found; set TODO_CHANNEL_ID",
                guild_id=self.guild_id,
                channel_name=self.channel_name
            )
            return None

        self._channel_id = str(match.id)
        logger.info("TODO_CHANNEL_ID not set, using channel by name", channel_id=self._channel_id)
        return self._channel_id
