"""Roster presence lookup against the Discord gateway cache."""

from typing import Optional

import discord

from presence_api.models.presence import PresenceActivity, PresenceView
from presence_api.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

KNOWN_STATUSES = {"online", "idle", "dnd", "offline"}
AVATAR_SIZE = 64


def member_presence(member: discord.Member) -> PresenceView:
    """Build the presence view for a resolved guild member."""
    status = str(member.status)
    if status not in KNOWN_STATUSES:
        status = "offline"

    activities = []
    for activity in member.activities or ():
        activity_type = getattr(activity, "type", None)
        activities.append(PresenceActivity(
            name=activity.name or "",
            type=activity_type.name if activity_type is not None else "unknown",
        ))

    return PresenceView(
        id=str(member.id),
        username=member.name,
        status=status,
        activities=activities,
        avatar_url=member.display_avatar.with_format("png").with_size(AVATAR_SIZE).url,
    )


class DiscordRoster:
    """Presence for the configured member ids of one guild."""

    def __init__(self, client: discord.Client, guild_id: str, member_ids: list[str]):
        self.client = client
        self.guild_id = guild_id
        self.member_ids = list(member_ids)

    def is_ready(self) -> bool:
        """Whether the gateway session is established."""
        return self.client.is_ready()

    async def _resolve_member(self, guild: discord.Guild, member_id: str) -> Optional[discord.Member]:
        if not member_id.isdigit():
            return None

        member = guild.get_member(int(member_id))
        if member is not None:
            return member

        # REST-fetched members carry no presence and report offline
        try:
            return await guild.fetch_member(int(member_id))
        except discord.NotFound:
            return None

    async def fetch_team(self) -> list[PresenceView]:
        """Presence for every roster id, in roster order; unknown ids get a placeholder."""
        guild = self.client.get_guild(int(self.guild_id))
        if guild is None:
            guild = await self.client.fetch_guild(int(self.guild_id))

        team = []
        for member_id in self.member_ids:
            member = await self._resolve_member(guild, member_id)
            if member is None:
                logger.info("Roster member not found in guild", member_id=mask_user_id(member_id))
                team.append(PresenceView.unknown(member_id))
            else:
                team.append(member_presence(member))
        return team
