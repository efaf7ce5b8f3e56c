"""Tests for roster presence lookup."""

import pytest
from unittest.mock import AsyncMock, MagicMock

import discord

from presence_api.services.roster import DiscordRoster, member_presence

GUILD = "111111111111111111"
ANA = "200000000000000001"
BEN = "200000000000000002"


def make_activity(name, activity_type):
    activity = MagicMock()
    activity.name = name
    activity.type = activity_type
    return activity


def make_member(member_id, username, status=discord.Status.online, activities=()):
    member = MagicMock()
    member.id = int(member_id)
    member.name = username
    member.status = status
    member.activities = list(activities)
    member.display_avatar.with_format.return_value.with_size.return_value.url = (
        f"https://cdn.discordapp.com/avatars/{member_id}/hash.png?size=64"
    )
    return member


def make_client(members, ready=True):
    guild = MagicMock()
    guild.get_member.side_effect = lambda mid: members.get(str(mid))
    guild.fetch_member = AsyncMock(side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member"))

    client = MagicMock()
    client.is_ready.return_value = ready
    client.get_guild.return_value = guild
    return client, guild


@pytest.mark.unit
def test_member_presence_maps_fields():
    member = make_member(ANA, "ana", discord.Status.dnd, [
        make_activity("Visual Studio Code", discord.ActivityType.playing),
        make_activity(None, discord.ActivityType.custom),
    ])

    view = member_presence(member)

    assert view.id == ANA
    assert view.username == "ana"
    assert view.status == "dnd"
    assert [(a.name, a.type) for a in view.activities] == [
        ("Visual Studio Code", "playing"),
        ("", "custom"),
    ]
    assert view.avatar_url.endswith("size=64")
    member.display_avatar.with_format.assert_called_once_with("png")
    member.display_avatar.with_format.return_value.with_size.assert_called_once_with(64)


@pytest.mark.unit
def test_invisible_reports_offline():
    view = member_presence(make_member(ANA, "ana", discord.Status.invisible))
    assert view.status == "offline"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_team_keeps_roster_order_and_placeholders():
    client, _ = make_client({ANA: make_member(ANA, "ana")})
    roster = DiscordRoster(client, GUILD, [BEN, ANA, "not-a-snowflake"])

    team = await roster.fetch_team()

    assert [v.id for v in team] == [BEN, ANA, "not-a-snowflake"]
    assert team[0].username == "unknown"
    assert team[0].status == "unknown"
    assert team[1].status == "online"
    assert team[2].status == "unknown"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_team_falls_back_to_rest_lookup():
    client, guild = make_client({})
    fetched = make_member(BEN, "ben", discord.Status.offline)
    guild.fetch_member = AsyncMock(return_value=fetched)

    team = await DiscordRoster(client, GUILD, [BEN]).fetch_team()

    assert team[0].username == "ben"
    assert team[0].status == "offline"
    guild.fetch_member.assert_awaited_once_with(int(BEN))


@pytest.mark.unit
def test_is_ready_follows_client():
    client, _ = make_client({}, ready=False)
    assert DiscordRoster(client, GUILD, [ANA]).is_ready() is False
