"""Discord client construction."""

import discord

from presence_api.config import BotConfig


def build_intents() -> discord.Intents:
    """Guilds for channels, members and presences for the roster."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.presences = True
    return intents


def create_bot(config: BotConfig) -> discord.Bot:
    """Bot whose slash commands are registered on the configured guild."""
    return discord.Bot(
        intents=build_intents(),
        debug_guilds=[int(config.guild_id)],
    )
