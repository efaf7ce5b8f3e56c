"""Typed keys for collaborators stored on the aiohttp application."""

from aiohttp import web

from presence_api.config import BotConfig
from presence_api.services.presence_cache import PresenceCache
from presence_api.services.roster import DiscordRoster


CONFIG_KEY = web.AppKey("config", BotConfig)
ROSTER_KEY = web.AppKey("roster", DiscordRoster)
CACHE_KEY = web.AppKey("presence_cache", PresenceCache)

CORRELATION_ID_HEADER = "X-Correlation-ID"
