"""HTTP application: /healthz and /api/presence."""

from typing import Optional

from aiohttp import web

from api.context import CACHE_KEY, CONFIG_KEY, CORRELATION_ID_HEADER, ROSTER_KEY
from api.health import healthz
from api.presence import api_key_middleware, presence
from presence_api.config import BotConfig
from presence_api.services.presence_cache import PresenceCache
from presence_api.services.roster import DiscordRoster
from presence_api.utils.logging import correlation_context, get_structured_logger

logger = get_structured_logger(__name__)


@web.middleware
async def correlation_middleware(request: web.Request, handler):
    """Bind the caller's correlation ID (or a fresh one) for the request's logs."""
    with correlation_context(request.headers.get(CORRELATION_ID_HEADER)) as correlation_id:
        response = await handler(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


def create_app(config: BotConfig, roster: DiscordRoster, cache: PresenceCache) -> web.Application:
    """Build the aiohttp application around the shared collaborators."""
    app = web.Application(middlewares=[correlation_middleware, api_key_middleware])
    app[CONFIG_KEY] = config
    app[ROSTER_KEY] = roster
    app[CACHE_KEY] = cache

    app.router.add_get("/healthz", healthz)
    app.router.add_get("/api/presence", presence)
    return app


class HttpServer:
    """Runs the application on the bot's event loop."""

    def __init__(self, app: web.Application, host: str = "0.0.0.0", port: int = 3000):
        self._app = app
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info("Presence API listening", host=self._host, port=self._port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
