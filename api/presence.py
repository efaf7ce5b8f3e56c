"""Team presence endpoint and its shared-secret guard."""

import hmac

from aiohttp import web

from api.context import CACHE_KEY, CONFIG_KEY, ROSTER_KEY
from presence_api.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

API_PREFIX = "/api"
API_KEY_HEADER = "x-api-key"


def is_authorized(expected: str, provided: str) -> bool:
    """Constant-time comparison of trimmed keys; no configured key lets everyone in."""
    expected = (expected or "").strip()
    if not expected:
        return True
    provided = (provided or "").strip()
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


@web.middleware
async def api_key_middleware(request: web.Request, handler):
    """Require x-api-key on /api routes unless public read is enabled."""
    if request.path == API_PREFIX or request.path.startswith(f"{API_PREFIX}/"):
        config = request.app[CONFIG_KEY]
        if not config.public_read and not is_authorized(
            config.api_key or "",
            request.headers.get(API_KEY_HEADER, "")
        ):
            logger.warning("Rejected API request with bad or missing key", path=request.path)
            return web.json_response({"error": "unauthorized"}, status=401)
    return await handler(request)


async def presence(request: web.Request) -> web.Response:
    """Cached roster presence: {updatedAt, team}."""
    roster = request.app[ROSTER_KEY]
    cache = request.app[CACHE_KEY]

    try:
        if not roster.is_ready():
            return web.json_response({"error": "discord_not_ready"}, status=503)

        snapshot = await cache.get()
        return web.json_response(snapshot.to_payload())
    except Exception as e:
        logger.error("Presence request failed", error=str(e), exc_info=True)
        return web.json_response({"error": str(e) or "unknown_error"}, status=500)
