"""Health check endpoint."""

from datetime import datetime, timezone

from aiohttp import web

from api.context import ROSTER_KEY


def iso_now() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def healthz(request: web.Request) -> web.Response:
    """Always 200 while the process is alive; reports gateway readiness."""
    roster = request.app[ROSTER_KEY]
    return web.json_response({
        "ok": True,
        "discordReady": bool(roster.is_ready()),
        "now": iso_now(),
    })
