"""Presence cache - time-boxed memoization of the roster presence lookup."""

import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from presence_api.models.presence import PresenceSnapshot, PresenceView
from presence_api.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)

# Default cache window (seconds)
DEFAULT_CACHE_SECONDS = 20.0

RosterFetch = Callable[[], Awaitable[list[PresenceView]]]


class PresenceCache:
    """
    Serve the last snapshot while it is younger than the window, else rebuild it.

    The snapshot and its timestamp are swapped in one assignment, so readers
    never see a half-built entry. Concurrent misses may each rebuild; there
    is no single-flight.
    """

    def __init__(
        self,
        fetch_team: RosterFetch,
        window_seconds: float = DEFAULT_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.fetch_team = fetch_team
        self.window_seconds = max(0.0, window_seconds)
        self.clock = clock
        self._entry: Optional[tuple[PresenceSnapshot, float]] = None

    async def get(self) -> PresenceSnapshot:
        """Return the cached snapshot or recompute it."""
        entry = self._entry
        now = self.clock()
        if entry is not None and now - entry[1] < self.window_seconds:
            return entry[0]

        with log_timing("presence_refresh", logger=logger):
            team = await self.fetch_team()

        snapshot = PresenceSnapshot(updated_at=datetime.now(timezone.utc), team=team)
        self._entry = (snapshot, now)
        logger.debug("Presence snapshot refreshed", members=len(team))
        return snapshot

    def invalidate(self) -> None:
        """Drop the snapshot so the next get() recomputes."""
        self._entry = None
