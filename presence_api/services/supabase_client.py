"""Supabase client wrapper with async context manager support."""

import os
import asyncio
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from presence_api.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        # Service role key, no end-user session to persist or refresh
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


async def close_supabase_client() -> None:
    """Drop the Supabase client singleton."""
    global _client
    if _client:
        # Supabase-py doesn't have explicit close, but we can clear the reference
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        """Enter async context."""
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


async def execute(query: Any) -> Any:
    """Run a PostgREST query builder off the event loop and return its response."""
    return await asyncio.to_thread(query.execute)
