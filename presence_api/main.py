"""Process entrypoint: Discord bot and presence HTTP API on one event loop."""

import asyncio
import sys

from dotenv import load_dotenv

from api.app import HttpServer, create_app
from presence_api.config import BotConfig
from presence_api.discord_app.bot import create_bot
from presence_api.discord_app.task_cog import TaskCog
from presence_api.services.message_mirror import MessageMirror
from presence_api.services.presence_cache import PresenceCache
from presence_api.services.roster import DiscordRoster
from presence_api.services.supabase_client import close_supabase_client
from presence_api.services.task_channel import TaskChannelResolver
from presence_api.services.task_commands import TaskCommandRouter
from presence_api.services.task_controller import TaskLifecycleController
from presence_api.services.task_store import TaskStore
from presence_api.utils.errors import ConfigError
from presence_api.utils.logging import get_structured_logger, setup_logging

logger = get_structured_logger(__name__)


async def run(config: BotConfig) -> None:
    """Wire collaborators, start the HTTP server, then hold the gateway connection."""
    bot = create_bot(config)

    channels = TaskChannelResolver(bot, config.guild_id, configured_id=config.todo_channel_id)
    controller = TaskLifecycleController(
        store=TaskStore(table=config.tasks_table),
        mirror=MessageMirror(bot),
        channels=channels,
        enforce_channel=config.enforce_task_channel,
        tz=config.tzinfo,
    )
    bot.add_cog(TaskCog(bot, TaskCommandRouter(controller), channels))

    roster = DiscordRoster(bot, config.guild_id, config.user_ids)
    cache = PresenceCache(roster.fetch_team, window_seconds=config.cache_seconds)
    server = HttpServer(create_app(config, roster, cache), host=config.host, port=config.port)

    if not config.public_read and not config.api_key:
        logger.warning("API_KEY is not set and PUBLIC_READ is false; /api is open to everyone")

    await server.start()
    try:
        await bot.start(config.discord_token)
    finally:
        if not bot.is_closed():
            await bot.close()
        await server.stop()
        await close_supabase_client()


def main() -> None:
    """Console entrypoint."""
    load_dotenv()
    setup_logging()

    try:
        config = BotConfig.from_env()
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
