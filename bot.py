import asyncio
import signal
import sys

import discord
from discord.ext import commands
from dotenv import load_dotenv

from config.settings import DungeonSettings, load_token
from utils.errors import ConfigError
from utils.logging import get_logger
from utils.tasks import spawn

# Initialize logger
logger = get_logger(__name__)

# Configure intents - start from none and enable only what's required
intents = discord.Intents.none()
intents.guilds = True  # Required: Guild events, channels, roles
intents.members = True  # Required: Resolving invite and kick targets
intents.voice_states = True  # Required: Voice channel join/leave for dungeons
intents.guild_messages = True  # Required: Text-prefix commands
intents.message_content = True  # Required: Reading the command prefix

# List of initial extensions to load
initial_extensions = [
    "cogs.dungeon.events",
    "cogs.dungeon.commands",
]

STATUS_ACTIVITY = discord.Activity(
    type=discord.ActivityType.watching, name="🎙️ Creating dungeons"
)

REQUIRED_PERMISSIONS = [
    "manage_channels",
    "view_channel",
    "send_messages",
    "embed_links",
    "connect",
    "move_members",
]


class DungeonBot(commands.Bot):
    """Bot with project-specific attributes and helpers."""

    def __init__(self, settings: DungeonSettings, *args, **kwargs) -> None:
        kwargs.setdefault("command_prefix", commands.when_mentioned)
        kwargs.setdefault("intents", intents)
        super().__init__(*args, **kwargs)
        self.settings = settings
        self.services = None
        self._background_tasks: set[asyncio.Task] = set()
        self._closing = False

    async def setup_hook(self) -> None:
        """Initialize services and load cogs."""
        from services.service_container import ServiceContainer

        self.services = ServiceContainer(self, self.settings)
        await self.services.initialize()
        logger.info("ServiceContainer initialized")

        for ext in initial_extensions:
            await self.load_extension(ext)
            logger.info(f"Loaded extension: {ext}")

    async def on_ready(self) -> None:
        """Called when the bot is ready."""
        if not self.user:
            logger.warning("Bot user is not initialized")
            return
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        await self.change_presence(activity=STATUS_ACTIVITY)
        for guild in self.guilds:
            await self.check_bot_permissions(guild)
        if self.services:
            for service in self.services.get_all_services():
                logger.info(f"Service health: {await service.health_check()}")

    async def check_bot_permissions(self, guild: discord.Guild) -> None:
        """Verify required guild-level permissions and log any missing ones."""
        if not guild or not guild.me:
            logger.warning("Bot permissions cannot be checked: bot member unavailable.")
            return

        bot_member = guild.me
        if missing_permissions := [
            perm
            for perm in REQUIRED_PERMISSIONS
            if not getattr(bot_member.guild_permissions, perm, False)
        ]:
            logger.warning(
                f"Missing permissions in guild '{guild.name}': {', '.join(missing_permissions)}",
                extra={"guild_id": guild.id},
            )
        else:
            logger.info(f"All required permissions are present in guild '{guild.name}'.")

    async def on_error(self, event_method: str, /, *args, **kwargs) -> None:
        """Unhandled event exceptions trigger the same drain as a shutdown signal."""
        logger.exception(f"Unhandled exception in {event_method}, shutting down")
        spawn(self.close(), self._background_tasks, name="bot.close_on_error")

    async def close(self) -> None:
        """Drain dungeons, then close the Discord connection."""
        if self._closing:
            return
        self._closing = True
        logger.info("Shutting down the bot.")

        if self.services:
            try:
                await self.services.cleanup()
                logger.info("Services cleaned up")
            except Exception as e:
                logger.exception("Error cleaning up services", exc_info=e)

        await super().close()


def _register_signal_handlers(bot: DungeonBot) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(
                sig,
                lambda sig=sig: spawn(
                    _shutdown_on_signal(bot, sig.name),
                    bot._background_tasks,
                    name=f"bot.signal.{sig.name}",
                ),
            )
        except NotImplementedError:
            # Event loop does not support add_signal_handler (e.g., on Windows)
            pass


async def _shutdown_on_signal(bot: DungeonBot, sig_name: str) -> None:
    logger.info(f"Received {sig_name}, starting graceful shutdown")
    await bot.close()


async def run_bot(token: str, settings: DungeonSettings) -> None:
    bot = DungeonBot(settings)
    _register_signal_handlers(bot)
    async with bot:
        await bot.start(token)


def main() -> None:
    load_dotenv()
    try:
        token = load_token()
    except ConfigError as e:
        logger.critical(str(e))
        sys.exit(1)

    settings = DungeonSettings.from_sources()
    try:
        asyncio.run(run_bot(token, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
