"""
Service Container

Central registry for the bot's services providing dependency injection and
service lifecycle management.
"""

from typing import TYPE_CHECKING, Optional

from config.settings import DungeonSettings
from utils.logging import get_logger

from .base import BaseService
from .dungeon_service import DungeonService
from .notifier import DiscordNotifier, Notifier
from .room_provider import DiscordRoomProvider, RoomProvider

if TYPE_CHECKING:
    from discord import Client


class ServiceContainer:
    """
    Central container for managing all bot services.

    Collaborators default to the Discord implementations built on ``bot``;
    tests pass their own provider and notifier instead.
    """

    def __init__(
        self,
        bot: Optional["Client"] = None,
        settings: DungeonSettings | None = None,
        *,
        provider: RoomProvider | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.logger = get_logger("services.container")
        self.bot = bot
        self.settings = settings or DungeonSettings.from_sources()
        self._provider = provider
        self._notifier = notifier
        self._dungeon: DungeonService | None = None
        self._initialized = False

    @property
    def dungeon(self) -> DungeonService:
        """Get the dungeon lifecycle service."""
        if self._dungeon is None:
            raise RuntimeError("DungeonService not initialized")
        return self._dungeon

    @property
    def notifier(self) -> Notifier:
        if self._notifier is None:
            raise RuntimeError("Notifier not initialized")
        return self._notifier

    def get_all_services(self) -> list[BaseService]:
        """Get all initialized services for health monitoring."""
        return [self._dungeon] if self._dungeon else []

    async def initialize(self) -> None:
        """Initialize all services in dependency order."""
        if self._initialized:
            self.logger.warning("ServiceContainer already initialized")
            return

        try:
            self.logger.info("Initializing services")

            if self._provider is None or self._notifier is None:
                if not self.bot:
                    raise RuntimeError("Bot instance required for Discord collaborators")
                if self._provider is None:
                    self._provider = DiscordRoomProvider(self.bot)
                if self._notifier is None:
                    self._notifier = DiscordNotifier(self.bot)

            self._dungeon = DungeonService(self._provider, self._notifier, self.settings)
            await self._dungeon.initialize()
            self.logger.debug("DungeonService initialized")

            self._initialized = True
            self.logger.info("All services initialized successfully")

        except Exception as e:
            self.logger.exception("Failed to initialize services", exc_info=e)
            raise

    async def cleanup(self) -> None:
        """Clean up all services in reverse dependency order."""
        if not self._initialized:
            return

        self.logger.info("Cleaning up services")

        if self._dungeon:
            await self._dungeon.shutdown()

        self._initialized = False
        self.logger.info("Services cleaned up")
