"""
Base service class providing the lifecycle shared by the bot's services.
"""

from typing import Any

from utils.logging import get_logger


class BaseService:
    """
    Lifecycle for services owned by the ServiceContainer.

    Subclasses override ``_initialize_impl`` and ``_shutdown_impl``.
    Initialization runs once; shutdown of a service that never started is
    a no-op.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.logger = get_logger(f"services.{name}")
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        self.logger.info(f"Initializing {self.name} service")
        await self._initialize_impl()
        self._initialized = True

    async def shutdown(self) -> None:
        """Shut the service down. Errors are logged, never raised."""
        if not self._initialized:
            return
        self.logger.info(f"Shutting down {self.name} service")
        try:
            await self._shutdown_impl()
        except Exception as e:
            self.logger.exception(f"Error during {self.name} service shutdown", exc_info=e)
        finally:
            self._initialized = False

    async def _initialize_impl(self) -> None:
        return None

    async def _shutdown_impl(self) -> None:
        return None

    async def health_check(self) -> dict[str, Any]:
        return {
            "service": self.name,
            "initialized": self._initialized,
            "status": "healthy" if self._initialized else "not_initialized",
        }
