"""
Custom exception classes for the dungeon bot.

These provide a hierarchy of typed exceptions so callers can separate
configuration faults, platform (provider) faults and user command errors.
"""

from typing import Any


class BotError(Exception):
    """Base exception for bot-related errors."""

    pass


class ConfigError(BotError):
    """Exception raised for configuration-related errors."""

    pass


class ServiceError(BotError):
    """Exception raised for service-related errors."""

    pass


class ProviderError(ServiceError):
    """A Room Provider operation failed on the platform side.

    Attributes:
        operation: Name of the provider operation (e.g. ``"delete_voice_room"``).
        retryable: Whether the underlying fault looked transient.
    """

    def __init__(
        self, operation: str, message: str = "", *, retryable: bool = False
    ) -> None:
        super().__init__(f"{operation} failed: {message}" if message else operation)
        self.operation = operation
        self.retryable = retryable


class DungeonCommandError(BotError):
    """A user command was rejected.

    Carries the notice code and the formatting values used to render the
    user-facing message at the dispatch boundary.
    """

    code = "UNKNOWN"

    def __init__(self, code: str | None = None, **kwargs: Any) -> None:
        if code is not None:
            self.code = code
        self.kwargs = kwargs
        super().__init__(self.code)


class AuthorizationError(DungeonCommandError):
    """Sender is not the room owner."""

    code = "NOT_OWNER"


class CommandValidationError(DungeonCommandError):
    """Malformed argument or unmet precondition."""

    pass
