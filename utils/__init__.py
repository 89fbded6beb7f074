"""
Utilities Package

Common utilities and helper functions for the dungeon bot.
"""

from .errors import (
    AuthorizationError,
    BotError,
    CommandValidationError,
    ConfigError,
    DungeonCommandError,
    ProviderError,
    ServiceError,
)
from .logging import get_logger, setup_logging
from .tasks import cancel_and_wait, spawn
from .types import (
    CommandRequest,
    CommandResult,
    Notice,
    NoticeLevel,
    PermissionOverride,
    PresenceEvent,
    Room,
    RoomMember,
    RoomPermissions,
    RoomSnapshot,
)

__all__ = [
    "AuthorizationError",
    "BotError",
    "CommandRequest",
    "CommandResult",
    "CommandValidationError",
    "ConfigError",
    "DungeonCommandError",
    "Notice",
    "NoticeLevel",
    "PermissionOverride",
    "PresenceEvent",
    "ProviderError",
    "Room",
    "RoomMember",
    "RoomPermissions",
    "RoomSnapshot",
    "ServiceError",
    "cancel_and_wait",
    "get_logger",
    "setup_logging",
    "spawn",
]
