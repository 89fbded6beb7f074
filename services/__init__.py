"""
Services package for the dungeon bot.

Holds the room lifecycle controller, its registry and scheduler, the
startup and shutdown sweeps, and the platform collaborators.
"""

from .base import BaseService
from .deletion_scheduler import DeletionScheduler
from .dungeon_service import DungeonService
from .notifier import DiscordNotifier, Notifier
from .reconciliation import ReconcileResult, reconcile_all_guilds, reconcile_guild
from .room_provider import DiscordRoomProvider, RoomProvider
from .room_registry import RoomRegistry
from .service_container import ServiceContainer
from .shutdown import drain_rooms

__all__ = [
    "BaseService",
    "DeletionScheduler",
    "DiscordNotifier",
    "DiscordRoomProvider",
    "DungeonService",
    "Notifier",
    "ReconcileResult",
    "RoomProvider",
    "RoomRegistry",
    "ServiceContainer",
    "drain_rooms",
    "reconcile_all_guilds",
    "reconcile_guild",
]
