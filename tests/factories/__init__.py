"""
Test Factories Module

Fake collaborators and builders for dungeon lifecycle tests.
"""

from .config_factories import make_config, temp_config_file
from .dungeon_factories import (
    GUILD_ID,
    TRIGGER_ID,
    TRIGGER_NAME,
    FakeNotifier,
    FakeRoomProvider,
    make_request,
    make_settings,
    room_join,
    room_leave,
    trigger_join,
)

__all__ = [
    "GUILD_ID",
    "TRIGGER_ID",
    "TRIGGER_NAME",
    "FakeNotifier",
    "FakeRoomProvider",
    "make_config",
    "make_request",
    "make_settings",
    "room_join",
    "room_leave",
    "temp_config_file",
    "trigger_join",
]
