"""
Dungeon Package

Discord-facing side of the dungeon lifecycle: voice-state and channel
events in, text-prefix commands in, notices out.
"""

from .commands import DungeonCommands
from .events import DungeonEvents

__all__ = ["DungeonCommands", "DungeonEvents"]
