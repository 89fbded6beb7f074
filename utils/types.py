"""
Type definitions and common data structures for the dungeon bot.

Nothing in here imports discord; the lifecycle core only ever sees these
plain types, and the Discord adapters translate to and from them.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


@dataclass
class Room:
    """One active ephemeral voice room ("dungeon")."""

    room_id: int
    guild_id: int
    owner_id: int
    owner_name: str
    name: str
    created_at: float = field(default_factory=time.time)
    locked: bool = False
    invited: set[int] = field(default_factory=set)
    user_limit: int | None = None  # None means no limit


class RoomMember(NamedTuple):
    """A member currently present in (or resolvable for) a room."""

    member_id: int
    display_name: str
    bot: bool = False


class RoomSnapshot(NamedTuple):
    """A voice room observed on the platform, used by the startup sweep."""

    room_id: int
    guild_id: int
    name: str


@dataclass
class RoomPermissions:
    """Permission intent for one subject on a room.

    ``None`` leaves the permission inherited; the host platform decides what
    that means.
    """

    view_channel: bool | None = None
    connect: bool | None = None
    manage_channels: bool | None = None
    move_members: bool | None = None


class PermissionOverride(NamedTuple):
    """A subject (role or member id) paired with its permission intent."""

    subject_id: int
    permissions: RoomPermissions


@dataclass
class PresenceEvent:
    """A member's voice location changed."""

    member_id: int
    guild_id: int
    previous_room_id: int | None
    current_room_id: int | None
    member_name: str = ""
    member_bot: bool = False
    current_room_name: str | None = None


@dataclass
class CommandRequest:
    """A parsed text command together with the sender's voice location."""

    guild_id: int
    sender_id: int
    sender_name: str
    room_id: int | None
    room_name: str | None
    command: str
    args: list[str] = field(default_factory=list)


class NoticeLevel(Enum):
    """Severity of a user-facing notice."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass
class Notice:
    """User-facing message content produced by the core."""

    level: NoticeLevel
    title: str
    description: str
    fields: list[tuple[str, str]] = field(default_factory=list)
    footer: str | None = None


class CommandResult(NamedTuple):
    """Result of a dungeon command."""

    success: bool
    notice: Notice
    room_id: int | None = None
    error: str | None = None
