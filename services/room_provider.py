"""
Room Provider: the platform operations the dungeon lifecycle depends on.

``RoomProvider`` is the contract the lifecycle controller is written
against. ``DiscordRoomProvider`` implements it on a discord.py client;
every Discord fault is surfaced as ``ProviderError``.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

import aiohttp
import discord

from helpers import discord_api
from helpers.defensive_retry import is_retryable_error
from utils.errors import ProviderError
from utils.logging import get_logger
from utils.types import PermissionOverride, RoomMember, RoomPermissions, RoomSnapshot

logger = get_logger(__name__)

T = TypeVar("T")


class RoomProvider(Protocol):
    """Fallible voice-room operations on the host platform."""

    async def create_voice_room(
        self,
        guild_id: int,
        name: str,
        parent_category_id: int | None,
        overrides: list[PermissionOverride],
    ) -> int: ...

    async def delete_voice_room(self, room_id: int, reason: str | None = None) -> bool:
        """Return True if deleted, False if the room was already gone."""
        ...

    async def rename_voice_room(self, room_id: int, name: str) -> None: ...

    async def set_user_limit(self, room_id: int, limit: int | None) -> None: ...

    async def set_permission_override(
        self, room_id: int, subject_id: int, permissions: RoomPermissions | None
    ) -> None:
        """Set one subject's override; ``None`` removes it."""
        ...

    async def move_member_to_room(
        self, guild_id: int, member_id: int, room_id: int
    ) -> None: ...

    async def disconnect_member(self, guild_id: int, member_id: int) -> None: ...

    async def list_members_in_room(self, room_id: int) -> list[RoomMember]: ...

    async def find_or_create_category(self, guild_id: int, name: str) -> int: ...

    async def resolve_member(self, guild_id: int, member_id: int) -> RoomMember | None: ...

    async def list_category_rooms(
        self, guild_id: int, category_name: str
    ) -> list[RoomSnapshot]: ...

    def guild_ids(self) -> list[int]: ...


def to_overwrite(permissions: RoomPermissions) -> discord.PermissionOverwrite:
    """Translate a permission intent to a discord.py overwrite (unset stays inherited)."""
    values = {
        "view_channel": permissions.view_channel,
        "connect": permissions.connect,
        "manage_channels": permissions.manage_channels,
        "move_members": permissions.move_members,
    }
    return discord.PermissionOverwrite(
        **{key: value for key, value in values.items() if value is not None}
    )


def _room_member(member: discord.Member) -> RoomMember:
    return RoomMember(member.id, member.display_name, member.bot)


class DiscordRoomProvider:
    """RoomProvider backed by a discord.py client's cache and REST API."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _guarded(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except (discord.DiscordException, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Discord call {operation} failed: {type(e).__name__}: {e}")
            raise ProviderError(
                operation, str(e), retryable=is_retryable_error(e)
            ) from e

    def _guild(self, operation: str, guild_id: int) -> discord.Guild:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            raise ProviderError(operation, f"guild {guild_id} not available")
        return guild

    def _voice_channel(self, operation: str, room_id: int) -> discord.VoiceChannel:
        channel = self.client.get_channel(room_id)
        if not isinstance(channel, discord.VoiceChannel):
            raise ProviderError(operation, f"voice channel {room_id} not found")
        return channel

    async def _subject(
        self, guild: discord.Guild, subject_id: int
    ) -> discord.Role | discord.Member:
        """The default role is addressed by the guild id; anything else is a member."""
        if subject_id == guild.id:
            return guild.default_role
        role = guild.get_role(subject_id)
        if role is not None:
            return role
        member = guild.get_member(subject_id)
        if member is None:
            member = await discord_api.call_limited(guild.fetch_member, subject_id)
        return member

    async def _member(self, guild: discord.Guild, member_id: int) -> discord.Member:
        member = guild.get_member(member_id)
        if member is None:
            member = await discord_api.call_limited(guild.fetch_member, member_id)
        return member

    def guild_ids(self) -> list[int]:
        return [guild.id for guild in self.client.guilds]

    async def create_voice_room(
        self,
        guild_id: int,
        name: str,
        parent_category_id: int | None,
        overrides: list[PermissionOverride],
    ) -> int:
        operation = "create_voice_room"
        guild = self._guild(operation, guild_id)
        category = (
            guild.get_channel(parent_category_id) if parent_category_id else None
        )
        if not isinstance(category, discord.CategoryChannel):
            category = None

        async def _create() -> int:
            overwrites: dict[Any, discord.PermissionOverwrite] = {}
            for override in overrides:
                target = await self._subject(guild, override.subject_id)
                overwrites[target] = to_overwrite(override.permissions)
            channel = await discord_api.create_voice_channel(
                guild, name, category=category, overwrites=overwrites
            )
            return channel.id

        return await self._guarded(operation, _create())

    async def delete_voice_room(self, room_id: int, reason: str | None = None) -> bool:
        channel = self.client.get_channel(room_id)
        if channel is None:
            logger.info(
                "Room already absent from cache, treating as deleted",
                extra={"room_id": room_id},
            )
            return False
        return await self._guarded(
            "delete_voice_room", discord_api.delete_channel(channel, reason=reason)  # type: ignore[arg-type]
        )

    async def rename_voice_room(self, room_id: int, name: str) -> None:
        channel = self._voice_channel("rename_voice_room", room_id)
        await self._guarded(
            "rename_voice_room", discord_api.edit_channel(channel, name=name)
        )

    async def set_user_limit(self, room_id: int, limit: int | None) -> None:
        channel = self._voice_channel("set_user_limit", room_id)
        await self._guarded(
            "set_user_limit", discord_api.edit_channel(channel, user_limit=limit or 0)
        )

    async def set_permission_override(
        self, room_id: int, subject_id: int, permissions: RoomPermissions | None
    ) -> None:
        operation = "set_permission_override"
        channel = self._voice_channel(operation, room_id)

        async def _apply() -> None:
            target = await self._subject(channel.guild, subject_id)
            overwrite = to_overwrite(permissions) if permissions is not None else None
            await discord_api.set_permissions(channel, target, overwrite)

        await self._guarded(operation, _apply())

    async def move_member_to_room(
        self, guild_id: int, member_id: int, room_id: int
    ) -> None:
        operation = "move_member_to_room"
        guild = self._guild(operation, guild_id)
        channel = self._voice_channel(operation, room_id)

        async def _move() -> None:
            member = await self._member(guild, member_id)
            await discord_api.move_member(member, channel)

        await self._guarded(operation, _move())

    async def disconnect_member(self, guild_id: int, member_id: int) -> None:
        operation = "disconnect_member"
        guild = self._guild(operation, guild_id)

        async def _disconnect() -> None:
            member = await self._member(guild, member_id)
            await discord_api.disconnect_member(member)

        await self._guarded(operation, _disconnect())

    async def list_members_in_room(self, room_id: int) -> list[RoomMember]:
        channel = self._voice_channel("list_members_in_room", room_id)
        return [_room_member(member) for member in channel.members]

    async def find_or_create_category(self, guild_id: int, name: str) -> int:
        operation = "find_or_create_category"
        guild = self._guild(operation, guild_id)
        category = discord.utils.get(guild.categories, name=name)
        if category is None:
            category = await self._guarded(
                operation, discord_api.create_category(guild, name)
            )
        return category.id

    async def resolve_member(self, guild_id: int, member_id: int) -> RoomMember | None:
        guild = self._guild("resolve_member", guild_id)
        try:
            member = await self._member(guild, member_id)
        except discord.NotFound:
            return None
        except discord.DiscordException as e:
            raise ProviderError(
                "resolve_member", str(e), retryable=is_retryable_error(e)
            ) from e
        return _room_member(member)

    async def list_category_rooms(
        self, guild_id: int, category_name: str
    ) -> list[RoomSnapshot]:
        guild = self._guild("list_category_rooms", guild_id)
        category = discord.utils.get(guild.categories, name=category_name)
        if category is None:
            return []
        return [
            RoomSnapshot(channel.id, guild.id, channel.name)
            for channel in category.voice_channels
        ]
