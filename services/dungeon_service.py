"""
Dungeon lifecycle controller.

Owns the room registry and the deletion scheduler, and turns presence
events and owner commands into room state transitions. All work on one
room is serialized by a per-room lock so arm/cancel decisions always see
the registry state left by the previous event for that room.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from config.settings import DungeonSettings
from helpers.command_parser import parse_mention
from helpers.embeds import build_help_notice, build_info_notice
from helpers.error_messages import format_user_error, format_user_success
from utils.errors import (
    AuthorizationError,
    CommandValidationError,
    DungeonCommandError,
    ProviderError,
)
from utils.tasks import cancel_and_wait, spawn
from utils.types import (
    CommandRequest,
    CommandResult,
    Notice,
    PermissionOverride,
    PresenceEvent,
    Room,
    RoomMember,
    RoomPermissions,
)

from .base import BaseService
from .deletion_scheduler import DeletionScheduler
from .notifier import Notifier
from .room_provider import RoomProvider
from .room_registry import RoomRegistry
from .shutdown import drain_rooms

MAX_ROOM_NAME_LENGTH = 100
MAX_USER_LIMIT = 99

OWNER_PERMISSIONS = RoomPermissions(
    view_channel=True, connect=True, manage_channels=True, move_members=True
)
PUBLIC_PERMISSIONS = RoomPermissions(view_channel=True, connect=True)
LOCKED_PERMISSIONS = RoomPermissions(view_channel=True, connect=False)
INVITE_PERMISSIONS = RoomPermissions(view_channel=True, connect=True)

OWNER_COMMANDS = frozenset(
    {"lock", "unlock", "invite", "kick", "limit", "rename", "end", "extend"}
)

CommandHandler = Callable[[Room, CommandRequest], Awaitable[Notice]]


def room_name_for(display_name: str) -> str:
    """Default dungeon name for an owner."""
    return f"{display_name}'s Dungeon"[:MAX_ROOM_NAME_LENGTH]


def owner_overrides(guild_id: int, owner_id: int) -> list[PermissionOverride]:
    """Initial overrides for a new room: public view/connect plus owner powers."""
    return [
        PermissionOverride(guild_id, PUBLIC_PERMISSIONS),
        PermissionOverride(owner_id, OWNER_PERMISSIONS),
    ]


def human_count(members: list[RoomMember]) -> int:
    return sum(1 for member in members if not member.bot)


class DungeonService(BaseService):
    """
    Service managing ephemeral dungeon voice rooms.

    Collaborators are injected: a RoomProvider for platform calls and a
    Notifier for guild-level notices. Command replies are returned to the
    caller as CommandResult objects.
    """

    def __init__(
        self,
        provider: RoomProvider,
        notifier: Notifier,
        settings: DungeonSettings | None = None,
        *,
        registry: RoomRegistry | None = None,
        scheduler: DeletionScheduler | None = None,
    ) -> None:
        super().__init__("dungeon")
        self.provider = provider
        self.notifier = notifier
        self.settings = settings or DungeonSettings()
        self.registry = registry if registry is not None else RoomRegistry()
        self.scheduler = scheduler if scheduler is not None else DeletionScheduler()
        self._room_locks: dict[int, asyncio.Lock] = {}
        # Keyed by (guild_id, member_id) so duplicate trigger events cannot
        # provision two rooms for one member
        self._members_creating: set[tuple[int, int]] = set()
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._handlers: dict[str, CommandHandler] = {
            "help": self._cmd_help,
            "info": self._cmd_info,
            "owner": self._cmd_info,
            "claim": self._cmd_claim,
            "lock": self._cmd_lock,
            "unlock": self._cmd_unlock,
            "invite": self._cmd_invite,
            "kick": self._cmd_kick,
            "limit": self._cmd_limit,
            "rename": self._cmd_rename,
            "end": self._cmd_end,
            "extend": self._cmd_extend,
        }

    async def _initialize_impl(self) -> None:
        self.logger.info(
            "Dungeon settings: trigger=%r category=%r prefix=%r timeout=%ss",
            self.settings.trigger_channel_name,
            self.settings.category_name,
            self.settings.command_prefix,
            self.settings.inactivity_timeout,
        )

    async def _shutdown_impl(self) -> None:
        await cancel_and_wait(self._background_tasks)
        await drain_rooms(self)

    def room_lock(self, room_id: int) -> asyncio.Lock:
        """The lock serializing all work on one room."""
        return self._room_locks.setdefault(room_id, asyncio.Lock())

    def is_trigger_channel(self, channel_name: str | None) -> bool:
        return channel_name is not None and channel_name == self.settings.trigger_channel_name

    async def _occupancy(self, room_id: int) -> int | None:
        """Non-bot member count, or None if the platform could not be read."""
        try:
            return human_count(await self.provider.list_members_in_room(room_id))
        except ProviderError as e:
            self.logger.warning(
                f"Could not read room membership: {e}", extra={"room_id": room_id}
            )
            return None

    def _arm(self, room_id: int, after: float | None = None) -> None:
        self.scheduler.arm(
            room_id,
            self.settings.inactivity_timeout if after is None else after,
            self._on_timer_fired,
        )

    async def _notify(self, guild_id: int, notice: Notice) -> None:
        try:
            await self.notifier.post_message(guild_id, notice)
        except Exception as e:
            self.logger.warning(
                f"Failed to deliver notice '{notice.title}': {e}",
                extra={"guild_id": guild_id},
            )

    # ------------------------------------------------------------------
    # Presence events
    # ------------------------------------------------------------------

    async def handle_presence_event(self, event: PresenceEvent) -> None:
        """
        Apply one voice location change.

        A leave from a tracked room may arm its timer, a join into the
        trigger channel provisions a room, and a join into a tracked room
        cancels its timer.
        """
        if event.previous_room_id == event.current_room_id:
            return

        if event.previous_room_id is not None and event.previous_room_id in self.registry:
            await self._handle_room_left(event.previous_room_id, event)

        if event.current_room_id is None:
            return

        if event.current_room_id in self.registry:
            await self._handle_room_joined(event.current_room_id, event)
        elif self.is_trigger_channel(event.current_room_name):
            if event.member_bot:
                self.logger.debug(
                    "Ignoring bot in trigger channel", extra={"user_id": event.member_id}
                )
                return
            await self._handle_trigger_join(event)

    async def _handle_room_left(self, room_id: int, event: PresenceEvent) -> None:
        async with self.room_lock(room_id):
            if room_id not in self.registry:
                return
            occupancy = await self._occupancy(room_id)
            if occupancy == 0 and not self.scheduler.is_armed(room_id):
                self.logger.info(
                    f"Dungeon is now empty after {event.member_name or event.member_id} left",
                    extra={"room_id": room_id, "guild_id": event.guild_id},
                )
                self._arm(room_id)

    async def _handle_room_joined(self, room_id: int, event: PresenceEvent) -> None:
        async with self.room_lock(room_id):
            if room_id not in self.registry:
                return
            occupancy = await self._occupancy(room_id)
            if occupancy:
                self.scheduler.cancel(room_id)

    async def _handle_trigger_join(self, event: PresenceEvent) -> None:
        key = (event.guild_id, event.member_id)
        if key in self._members_creating:
            self.logger.debug(
                "Skipping trigger join, creation already in progress",
                extra={"user_id": event.member_id, "guild_id": event.guild_id},
            )
            return
        self._members_creating.add(key)
        try:
            await self._create_room_for(event)
        finally:
            self._members_creating.discard(key)

    async def _create_room_for(self, event: PresenceEvent) -> int | None:
        guild_id = event.guild_id
        member_name = event.member_name or str(event.member_id)
        name = room_name_for(member_name)

        try:
            category_id: int | None = await self.provider.find_or_create_category(
                guild_id, self.settings.category_name
            )
        except ProviderError as e:
            self.logger.warning(
                f"Managed category unavailable, creating room without parent: {e}",
                extra={"guild_id": guild_id},
            )
            category_id = None

        try:
            room_id = await self.provider.create_voice_room(
                guild_id, name, category_id, owner_overrides(guild_id, event.member_id)
            )
        except ProviderError as e:
            self.logger.error(
                f"Failed to create dungeon for {member_name}: {e}",
                extra={"guild_id": guild_id, "user_id": event.member_id},
            )
            await self._notify(
                guild_id, format_user_error("CREATION_FAILED", member_name=member_name)
            )
            return None

        async with self.room_lock(room_id):
            self.registry.put(
                room_id,
                Room(
                    room_id=room_id,
                    guild_id=guild_id,
                    owner_id=event.member_id,
                    owner_name=member_name,
                    name=name,
                ),
            )
            self.logger.info(
                f"Created dungeon '{name}'",
                extra={"room_id": room_id, "guild_id": guild_id, "user_id": event.member_id},
            )
            moved = True
            try:
                await self.provider.move_member_to_room(guild_id, event.member_id, room_id)
            except ProviderError as e:
                moved = False
                self.logger.warning(
                    f"Could not move {member_name} into new dungeon: {e}",
                    extra={"room_id": room_id, "user_id": event.member_id},
                )
            occupancy = await self._occupancy(room_id)
            if occupancy is None:
                occupancy = 1 if moved else 0
            if occupancy == 0:
                self._arm(room_id)

        await self._notify(
            guild_id,
            format_user_success(
                "CREATED",
                member_name=member_name,
                room_name=name,
                prefix=self.settings.command_prefix,
            ),
        )
        return room_id

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def _on_timer_fired(self, room_id: int) -> None:
        async with self.room_lock(room_id):
            if room_id not in self.registry:
                return
            if await self._occupancy(room_id):
                self.logger.info(
                    "Deletion timer fired for an occupied dungeon, keeping it",
                    extra={"room_id": room_id},
                )
                return
            await self._delete_room(room_id, "Dungeon inactive")

    async def _delete_room(self, room_id: int, reason: str, *, rearm: bool = True) -> bool:
        """
        Delete a tracked room. Caller must hold the room lock.

        An already-absent room counts as deleted. On a provider failure the
        entry stays tracked and, with ``rearm``, the timer is re-armed for
        another attempt.
        """
        self.scheduler.cancel(room_id)
        try:
            deleted = await self.provider.delete_voice_room(room_id, reason)
        except ProviderError as e:
            self.logger.error(
                f"Failed to delete dungeon: {e}",
                extra={"room_id": room_id},
            )
            if rearm:
                self._arm(room_id)
            return False
        room = self.registry.remove(room_id)
        self._room_locks.pop(room_id, None)
        self.logger.info(
            f"Dungeon removed ({reason}){'' if deleted else ', channel was already gone'}",
            extra={
                "room_id": room_id,
                "guild_id": room.guild_id if room else None,
            },
        )
        return True

    async def forget_room(self, room_id: int) -> bool:
        """Drop a room deleted outside the bot. No provider call is made."""
        async with self.room_lock(room_id):
            self.scheduler.cancel(room_id)
            room = self.registry.remove(room_id)
            self._room_locks.pop(room_id, None)
        if room is not None:
            self.logger.info("Forgot externally deleted dungeon", extra={"room_id": room_id})
        return room is not None

    def adopt_room(self, room_id: int, guild_id: int, name: str, owner: RoomMember) -> Room:
        """Track an existing room with an inferred owner and no timer."""
        room = Room(
            room_id=room_id,
            guild_id=guild_id,
            owner_id=owner.member_id,
            owner_name=owner.display_name,
            name=name,
        )
        self.registry.put(room_id, room)
        self.logger.info(
            f"Adopted dungeon '{name}' with owner {owner.display_name}",
            extra={"room_id": room_id, "guild_id": guild_id, "user_id": owner.member_id},
        )
        return room

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _error(self, code: str, request: CommandRequest, **kwargs: Any) -> CommandResult:
        values = {
            "command": request.command,
            "prefix": self.settings.command_prefix,
            "room_name": request.room_name or "",
            **kwargs,
        }
        return CommandResult(
            False, format_user_error(code, **values), request.room_id, code
        )

    async def dispatch_command(self, request: CommandRequest) -> CommandResult:
        """
        Run one command and convert every failure into a user notice.

        Preconditions: the sender is in a voice room, the room is a tracked
        dungeon and the command is known.
        """
        command = request.command.lower()
        extra = {
            "guild_id": request.guild_id,
            "user_id": request.sender_id,
            "room_id": request.room_id,
            "command_name": command,
        }
        if request.room_id is None:
            return self._error("NOT_IN_VOICE", request)
        if request.room_id not in self.registry:
            return self._error("NOT_MANAGED", request)
        handler = self._handlers.get(command)
        if handler is None:
            return self._error("UNKNOWN_COMMAND", request)

        async with self.room_lock(request.room_id):
            room = self.registry.get(request.room_id)
            if room is None:
                return self._error("NOT_MANAGED", request)
            try:
                if command in OWNER_COMMANDS and request.sender_id != room.owner_id:
                    raise AuthorizationError()
                notice = await handler(room, request)
            except DungeonCommandError as e:
                self.logger.info(f"Command rejected: {e.code}", extra=extra)
                return self._error(e.code, request, **e.kwargs)
            except ProviderError as e:
                self.logger.warning(f"Command failed on provider call: {e}", extra=extra)
                return self._error("PROVIDER_FAILED", request)
            except Exception as e:
                self.logger.exception("Unexpected error handling command", exc_info=e, extra=extra)
                return self._error("UNKNOWN", request)

        self.logger.info("Command succeeded", extra=extra)
        return CommandResult(True, notice, request.room_id)

    async def _cmd_help(self, room: Room, request: CommandRequest) -> Notice:
        return build_help_notice(self.settings.command_prefix)

    async def _cmd_info(self, room: Room, request: CommandRequest) -> Notice:
        return build_info_notice(room)

    async def _cmd_lock(self, room: Room, request: CommandRequest) -> Notice:
        await self.provider.set_permission_override(
            room.room_id, room.guild_id, LOCKED_PERMISSIONS
        )

        def _lock(r: Room) -> None:
            r.locked = True

        self.registry.update(room.room_id, _lock)
        return format_user_success("LOCKED")

    async def _cmd_unlock(self, room: Room, request: CommandRequest) -> Notice:
        await self.provider.set_permission_override(
            room.room_id, room.guild_id, PUBLIC_PERMISSIONS
        )
        await self._revoke_invites(room)

        def _unlock(r: Room) -> None:
            r.locked = False
            r.invited.clear()

        self.registry.update(room.room_id, _unlock)
        return format_user_success("UNLOCKED")

    async def _revoke_invites(self, room: Room, keep: int | None = None) -> None:
        """Remove the connect override of every invitee except ``keep``."""
        for member_id in sorted(room.invited):
            if member_id != keep:
                await self.provider.set_permission_override(room.room_id, member_id, None)

    async def _target(self, room: Room, request: CommandRequest) -> RoomMember:
        target_id = parse_mention(request.args[0] if request.args else None)
        if target_id is None:
            raise CommandValidationError("MISSING_MENTION")
        member = await self.provider.resolve_member(room.guild_id, target_id)
        if member is None:
            raise CommandValidationError("MEMBER_NOT_FOUND")
        return member

    async def _cmd_invite(self, room: Room, request: CommandRequest) -> Notice:
        target = await self._target(room, request)
        if target.member_id not in room.invited:
            await self.provider.set_permission_override(
                room.room_id, target.member_id, INVITE_PERMISSIONS
            )
            self.registry.update(room.room_id, lambda r: r.invited.add(target.member_id))
        return format_user_success("INVITED", member_name=target.display_name)

    async def _cmd_kick(self, room: Room, request: CommandRequest) -> Notice:
        target = await self._target(room, request)
        present = await self.provider.list_members_in_room(room.room_id)
        if target.member_id not in {m.member_id for m in present}:
            raise CommandValidationError("TARGET_NOT_PRESENT")
        await self.provider.disconnect_member(room.guild_id, target.member_id)
        return format_user_success("KICKED", member_name=target.display_name)

    async def _cmd_limit(self, room: Room, request: CommandRequest) -> Notice:
        raw = request.args[0] if request.args else ""
        if not (raw.isascii() and raw.isdigit()):
            raise CommandValidationError("INVALID_LIMIT")
        value = int(raw)
        if value > MAX_USER_LIMIT:
            raise CommandValidationError("INVALID_LIMIT")
        limit = value or None
        await self.provider.set_user_limit(room.room_id, limit)

        def _set_limit(r: Room) -> None:
            r.user_limit = limit

        self.registry.update(room.room_id, _set_limit)
        return format_user_success("LIMIT_SET", limit=limit or "No limit")

    async def _cmd_rename(self, room: Room, request: CommandRequest) -> Notice:
        name = " ".join(request.args).strip()
        if not name:
            raise CommandValidationError("EMPTY_NAME")
        if len(name) > MAX_ROOM_NAME_LENGTH:
            raise CommandValidationError("NAME_TOO_LONG", max_length=MAX_ROOM_NAME_LENGTH)
        if self.is_trigger_channel(name):
            raise CommandValidationError("RESERVED_NAME", name=name)
        await self.provider.rename_voice_room(room.room_id, name)

        def _rename(r: Room) -> None:
            r.name = name

        self.registry.update(room.room_id, _rename)
        return format_user_success("RENAMED", name=name)

    async def _cmd_end(self, room: Room, request: CommandRequest) -> Notice:
        spawn(
            self._end_after_grace(room.room_id),
            self._background_tasks,
            name=f"dungeon.end.{room.room_id}",
        )
        return format_user_success("ENDED")

    async def _end_after_grace(self, room_id: int) -> None:
        await asyncio.sleep(self.settings.end_grace)
        async with self.room_lock(room_id):
            if room_id in self.registry:
                await self._delete_room(room_id, "Ended by owner")

    async def _cmd_extend(self, room: Room, request: CommandRequest) -> Notice:
        seconds = f"{self.settings.inactivity_timeout:g}"
        if not self.scheduler.is_armed(room.room_id):
            return format_user_success("NOT_PENDING", seconds=seconds)
        self._arm(room.room_id)
        return format_user_success("EXTENDED", seconds=seconds)

    async def _cmd_claim(self, room: Room, request: CommandRequest) -> Notice:
        present = await self.provider.list_members_in_room(room.room_id)
        if human_count(present) > 1:
            raise CommandValidationError("ROOM_OCCUPIED")

        old_owner_id = room.owner_id
        was_locked = room.locked
        if old_owner_id != request.sender_id:
            await self.provider.set_permission_override(room.room_id, old_owner_id, None)
        await self.provider.set_permission_override(
            room.room_id, request.sender_id, OWNER_PERMISSIONS
        )
        if was_locked:
            await self.provider.set_permission_override(
                room.room_id, room.guild_id, PUBLIC_PERMISSIONS
            )
        await self._revoke_invites(room, keep=request.sender_id)

        def _claim(r: Room) -> None:
            r.owner_id = request.sender_id
            r.owner_name = request.sender_name
            r.locked = False
            r.invited.clear()

        self.registry.update(room.room_id, _claim)
        self.scheduler.cancel(room.room_id)
        self.logger.info(
            f"Dungeon claimed by {request.sender_name}",
            extra={"room_id": room.room_id, "user_id": request.sender_id},
        )

        new_name = room_name_for(request.sender_name)
        try:
            await self.provider.rename_voice_room(room.room_id, new_name)
        except ProviderError as e:
            self.logger.warning(f"Could not rename claimed dungeon: {e}", extra={"room_id": room.room_id})
        else:
            room.name = new_name

        return format_user_success("CLAIMED", member_name=request.sender_name)

    async def health_check(self) -> dict[str, Any]:
        status = await super().health_check()
        status.update(
            {
                "rooms": len(self.registry),
                "pending_deletions": len(self.scheduler),
            }
        )
        return status
