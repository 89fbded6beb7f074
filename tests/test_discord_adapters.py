"""
Tests for the Discord-side adapters: room provider, notifier channel
selection, embeds and the event/command translation in the cogs.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cogs.dungeon.commands import DungeonCommands, command_request_from_message
from cogs.dungeon.events import presence_event_from_voice_state
from helpers.embeds import build_info_notice, build_notice_embed, notice_as_text
from services.notifier import DiscordNotifier, select_announcement_channel
from services.room_provider import DiscordRoomProvider, to_overwrite
from utils.errors import ProviderError
from utils.types import CommandResult, Notice, NoticeLevel, Room, RoomPermissions


def http_error(status: int, cls=discord.HTTPException):
    return cls(MagicMock(status=status, reason="reason"), "error")


def text_channel(name: str, *, can_send: bool = True):
    channel = MagicMock()
    channel.name = name
    channel.permissions_for.return_value = SimpleNamespace(
        send_messages=can_send, embed_links=can_send
    )
    return channel


class TestChannelSelection:
    def test_prefers_keyword_channel(self):
        guild = MagicMock()
        guild.text_channels = [text_channel("rules"), text_channel("bot-commands")]

        assert select_announcement_channel(guild).name == "bot-commands"

    def test_falls_back_to_first_eligible(self):
        guild = MagicMock()
        guild.text_channels = [
            text_channel("general", can_send=False),
            text_channel("lounge"),
            text_channel("chat"),
        ]

        assert select_announcement_channel(guild).name == "lounge"

    def test_no_eligible_channel(self):
        guild = MagicMock()
        guild.text_channels = [text_channel("general", can_send=False)]

        assert select_announcement_channel(guild) is None


class TestNotifier:
    @pytest.mark.asyncio
    async def test_reply_falls_back_to_text(self):
        channel = MagicMock()
        channel.send = AsyncMock(side_effect=[http_error(403, discord.Forbidden), None])
        notice = Notice(NoticeLevel.SUCCESS, "Done", "It worked")

        await DiscordNotifier(MagicMock()).reply(channel, notice)

        assert channel.send.await_count == 2
        assert "It worked" in channel.send.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_post_message_without_guild_is_noop(self):
        client = MagicMock()
        client.get_guild.return_value = None

        await DiscordNotifier(client).post_message(1, Notice(NoticeLevel.INFO, "t", "d"))


class TestEmbeds:
    def test_notice_embed_fields_and_color(self):
        notice = Notice(
            NoticeLevel.ERROR, "Oops", "Bad", fields=[("A", "1")], footer="foot"
        )

        embed = build_notice_embed(notice)

        assert embed.title == "Oops"
        assert embed.color.value == 0xFF0000
        assert embed.fields[0].name == "A"
        assert embed.footer.text == "foot"
        assert notice_as_text(notice) == "**Oops**\nBad\nA: 1"

    def test_info_notice(self):
        room = Room(1, 2, 3, "Owner", "Den", created_at=0, locked=True, invited={4, 5}, user_limit=4)

        notice = build_info_notice(room, now=125)

        assert "<@3>" in notice.description
        assert dict(notice.fields) == {
            "Status": "🔒 Locked",
            "Invited": "2",
            "User Limit": "4",
            "Age": "2m 5s",
        }


class TestRoomProvider:
    def test_to_overwrite_leaves_unset_permissions_inherited(self):
        overwrite = to_overwrite(RoomPermissions(connect=False))

        allow, deny = overwrite.pair()
        assert deny.connect is True
        assert allow.value == 0
        assert overwrite.view_channel is None

    @pytest.mark.asyncio
    async def test_delete_missing_channel_is_not_found(self):
        client = MagicMock()
        client.get_channel.return_value = None

        assert await DiscordRoomProvider(client).delete_voice_room(1) is False

    @pytest.mark.asyncio
    async def test_delete_not_found_is_tolerated(self):
        channel = MagicMock()
        channel.delete = AsyncMock(side_effect=http_error(404, discord.NotFound))
        client = MagicMock()
        client.get_channel.return_value = channel

        assert await DiscordRoomProvider(client).delete_voice_room(1) is False
        assert channel.delete.await_count == 1

    @pytest.mark.asyncio
    async def test_delete_forbidden_raises_provider_error(self):
        channel = MagicMock()
        channel.delete = AsyncMock(side_effect=http_error(403, discord.Forbidden))
        client = MagicMock()
        client.get_channel.return_value = channel

        with pytest.raises(ProviderError) as exc_info:
            await DiscordRoomProvider(client).delete_voice_room(1)
        assert exc_info.value.operation == "delete_voice_room"
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_unknown_room_raises_provider_error(self):
        client = MagicMock()
        client.get_channel.return_value = None

        with pytest.raises(ProviderError):
            await DiscordRoomProvider(client).list_members_in_room(1)

    @pytest.mark.asyncio
    async def test_list_members_in_voice_channel(self):
        member = SimpleNamespace(id=7, display_name="Seven", bot=False)
        channel = MagicMock(spec=discord.VoiceChannel)
        channel.members = [member]
        client = MagicMock()
        client.get_channel.return_value = channel

        members = await DiscordRoomProvider(client).list_members_in_room(1)

        assert members == [(7, "Seven", False)]


class TestCogTranslation:
    def test_presence_event_from_voice_state(self):
        member = SimpleNamespace(
            id=5, display_name="Five", bot=False, guild=SimpleNamespace(id=9)
        )
        before = SimpleNamespace(channel=SimpleNamespace(id=1, name="a"))
        after = SimpleNamespace(channel=None)

        event = presence_event_from_voice_state(member, before, after)

        assert (event.previous_room_id, event.current_room_id) == (1, None)
        assert event.guild_id == 9
        assert event.current_room_name is None

    def test_command_request_from_message(self):
        author = SimpleNamespace(
            id=5,
            name="five",
            display_name="Five",
            voice=SimpleNamespace(channel=SimpleNamespace(id=77, name="Den")),
        )
        message = SimpleNamespace(author=author, guild=SimpleNamespace(id=9))

        request = command_request_from_message(message, "limit", ["3"])

        assert (request.room_id, request.room_name) == (77, "Den")
        assert request.args == ["3"]

    @pytest.mark.asyncio
    async def test_on_message_dispatches_and_replies(self, settings):
        notice = Notice(NoticeLevel.SUCCESS, "ok", "ok")
        services = MagicMock()
        services.settings = settings
        services.dungeon.dispatch_command = AsyncMock(
            return_value=CommandResult(True, notice, 77)
        )
        services.notifier.reply = AsyncMock()
        bot = SimpleNamespace(services=services)
        author = SimpleNamespace(
            id=5, name="five", display_name="Five", bot=False, voice=None
        )
        message = SimpleNamespace(
            author=author, guild=SimpleNamespace(id=9), content=".d lock", channel=object()
        )

        await DungeonCommands(bot).on_message(message)

        request = services.dungeon.dispatch_command.await_args.args[0]
        assert request.command == "lock"
        assert request.room_id is None
        services.notifier.reply.assert_awaited_once_with(message.channel, notice)

    @pytest.mark.asyncio
    async def test_on_message_ignores_other_messages(self, settings):
        services = MagicMock()
        services.settings = settings
        services.dungeon.dispatch_command = AsyncMock()
        bot = SimpleNamespace(services=services)
        author = SimpleNamespace(id=5, name="five", display_name="Five", bot=False, voice=None)
        message = SimpleNamespace(
            author=author, guild=SimpleNamespace(id=9), content="hello", channel=object()
        )

        await DungeonCommands(bot).on_message(message)

        services.dungeon.dispatch_command.assert_not_awaited()
