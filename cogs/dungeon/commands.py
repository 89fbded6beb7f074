"""
Dungeon Commands Cog

Text-prefix command surface (``<prefix><command> [args]``). Parsing and
replies live here; the DungeonService decides the outcome.
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from helpers.command_parser import parse_command
from utils.logging import get_logger
from utils.types import CommandRequest

if TYPE_CHECKING:
    from services.service_container import ServiceContainer

logger = get_logger(__name__)


def command_request_from_message(
    message: discord.Message, command: str, args: list[str]
) -> CommandRequest:
    """Build a CommandRequest using the author's current voice channel."""
    author = message.author
    voice = getattr(author, "voice", None)
    channel = voice.channel if voice else None
    return CommandRequest(
        guild_id=message.guild.id if message.guild else 0,
        sender_id=author.id,
        sender_name=getattr(author, "display_name", author.name),
        room_id=channel.id if channel else None,
        room_name=channel.name if channel else None,
        command=command,
        args=args,
    )


class DungeonCommands(commands.Cog):
    """Handles dungeon text commands."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @property
    def services(self) -> "ServiceContainer":
        if not hasattr(self.bot, "services") or self.bot.services is None:
            raise RuntimeError("Bot services not initialized")
        return self.bot.services

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return

        services = self.services
        parsed = parse_command(message.content, services.settings.command_prefix)
        if parsed is None:
            return
        command, args = parsed
        request = command_request_from_message(message, command, args)

        try:
            result = await services.dungeon.dispatch_command(request)
            await services.notifier.reply(message.channel, result.notice)
        except Exception as e:
            logger.exception(
                "Error handling dungeon command",
                exc_info=e,
                extra={
                    "guild_id": request.guild_id,
                    "user_id": request.sender_id,
                    "command_name": command,
                },
            )


async def setup(bot: commands.Bot) -> None:
    """Set up the Dungeon Commands cog."""
    await bot.add_cog(DungeonCommands(bot))
