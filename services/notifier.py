"""
Notifier: delivers the core's notices to guild text channels.

Delivery is best effort. Callers in the lifecycle path never depend on a
notice arriving.
"""

from typing import Protocol

import discord

from helpers import discord_api
from helpers.embeds import build_notice_embed, notice_as_text
from utils.logging import get_logger
from utils.types import Notice

logger = get_logger(__name__)

PREFERRED_CHANNEL_KEYWORDS = ("general", "bot", "command")


class Notifier(Protocol):
    async def post_message(self, guild_id: int, notice: Notice) -> None: ...


def select_announcement_channel(
    guild: discord.Guild,
) -> discord.TextChannel | None:
    """
    Pick the text channel for guild-level notices.

    Only channels where the bot can send messages and embed links are
    eligible. A channel whose name contains one of the preferred keywords
    wins; otherwise the first eligible channel is used.
    """
    me = guild.me
    eligible = [
        channel
        for channel in guild.text_channels
        if me is not None
        and channel.permissions_for(me).send_messages
        and channel.permissions_for(me).embed_links
    ]
    for channel in eligible:
        name = channel.name.lower()
        if any(keyword in name for keyword in PREFERRED_CHANNEL_KEYWORDS):
            return channel
    return eligible[0] if eligible else None


class DiscordNotifier:
    """Notifier that renders notices as embeds."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def post_message(self, guild_id: int, notice: Notice) -> None:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            logger.warning("Cannot post notice: guild not available", extra={"guild_id": guild_id})
            return
        channel = select_announcement_channel(guild)
        if channel is None:
            logger.warning(
                "No text channel available for notices", extra={"guild_id": guild_id}
            )
            return
        await self.reply(channel, notice)

    async def reply(self, channel: discord.abc.Messageable, notice: Notice) -> None:
        """Send ``notice`` to ``channel``, falling back to plain text."""
        try:
            await discord_api.channel_send_message(
                channel, embed=build_notice_embed(notice)
            )
            return
        except discord.Forbidden:
            logger.info("Embed not permitted, falling back to plain text")
        except discord.HTTPException as e:
            logger.warning(f"Failed to send notice embed: {e}")
        try:
            await discord_api.channel_send_message(channel, content=notice_as_text(notice))
        except discord.HTTPException as e:
            logger.warning(f"Failed to send plain-text notice: {e}")
