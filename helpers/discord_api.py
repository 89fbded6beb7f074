"""
Centralized module for the Discord API calls the dungeon bot makes.

Every call passes through one shared rate gate. Calls that are safe to repeat
(delete, move, disconnect) are retried on transient faults; creation calls are
made exactly once. Discord exceptions propagate to the caller, which decides
what they mean for its own contract.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import discord
from aiolimiter import AsyncLimiter

from helpers.defensive_retry import retry_async
from utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

api_limiter = AsyncLimiter(max_rate=45, time_period=1)


async def call_limited(func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    """Run one Discord API call under the shared rate gate."""
    async with api_limiter:
        return await func(*args, **kwargs)


async def call_with_retry(
    func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
) -> T:
    """Run a repeat-safe Discord API call, retrying transient failures."""

    async def _attempt() -> T:
        return await call_limited(func, *args, **kwargs)

    _attempt.__name__ = getattr(func, "__name__", "discord_call")
    return await retry_async(_attempt, config_name="discord_api")


async def create_category(guild: discord.Guild, name: str) -> discord.CategoryChannel:
    category = await call_limited(guild.create_category, name, position=0)
    logger.info(f"Created category '{name}'", extra={"guild_id": guild.id})
    return category


async def create_voice_channel(
    guild: discord.Guild,
    name: str,
    *,
    category: discord.CategoryChannel | None,
    overwrites: dict[Any, discord.PermissionOverwrite],
) -> discord.VoiceChannel:
    """Create a voice channel. Never retried: a stale retry could double-provision."""
    channel = await call_limited(
        guild.create_voice_channel, name, category=category, overwrites=overwrites
    )
    logger.info(
        f"Created voice channel '{name}'",
        extra={"guild_id": guild.id, "channel_id": channel.id},
    )
    return channel


async def delete_channel(channel: discord.abc.GuildChannel, reason: str | None = None) -> bool:
    """Delete a channel.

    Returns:
        True if the channel was deleted, False if it was already gone.
    """
    try:
        await call_with_retry(channel.delete, reason=reason)
    except discord.NotFound:
        logger.info(
            f"Channel '{channel.id}' not found. It may have already been deleted."
        )
        return False
    logger.info(f"Deleted channel '{channel.name}' ({reason or 'no reason'}).")
    return True


async def edit_channel(channel: discord.abc.GuildChannel, **kwargs: Any) -> None:
    await call_limited(channel.edit, **kwargs)  # type: ignore[attr-defined]
    logger.debug(
        "Edited channel", extra={"channel_id": channel.id, "edit_keys": list(kwargs)}
    )


async def set_permissions(
    channel: discord.abc.GuildChannel,
    target: discord.Role | discord.Member,
    overwrite: discord.PermissionOverwrite | None,
) -> None:
    """Set (or with ``None`` remove) one permission overwrite on a channel."""
    await call_limited(channel.set_permissions, target, overwrite=overwrite)
    logger.debug(
        "Updated permission overwrite",
        extra={"channel_id": channel.id, "user_id": target.id},
    )


async def move_member(member: discord.Member, channel: discord.VoiceChannel) -> None:
    await call_with_retry(member.move_to, channel)
    logger.debug(
        "Moved member to voice channel",
        extra={"user_id": member.id, "channel_id": channel.id},
    )


async def disconnect_member(member: discord.Member) -> None:
    await call_with_retry(member.move_to, None)
    logger.debug("Disconnected member from voice", extra={"user_id": member.id})


async def channel_send_message(
    channel: discord.abc.Messageable,
    content: str | None = None,
    embed: discord.Embed | None = None,
) -> None:
    """Send a message to a channel with user mentions only."""
    kwargs: dict[str, Any] = {
        "allowed_mentions": discord.AllowedMentions(
            users=True, roles=False, everyone=False
        ),
    }
    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    await call_limited(channel.send, **kwargs)
