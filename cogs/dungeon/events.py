"""
Dungeon Events Cog

Translates Discord voice and channel events for the DungeonService and
runs the startup reconciliation sweep once the gateway is ready.
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from services.reconciliation import reconcile_all_guilds
from utils.logging import get_logger
from utils.types import PresenceEvent

if TYPE_CHECKING:
    from services.dungeon_service import DungeonService

logger = get_logger(__name__)


def presence_event_from_voice_state(
    member: discord.Member,
    before: discord.VoiceState,
    after: discord.VoiceState,
) -> PresenceEvent:
    """Build a PresenceEvent from a voice state update."""
    return PresenceEvent(
        member_id=member.id,
        guild_id=member.guild.id,
        previous_room_id=before.channel.id if before.channel else None,
        current_room_id=after.channel.id if after.channel else None,
        member_name=member.display_name,
        member_bot=member.bot,
        current_room_name=after.channel.name if after.channel else None,
    )


class DungeonEvents(commands.Cog):
    """Presence source and startup/teardown hooks for dungeons."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self._reconciled = False

    @property
    def dungeon_service(self) -> "DungeonService":
        """Get the dungeon service from the bot's service container."""
        if not hasattr(self.bot, "services") or self.bot.services is None:
            raise RuntimeError("Bot services not initialized")
        return self.bot.services.dungeon

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        """Reconcile once per process; gateway resumes fire on_ready again."""
        if self._reconciled:
            return
        self._reconciled = True
        try:
            await reconcile_all_guilds(self.dungeon_service)
        except Exception as e:
            logger.exception("Startup reconciliation failed", exc_info=e)

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Forward voice location changes to the dungeon service."""
        if before.channel == after.channel:
            return
        try:
            await self.dungeon_service.handle_presence_event(
                presence_event_from_voice_state(member, before, after)
            )
        except Exception as e:
            logger.exception(
                f"Error handling voice state update for {member} "
                f"(before: {before.channel}, after: {after.channel}): {e}"
            )

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        """Forget dungeons deleted outside the bot."""
        if not isinstance(channel, discord.VoiceChannel):
            return
        try:
            await self.dungeon_service.forget_room(channel.id)
        except Exception as e:
            logger.exception("Error handling channel deletion for %s", channel, exc_info=e)


async def setup(bot: commands.Bot) -> None:
    """Set up the Dungeon Events cog."""
    await bot.add_cog(DungeonEvents(bot))
