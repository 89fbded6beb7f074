"""
Tests for the bot entrypoint: top-level error handling and shutdown.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import pytest
from discord.ext import commands

from bot import STATUS_ACTIVITY, DungeonBot


@pytest.fixture
def bot(settings):
    return DungeonBot(settings)


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_unhandled_event_error_triggers_shutdown(self, bot):
        bot.close = AsyncMock()

        await bot.on_error("on_voice_state_update")
        await asyncio.gather(*list(bot._background_tasks))

        bot.close.assert_awaited_once()


class TestClose:
    @pytest.mark.asyncio
    async def test_close_drains_services_once(self, bot):
        bot.services = MagicMock()
        bot.services.cleanup = AsyncMock()

        with patch.object(commands.Bot, "close", new_callable=AsyncMock) as client_close:
            await bot.close()
            await bot.close()

        bot.services.cleanup.assert_awaited_once()
        client_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleanup_failure_still_closes_client(self, bot):
        bot.services = MagicMock()
        bot.services.cleanup = AsyncMock(side_effect=RuntimeError("boom"))

        with patch.object(commands.Bot, "close", new_callable=AsyncMock) as client_close:
            await bot.close()

        client_close.assert_awaited_once()


class TestReady:
    @pytest.mark.asyncio
    async def test_ready_sets_status_activity(self, bot):
        bot.change_presence = AsyncMock()
        user = MagicMock(id=42)

        with patch.object(DungeonBot, "user", new_callable=PropertyMock, return_value=user), \
                patch.object(DungeonBot, "guilds", new_callable=PropertyMock, return_value=[]):
            await bot.on_ready()

        bot.change_presence.assert_awaited_once_with(activity=STATUS_ACTIVITY)
