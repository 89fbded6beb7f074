"""
Tests for the shutdown drain.
"""

import asyncio
import dataclasses

import pytest

from services.shutdown import drain_rooms
from tests.factories import make_request, room_leave, trigger_join


class TestShutdownDrain:
    @pytest.mark.asyncio
    async def test_deletes_empty_rooms_and_keeps_occupied(
        self, service, provider, owner, guest, room_id
    ):
        await service.handle_presence_event(trigger_join(guest))
        empty_id = next(rid for rid in service.registry if rid != room_id)
        provider.remove_from_voice(guest.member_id)
        await service.handle_presence_event(room_leave(guest, empty_id))
        assert service.scheduler.is_armed(empty_id)

        await service.shutdown()

        assert len(service.scheduler) == 0
        assert provider.calls_for("delete_voice_room") == [(empty_id, "Bot shutting down")]
        assert empty_id not in service.registry
        assert room_id in provider.rooms

    @pytest.mark.asyncio
    async def test_delete_failures_do_not_raise(self, service, provider, owner, room_id):
        provider.remove_from_voice(owner.member_id)
        provider.fail("delete_voice_room")

        deleted = await drain_rooms(service)

        assert deleted == 0
        assert room_id in service.registry
        assert service.scheduler.is_armed(room_id) is False

    @pytest.mark.asyncio
    async def test_drain_is_time_bounded(self, service, provider, owner, room_id):
        provider.remove_from_voice(owner.member_id)

        async def hang(room_id, reason=None):
            await asyncio.sleep(10)

        provider.delete_voice_room = hang

        loop = asyncio.get_running_loop()
        started = loop.time()
        deleted = await drain_rooms(service, timeout=0.05)

        assert deleted == 0
        assert loop.time() - started < 1

    @pytest.mark.asyncio
    async def test_timeout_reports_rooms_already_deleted(
        self, service, provider, owner, guest, room_id
    ):
        await service.handle_presence_event(trigger_join(guest))
        second_id = next(rid for rid in service.registry if rid != room_id)
        provider.remove_from_voice(owner.member_id)
        provider.remove_from_voice(guest.member_id)
        delete_voice_room = provider.delete_voice_room

        async def hang_on_second(rid, reason=None):
            if rid == second_id:
                await asyncio.sleep(10)
            return await delete_voice_room(rid, reason)

        provider.delete_voice_room = hang_on_second

        deleted = await drain_rooms(service, timeout=0.05)

        assert deleted == 1
        assert room_id not in service.registry
        assert second_id in service.registry

    @pytest.mark.asyncio
    async def test_pending_end_is_cancelled(self, service, provider, owner, room_id):
        service.settings = dataclasses.replace(service.settings, end_grace=5)
        await service.dispatch_command(make_request(room_id, owner, "end"))

        await service.shutdown()

        assert service._background_tasks == set()
        assert provider.calls_for("delete_voice_room") == []
