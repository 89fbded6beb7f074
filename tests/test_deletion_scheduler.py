"""
Tests for per-room deletion timers.
"""

import asyncio

import pytest

from services.deletion_scheduler import DeletionScheduler


class FireRecorder:
    def __init__(self) -> None:
        self.fired: list[int] = []

    async def __call__(self, room_id: int) -> None:
        self.fired.append(room_id)


class TestDeletionScheduler:
    @pytest.mark.asyncio
    async def test_cancel_without_timer_is_noop(self):
        scheduler = DeletionScheduler()

        assert scheduler.cancel(1) is False
        assert scheduler.cancel(1) is False
        assert scheduler.is_armed(1) is False

    @pytest.mark.asyncio
    async def test_timer_fires_once(self):
        scheduler = DeletionScheduler()
        recorder = FireRecorder()

        scheduler.arm(1, 0.01, recorder)
        assert scheduler.is_armed(1)
        await asyncio.sleep(0.05)

        assert recorder.fired == [1]
        assert scheduler.is_armed(1) is False
        assert len(scheduler) == 0

    @pytest.mark.asyncio
    async def test_rearm_keeps_single_timer(self):
        scheduler = DeletionScheduler()
        recorder = FireRecorder()

        scheduler.arm(1, 0.02, recorder)
        scheduler.cancel(1)
        scheduler.arm(1, 0.02, recorder)
        scheduler.arm(1, 0.02, recorder)

        assert len(scheduler) == 1
        await asyncio.sleep(0.08)

        assert recorder.fired == [1]

    @pytest.mark.asyncio
    async def test_cancel_prevents_fire(self):
        scheduler = DeletionScheduler()
        recorder = FireRecorder()

        scheduler.arm(1, 0.02, recorder)
        assert scheduler.cancel(1) is True
        await asyncio.sleep(0.05)

        assert recorder.fired == []
        assert scheduler.is_armed(1) is False

    @pytest.mark.asyncio
    async def test_timers_are_independent_per_room(self):
        scheduler = DeletionScheduler()
        recorder = FireRecorder()

        scheduler.arm(1, 0.02, recorder)
        scheduler.arm(2, 0.02, recorder)
        scheduler.cancel(1)
        await asyncio.sleep(0.05)

        assert recorder.fired == [2]

    @pytest.mark.asyncio
    async def test_cancel_all_returns_cancelled_tasks(self):
        scheduler = DeletionScheduler()
        recorder = FireRecorder()
        scheduler.arm(1, 1, recorder)
        scheduler.arm(2, 1, recorder)

        cancelled = scheduler.cancel_all()
        await asyncio.gather(*cancelled, return_exceptions=True)

        assert len(cancelled) == 2
        assert all(task.cancelled() for task in cancelled)
        assert len(scheduler) == 0

    @pytest.mark.asyncio
    async def test_callback_failure_is_contained(self):
        scheduler = DeletionScheduler()

        async def boom(room_id: int) -> None:
            raise RuntimeError("fail")

        task = scheduler.arm(1, 0, boom)
        await asyncio.gather(task, return_exceptions=True)

        assert scheduler.is_armed(1) is False

    @pytest.mark.asyncio
    async def test_callback_may_rearm_its_own_room(self):
        scheduler = DeletionScheduler()
        fired: list[int] = []

        async def rearm_once(room_id: int) -> None:
            fired.append(room_id)
            if len(fired) == 1:
                scheduler.arm(room_id, 0.01, rearm_once)

        scheduler.arm(1, 0.01, rearm_once)
        await asyncio.sleep(0.08)

        assert fired == [1, 1]
        assert scheduler.is_armed(1) is False
