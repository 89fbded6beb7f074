"""
Per-room deletion timers.

Each room id has at most one pending timer: arming always cancels the
previous one first. A timer is a plain asyncio task that sleeps and then
awaits its callback once.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from utils.logging import get_logger

logger = get_logger(__name__)

FireCallback = Callable[[int], Awaitable[Any]]


class DeletionScheduler:
    """Cancellable, fire-once timers keyed by room id."""

    def __init__(self) -> None:
        self._timers: dict[int, asyncio.Task[Any]] = {}

    def arm(self, room_id: int, after: float, on_fire: FireCallback) -> asyncio.Task[Any]:
        """Cancel any timer for ``room_id`` and schedule ``on_fire`` after ``after`` seconds."""
        self.cancel(room_id)
        task = asyncio.create_task(
            self._run(room_id, after, on_fire),
            name=f"dungeon.deletion_timer.{room_id}",
        )
        self._timers[room_id] = task
        task.add_done_callback(lambda t: self._on_done(room_id, t))
        logger.info(
            f"Deletion timer armed for {after:g}s", extra={"room_id": room_id}
        )
        return task

    async def _run(self, room_id: int, after: float, on_fire: FireCallback) -> None:
        await asyncio.sleep(max(after, 0))
        # From here on the timer has fired and is no longer pending
        if self._timers.get(room_id) is asyncio.current_task():
            del self._timers[room_id]
        logger.info("Deletion timer fired", extra={"room_id": room_id})
        await on_fire(room_id)

    def _on_done(self, room_id: int, task: asyncio.Task[Any]) -> None:
        if self._timers.get(room_id) is task:
            del self._timers[room_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error(
                "Deletion timer callback failed",
                extra={"room_id": room_id},
                exc_info=exc,
            )

    def cancel(self, room_id: int) -> bool:
        """Cancel the pending timer for ``room_id``. No-op if none is armed.

        Returns:
            True if a pending timer was cancelled.
        """
        task = self._timers.pop(room_id, None)
        if task is None or task.done():
            return False
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is current:
            # A firing timer cannot cancel itself mid-callback
            return False
        task.cancel()
        logger.info("Deletion timer cancelled", extra={"room_id": room_id})
        return True

    def is_armed(self, room_id: int) -> bool:
        task = self._timers.get(room_id)
        return task is not None and not task.done()

    def cancel_all(self) -> list[asyncio.Task[Any]]:
        """Cancel every pending timer and return the cancelled tasks."""
        tasks = [t for t in self._timers.values() if not t.done()]
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"Cancelled {len(tasks)} pending deletion timers")
        return tasks

    def __len__(self) -> int:
        return sum(1 for t in self._timers.values() if not t.done())
