"""
Shutdown drain for the dungeon lifecycle.

Best effort and time bounded: pending timers are cancelled, then every
tracked room with no human members is deleted. Failures are logged and
never block exit.
"""

import asyncio
from typing import TYPE_CHECKING

from utils.logging import get_logger

if TYPE_CHECKING:
    from .dungeon_service import DungeonService

logger = get_logger(__name__)

SHUTDOWN_REASON = "Bot shutting down"


async def _delete_empty_rooms(service: "DungeonService", deleted: list[int]) -> None:
    for room in service.registry.rooms():
        async with service.room_lock(room.room_id):
            # A timer that was already firing may have removed it
            if room.room_id not in service.registry:
                continue
            occupancy = await service._occupancy(room.room_id)
            if occupancy is None:
                logger.warning(
                    "Skipping dungeon during drain, membership unreadable",
                    extra={"room_id": room.room_id},
                )
                continue
            if occupancy:
                continue
            if await service._delete_room(room.room_id, SHUTDOWN_REASON, rearm=False):
                deleted.append(room.room_id)


async def drain_rooms(service: "DungeonService", timeout: float | None = None) -> int:
    """
    Cancel all timers and delete empty tracked rooms within ``timeout``.

    Returns:
        Number of rooms deleted before the budget ran out.
    """
    if timeout is None:
        timeout = service.settings.shutdown_timeout

    cancelled = service.scheduler.cancel_all()
    if cancelled:
        await asyncio.gather(*cancelled, return_exceptions=True)

    logger.info(f"Draining {len(service.registry)} tracked dungeons")
    deleted: list[int] = []
    try:
        await asyncio.wait_for(_delete_empty_rooms(service, deleted), timeout)
    except asyncio.TimeoutError:
        logger.warning(
            f"Shutdown drain exceeded {timeout:g}s budget after deleting "
            f"{len(deleted)} dungeons, giving up"
        )
        return len(deleted)
    logger.info(f"Shutdown drain deleted {len(deleted)} empty dungeons")
    return len(deleted)
