"""
Startup reconciliation sweep.

Rebuilds the registry from the voice rooms found under the managed
category after a restart. Occupied rooms are adopted with the first human
member as inferred owner; empty rooms are deleted.
"""

from typing import TYPE_CHECKING, NamedTuple

from utils.errors import ProviderError
from utils.logging import get_logger

if TYPE_CHECKING:
    from .dungeon_service import DungeonService

logger = get_logger(__name__)


class ReconcileResult(NamedTuple):
    adopted: int = 0
    deleted: int = 0
    failed: int = 0


async def reconcile_guild(service: "DungeonService", guild_id: int) -> ReconcileResult:
    """Reconcile one guild's managed category against the registry."""
    settings = service.settings
    adopted = deleted = failed = 0
    try:
        snapshots = await service.provider.list_category_rooms(
            guild_id, settings.category_name
        )
    except ProviderError as e:
        logger.warning(f"Could not list managed rooms: {e}", extra={"guild_id": guild_id})
        return ReconcileResult(failed=1)

    for snapshot in snapshots:
        if snapshot.name == settings.trigger_channel_name:
            continue
        if snapshot.room_id in service.registry:
            continue
        async with service.room_lock(snapshot.room_id):
            if snapshot.room_id in service.registry:
                continue
            try:
                members = await service.provider.list_members_in_room(snapshot.room_id)
                humans = [member for member in members if not member.bot]
                if humans:
                    service.adopt_room(
                        snapshot.room_id, guild_id, snapshot.name, humans[0]
                    )
                    adopted += 1
                else:
                    await service.provider.delete_voice_room(
                        snapshot.room_id, "Orphaned empty dungeon"
                    )
                    logger.info(
                        f"Deleted orphaned empty dungeon '{snapshot.name}'",
                        extra={"room_id": snapshot.room_id, "guild_id": guild_id},
                    )
                    deleted += 1
            except ProviderError as e:
                logger.warning(
                    f"Failed to reconcile dungeon '{snapshot.name}': {e}",
                    extra={"room_id": snapshot.room_id, "guild_id": guild_id},
                )
                failed += 1

    return ReconcileResult(adopted, deleted, failed)


async def reconcile_all_guilds(service: "DungeonService") -> ReconcileResult:
    """Run the sweep for every guild the provider can see."""
    adopted = deleted = failed = 0
    for guild_id in service.provider.guild_ids():
        result = await reconcile_guild(service, guild_id)
        adopted += result.adopted
        deleted += result.deleted
        failed += result.failed
    logger.info(
        f"Reconciliation complete: adopted={adopted} deleted={deleted} failed={failed}"
    )
    return ReconcileResult(adopted, deleted, failed)
