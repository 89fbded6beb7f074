"""
In-memory registry of active dungeons keyed by voice channel id.

The registry has no side effects beyond its own map; the lifecycle
controller is its only writer.
"""

from collections.abc import Callable, Iterator

from utils.types import Room


class RoomRegistry:
    """Mapping of room id to Room metadata."""

    def __init__(self) -> None:
        self._rooms: dict[int, Room] = {}

    def get(self, room_id: int) -> Room | None:
        return self._rooms.get(room_id)

    def put(self, room_id: int, room: Room) -> None:
        self._rooms[room_id] = room

    def remove(self, room_id: int) -> Room | None:
        return self._rooms.pop(room_id, None)

    def update(self, room_id: int, mutator: Callable[[Room], None]) -> Room | None:
        """Apply ``mutator`` to the room if it still exists.

        Returns:
            The mutated room, or None if the id is not tracked.
        """
        room = self._rooms.get(room_id)
        if room is None:
            return None
        mutator(room)
        return room

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._rooms))
