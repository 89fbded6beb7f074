"""
Tests for the in-memory room registry.
"""

from services.room_registry import RoomRegistry
from utils.types import Room


def make_room(room_id: int = 1, owner_id: int = 10) -> Room:
    return Room(room_id=room_id, guild_id=100, owner_id=owner_id, owner_name="Owner", name="R")


class TestRoomRegistry:
    def test_put_get_remove(self):
        registry = RoomRegistry()
        room = make_room()

        registry.put(1, room)

        assert registry.get(1) is room
        assert 1 in registry
        assert len(registry) == 1
        assert registry.remove(1) is room
        assert registry.get(1) is None
        assert 1 not in registry

    def test_remove_missing_returns_none(self):
        assert RoomRegistry().remove(42) is None

    def test_update_applies_to_existing_room(self):
        registry = RoomRegistry()
        registry.put(1, make_room())

        def _lock(room: Room) -> None:
            room.locked = True

        updated = registry.update(1, _lock)

        assert updated is not None
        assert registry.get(1).locked is True

    def test_update_skips_absent_room(self):
        registry = RoomRegistry()
        calls = []

        assert registry.update(7, calls.append) is None
        assert calls == []

    def test_iteration_is_safe_while_removing(self):
        registry = RoomRegistry()
        for room_id in (1, 2, 3):
            registry.put(room_id, make_room(room_id))

        for room_id in registry:
            registry.remove(room_id)

        assert len(registry) == 0
        assert registry.rooms() == []
