"""Tests for the room table, bounded history and per-room locking."""

import asyncio
from datetime import datetime, timezone

import pytest

from roomrelay.models.models import Message
from roomrelay.services.room_store import RoomStore


def make_message(n: int, room_code: str = "ROOM") -> Message:
    return Message(
        id=f"m{n}",
        room_code=room_code,
        sender_connection_id="c1",
        sender_display_name="Alice",
        text=f"message {n}",
        sent_at=datetime.now(timezone.utc),
    )


class TestRooms:
    def test_get_or_create_returns_same_room(self):
        store = RoomStore()
        first = store.get_or_create("ROOM")
        assert store.get_or_create("ROOM") is first
        assert len(store) == 1
        assert "ROOM" in store

    def test_concurrent_first_joins_create_one_room(self):
        store = RoomStore()

        async def join():
            async with store.locked("NEW"):
                await asyncio.sleep(0)
                return store.get_or_create("NEW")

        async def scenario():
            return await asyncio.gather(*(join() for _ in range(20)))

        rooms = asyncio.run(scenario())
        assert all(room is rooms[0] for room in rooms)
        assert len(store) == 1

    def test_remove_is_idempotent(self):
        store = RoomStore()
        store.get_or_create("ROOM")
        assert store.remove("ROOM") is True
        assert store.remove("ROOM") is False
        assert store.get("ROOM") is None

    def test_recreated_room_is_fresh(self):
        store = RoomStore()
        store.get_or_create("ROOM")
        store.append_message("ROOM", make_message(1))
        store.remove("ROOM")
        room = store.get_or_create("ROOM")
        assert list(room.history) == []
        assert room.members == {}

    def test_rooms_with_member(self):
        store = RoomStore()
        store.get_or_create("A").members["c1"] = "Alice"
        store.get_or_create("B").members["c2"] = "Bob"
        assert store.rooms_with_member("c1") == ["A"]
        assert store.rooms_with_member("c3") == []

    def test_invalid_history_limit(self):
        with pytest.raises(ValueError):
            RoomStore(history_limit=0)


class TestHistory:
    def test_append_to_missing_room_is_dropped(self):
        store = RoomStore()
        assert store.append_message("GONE", make_message(1, "GONE")) is False
        assert store.snapshot_history("GONE") == []
        assert "GONE" not in store

    def test_history_bounded_to_limit(self):
        store = RoomStore(history_limit=100)
        store.get_or_create("ROOM")
        for n in range(1, 102):
            store.append_message("ROOM", make_message(n))

        history = store.snapshot_history("ROOM")
        assert len(history) == 100
        assert [m.id for m in history] == [f"m{n}" for n in range(2, 102)]

    def test_snapshot_is_a_copy(self):
        store = RoomStore()
        store.get_or_create("ROOM")
        store.append_message("ROOM", make_message(1))
        snapshot = store.snapshot_history("ROOM")
        store.append_message("ROOM", make_message(2))
        assert [m.id for m in snapshot] == ["m1"]

    def test_snapshot_members_keeps_join_order(self):
        store = RoomStore()
        room = store.get_or_create("ROOM")
        for cid in ("c3", "c1", "c2"):
            room.members[cid] = cid
        snapshot = store.snapshot_members("ROOM")
        room.members.pop("c1")
        assert snapshot == ["c3", "c1", "c2"]


class TestLocking:
    def test_lock_is_released_after_an_error(self):
        store = RoomStore()

        async def scenario():
            with pytest.raises(RuntimeError):
                async with store.locked("ROOM"):
                    store.get_or_create("ROOM")
                    raise RuntimeError("boom")
            async with store.locked("ROOM"):
                return "ROOM" in store

        assert asyncio.run(asyncio.wait_for(scenario(), timeout=1)) is True

    def test_same_room_serialized(self):
        store = RoomStore()
        order = []

        async def worker(name):
            async with store.locked("ROOM"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        async def scenario():
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(scenario())
        assert order == ["a-in", "a-out", "b-in", "b-out"]

    def test_rooms_do_not_block_each_other(self):
        store = RoomStore()

        async def scenario():
            async with store.locked("A"):
                # Would time out if B waited on A's lock
                async def other():
                    async with store.locked("B"):
                        return True

                return await asyncio.wait_for(other(), timeout=1)

        assert asyncio.run(scenario()) is True
