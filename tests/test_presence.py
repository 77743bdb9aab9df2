"""Tests for presence lists derived from the room store and registry."""

from roomrelay.services.connection_registry import ConnectionRegistry
from roomrelay.services.presence import PresenceTracker
from roomrelay.services.room_store import RoomStore


def setup():
    store = RoomStore()
    registry = ConnectionRegistry()
    return store, registry, PresenceTracker(store, registry)


def join(store, registry, cid, code, name):
    store.get_or_create(code).members[cid] = name
    registry.record_join(cid, code, name)


class TestPresence:
    def test_unknown_room_is_empty(self):
        _, _, presence = setup()
        assert presence.members_of("NOPE") == []

    def test_members_in_join_order(self):
        store, registry, presence = setup()
        for n, name in enumerate(["Carol", "Alice", "Bob"]):
            join(store, registry, f"c{n}", "ROOM", name)

        members = presence.members_of("ROOM")
        assert len(members) == 3
        assert [m.display_name for m in members] == ["Carol", "Alice", "Bob"]
        assert [m.connection_id for m in members] == ["c0", "c1", "c2"]

    def test_reflects_changes_without_caching(self):
        store, registry, presence = setup()
        join(store, registry, "c1", "ROOM", "Alice")
        assert len(presence.members_of("ROOM")) == 1
        join(store, registry, "c2", "ROOM", "Bob")
        assert len(presence.members_of("ROOM")) == 2

    def test_stale_member_keeps_join_name(self):
        store, registry, presence = setup()
        join(store, registry, "c1", "OLD", "Alice")
        # Registry moved on to another room under a new name
        join(store, registry, "c1", "NEW", "Alicia")
        assert [m.display_name for m in presence.members_of("OLD")] == ["Alice"]
        assert [m.display_name for m in presence.members_of("NEW")] == ["Alicia"]

    def test_wire_format(self):
        store, registry, presence = setup()
        join(store, registry, "c1", "ROOM", "Alice")
        assert presence.wire_members_of("ROOM") == [{"connectionId": "c1", "displayName": "Alice"}]
