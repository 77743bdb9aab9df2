# roomrelay/services/presence.py

from __future__ import annotations

from typing import List

from roomrelay.models.models import Member
from roomrelay.services.connection_registry import ConnectionRegistry
from roomrelay.services.room_store import RoomStore


class PresenceTracker:
    """
    Derives who is online in a room.

    Nothing is cached: every call walks the room's member order and takes
    names from the connection registry, so the list can never drift from
    the underlying state. A member whose registry entry no longer points at
    this room keeps the name it joined with.
    """

    def __init__(self, room_store: RoomStore, registry: ConnectionRegistry) -> None:
        self.room_store = room_store
        self.registry = registry

    def members_of(self, room_code: str) -> List[Member]:
        room = self.room_store.get(room_code)
        if room is None:
            return []

        members: List[Member] = []
        for connection_id, joined_as in room.members.items():
            membership = self.registry.lookup(connection_id)
            if membership is not None and membership.room_code == room_code:
                name = membership.display_name
            else:
                name = joined_as
            members.append(Member(connection_id=connection_id, display_name=name))
        return members

    def wire_members_of(self, room_code: str) -> List[dict]:
        return [m.to_wire() for m in self.members_of(room_code)]
