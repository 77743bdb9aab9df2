# roomrelay/services/connection_registry.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class Membership:
    """The room a connection is in and the name it joined with."""

    room_code: str
    display_name: str


# ============================================================================
# CONNECTION REGISTRY
# ============================================================================

class ConnectionRegistry:
    """
    Maps connection_id -> current room membership and display name.

    A connection belongs to at most one room here. Recording a join simply
    overwrites the previous association; removing the connection from its
    old room is the caller's job (see SessionHandler.join_room).
    """

    def __init__(self) -> None:
        self._memberships: Dict[str, Membership] = {}

    def record_join(self, connection_id: str, room_code: str, display_name: str) -> None:
        self._memberships[connection_id] = Membership(room_code, display_name)

    def record_leave(self, connection_id: str) -> Optional[str]:
        """Clear the association and return the room code it pointed at, if any."""
        membership = self._memberships.pop(connection_id, None)
        return membership.room_code if membership else None

    def lookup(self, connection_id: str) -> Optional[Membership]:
        return self._memberships.get(connection_id)

    def __len__(self) -> int:
        return len(self._memberships)
