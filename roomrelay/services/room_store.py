# roomrelay/services/room_store.py

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Deque, Dict, List, Optional
import logging

from roomrelay.models.models import Message

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


@dataclass
class Room:
    """
    In-memory state of one active room.

    Attributes:
        code: Normalized (upper-case) room code
        members: connection_id -> display name given at join, in join order
        history: Most recent messages, oldest first, bounded by the deque maxlen
    """

    code: str
    history: Deque[Message]
    members: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class _RoomLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


# ============================================================================
# ROOM STORE
# ============================================================================

class RoomStore:
    """
    Owns the room table: creation, lookup, history and garbage collection.

    Rooms are created lazily by get_or_create() and removed by the session
    handler the moment their member set becomes empty. Nothing is persisted;
    a code that is joined again after its room was removed starts over with
    an empty history.

    Concurrency:
        Everything here runs on a single event loop, so the synchronous
        methods are atomic with respect to each other. locked() hands out a
        per-room asyncio.Lock that session transitions hold while they mutate
        a room, so no other transition on the same room sees a half-applied
        change. Rooms never wait on each other.

    Usage:
        store = RoomStore(history_limit=100)
        async with store.locked("ABCD1234"):
            room = store.get_or_create("ABCD1234")
            room.members[connection_id] = "alice"
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be positive")
        self.history_limit = history_limit
        self._rooms: Dict[str, Room] = {}
        self._locks: Dict[str, _RoomLock] = {}

    @asynccontextmanager
    async def locked(self, room_code: str) -> AsyncIterator[None]:
        """Hold the per-room lock for room_code."""
        entry = self._locks.get(room_code)
        if entry is None:
            entry = self._locks[room_code] = _RoomLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            # Nobody holds or waits on it, the next transition starts a fresh one
            if entry.users == 0:
                self._locks.pop(room_code, None)

    def get_or_create(self, room_code: str) -> Room:
        room = self._rooms.get(room_code)
        if room is None:
            room = Room(code=room_code, history=deque(maxlen=self.history_limit))
            self._rooms[room_code] = room
            logger.info("✓ Created room %s. Total: %d", room_code, len(self._rooms))
        return room

    def get(self, room_code: str) -> Optional[Room]:
        return self._rooms.get(room_code)

    def remove(self, room_code: str) -> bool:
        """Delete a room. Returns False if it was already gone."""
        if self._rooms.pop(room_code, None) is None:
            return False
        logger.info("✗ Removed room %s. Total: %d", room_code, len(self._rooms))
        return True

    def append_message(self, room_code: str, message: Message) -> bool:
        """
        Archive a message in the room's history.

        The deque drops the oldest entry once the limit is reached. If the
        room no longer exists the message is not archived and False is
        returned; the caller still broadcasts it.
        """
        room = self._rooms.get(room_code)
        if room is None:
            logger.debug("Room %s gone, message %s not archived", room_code, message.id)
            return False
        room.history.append(message)
        return True

    def snapshot_history(self, room_code: str) -> List[Message]:
        room = self._rooms.get(room_code)
        return list(room.history) if room else []

    def snapshot_members(self, room_code: str) -> List[str]:
        room = self._rooms.get(room_code)
        return list(room.members) if room else []

    def rooms_with_member(self, connection_id: str) -> List[str]:
        return [code for code, room in self._rooms.items() if connection_id in room.members]

    def list_rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def __contains__(self, room_code: object) -> bool:
        return room_code in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
