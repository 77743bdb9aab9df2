# roomrelay/services/session_handler.py

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Type
import logging

from pydantic import ValidationError

from roomrelay.models.models import (
    InboundPayload,
    JoinRoomPayload,
    LeaveRoomPayload,
    Message,
    SendMessagePayload,
)
from roomrelay.services.connection_manager import ConnectionManager
from roomrelay.services.connection_registry import ConnectionRegistry
from roomrelay.services.presence import PresenceTracker
from roomrelay.services.room_store import RoomStore

logger = logging.getLogger(__name__)

# Client -> server
JOIN_ROOM = "join-room"
SEND_MESSAGE = "send-message"
LEAVE_ROOM = "leave-room"

# Server -> client
CONNECTED = "connected"
PREVIOUS_MESSAGES = "previous-messages"
ROOM_JOINED = "room-joined"
USER_JOINED = "user-joined"
NEW_MESSAGE = "new-message"
USER_LEFT = "user-left"
ERROR = "error"

UNKNOWN_NAME = "Unknown"


# ============================================================================
# SESSION PROTOCOL HANDLER
# ============================================================================

class SessionHandler:
    """
    Interprets inbound client events and sequences the room/registry updates
    and the resulting broadcasts.

    Per connection there are two states, Unjoined and Joined. Transitions:

        join-room     {roomCode, displayName}  Unjoined|Joined -> Joined
        send-message  {roomCode, text}         any state (membership is not checked)
        leave-room    {roomCode}               Joined -> Unjoined
        disconnect    (from the transport)     any -> gone

    Every transition is total: a blank or missing field rejects the event
    with no state change and nothing emitted, and unexpected errors are
    logged and swallowed so they never reach the transport.

    A transition holds the room's lock while it mutates the room and queues
    the resulting events. Queueing never waits on a socket, so events in a
    room are queued in the order the transitions ran and a slow member only
    delays its own outbox. Rooms never wait on each other.
    """

    def __init__(
        self,
        room_store: RoomStore,
        registry: ConnectionRegistry,
        presence: PresenceTracker,
        connections: ConnectionManager,
        leave_previous_on_join: bool = True,
    ) -> None:
        self.room_store = room_store
        self.registry = registry
        self.presence = presence
        self.connections = connections
        self.leave_previous_on_join = leave_previous_on_join

        self.messages_sent: int = 0
        self._sequence = itertools.count(1)

        self._transitions: Dict[str, tuple[Type[InboundPayload], Callable[[str, Any], Awaitable[bool]]]] = {
            JOIN_ROOM: (JoinRoomPayload, self._join),
            SEND_MESSAGE: (SendMessagePayload, self._send),
            LEAVE_ROOM: (LeaveRoomPayload, self._leave_requested),
        }

    def handles(self, event: str) -> bool:
        return event in self._transitions

    async def dispatch(self, connection_id: str, event: str, data: Any) -> bool:
        """
        Validate an inbound payload and run the matching transition.

        Returns:
            True if the transition ran, False if it was rejected or failed.

        Raises:
            KeyError: event is not a client event (check handles() first)
        """
        model, transition = self._transitions[event]
        try:
            payload = model.model_validate(data if data is not None else {})
        except ValidationError as e:
            logger.debug("Rejected %s from %s: %d invalid field(s)", event, connection_id, e.error_count())
            return False

        try:
            return await transition(connection_id, payload)
        except Exception:
            logger.exception("Error handling %s from %s", event, connection_id)
            return False

    async def join_room(self, connection_id: str, room_code: Any, display_name: Any) -> bool:
        return await self.dispatch(
            connection_id, JOIN_ROOM, {"roomCode": room_code, "displayName": display_name}
        )

    async def send_message(self, connection_id: str, room_code: Any, text: Any) -> bool:
        return await self.dispatch(connection_id, SEND_MESSAGE, {"roomCode": room_code, "text": text})

    async def leave_room(self, connection_id: str, room_code: Any) -> bool:
        return await self.dispatch(connection_id, LEAVE_ROOM, {"roomCode": room_code})

    async def disconnect(self, connection_id: str) -> None:
        """
        Transport closed: leave every room the connection is still in.

        Idempotent, and emits nothing for a connection that never joined.
        """
        try:
            for room_code in self._rooms_of(connection_id):
                await self._leave(connection_id, room_code)
            self.registry.record_leave(connection_id)
        except Exception:
            logger.exception("Error cleaning up connection %s", connection_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _join(self, connection_id: str, payload: JoinRoomPayload) -> bool:
        code, name = payload.room_code, payload.display_name

        if self.leave_previous_on_join:
            for previous in self._rooms_of(connection_id):
                if previous != code:
                    await self._leave(connection_id, previous)

        async with self.room_store.locked(code):
            room = self.room_store.get_or_create(code)
            # Re-joining keeps the original position in the member order
            room.members[connection_id] = name
            self.registry.record_join(connection_id, code, name)

            history = [m.to_wire() for m in self.room_store.snapshot_history(code)]
            members = self.presence.wire_members_of(code)
            logger.info("→ %s joined %s (%d members)", name, code, len(members))

            self.connections.send_to_connection(connection_id, PREVIOUS_MESSAGES, history)
            self.connections.send_to_connection(
                connection_id, ROOM_JOINED, {"roomCode": code, "members": members}
            )
            self.connections.send_to_room_except(
                code, connection_id, USER_JOINED, {"displayName": name, "members": members}
            )
        return True

    async def _send(self, connection_id: str, payload: SendMessagePayload) -> bool:
        code = payload.room_code
        membership = self.registry.lookup(connection_id)
        if membership is not None:
            sender_name = membership.display_name
        else:
            sender_name = (payload.display_name or "").strip() or UNKNOWN_NAME

        async with self.room_store.locked(code):
            message = self._new_message(connection_id, code, sender_name, payload.text)
            self.room_store.append_message(code, message)
            self.messages_sent += 1
            self.connections.send_to_room(code, NEW_MESSAGE, message.to_wire())
        return True

    async def _leave_requested(self, connection_id: str, payload: LeaveRoomPayload) -> bool:
        return await self._leave(connection_id, payload.room_code)

    async def _leave(self, connection_id: str, code: str) -> bool:
        async with self.room_store.locked(code):
            membership = self.registry.lookup(connection_id)
            in_registry = membership is not None and membership.room_code == code

            room = self.room_store.get(code)
            if room is None or connection_id not in room.members:
                if in_registry:
                    self.registry.record_leave(connection_id)
                return False

            joined_as = room.members.pop(connection_id)
            name = membership.display_name if in_registry else joined_as
            if in_registry:
                self.registry.record_leave(connection_id)

            remaining = self.presence.wire_members_of(code)
            logger.info("← %s left %s (%d members)", name, code, len(remaining))
            self.connections.send_to_room(
                code, USER_LEFT, {"displayName": name, "members": remaining}
            )

            if not room.members:
                self.room_store.remove(code)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _rooms_of(self, connection_id: str) -> List[str]:
        codes = self.room_store.rooms_with_member(connection_id)
        membership = self.registry.lookup(connection_id)
        if membership is not None and membership.room_code not in codes:
            codes.append(membership.room_code)
        return codes

    def _new_message(self, connection_id: str, code: str, sender_name: str, text: str) -> Message:
        sent_at = datetime.now(timezone.utc)
        # Millisecond timestamp + sender, plus a sequence number for same-ms sends
        message_id = f"{int(sent_at.timestamp() * 1000)}-{connection_id}-{next(self._sequence)}"
        return Message(
            id=message_id,
            room_code=code,
            sender_connection_id=connection_id,
            sender_display_name=sender_name,
            text=text,
            sent_at=sent_at,
        )
