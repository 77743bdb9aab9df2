# roomrelay/services/connection_manager.py

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from fastapi import WebSocket
import logging

from roomrelay.services.room_store import RoomStore

logger = logging.getLogger(__name__)

DEFAULT_OUTBOX_SIZE = 256


@dataclass
class _Outbox:
    websocket: WebSocket
    queue: asyncio.Queue
    writer: asyncio.Task


# ============================================================================
# WEBSOCKET CONNECTION MANAGER / BROADCAST ENGINE
# ============================================================================

class ConnectionManager:
    """
    Owns the live WebSocket transports and fans events out to them.

    Every accepted socket gets a connection_id (uuid hex) that identifies it
    for the rest of its life, plus an outbox: a bounded queue drained by its
    own writer task. Sending an event only enqueues a frame, so the send
    methods never wait on the network and frames reach each connection in
    the order they were queued.

    Room membership is not stored here: the target set of a room broadcast
    is read from the RoomStore at the moment the broadcast starts, so a
    connection that joins mid-broadcast does not get that event.

    Frame format:
        {"event": "<event-name>", "data": <payload>}

    Error Handling:
        Delivery is fire-and-forget. Each write is bounded by send_timeout;
        a failed or hung write is logged and the writer moves on to the next
        frame. A slow socket only delays its own outbox, and once that outbox
        is full further frames for it are dropped. Cleaning up a dead socket
        is left to the websocket endpoint, which owns the disconnect
        transition.
    """

    def __init__(
        self,
        room_store: RoomStore,
        send_timeout: float = 5.0,
        outbox_size: int = DEFAULT_OUTBOX_SIZE,
    ) -> None:
        # Map: connection_id -> socket + outbox
        self.connections: Dict[str, _Outbox] = {}
        self.room_store = room_store
        self.send_timeout = send_timeout
        self.outbox_size = outbox_size

    async def connect(self, websocket: WebSocket, connection_id: Optional[str] = None) -> str:
        """
        Accept a new WebSocket connection and start its writer.

        Returns:
            The connection_id assigned to this socket.
        """
        await websocket.accept()
        connection_id = connection_id or uuid.uuid4().hex
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.outbox_size)
        writer = asyncio.create_task(self._write_loop(connection_id, websocket, queue))
        self.connections[connection_id] = _Outbox(websocket, queue, writer)
        logger.info("✓ Connection %s opened. Total: %d", connection_id, len(self.connections))
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """Forget a connection and stop its writer. Safe to call more than once."""
        outbox = self.connections.pop(connection_id, None)
        if outbox is not None:
            outbox.writer.cancel()
            logger.info("✗ Connection %s closed. Total: %d", connection_id, len(self.connections))

    def send_to_connection(self, connection_id: str, event: str, payload: Any) -> bool:
        """
        Queue one event for one connection.

        Returns:
            True if the frame was queued, False if the connection is unknown
            or its outbox is full.
        """
        outbox = self.connections.get(connection_id)
        if outbox is None:
            logger.debug("Skipped %s: connection %s is gone", event, connection_id)
            return False

        try:
            outbox.queue.put_nowait({"event": event, "data": payload})
            return True
        except asyncio.QueueFull:
            logger.warning("Outbox full: dropped %s for %s", event, connection_id)
            return False

    def send_to_room(self, room_code: str, event: str, payload: Any) -> int:
        """
        Broadcast an event to every connection currently in a room.

        Returns:
            Number of connections the event was queued for.
        """
        return self._fan_out(self.room_store.snapshot_members(room_code), room_code, event, payload)

    def send_to_room_except(
        self, room_code: str, exclude_connection_id: str, event: str, payload: Any
    ) -> int:
        """Broadcast to everyone in the room except one connection (usually the actor)."""
        targets = [
            cid for cid in self.room_store.snapshot_members(room_code)
            if cid != exclude_connection_id
        ]
        return self._fan_out(targets, room_code, event, payload)

    async def drain(self) -> None:
        """Wait until every frame queued so far has been written or given up on."""
        await asyncio.gather(*(o.queue.join() for o in list(self.connections.values())))

    async def close(self) -> None:
        """Stop every writer. Used on shutdown."""
        for connection_id in list(self.connections):
            self.disconnect(connection_id)

    def _fan_out(self, targets: Iterable[str], room_code: str, event: str, payload: Any) -> int:
        targets = list(targets)
        if not targets:
            logger.debug("[routing] Skipped %s: room=%s has 0 recipients", event, room_code)
            return 0

        logger.info("📨 Broadcasting %s to room %s: %d clients", event, room_code, len(targets))
        return sum(1 for cid in targets if self.send_to_connection(cid, event, payload))

    async def _write_loop(self, connection_id: str, websocket: WebSocket, queue: asyncio.Queue) -> None:
        while True:
            frame = await queue.get()
            try:
                await asyncio.wait_for(websocket.send_json(frame), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Send timeout: %s to %s after %.1fs", frame["event"], connection_id, self.send_timeout
                )
            except Exception as e:
                logger.warning("Send error: %s to %s: %s", frame["event"], connection_id, e)
            finally:
                queue.task_done()

    def __len__(self) -> int:
        return len(self.connections)
