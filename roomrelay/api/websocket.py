# roomrelay/api/websocket.py

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from roomrelay.core import state
from roomrelay.services.session_handler import CONNECTED, ERROR

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for the chat-room protocol.

    Every frame in either direction is {"event": "...", "data": {...}}.

    Client -> Server Events:
    ------------------------
    Join Room:
        {"event": "join-room", "data": {"roomCode": "abcd1234", "displayName": "alice"}}
        To you:    previous-messages [Message, ...]
                   room-joined {"roomCode": "ABCD1234", "members": [...]}
        To others: user-joined {"displayName": "alice", "members": [...]}

    Send Message:
        {"event": "send-message", "data": {"roomCode": "ABCD1234", "text": "hi"}}
        To everyone in the room (you included): new-message Message

    Leave Room:
        {"event": "leave-room", "data": {"roomCode": "ABCD1234"}}
        To others: user-left {"displayName": "alice", "members": [...]}

    Server -> Client Only:
    ----------------------
    On accept:
        {"event": "connected", "data": {"connectionId": "..."}}
    Binary frame, bad JSON or unknown event:
        {"event": "error", "data": {"message": "..."}}

    Message:
        {"id", "roomCode", "senderConnectionId", "senderDisplayName", "text", "sentAt"}

    Lifecycle:
    ==========
    1. Connection accepted and given a connection id
    2. Client sends join-room, then send-message / leave-room as it likes
    3. Blank or missing fields are dropped silently
    4. When the socket closes for any reason, the disconnect transition
       runs exactly once and the client leaves whatever room it was in
    """
    connection_id = await state.connection_manager.connect(websocket)
    state.connection_manager.send_to_connection(
        connection_id, CONNECTED, {"connectionId": connection_id}
    )

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            data = message.get("text")
            if data is None:
                # Binary frames are not part of the protocol
                state.connection_manager.send_to_connection(
                    connection_id, ERROR, {"message": "Invalid frame"}
                )
                continue

            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                state.connection_manager.send_to_connection(
                    connection_id, ERROR, {"message": "Invalid JSON"}
                )
                continue

            event = frame.get("event") if isinstance(frame, dict) else None
            logger.debug("Websocket input from %s: event=%s", connection_id, event)

            if not isinstance(event, str) or not state.session_handler.handles(event):
                state.connection_manager.send_to_connection(
                    connection_id, ERROR, {"message": f"Unknown event: {event}"}
                )
                continue

            await state.session_handler.dispatch(connection_id, event, frame.get("data"))

    except WebSocketDisconnect:
        logger.debug("Connection %s disconnected", connection_id)
    except Exception as e:
        logger.error("WebSocket error on %s: %s", connection_id, e)
    finally:
        state.connection_manager.disconnect(connection_id)
        await state.session_handler.disconnect(connection_id)
