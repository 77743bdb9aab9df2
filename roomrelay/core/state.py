# roomrelay/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from roomrelay.core.config import settings
from roomrelay.services.connection_manager import ConnectionManager
from roomrelay.services.connection_registry import ConnectionRegistry
from roomrelay.services.presence import PresenceTracker
from roomrelay.services.room_store import RoomStore
from roomrelay.services.session_handler import SessionHandler

# Process-wide app state, wired once and injected into the session handler
room_store = RoomStore(history_limit=settings.HISTORY_LIMIT)
connection_registry = ConnectionRegistry()
presence = PresenceTracker(room_store, connection_registry)
connection_manager = ConnectionManager(
    room_store,
    send_timeout=settings.SEND_TIMEOUT_SECONDS,
    outbox_size=settings.OUTBOX_SIZE,
)
session_handler = SessionHandler(
    room_store,
    connection_registry,
    presence,
    connection_manager,
    leave_previous_on_join=settings.LEAVE_PREVIOUS_ROOM_ON_JOIN,
)

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)
