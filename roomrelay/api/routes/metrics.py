# roomrelay/api/routes/metrics.py
from datetime import datetime, timezone

from fastapi import APIRouter

from roomrelay.core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Usage metrics since process start.

    Example Response:
        {
            "total_messages": 1200,
            "uptime_hours": 3.5,
            "messages_per_second": 0.1,
            "concurrent_connections": 12,
            "joined_connections": 10,
            "active_rooms": 4,
            "archived_messages": 230
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    total = state.session_handler.messages_sent

    messages_per_second = total / uptime_seconds if uptime_seconds > 0 else 0

    return {
        "total_messages": total,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "concurrent_connections": len(state.connection_manager),
        "joined_connections": len(state.connection_registry),
        "active_rooms": len(state.room_store),
        "archived_messages": sum(len(r.history) for r in state.room_store.list_rooms()),
        "history_limit": state.room_store.history_limit,
    }
