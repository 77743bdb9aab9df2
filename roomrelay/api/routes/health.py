# roomrelay/api/routes/health.py

from fastapi import APIRouter

from roomrelay.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns:
        dict: Status, open connection count, active room count
    """
    return {
        "status": "healthy",
        "connections": len(state.connection_manager),
        "rooms": len(state.room_store),
    }
