# roomrelay/api/routes/root.py

from fastapi import APIRouter

from roomrelay import __version__

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Room Relay - real-time chat rooms",
        "version": __version__,
        "features": ["room_codes", "presence", "bounded_history"],
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
