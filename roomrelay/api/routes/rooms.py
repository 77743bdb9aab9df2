# roomrelay/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, HTTPException

from roomrelay.core import state
from roomrelay.models.models import RoomDetail, RoomSummary, normalize_room_code
from roomrelay.services.room_store import Room

router = APIRouter()

# ============================================================================
# ROOM INSPECTION ENDPOINTS
# ============================================================================
# Read-only: rooms only come into existence through join-room on the websocket.

def _summary(room: Room) -> RoomSummary:
    return RoomSummary(
        code=room.code,
        member_count=len(room.members),
        message_count=len(room.history),
        created_at=room.created_at,
    )


@router.get("/rooms", response_model=List[RoomSummary], response_model_by_alias=True)
async def list_rooms():
    """
    List all rooms that currently have members.

    Returns:
        List[RoomSummary]: code, member count, archived message count
    """
    return [_summary(room) for room in state.room_store.list_rooms()]


@router.get("/rooms/{room_code}", response_model=RoomDetail, response_model_by_alias=True)
async def get_room(room_code: str):
    """
    Get one room with its presence list and history.

    Args:
        room_code: Room code, case-insensitive

    Raises:
        HTTPException: 404 if no room with that code is active
    """
    code = normalize_room_code(room_code)
    room = state.room_store.get(code)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetail(
        code=room.code,
        member_count=len(room.members),
        message_count=len(room.history),
        created_at=room.created_at,
        members=state.presence.members_of(code),
        history=state.room_store.snapshot_history(code),
    )
