# roomrelay/models/models.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def normalize_room_code(value: Optional[str]) -> str:
    """Trim and upper-case a room code. Returns "" for missing input."""
    if value is None:
        return ""
    return str(value).strip().upper()


# ============================================================================
# OUTBOUND (server -> client)
# ============================================================================

class WireModel(BaseModel):
    """Base for everything sent to clients: camelCase on the wire, immutable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Message(WireModel):
    id: str
    room_code: str
    sender_connection_id: str
    sender_display_name: str
    text: str
    sent_at: datetime


class Member(WireModel):
    connection_id: str
    display_name: str


class RoomSummary(WireModel):
    code: str
    member_count: int
    message_count: int
    created_at: datetime


class RoomDetail(RoomSummary):
    members: List[Member]
    history: List[Message]


# ============================================================================
# INBOUND (client -> server)
# ============================================================================
# Payload keys accept both the canonical names and the ones sent by the
# original Next.js client (roomId / username).

class InboundPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class JoinRoomPayload(InboundPayload):
    room_code: str = Field(validation_alias=AliasChoices("roomCode", "roomId", "room_code"))
    display_name: str = Field(validation_alias=AliasChoices("displayName", "username", "display_name"))

    @field_validator("room_code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        code = normalize_room_code(v)
        if not code:
            raise ValueError("room code must not be blank")
        return code

    @field_validator("display_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("display name must not be blank")
        return name


class SendMessagePayload(InboundPayload):
    room_code: str = Field(validation_alias=AliasChoices("roomCode", "roomId", "room_code"))
    text: str
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("displayName", "username", "display_name")
    )

    @field_validator("room_code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        code = normalize_room_code(v)
        if not code:
            raise ValueError("room code must not be blank")
        return code

    @field_validator("text")
    @classmethod
    def _non_blank_text(cls, v: str) -> str:
        # Text is kept as typed, only the emptiness check trims.
        if not v.strip():
            raise ValueError("message text must not be blank")
        return v


class LeaveRoomPayload(InboundPayload):
    room_code: str = Field(validation_alias=AliasChoices("roomCode", "roomId", "room_code"))

    @field_validator("room_code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        code = normalize_room_code(v)
        if not code:
            raise ValueError("room code must not be blank")
        return code
