"""Shared fixtures: fresh relay components wired around fake websockets."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List

import pytest

from roomrelay.services.connection_manager import ConnectionManager
from roomrelay.services.connection_registry import ConnectionRegistry
from roomrelay.services.presence import PresenceTracker
from roomrelay.services.room_store import RoomStore
from roomrelay.services.session_handler import SessionHandler


class FakeWebSocket:
    """Records frames sent to it. Can be told to fail or hang on send."""

    def __init__(self, fail: bool = False, hang: bool = False) -> None:
        self.fail = fail
        self.hang = hang
        self.accepted = False
        self.sent: List[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        if self.hang:
            await asyncio.sleep(3600)
        self.sent.append(data)

    def events(self) -> List[str]:
        return [frame["event"] for frame in self.sent]

    def data_for(self, event: str) -> List[Any]:
        return [frame["data"] for frame in self.sent if frame["event"] == event]

    def clear(self) -> None:
        self.sent.clear()


@dataclass
class Relay:
    store: RoomStore
    registry: ConnectionRegistry
    presence: PresenceTracker
    connections: ConnectionManager
    session: SessionHandler

    async def connect(self, connection_id: str, **kwargs: Any) -> FakeWebSocket:
        ws = FakeWebSocket(**kwargs)
        await self.connections.connect(ws, connection_id)
        return ws

    async def settle(self) -> None:
        """Wait until every queued frame has reached its socket."""
        await self.connections.drain()


def build_relay(
    history_limit: int = 100,
    send_timeout: float = 1.0,
    outbox_size: int = 256,
    leave_previous_on_join: bool = True,
) -> Relay:
    store = RoomStore(history_limit=history_limit)
    registry = ConnectionRegistry()
    presence = PresenceTracker(store, registry)
    connections = ConnectionManager(store, send_timeout=send_timeout, outbox_size=outbox_size)
    session = SessionHandler(
        store, registry, presence, connections, leave_previous_on_join=leave_previous_on_join
    )
    return Relay(store, registry, presence, connections, session)


@pytest.fixture()
def relay() -> Relay:
    return build_relay()


def names(members: List[dict]) -> List[str]:
    return [m["displayName"] for m in members]
