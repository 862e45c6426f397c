"""Test configuration and fixtures."""
import asyncio
import json

import pytest
from fastapi.websockets import WebSocketState

from backend import Connection, RoomRegistry
from sessions import SessionManager
from signaling import MessageRouter


class FakeWebSocket:
    """Stands in for a starlette WebSocket: records every frame sent to it."""

    def __init__(self, on_send=None):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.on_send = on_send

    async def send_text(self, data: str):
        message = json.loads(data)
        if self.on_send is not None:
            self.on_send(message)
        self.sent.append(message)

    def close(self):
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def types(self):
        return [message["type"] for message in self.sent]


class YieldingWebSocket(FakeWebSocket):
    """Gives up the event loop on every send, like a real socket write, so other handlers interleave."""

    async def send_text(self, data: str):
        await asyncio.sleep(0)
        await super().send_text(data)


@pytest.fixture
def room_registry():
    return RoomRegistry()


@pytest.fixture
def sessions(room_registry):
    return SessionManager(room_registry)


@pytest.fixture
def router(sessions, room_registry):
    return MessageRouter(sessions, room_registry)


@pytest.fixture
def make_connection():
    def _make(yielding=False, **kwargs):
        websocket_class = YieldingWebSocket if yielding else FakeWebSocket
        return Connection(websocket_class(**kwargs))
    return _make


@pytest.fixture
def client(monkeypatch):
    """TestClient against the real app, with a fresh process-wide registry for each test."""
    from fastapi.testclient import TestClient

    from app import app
    from backend import registry

    monkeypatch.setattr(registry, "_rooms", {})
    with TestClient(app) as test_client:
        yield test_client
