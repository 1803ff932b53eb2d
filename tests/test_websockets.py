"""Tests for the notification websocket channel."""

import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from api import app
from api.websockets import ConnectionManager, handle_sale_change, manager, push_notifications

class FakeSocket:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

class FakeNotifier:
    def __init__(self):
        self.requested = []

    async def get_notifications(self, user_id):
        self.requested.append(user_id)
        return [{"type": "pending", "sale_id": uuid.UUID(int=1)}]

@pytest.mark.asyncio
async def test_send_to_user_drops_dead_sockets():
    connections = ConnectionManager()
    alive, dead = FakeSocket(), FakeSocket(fail=True)
    await connections.connect(alive, "u1")
    await connections.connect(dead, "u1")

    await connections.send_to_user("u1", {"type": "notifications", "data": []})

    assert alive.sent == [{"type": "notifications", "data": []}]
    assert connections.connection_count() == 1

@pytest.mark.asyncio
async def test_push_only_to_connected_users():
    """Test that only connected users get a fresh, JSON-ready list."""
    socket = FakeSocket()
    await manager.connect(socket, "seller")
    notifier = FakeNotifier()
    try:
        await push_notifications(["seller", "offline-buyer"], notifier)
    finally:
        manager.disconnect(socket, "seller")

    assert notifier.requested == ["seller"]
    assert socket.sent[0]["type"] == "notifications"
    assert socket.sent[0]["data"] == [{"type": "pending", "sale_id": str(uuid.UUID(int=1))}]

@pytest.mark.asyncio
async def test_sale_change_without_connections():
    await handle_sale_change({"buyer_id": "nobody", "seller_id": "nobody-else"})

def test_socket_rejects_invalid_token(jwt_settings):
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/notifications?token=invalid") as websocket:
            websocket.receive_json()
