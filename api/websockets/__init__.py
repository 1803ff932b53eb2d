"""WebSocket endpoints for real-time notification updates."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query, status
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict, Iterable, Set
from datetime import datetime, timezone
import logging

from auth import manager as auth_manager, AuthError
from notifications import NotificationManager
from notifications.realtime import affected_users

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/ws",
    tags=["WebSocket"]
)

class ConnectionManager:
    """Tracks the open sockets of every signed-in user."""

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        """Accept connection and add to active connections."""
        await websocket.accept()
        self.active_connections.setdefault(user_id, set()).add(websocket)
        logger.info(f"New notification connection for user {user_id}")

    def disconnect(self, websocket: WebSocket, user_id: str):
        """Remove connection from active connections."""
        connections = self.active_connections.get(user_id)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            del self.active_connections[user_id]
        logger.info(f"Connection closed for user {user_id}")

    def is_connected(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    def connection_count(self) -> int:
        return sum(len(connections) for connections in self.active_connections.values())

    async def send_to_user(self, user_id: str, message: Dict[str, Any]):
        """Send a message to every socket of a user."""
        dead_connections = set()
        payload = jsonable_encoder(message)

        for connection in list(self.active_connections.get(user_id, ())):
            try:
                await connection.send_json(payload)
            except Exception as e:
                logger.error(f"Failed to send to connection of {user_id}: {e}")
                dead_connections.add(connection)

        # Clean up dead connections
        for dead in dead_connections:
            self.disconnect(dead, user_id)

# Create connection manager instance
manager = ConnectionManager()

def notification_message(notifications) -> Dict[str, Any]:
    return {
        "type": "notifications",
        "data": notifications,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

async def push_notifications(user_ids: Iterable[str], notifier: NotificationManager = None):
    """Send a fresh notification list to the connected users among user_ids."""
    notifier = notifier or NotificationManager()
    for user_id in user_ids:
        if not manager.is_connected(user_id):
            continue
        notifications = await notifier.get_notifications(user_id)
        await manager.send_to_user(user_id, notification_message(notifications))

async def handle_sale_change(change: Dict[str, Any]):
    """Realtime handler: refresh buyer and seller of a changed sale."""
    await push_notifications(affected_users(change))

@router.websocket("/notifications")
async def notifications_endpoint(websocket: WebSocket, token: str = Query(...)):
    """WebSocket endpoint pushing the notification list of the signed-in user."""
    try:
        user = auth_manager.verify_session(token)
    except AuthError as e:
        logger.warning(f"Rejected notification socket: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, user.id)
    try:
        notifications = await NotificationManager().get_notifications(user.id)
        await websocket.send_json(jsonable_encoder(notification_message(notifications)))

        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({
                    "type": "pong",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                })
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for user {user.id}: {e}")
    finally:
        manager.disconnect(websocket, user.id)

# Export the router and realtime handler
__all__ = ['router', 'manager', 'ConnectionManager', 'push_notifications', 'handle_sale_change']
