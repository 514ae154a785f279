"""Realtime location sharing over WebSockets."""

import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open sockets and which user each one announced itself as."""

    def __init__(self) -> None:
        self.connections: set[WebSocket] = set()
        self.users: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.add(websocket)
        logger.info("New socket connection (%d open)", len(self.connections))

    def disconnect(self, websocket: WebSocket) -> None:
        self.connections.discard(websocket)
        for user_id, socket in list(self.users.items()):
            if socket is websocket:
                del self.users[user_id]
                logger.info("User %s disconnected", user_id)

    async def authenticate(self, websocket: WebSocket, user_id: Any) -> None:
        """Register the socket for a user id and confirm it to the client."""
        if not isinstance(user_id, str) or not user_id:
            return
        self.users[user_id] = websocket
        logger.info("User %s authenticated on socket", user_id)
        await websocket.send_json({"event": "authenticated", "data": {"success": True, "user_id": user_id}})

    async def broadcast(self, event: str, data: Any) -> None:
        """Send an event to every connected client, dropping dead sockets."""
        message = {"event": event, "data": data}
        for socket in list(self.connections):
            try:
                await socket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.warning("Dropping socket after failed send: %s", exc)
                self.disconnect(socket)

    async def handle_message(self, websocket: WebSocket, message: Any) -> None:
        """Dispatch one client frame; malformed frames are ignored."""
        if not isinstance(message, dict):
            return
        event = message.get("event")
        data = message.get("data")

        if event == "authenticate":
            await self.authenticate(websocket, data)
        elif event == "location_update":
            if isinstance(data, dict) and data.get("user_id") and isinstance(data.get("location"), dict):
                await self.broadcast("user_location_update", data)
        else:
            logger.debug("Ignoring unknown socket event %r", event)
