"""WebSocket endpoint for live location sharing."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.realtime import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Clients announce themselves with ``authenticate`` and share ``location_update`` events."""
    manager: ConnectionManager = websocket.app.state.realtime
    await manager.connect(websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                logger.debug("Ignoring non-JSON socket frame")
                continue
            await manager.handle_message(websocket, message)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
