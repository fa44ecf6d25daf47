"""
WebSocket endpoint - live NEW_ALERT feed.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live"])


@router.websocket("/ws")
async def alerts_feed(websocket: WebSocket):
    """
    Push {"type": "NEW_ALERT", "alert": {...}} for every new alert.
    Client frames are ignored except "ping", answered with PONG.
    """
    manager = websocket.app.state.connection_manager
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"type": "PONG"})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
