"""
Notification Service - live fan-out of new alerts over WebSockets.

Best-effort and at most once: nothing is persisted or replayed, and a
client that fails or is too slow is dropped.
"""

import asyncio
from typing import Any, Dict, List, Optional, Set
import logging

from fastapi import Request, WebSocket

from gasy_hub.core.settings import settings

logger = logging.getLogger(__name__)

NEW_ALERT_EVENT = "NEW_ALERT"


class ConnectionManager:
    """Registry of connected WebSocket clients."""

    def __init__(self, send_timeout: Optional[float] = None):
        self.send_timeout = settings.WS_SEND_TIMEOUT_SECONDS if send_timeout is None else send_timeout
        self._clients: Set[Any] = set()

    @property
    def active_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.add(websocket)
        logger.info(f"WebSocket client connected ({self.active_count} active)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.discard(websocket)
            logger.info(f"WebSocket client disconnected ({self.active_count} active)")

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("WebSocket send timed out, dropping client")
        except Exception as e:
            logger.warning(f"WebSocket send failed, dropping client: {e}")
        return False

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """
        Send a message to every registered client concurrently.

        Returns:
            Number of clients the message reached
        """
        clients: List[Any] = list(self._clients)
        if not clients:
            return 0

        results = await asyncio.gather(*(self._send(client, message) for client in clients))
        for client, delivered in zip(clients, results):
            if not delivered:
                self.disconnect(client)

        reached = sum(1 for delivered in results if delivered)
        logger.debug(f"Broadcast {message.get('type')} reached {reached}/{len(clients)} clients")
        return reached

    async def broadcast_new_alert(self, alert_payload: Dict[str, Any]) -> int:
        return await self.broadcast({"type": NEW_ALERT_EVENT, "alert": alert_payload})


def get_connection_manager(request: Request) -> ConnectionManager:
    """FastAPI dependency returning the application's connection manager."""
    return request.app.state.connection_manager
