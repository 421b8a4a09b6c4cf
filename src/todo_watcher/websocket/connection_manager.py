"""WebSocket client registry for live task list pushes."""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected viewers and fans task list updates out to them."""

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []

    @property
    def client_count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a viewer.

        Args:
            websocket: Incoming WebSocket connection
        """
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"[ConnectionManager] Viewer connected (total: {self.client_count})")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"[ConnectionManager] Viewer disconnected (total: {self.client_count})")

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send message to every viewer concurrently.

        Viewers whose send fails are dropped from the registry.

        Args:
            message: JSON-serializable payload
        """
        targets = list(self.active_connections)
        if not targets:
            return

        payload = json.dumps(message)
        logger.debug(f"[ConnectionManager] Pushing {message.get('type')} to {len(targets)} viewers")
        results = await asyncio.gather(
            *(connection.send_text(payload) for connection in targets),
            return_exceptions=True,
        )
        for connection, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(f"[ConnectionManager] Dropping viewer after failed send: {result}")
                self.disconnect(connection)

    async def send_personal(self, message: dict[str, Any], websocket: WebSocket) -> None:
        """Send message to a single viewer, e.g. the snapshot on connect."""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.warning(f"[ConnectionManager] Failed to send snapshot: {e}")
            self.disconnect(websocket)
