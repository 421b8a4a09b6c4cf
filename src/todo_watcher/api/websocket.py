"""WebSocket endpoint pushing task list updates."""

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from todo_watcher.api.models import TodoListResponse
from todo_watcher.factory import get_connection_manager, get_todo_service
from todo_watcher.task_store import StoreSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()


def todos_message(snapshot: StoreSnapshot, auto_detect: bool) -> dict[str, Any]:
    """Build the JSON message sent to clients for a store snapshot."""
    payload = TodoListResponse.from_snapshot(snapshot, auto_detect).model_dump(mode="json")
    return {"type": "todos", **payload}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Send the current task list on connect, then every change.

    Args:
        websocket: WebSocket connection
    """
    manager = get_connection_manager()
    service = get_todo_service()

    await manager.connect(websocket)
    await manager.send_personal(todos_message(service.snapshot(), service.auto_detect), websocket)
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug(f"[WebSocket] Received from client: {data}")
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info("[WebSocket] Client disconnected normally")
        manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"[WebSocket] Error: {e}", exc_info=True)
        manager.disconnect(websocket)
