"""Todo API endpoints."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from todo_watcher.api.models import (
    AutoDetectRequest,
    TodoListResponse,
    WatchRequest,
    WatchStatusResponse,
)
from todo_watcher.factory import get_todo_service
from todo_watcher.service import TodoService

logger = logging.getLogger(__name__)

router = APIRouter()


def _status(service: TodoService) -> WatchStatusResponse:
    return WatchStatusResponse.from_snapshot(service.snapshot(), service.auto_detect)


def build_todo_list(service: TodoService) -> TodoListResponse:
    """Build the full list response from one store snapshot."""
    return TodoListResponse.from_snapshot(service.snapshot(), service.auto_detect)


@router.get("/todos", response_model=TodoListResponse)
async def list_todos() -> TodoListResponse:
    """List tasks of the watched file.

    Returns:
        Sorted tasks, watch status and per-status counts
    """
    return build_todo_list(get_todo_service())


@router.get("/status", response_model=WatchStatusResponse)
async def get_status() -> WatchStatusResponse:
    """Get watch status without the task list."""
    return _status(get_todo_service())


@router.post("/watch", response_model=WatchStatusResponse)
async def start_watching(request: WatchRequest) -> WatchStatusResponse:
    """Watch a new file, replacing the current session.

    Args:
        request: Path of the file to watch

    Returns:
        Watch status after the switch

    Raises:
        HTTPException: If the path is blank
    """
    path = request.path.strip()
    if not path:
        raise HTTPException(status_code=400, detail="Path must not be empty")

    service = get_todo_service()
    # Initial read and observer start are blocking
    await run_in_threadpool(service.start_watching, path)
    logger.info(f"[API] Watching {path}")
    return _status(service)


@router.delete("/watch", response_model=WatchStatusResponse)
async def stop_watching() -> WatchStatusResponse:
    """Stop watching the current file."""
    service = get_todo_service()
    await run_in_threadpool(service.stop_watching)
    return _status(service)


@router.post("/refresh", response_model=TodoListResponse)
async def refresh() -> TodoListResponse:
    """Re-parse the watched file now (or run discovery if none is set)."""
    service = get_todo_service()
    await run_in_threadpool(service.refresh)
    return build_todo_list(service)


@router.post("/detect", response_model=WatchStatusResponse)
async def detect() -> WatchStatusResponse:
    """Search for a todo file and watch it.

    Raises:
        HTTPException: If no todo file was found
    """
    service = get_todo_service()
    found = await run_in_threadpool(service.detect)
    if found is None:
        raise HTTPException(status_code=404, detail="No todo file found")
    return _status(service)


@router.put("/settings/auto-detect", response_model=WatchStatusResponse)
async def set_auto_detect(request: AutoDetectRequest) -> WatchStatusResponse:
    """Enable or disable auto-detection of the todo file."""
    service = get_todo_service()
    await run_in_threadpool(service.set_auto_detect, request.enabled)
    return _status(service)
