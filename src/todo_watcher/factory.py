"""Dependency injection factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from todo_watcher.config import Config
from todo_watcher.preferences import PreferencesStore
from todo_watcher.service import TodoService
from todo_watcher.task_store import StoreSnapshot, TaskStore
from todo_watcher.todo.discovery import TodoFileFinder
from todo_watcher.websocket.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Global config instance for dependency injection
_config: Config | None = None

# Global service and connection manager
_todo_service: TodoService | None = None
_connection_manager: ConnectionManager | None = None
_unsubscribe: Callable[[], None] | None = None


def get_config() -> Config:
    """Get or create Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def create_todo_service(config: Config) -> TodoService:
    """Build a TodoService and its collaborators from config."""
    preferences = PreferencesStore(Path(config.preferences_file).expanduser())
    discovery = TodoFileFinder(max_depth=config.discovery_max_depth)
    return TodoService(
        store=TaskStore(),
        preferences=preferences,
        discovery=discovery,
        debounce_seconds=config.debounce_seconds,
        poll_interval=config.poll_interval,
        grace_period=config.grace_period,
        recreate_delay=config.recreate_delay,
    )


def get_todo_service() -> TodoService:
    """Get or create TodoService singleton."""
    global _todo_service
    if _todo_service is None:
        _todo_service = create_todo_service(get_config())
    return _todo_service


def get_connection_manager() -> ConnectionManager:
    """Get or create ConnectionManager singleton."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def start_broadcasting() -> None:
    """Forward store changes to WebSocket clients."""
    global _unsubscribe
    from todo_watcher.api.websocket import todos_message

    service = get_todo_service()
    connection_manager = get_connection_manager()

    # Get the running event loop to schedule coroutines from watcher threads
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.error("[Factory] No running event loop found")
        return

    def on_change(snapshot: StoreSnapshot) -> None:
        message = todos_message(snapshot, service.auto_detect)
        asyncio.run_coroutine_threadsafe(connection_manager.broadcast(message), loop)

    _unsubscribe = service.store.subscribe(on_change)


def stop_broadcasting() -> None:
    global _unsubscribe
    if _unsubscribe is not None:
        _unsubscribe()
        _unsubscribe = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    config = get_config()
    service = get_todo_service()

    start_broadcasting()
    logger.info("[Lifespan] Starting todo service...")
    # Blocking: discovery may walk the home tree
    await run_in_threadpool(service.start, initial_path=config.todo_file)
    try:
        yield
    finally:
        logger.info("[Lifespan] Stopping todo service...")
        await run_in_threadpool(service.shutdown)
        stop_broadcasting()


def create_app() -> FastAPI:
    """Create FastAPI application (composition root)."""
    from todo_watcher.api.todos import router as todos_router
    from todo_watcher.api.websocket import router as ws_router

    app = FastAPI(
        title="TodoWatcher",
        description="Live task list from a watched todo.md file",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(todos_router, prefix="/api")
    app.include_router(ws_router)  # WebSocket at /ws

    return app
