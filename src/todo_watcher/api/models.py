"""API models for TodoWatcher."""

from datetime import datetime

from pydantic import BaseModel

from todo_watcher.task_store import StoreSnapshot
from todo_watcher.todo.models import Priority, TaskRecord, TaskStatus, count_by_status


class TaskResponse(BaseModel):
    """API response model for a single task."""

    id: str
    content: str
    status: TaskStatus
    priority: Priority
    original_line: str

    @classmethod
    def from_record(cls, task: TaskRecord) -> "TaskResponse":
        return cls(
            id=task.id,
            content=task.content,
            status=task.status,
            priority=task.priority,
            original_line=task.original_line,
        )


class WatchStatusResponse(BaseModel):
    """Liveness and metadata of the watched file."""

    watched_path: str
    is_watching: bool
    last_updated: datetime | None
    last_error: str | None
    auto_detect: bool

    @classmethod
    def from_snapshot(cls, snapshot: StoreSnapshot, auto_detect: bool) -> "WatchStatusResponse":
        return cls(
            watched_path=snapshot.watched_path,
            is_watching=snapshot.is_watching,
            last_updated=snapshot.last_updated,
            last_error=snapshot.last_error,
            auto_detect=auto_detect,
        )


class TodoListResponse(BaseModel):
    """Tasks plus watch status and per-status counts."""

    tasks: list[TaskResponse]
    status: WatchStatusResponse
    counts: dict[str, int]

    @classmethod
    def from_snapshot(cls, snapshot: StoreSnapshot, auto_detect: bool) -> "TodoListResponse":
        return cls(
            tasks=[TaskResponse.from_record(task) for task in snapshot.tasks],
            status=WatchStatusResponse.from_snapshot(snapshot, auto_detect),
            counts=count_by_status(snapshot.tasks),
        )


class WatchRequest(BaseModel):
    """Request model for watching a file."""

    path: str


class AutoDetectRequest(BaseModel):
    """Request model for toggling auto-detection."""

    enabled: bool
