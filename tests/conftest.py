"""Test fixtures for TodoWatcher."""

import os
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from todo_watcher.preferences import PreferencesStore
from todo_watcher.service import TodoService

SAMPLE_TODO = """# Sprint

Some notes that are not tasks.

- [ ] Write release notes
- [x] Fix login bug [HIGH]
- [~] Refactor parser
* [ ] Update docs [low]
1. Book meeting room
"""


class FakeObserver:
    """In-memory stand-in for a watchdog Observer.

    Records scheduled handlers by path so tests can dispatch events to them.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, FileSystemEventHandler] = {}
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def schedule(self, handler: FileSystemEventHandler, path: str, recursive: bool = False) -> str:
        if not os.path.exists(path):
            raise FileNotFoundError(path)
        self.handlers[path] = handler
        return path

    def unschedule(self, watch: Any) -> None:
        del self.handlers[watch]

    def unschedule_all(self) -> None:
        self.handlers.clear()

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        pass

    def dispatch(self, path: Path, event: FileSystemEvent) -> None:
        """Deliver event to the handler watching path, if any."""
        handler = self.handlers.get(str(path))
        if handler is not None:
            handler.dispatch(event)


class ObserverRecorder:
    """Observer factory that keeps every observer it creates."""

    def __init__(self) -> None:
        self.created: list[FakeObserver] = []

    def __call__(self) -> FakeObserver:
        observer = FakeObserver()
        self.created.append(observer)
        return observer

    @property
    def last(self) -> FakeObserver:
        return self.created[-1]


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll predicate until it is true or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def observers() -> ObserverRecorder:
    return ObserverRecorder()


@pytest.fixture
def todo_file(tmp_path: Path) -> Path:
    """Create a sample todo file in its own directory."""
    notes = tmp_path / "notes"
    notes.mkdir()
    path = notes / "todo.md"
    path.write_text(SAMPLE_TODO, encoding="utf-8")
    return path


@pytest.fixture
def preferences(tmp_path: Path) -> PreferencesStore:
    return PreferencesStore(tmp_path / "config" / "preferences.yaml")


@pytest.fixture
def make_service(
    observers: ObserverRecorder, preferences: PreferencesStore
) -> Iterator[Callable[..., TodoService]]:
    """Factory for services with fake observers and short delays."""
    services: list[TodoService] = []

    def factory(**kwargs: Any) -> TodoService:
        options: dict[str, Any] = {
            "preferences": preferences,
            "observer_factory": observers,
            "debounce_seconds": 0.05,
            "poll_interval": 0.05,
            "grace_period": 0.2,
            "recreate_delay": 0.01,
        }
        options.update(kwargs)
        service = TodoService(**options)
        services.append(service)
        return service

    yield factory

    for service in services:
        service.shutdown()


@pytest.fixture
def service(make_service: Callable[..., TodoService]) -> TodoService:
    return make_service()
