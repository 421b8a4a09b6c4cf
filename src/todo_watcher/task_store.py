"""In-memory store for the reconciled task list and watch state."""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from todo_watcher.todo.models import TaskRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of the store at one point in time."""

    tasks: tuple[TaskRecord, ...] = ()
    last_updated: datetime | None = None  # Last actual content change
    is_watching: bool = False  # A file or directory watch is armed
    watched_path: str = ""  # Empty when no file has been selected
    last_error: str | None = None


Listener = Callable[[StoreSnapshot], None]


class TaskStore:
    """Holds the current task list and notifies subscribers on change.

    Writes are serialized by one lock. A commit whose list is value-equal to
    the current one does not bump last_updated or notify anyone.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        """Initialize empty store.

        Args:
            clock: Source of timestamps for last_updated
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._state = StoreSnapshot()
        self._listeners: list[Listener] = []

    def snapshot(self) -> StoreSnapshot:
        """Return the current state."""
        return self._state

    @property
    def tasks(self) -> tuple[TaskRecord, ...]:
        return self._state.tasks

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Listeners run on the writing thread while the store lock is held, so
        they see updates in order. They must return quickly.

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def commit(self, tasks: Sequence[TaskRecord]) -> bool:
        """Replace the task list if it differs by value and clear last_error.

        Args:
            tasks: Newly parsed tasks

        Returns:
            True if the task list changed
        """
        new_tasks = tuple(tasks)
        with self._lock:
            state = self._state
            changed = new_tasks != state.tasks
            if not changed and state.last_error is None:
                return False

            if changed:
                state = replace(state, tasks=new_tasks, last_updated=self._clock())
                logger.debug(f"[TaskStore] Committed {len(new_tasks)} tasks")
            self._update(replace(state, last_error=None))
            return changed

    def clear(self) -> bool:
        """Drop all tasks."""
        return self.commit(())

    def record_error(self, message: str) -> None:
        with self._lock:
            if self._state.last_error != message:
                self._update(replace(self._state, last_error=message))

    def clear_error(self) -> None:
        with self._lock:
            if self._state.last_error is not None:
                self._update(replace(self._state, last_error=None))

    def set_watching(self, is_watching: bool) -> None:
        with self._lock:
            if self._state.is_watching != is_watching:
                self._update(replace(self._state, is_watching=is_watching))

    def set_watched_path(self, path: str) -> None:
        with self._lock:
            if self._state.watched_path != path:
                self._update(replace(self._state, watched_path=path))

    def _update(self, state: StoreSnapshot) -> None:
        """Publish a new state. Caller holds self._lock."""
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"[TaskStore] Listener error: {e}", exc_info=True)
