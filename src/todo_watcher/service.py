"""Todo watching service.

Ties the watch session, debouncer, poll fallback and task store together.
Every session gets a generation number; deferred callbacks carry the
generation they were created for and are dropped once a newer session (or a
stop) has bumped it.
"""

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from todo_watcher.preferences import Preferences, PreferencesStore
from todo_watcher.task_store import StoreSnapshot, TaskStore
from todo_watcher.todo.discovery import PathDiscovery
from todo_watcher.todo.models import TaskRecord, count_by_status
from todo_watcher.todo.reader import ReadError, read_todo_file
from todo_watcher.watching.debouncer import Debouncer
from todo_watcher.watching.poller import PollFallback
from todo_watcher.watching.session import WatchSession, WatchSetupError

logger = logging.getLogger(__name__)


def canonical_path(path: str) -> Path:
    """Expand ~, make absolute, and rebuild as parent / name."""
    expanded = Path(os.path.abspath(os.path.expanduser(path)))
    return expanded.parent / expanded.name


class TodoService:
    """Keeps a TaskStore in sync with one watched todo file."""

    def __init__(
        self,
        store: TaskStore | None = None,
        preferences: PreferencesStore | None = None,
        discovery: PathDiscovery | None = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
        debounce_seconds: float = 0.25,
        poll_interval: float = 2.0,
        grace_period: float = 0.5,
        recreate_delay: float = 0.1,
    ) -> None:
        """Initialize service.

        Args:
            store: Task store to publish into (a new one if None)
            preferences: Persisted preferences (nothing is persisted if None)
            discovery: Path discovery strategy used when auto-detect is on
            observer_factory: Creates watchdog observers for watch sessions
            debounce_seconds: Quiescence window for change events
            poll_interval: Seconds between poll fallback re-parses
            grace_period: Delay before probing for a deleted/renamed file
            recreate_delay: Delay before re-arming after a directory event
        """
        self.store = store or TaskStore()
        self._preferences = preferences
        self._discovery = discovery
        self._observer_factory = observer_factory
        self._grace_period = grace_period
        self._recreate_delay = recreate_delay

        # Serializes start/stop; never taken by watch or timer callbacks
        self._lifecycle_lock = threading.RLock()
        # Guards generation, path and session; held for generation-checked commits
        self._state_lock = threading.RLock()
        self._generation = 0
        self._path: Path | None = None
        self._session: WatchSession | None = None
        self._auto_detect = True

        self._debouncer = Debouncer(debounce_seconds, self.reparse)
        self._poller = PollFallback(poll_interval, self.poll)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def auto_detect(self) -> bool:
        return self._auto_detect

    @property
    def session(self) -> WatchSession | None:
        return self._session

    def snapshot(self) -> StoreSnapshot:
        return self.store.snapshot()

    def counts(self) -> dict[str, int]:
        """Number of tasks per status."""
        return count_by_status(self.store.tasks)

    # Lifecycle

    def start(self, initial_path: str = "") -> None:
        """Open the initial session from preferences and start polling.

        Args:
            initial_path: Path that takes precedence over saved preferences
        """
        preferences = self._preferences.load() if self._preferences else Preferences()
        self._auto_detect = preferences.auto_detect

        if initial_path:
            self.start_watching(initial_path, remember=False)
        elif self._auto_detect:
            self.detect()
        elif preferences.saved_path:
            self.start_watching(preferences.saved_path, remember=False)

        self._poller.start()

    def shutdown(self) -> None:
        """Stop polling and tear down the watch session."""
        self._poller.stop()
        self.stop_watching()
        logger.info("[TodoService] Shut down")

    def start_watching(self, path: str, remember: bool = True) -> bool:
        """Replace the current session with one watching path.

        Args:
            path: File to watch (~ is expanded)
            remember: Persist path as the user's saved file

        Returns:
            True if a file or directory watch is armed
        """
        target = canonical_path(path)
        with self._lifecycle_lock:
            previous = self._retire_session()
            if previous:
                previous.close()

            with self._state_lock:
                self._generation += 1
                generation = self._generation
                self._path = target
                session = WatchSession(
                    target,
                    generation,
                    self,
                    observer_factory=self._observer_factory,
                    grace_period=self._grace_period,
                    recreate_delay=self._recreate_delay,
                )
                self._session = session

            self.store.set_watched_path(str(target))
            self.store.clear_error()

            try:
                armed = session.start()
            except WatchSetupError as e:
                logger.warning(f"[TodoService] {e}; relying on polling for {target}")
                session.close()
                armed = False

            if target.exists():
                self._load(target, generation, replace_on_error=True)
            else:
                logger.info(f"[TodoService] {target} does not exist yet, waiting for it")
                self._commit(generation, [])

            self.store.set_watching(armed)

        if remember and armed and self._preferences:
            self._preferences.save_path(str(target))
        return armed

    def stop_watching(self) -> None:
        """Cancel both watches. Safe to call when nothing is being watched."""
        with self._lifecycle_lock:
            session = self._retire_session()
            if session:
                session.close()
            self.store.set_watching(False)

    def _retire_session(self) -> WatchSession | None:
        """Invalidate pending callbacks and detach the current session."""
        with self._state_lock:
            self._generation += 1
            self._debouncer.cancel()
            session, self._session = self._session, None
            return session

    def refresh(self) -> None:
        """Re-parse the watched file now, or run discovery if none is set."""
        with self._state_lock:
            path, generation = self._path, self._generation
        if path is not None:
            self._load(path, generation)
        elif self._auto_detect:
            self.detect()

    def detect(self) -> Path | None:
        """Run path discovery and watch the result, if any."""
        if self._discovery is None:
            return None
        found = self._discovery.discover()
        if found is not None:
            self.start_watching(str(found), remember=False)
        return found

    def set_auto_detect(self, enabled: bool) -> None:
        """Persist the auto-detect flag; enabling it runs discovery."""
        self._auto_detect = enabled
        if self._preferences:
            self._preferences.save_auto_detect(enabled)
        if enabled:
            self.detect()

    def poll(self) -> None:
        """Poll fallback tick: re-parse the watched path, if any."""
        with self._state_lock:
            path, generation = self._path, self._generation
        if path is not None:
            self._load(path, generation)

    # Session callbacks

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def schedule_reparse(self, generation: int) -> None:
        if self.is_current(generation):
            self._debouncer.trigger(generation)

    def reparse(self, generation: int) -> None:
        with self._state_lock:
            if not self.is_current(generation) or self._path is None:
                return
            path = self._path
        self._load(path, generation)

    def clear_tasks(self, generation: int) -> None:
        self._commit(generation, [])

    # Internals

    def _load(self, path: Path, generation: int, replace_on_error: bool = False) -> None:
        """Read and parse path, then commit if the generation is still current."""
        if not path.exists():
            logger.debug(f"[TodoService] Skipping re-parse, {path} is missing")
            return

        try:
            tasks = read_todo_file(path)
        except ReadError as e:
            logger.warning(f"[TodoService] Failed to read {path}: {e}")
            with self._state_lock:
                if not self.is_current(generation):
                    return
                if replace_on_error:
                    self.store.clear()
                self.store.record_error(f"Failed to read: {e}")
            return

        if self._commit(generation, tasks, source=path):
            logger.info(f"[TodoService] {len(tasks)} tasks loaded from {path.name}")

    def _commit(self, generation: int, tasks: list[TaskRecord], source: Path | None = None) -> bool:
        with self._state_lock:
            if not self.is_current(generation):
                logger.debug(f"[TodoService] Dropping stale update (gen {generation})")
                return False
            if source is not None and not source.exists():
                logger.debug(f"[TodoService] Dropping update, {source} vanished during read")
                return False
            return self.store.commit(tasks)
