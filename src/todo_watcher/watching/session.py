"""File system watch session for a single todo file."""

import logging
import os
import threading
from collections.abc import Callable
from contextlib import suppress
from pathlib import Path
from typing import Any, Protocol

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)


class WatchSetupError(RuntimeError):
    """Raised when an OS-level watch cannot be opened."""


class SessionOwner(Protocol):
    """Callbacks a watch session uses to reach the service that owns it."""

    def is_current(self, generation: int) -> bool:
        """Whether the given session generation is still the active one."""
        ...

    def schedule_reparse(self, generation: int) -> None:
        """Request a debounced re-parse."""
        ...

    def reparse(self, generation: int) -> None:
        """Re-parse immediately."""
        ...

    def clear_tasks(self, generation: int) -> None:
        """Drop the current task list."""
        ...


class WatchSession:
    """Watches one file and its parent directory.

    The file watch catches in-place writes. The directory watch catches the
    file being deleted, renamed away, or replaced by an atomic save, and is
    used to re-arm the file watch when the file comes back.
    """

    def __init__(
        self,
        path: Path,
        generation: int,
        owner: SessionOwner,
        observer_factory: Callable[[], BaseObserver] = Observer,
        grace_period: float = 0.5,
        recreate_delay: float = 0.1,
    ):
        """Initialize session.

        Args:
            path: Absolute path of the file to watch
            generation: Session generation token from the owner
            owner: Receiver of re-parse/clear requests
            observer_factory: Creates the watchdog observer
            grace_period: Delay before probing for the file after delete/rename
            recreate_delay: Delay before re-arming after a directory event
        """
        self.path = path
        self.generation = generation
        self.grace_period = grace_period
        self.recreate_delay = recreate_delay
        self._owner = owner
        self._observer_factory = observer_factory

        # Guards observer and watch handles; never taken on the observer thread
        self._lock = threading.RLock()
        self._observer: BaseObserver | None = None
        self._file_watch: Any = None
        self._dir_watch: Any = None
        self._file_inode: int | None = None

        self._timer_lock = threading.Lock()
        self._timers: set[threading.Timer] = set()
        self._loss_pending = False
        self._closed = False

    @property
    def file_armed(self) -> bool:
        return self._file_watch is not None

    @property
    def directory_armed(self) -> bool:
        return self._dir_watch is not None

    @property
    def is_armed(self) -> bool:
        return self.file_armed or self.directory_armed

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> bool:
        """Start the observer and arm the file and directory watches.

        Returns:
            True if at least one watch is armed

        Raises:
            WatchSetupError: If the observer itself cannot be started
        """
        observer = self._observer_factory()
        try:
            observer.start()
        except OSError as e:
            raise WatchSetupError(f"Cannot start file observer: {e}") from e

        with self._lock:
            self._observer = observer
            if self.path.exists():
                self._arm_file()
            self._arm_directory()

        logger.info(
            f"[WatchSession] Watching {self.path} "
            f"(file: {self.file_armed}, directory: {self.directory_armed}, gen {self.generation})"
        )
        return self.is_armed

    def close(self) -> None:
        """Cancel deferred callbacks and release all watch handles. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            observer = self._observer
            self._observer = None
            self._file_watch = None
            self._dir_watch = None

        with self._timer_lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()

        if observer is not None:
            observer.unschedule_all()
            observer.stop()
            if observer is not threading.current_thread():
                observer.join(timeout=2)
        logger.info(f"[WatchSession] Stopped watching {self.path} (gen {self.generation})")

    def _active(self) -> bool:
        return not self._closed and self._owner.is_current(self.generation)

    def _schedule(self, handler: FileSystemEventHandler, path: Path) -> Any:
        """Schedule a non-recursive watch. Caller holds self._lock."""
        if self._observer is None:
            raise WatchSetupError("Observer not running")
        try:
            return self._observer.schedule(handler, str(path), recursive=False)
        except OSError as e:
            raise WatchSetupError(f"Cannot watch {path}: {e}") from e

    def _arm_file(self) -> bool:
        """(Re)arm the file watch, replacing any previous one."""
        with self._lock:
            if self._closed:
                return False
            self._disarm_file()
            try:
                self._file_watch = self._schedule(_FileEventHandler(self), self.path)
                self._file_inode = self.path.stat().st_ino
            except (WatchSetupError, OSError) as e:
                logger.warning(f"[WatchSession] File watch not armed: {e}")
                self._disarm_file()
                return False
            logger.debug(f"[WatchSession] File watch armed for {self.path}")
            return True

    def _disarm_file(self) -> None:
        with self._lock:
            watch, self._file_watch = self._file_watch, None
            self._file_inode = None
            if watch is not None and self._observer is not None:
                # Emitter may already be gone after the file was deleted
                with suppress(KeyError):
                    self._observer.unschedule(watch)

    def _ensure_file_watch(self) -> None:
        """Arm the file watch if it is missing or points at a replaced file."""
        try:
            inode = self.path.stat().st_ino
        except OSError:
            return
        with self._lock:
            if self._file_watch is not None and self._file_inode == inode:
                return
        self._arm_file()

    def _arm_directory(self) -> bool:
        with self._lock:
            if self._closed:
                return False
            directory = self.path.parent
            try:
                self._dir_watch = self._schedule(
                    _DirectoryEventHandler(self, self.path.name), directory
                )
            except WatchSetupError as e:
                logger.warning(f"[WatchSession] Directory watch not armed: {e}")
                return False
            return True

    def _defer(self, delay: float, action: Callable[[], None]) -> None:
        """Run action after delay on a timer thread, unless the session goes stale."""

        def run() -> None:
            with self._timer_lock:
                self._timers.discard(timer)
            if not self._active():
                logger.debug(f"[WatchSession] Dropping stale callback (gen {self.generation})")
                return
            try:
                action()
            except Exception as e:
                logger.error(f"[WatchSession] Deferred callback error: {e}", exc_info=True)

        timer = threading.Timer(delay, run)
        timer.daemon = True
        with self._timer_lock:
            if self._closed:
                return
            self._timers.add(timer)
        timer.start()

    def _on_file_changed(self) -> None:
        if self._active():
            self._owner.schedule_reparse(self.generation)

    def _on_file_lost(self) -> None:
        if not self._active():
            return
        logger.info(
            f"[WatchSession] {self.path.name} deleted or moved, "
            f"probing again in {self.grace_period}s"
        )
        self._owner.clear_tasks(self.generation)
        self._defer(0, self._disarm_file)
        if not self._loss_pending:
            self._loss_pending = True
            self._defer(self.grace_period, self._probe_after_loss)

    def _probe_after_loss(self) -> None:
        self._loss_pending = False
        self._disarm_file()
        if not self.path.exists():
            logger.info(f"[WatchSession] {self.path.name} still missing, watching directory only")
            # Drop anything a re-parse in flight committed after the loss
            self._owner.clear_tasks(self.generation)
            return
        self._arm_file()
        self._owner.reparse(self.generation)

    def _on_directory_changed(self) -> None:
        if not self._active():
            return
        if self.path.exists():
            self._defer(self.recreate_delay, self._resync_after_directory_change)
        elif self.file_armed:
            # Rename or delete seen only by the directory watch
            self._on_file_lost()

    def _resync_after_directory_change(self) -> None:
        if not self.path.exists():
            return
        self._ensure_file_watch()
        self._owner.schedule_reparse(self.generation)


def _event_path(value: str | bytes) -> str:
    # Convert bytes to str if needed
    return os.fsdecode(value)


class _SessionEventHandler(FileSystemEventHandler):
    """Base handler that shields watchdog's dispatch thread from session errors."""

    def __init__(self, session: WatchSession):
        self.session = session

    def _handle_event(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"[WatchSession] Event handler error: {e}", exc_info=True)


class _FileEventHandler(_SessionEventHandler):
    """Handler for events on the watched file itself."""

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_event(self.session._on_file_changed)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_event(self.session._on_file_changed)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle_event(self.session._on_file_lost)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Moving onto the path counts as a write, moving away as a loss."""
        if Path(_event_path(event.dest_path)) == self.session.path:
            self._handle_event(self.session._on_file_changed)
        else:
            self._handle_event(self.session._on_file_lost)


class _DirectoryEventHandler(_SessionEventHandler):
    """Handler for events in the parent directory, filtered to one file name."""

    # Open/close events are excluded: reading the file would retrigger a read
    RELEVANT_EVENTS = frozenset(
        {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
    )

    def __init__(self, session: WatchSession, filename: str):
        super().__init__(session)
        self.filename = filename

    def _names_target(self, event: FileSystemEvent) -> bool:
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and os.path.basename(_event_path(p)) == self.filename for p in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in self.RELEVANT_EVENTS:
            return
        if not self._names_target(event):
            return
        logger.debug(f"[WatchSession] Directory {event.event_type}: {self.filename}")
        self._handle_event(self.session._on_directory_changed)
