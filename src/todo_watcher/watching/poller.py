"""Fixed-interval poll fallback."""

import logging
from collections.abc import Callable
from threading import Event, Thread, current_thread

logger = logging.getLogger(__name__)


class PollFallback:
    """Calls a function on a fixed interval from a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        """Initialize poller.

        Args:
            interval: Seconds between ticks
            callback: Function called on every tick
        """
        self.interval = interval
        self._callback = callback
        self._stop_event = Event()
        self._thread: Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking. Calling start on a running poller is a no-op."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._run_loop, name="todo-poll", daemon=True)
        self._thread.start()
        logger.info(f"[PollFallback] Polling every {self.interval}s")

    def _run_loop(self) -> None:
        """Tick until stopped."""
        while not self._stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"[PollFallback] Poll error: {e}", exc_info=True)

    def stop(self) -> None:
        """Stop ticking and wait for the thread to exit."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not current_thread():
            self._thread.join(timeout=2)
        self._thread = None
