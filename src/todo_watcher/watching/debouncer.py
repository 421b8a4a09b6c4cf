"""Trailing-edge debouncer for file change signals."""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesces bursts of triggers into one delayed callback.

    Each trigger restarts the quiescence window. When the window elapses the
    callback runs once with the generation passed to the last trigger.
    """

    def __init__(self, delay: float, callback: Callable[[int], None]) -> None:
        """Initialize debouncer.

        Args:
            delay: Quiescence window in seconds
            callback: Function(generation) called after a burst settles
        """
        self.delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._sequence = 0
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self, generation: int) -> None:
        """Record a change signal and restart the window."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._sequence += 1
            self._generation = generation
            self._timer = threading.Timer(self.delay, self._fire, args=(self._sequence,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Drop any pending emission."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            # Invalidates timers that already woke up but have not taken the lock
            self._sequence += 1

    def _fire(self, sequence: int) -> None:
        with self._lock:
            if sequence != self._sequence:
                return
            self._timer = None
            generation = self._generation

        try:
            self._callback(generation)
        except Exception as e:
            logger.error(f"[Debouncer] Callback error: {e}", exc_info=True)
