"""
Cross-Thread Dispatcher for Murmur

Lets audio and application threads push overlay updates without touching
overlay state. Producers enqueue tasks on a thread-safe FIFO and emit a
queued Qt signal; the UI thread drains the FIFO and applies each task.

Ordering:
    Tasks posted from one thread are applied in the order they were posted.
    Tasks from different threads are applied in enqueue order, which is
    otherwise unspecified between them.
"""

from dataclasses import dataclass
from typing import Any, Callable
from PySide6.QtCore import QObject, Qt, Signal
import logging
import queue
import threading

from murmur.core.state_machine import OverlayState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Task:
    """One posted update. The payload belongs to the task until applied."""
    kind: str
    payload: Any


class CrossThreadDispatcher(QObject):
    """
    Fire-and-forget bridge from producer threads into the UI thread.

    The dispatcher must be created on the UI thread. Handlers run there,
    one task at a time, in FIFO order.

    Args:
        apply_state: Called on the UI thread with each posted OverlayState
        apply_level: Called on the UI thread with each posted level sample

    Example:
        >>> dispatcher = CrossThreadDispatcher(machine.set_state, overlay.push_level)
        >>> # From the audio thread
        >>> dispatcher.post_level(0.03)
    """

    _wake = Signal()

    STATE = "state"
    LEVEL = "level"

    def __init__(
        self,
        apply_state: Callable[[OverlayState], Any],
        apply_level: Callable[[float], Any]
    ):
        super().__init__()

        self._handlers = {
            self.STATE: apply_state,
            self.LEVEL: apply_level,
        }
        self._queue: "queue.SimpleQueue[_Task]" = queue.SimpleQueue()
        self._closed = False
        self._lock = threading.Lock()

        # Queued even when emitted from the UI thread, so UI-originated
        # posts also run after everything already enqueued.
        self._wake.connect(self.drain, Qt.QueuedConnection)

    def post_state(self, state: OverlayState) -> None:
        """
        Enqueue a state change. Safe to call from any thread.

        Raises:
            TypeError: If state is not an OverlayState (raised here, on the
                posting thread, rather than later on the UI thread)
        """
        if not isinstance(state, OverlayState):
            raise TypeError(f"Expected OverlayState, got {type(state).__name__}")
        self._post(_Task(self.STATE, state))

    def post_level(self, sample: float) -> None:
        """Enqueue a level sample. Safe to call from any thread."""
        self._post(_Task(self.LEVEL, float(sample)))

    def _post(self, task: _Task) -> None:
        # Check and put under the lock so nothing lands after close() drained
        with self._lock:
            if self._closed:
                return
            self._queue.put(task)
        self._wake.emit()

    def drain(self) -> int:
        """
        Apply every queued task on the calling (UI) thread.

        Returns:
            Number of tasks applied
        """
        applied = 0
        while not self._closed:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                break
            self._handlers[task.kind](task.payload)
            applied += 1
        return applied

    def close(self) -> None:
        """
        Stop accepting and applying tasks.

        Pending tasks are discarded; later posts are dropped silently.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            dropped += 1

        logger.debug(f"Dispatcher closed, dropped {dropped} pending task(s)")

    def pending(self) -> int:
        """Approximate number of tasks waiting to be applied."""
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed
