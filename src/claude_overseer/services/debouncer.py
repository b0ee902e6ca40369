"""Per-key debouncing on top of single-shot QTimers."""

import logging
import threading
from typing import Callable

from PySide6.QtCore import QObject, QTimer, Signal, Slot

logger = logging.getLogger(__name__)


class Debouncer(QObject):
    """Collapses bursts of triggers per key into one callback after a quiet window.

    At most one timer is pending per key. trigger() on a pending key restarts
    its timer and replaces the callback. Triggers from other threads are
    queued onto the thread this object lives in, where all timers run.
    """

    _trigger_requested = Signal(str, object)

    def __init__(self, interval_ms: int = 100, parent=None):
        super().__init__(parent)
        self._interval_ms = interval_ms
        self._timers: dict[str, QTimer] = {}
        self._callbacks: dict[str, Callable[[], None]] = {}
        self._lock = threading.Lock()
        self._trigger_requested.connect(self._schedule)

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def set_interval(self, interval_ms: int):
        self._interval_ms = interval_ms

    def trigger(self, key: str, callback: Callable[[], None]):
        """Schedule callback for key, cancelling any pending one for the same key."""
        # Direct call on the owner thread, queued from any other thread
        self._trigger_requested.emit(key, callback)

    @Slot(str, object)
    def _schedule(self, key: str, callback):
        with self._lock:
            timer = self._timers.get(key)
            if timer is None:
                timer = QTimer(self)
                timer.setSingleShot(True)
                timer.timeout.connect(lambda k=key: self._fire(k))
                self._timers[key] = timer
            self._callbacks[key] = callback
            timer.start(self._interval_ms)

    def _fire(self, key: str):
        with self._lock:
            callback = self._callbacks.pop(key, None)
            timer = self._timers.pop(key, None)
        if timer is not None:
            timer.deleteLater()
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("Debounced callback for %r failed", key)

    def cancel(self, key: str):
        with self._lock:
            timer = self._timers.pop(key, None)
            self._callbacks.pop(key, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    def cancel_all(self):
        """Stop every pending timer without firing it."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            self._callbacks.clear()
        for timer in timers:
            timer.stop()
            timer.deleteLater()

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._timers

    def pending_keys(self) -> list[str]:
        with self._lock:
            return list(self._timers)
