"""Run-scoped cooperative cancellation."""

from __future__ import annotations

import threading
from collections.abc import Callable


class CancellationError(Exception):
    """Raised when the run was aborted by the caller."""


class CancellationToken:
    """Single-fire cancellation signal shared by every stage of one run."""

    def __init__(self) -> None:
        self._event = threading.Event()
        # Re-entrant because cancel() may run from a signal handler on the main thread.
        self._lock = threading.RLock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run `callback` on cancellation (immediately if already cancelled).

        Returns a function that removes the subscription.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._unsubscribe(callback)
        callback()
        return lambda: None

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError("Run was cancelled.")

    def _unsubscribe(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
