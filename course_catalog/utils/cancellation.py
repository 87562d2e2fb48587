"""
Cancellation tokens for work tied to a session.
A token is minted for every published identity and cancelled when that
identity is superseded, so late gateway responses can be dropped.
"""
import threading
from typing import Callable, List

from course_catalog.errors import OperationCancelled


class CancellationToken:
    """One-shot cancellation flag shared between a session and its in-flight work."""

    def __init__(self, label: str = ''):
        self.label = label
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Run callback on cancellation, immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(f"Operation cancelled for session {self.label or 'unknown'}")

    def __repr__(self):
        state = 'cancelled' if self.is_cancelled else 'active'
        return f"<CancellationToken {self.label!r} {state}>"
