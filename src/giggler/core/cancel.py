"""Caller-supplied cancellation signal for blocking pipeline operations."""

import threading

from giggler.core.errors import InstallCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag.

    Backed by threading.Event so extraction running in a worker thread
    observes cancellation raised from the event loop or another thread.
    A token created with a parent is also cancelled when the parent is.
    """

    def __init__(self, parent: "CancellationToken | None" = None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancelled:
            raise InstallCancelledError(f"{operation} cancelled")
