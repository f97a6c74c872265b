"""Invocation-scoped cancellation."""

from __future__ import annotations

import threading

from mechain_cmd.errors import OperationCancelledError


class CancellationToken:
    """Cooperative cancellation flag passed to every call that may block."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        return self._event.wait(max(0.0, seconds))

    def raise_if_cancelled(self, message: str = "operation cancelled") -> None:
        if self._event.is_set():
            raise OperationCancelledError(message)
