"""Cooperative cancellation for long page scans."""

from __future__ import annotations

import threading
import time

from chapterkit.core.errors import StageCancelledError


class CancellationToken:
    """Cancellation flag with an optional deadline.

    Stages poll `check()` between pages. A child token created with
    `child()` is cancelled when its parent is, and may add its own deadline.
    """

    def __init__(self, timeout: float | None = None, parent: CancellationToken | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.cancelled

    def check(self, stage: str = "") -> None:
        """Raise StageCancelledError if cancelled or past the deadline."""
        if self.cancelled:
            raise StageCancelledError(f"Etapa cancelada: {stage}" if stage else "Etapa cancelada")

    def child(self, timeout: float | None = None) -> CancellationToken:
        return CancellationToken(timeout=timeout, parent=self)


def check(token: CancellationToken | None, stage: str = "") -> None:
    """Poll a token that may be absent."""
    if token is not None:
        token.check(stage)
