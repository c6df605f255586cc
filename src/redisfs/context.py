"""Cancellation and deadline scope for filesystem operations."""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import Cancelled


class OperationContext:
    """A cancellation flag plus an optional deadline.

    The engine calls ``check()`` before every backend round trip and
    between nodes of every tree walk, so a cancelled or expired context
    stops work at the next boundary instead of hanging.

    Args:
        timeout: Seconds from now until the deadline. ``None`` means no
            deadline.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self.deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or ``None`` without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, op: str, path: str) -> None:
        """Raise ``Cancelled`` if the context is no longer live."""
        if self._event.is_set():
            raise Cancelled(op, path)
        if self.expired:
            raise Cancelled(op, path, "Deadline exceeded")
