"""
File mutation observers.

The engine tells an optional observer about every committed write,
remove and move so that a search indexer (or a cache, or an audit log)
can follow along. Notifications are strictly best-effort: they fire
after the Redis transaction has committed and an observer failure never
fails or rolls back the filesystem operation.

``BackgroundObserver`` wraps a slow observer (one that generates
embeddings, say) and moves each notification onto a worker thread with
its own deadline, so the caller returns as soon as Redis has committed.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from .context import OperationContext

logger = logging.getLogger("redisfs.observer")


class FileObserver(ABC):
    """Receives post-commit notifications of file mutations."""

    @abstractmethod
    def on_write(
        self, path: str, content: bytes, ctx: Optional[OperationContext] = None
    ) -> None:
        """A file was created or its content replaced/extended.

        Args:
            path: Absolute path of the file.
            content: The file's full content after the write.
            ctx: Cancellation scope for any work the observer does.
        """

    @abstractmethod
    def on_remove(self, path: str, ctx: Optional[OperationContext] = None) -> None:
        """A file or symlink was removed."""

    @abstractmethod
    def on_move(
        self, old_path: str, new_path: str, ctx: Optional[OperationContext] = None
    ) -> None:
        """A file or symlink was renamed in one transaction."""


class BackgroundObserver(FileObserver):
    """Fire-and-forget dispatcher in front of another observer.

    Each notification is submitted to a thread pool and handed a fresh
    ``OperationContext`` whose deadline is ``timeout`` seconds away. The
    wrapped observer is expected to honour it. Failures are logged and
    dropped.

    Args:
        inner: The observer doing the real work.
        timeout: Per-notification deadline in seconds.
        max_workers: Size of the worker pool.
    """

    def __init__(self, inner: FileObserver, timeout: float = 30.0, max_workers: int = 2):
        self.inner = inner
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="redisfs-observer"
        )
        self._lock = threading.RLock()
        self._pending: dict[Future, OperationContext] = {}
        self._closed = False

    def on_write(self, path, content, ctx=None):
        self._submit("write", path, lambda c: self.inner.on_write(path, content, c))

    def on_remove(self, path, ctx=None):
        self._submit("remove", path, lambda c: self.inner.on_remove(path, c))

    def on_move(self, old_path, new_path, ctx=None):
        self._submit("move", old_path, lambda c: self.inner.on_move(old_path, new_path, c))

    def _submit(self, kind: str, path: str, call: Callable[[OperationContext], None]) -> None:
        with self._lock:
            if self._closed:
                logger.debug("Observer closed, dropping %s notification for %s", kind, path)
                return
            task_ctx = OperationContext(timeout=self.timeout)
            future = self._executor.submit(self._run, kind, path, call, task_ctx)
            self._pending[future] = task_ctx
        future.add_done_callback(self._forget)

    @staticmethod
    def _run(kind: str, path: str, call: Callable[[OperationContext], None], ctx: OperationContext) -> None:
        try:
            ctx.check(f"observer.{kind}", path)
            call(ctx)
        except Exception as exc:
            logger.warning("Background %s notification for %s failed: %s", kind, path, exc)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.pop(future, None)

    @property
    def pending(self) -> int:
        """Notifications submitted but not yet finished."""
        with self._lock:
            return len(self._pending)

    def close(self, wait: bool = True) -> None:
        """Cancel outstanding work and shut the pool down.

        Queued notifications are dropped; running ones see their context
        cancelled.

        Args:
            wait: Block until running notifications return.
        """
        with self._lock:
            self._closed = True
            for future, task_ctx in list(self._pending.items()):
                task_ctx.cancel()
                future.cancel()
        self._executor.shutdown(wait=wait)
