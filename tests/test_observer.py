"""Tests for the background observer dispatcher."""

from __future__ import annotations

import threading
import time

import pytest

from redisfs.context import OperationContext
from redisfs.engine import FilesystemEngine
from redisfs.observer import BackgroundObserver, FileObserver


class RecordingObserver(FileObserver):
    """Collects notifications and the contexts they arrived with."""

    def __init__(self):
        self.events = []
        self.contexts = []
        self.done = threading.Event()

    def on_write(self, path, content, ctx=None):
        self._record(("write", path, content), ctx)

    def on_remove(self, path, ctx=None):
        self._record(("remove", path), ctx)

    def on_move(self, old_path, new_path, ctx=None):
        self._record(("move", old_path, new_path), ctx)

    def _record(self, event, ctx):
        self.events.append(event)
        self.contexts.append(ctx)
        self.done.set()


class BlockingObserver(RecordingObserver):
    """Blocks in on_write until released, honouring cancellation."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()
        self.saw_cancel = False

    def on_write(self, path, content, ctx=None):
        self.started.set()
        give_up = time.monotonic() + 5
        while not (self.release.is_set() or ctx.cancelled) and time.monotonic() < give_up:
            time.sleep(0.01)
        self.saw_cancel = ctx.cancelled
        super().on_write(path, content, ctx)


def drain(bg: BackgroundObserver, timeout: float = 5.0) -> None:
    give_up = time.monotonic() + timeout
    while bg.pending and time.monotonic() < give_up:
        time.sleep(0.01)


class TestBackgroundObserver:
    """Tests for BackgroundObserver."""

    def test_dispatches_with_own_context(self):
        """Each notification runs with a fresh deadline-bearing context."""
        inner = RecordingObserver()
        bg = BackgroundObserver(inner, timeout=10)
        caller_ctx = OperationContext()
        bg.on_write("/f", b"data", ctx=caller_ctx)
        assert inner.done.wait(timeout=5)
        bg.close()

        assert inner.events == [("write", "/f", b"data")]
        task_ctx = inner.contexts[0]
        assert task_ctx is not caller_ctx
        assert task_ctx.deadline is not None

    def test_returns_before_work_finishes(self):
        """The caller is not blocked by a slow observer."""
        inner = BlockingObserver()
        bg = BackgroundObserver(inner, timeout=10)
        bg.on_write("/f", b"x")
        assert inner.started.wait(timeout=5)
        assert bg.pending == 1
        inner.release.set()
        bg.close()
        assert bg.pending == 0

    def test_close_cancels_running_contexts(self):
        """close() cancels the context of in-flight notifications."""
        inner = BlockingObserver()
        bg = BackgroundObserver(inner, timeout=10)
        bg.on_write("/f", b"x")
        assert inner.started.wait(timeout=5)

        bg.close()
        assert inner.saw_cancel is True

    def test_drops_after_close(self):
        """Notifications after close() are dropped silently."""
        inner = RecordingObserver()
        bg = BackgroundObserver(inner)
        bg.close()
        bg.on_remove("/f")
        assert inner.events == []

    def test_inner_failure_is_logged(self, caplog):
        """A failing observer never raises into the caller."""

        class Broken(RecordingObserver):
            def on_move(self, old_path, new_path, ctx=None):
                raise RuntimeError("boom")

        bg = BackgroundObserver(Broken())
        bg.on_move("/a", "/b")
        drain(bg)
        bg.close()
        assert "boom" in caplog.text

    def test_expired_deadline_skips_work(self):
        """A notification whose deadline already passed is not run."""
        inner = RecordingObserver()
        bg = BackgroundObserver(inner, timeout=0)
        bg.on_remove("/f")
        bg.close()
        assert inner.events == []


class TestEngineIntegration:
    """The engine drives a background observer end to end."""

    @pytest.fixture
    def wired(self, fake_redis):
        inner = RecordingObserver()
        bg = BackgroundObserver(inner, timeout=10)
        engine = FilesystemEngine(fake_redis, observer=bg)
        engine.init()
        yield engine, inner, bg
        bg.close()

    def test_write_then_move_then_remove(self, wired):
        """All three notification kinds arrive."""
        engine, inner, bg = wired
        engine.write_file("/f", "v1")
        engine.move("/f", "/g")
        engine.remove("/g")
        drain(bg)
        assert sorted(e[0] for e in inner.events) == ["move", "remove", "write"]
        assert ("write", "/f", b"v1") in inner.events
