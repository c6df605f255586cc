"""Shared test fixtures for redisfs.

``FakeRedis`` is an in-memory stand-in for ``redis.Redis`` created with
``decode_responses=False``: keys and values come back as bytes. It covers
exactly the commands the engine issues, including WATCH/MULTI/EXEC
pipelines (a watched key that changes before EXEC raises ``WatchError``).
"""

from __future__ import annotations

import fnmatch
from typing import Callable, Optional

import pytest
from redis.exceptions import ResponseError, WatchError

from redisfs.engine import FilesystemEngine


def _b(value) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return str(value).encode("utf-8")


class FakePipeline:
    """Buffered command queue with optional WATCH semantics."""

    def __init__(self, redis: FakeRedis, transaction: bool = True):
        self._redis = redis
        self.transaction = transaction
        self._queue: list[tuple[str, tuple, dict]] = []
        self._watched: dict[bytes, int] = {}
        self._immediate = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.reset()

    def watch(self, *keys):
        self._immediate = True
        for key in keys:
            self._watched[_b(key)] = self._redis.version(key)

    def unwatch(self):
        self._watched = {}

    def multi(self):
        self._immediate = False

    def reset(self):
        self._queue = []
        self._watched = {}
        self._immediate = False

    def execute(self):
        if self._redis.before_execute is not None:
            hook, self._redis.before_execute = self._redis.before_execute, None
            hook()
        for key, version in self._watched.items():
            if self._redis.version(key) != version:
                self.reset()
                raise WatchError("Watched variable changed.")
        self._redis.executed.append([name for name, _, _ in self._queue])
        results = [getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in self._queue]
        self.reset()
        return results

    def __getattr__(self, name):
        if name not in FakeRedis.COMMANDS:
            raise AttributeError(name)
        method = getattr(self._redis, name)

        def call(*args, **kwargs):
            if self._immediate:
                return method(*args, **kwargs)
            self._queue.append((name, args, kwargs))
            return self

        return call


class FakeRedis:
    """In-memory Redis double holding strings, hashes and sets."""

    COMMANDS = {
        "hgetall", "hget", "hset", "exists", "smembers", "scard", "sadd",
        "srem", "sismember", "delete", "set", "get", "append", "strlen",
        "rename",
    }

    def __init__(self):
        self.store: dict[bytes, object] = {}
        self._versions: dict[bytes, int] = {}
        self.executed: list[list[str]] = []
        self.before_execute: Optional[Callable[[], None]] = None

    # -- bookkeeping -------------------------------------------------------

    def version(self, key) -> int:
        return self._versions.get(_b(key), 0)

    def _touch(self, key: bytes) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def _typed(self, key, kind, create=False):
        key = _b(key)
        value = self.store.get(key)
        if value is None:
            if not create:
                return None
            value = kind()
            self.store[key] = value
        if not isinstance(value, kind):
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return value

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction)

    def keys_matching(self, pattern: str) -> list[str]:
        return sorted(
            k.decode() for k in self.store if fnmatch.fnmatchcase(k.decode(), pattern)
        )

    # -- generic -----------------------------------------------------------

    def exists(self, *keys) -> int:
        return sum(1 for k in keys if _b(k) in self.store)

    def delete(self, *keys) -> int:
        removed = 0
        for key in map(_b, keys):
            if self.store.pop(key, None) is not None:
                removed += 1
                self._touch(key)
        return removed

    def rename(self, src, dst) -> bool:
        src, dst = _b(src), _b(dst)
        if src not in self.store:
            raise ResponseError("no such key")
        self.store[dst] = self.store.pop(src)
        self._touch(src)
        self._touch(dst)
        return True

    def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key.decode(), match):
                yield key

    # -- strings -----------------------------------------------------------

    def set(self, key, value) -> bool:
        key = _b(key)
        self.store[key] = _b(value)
        self._touch(key)
        return True

    def get(self, key) -> Optional[bytes]:
        return self._typed(key, bytes)

    def append(self, key, value) -> int:
        key = _b(key)
        current = self._typed(key, bytes) or b""
        self.store[key] = current + _b(value)
        self._touch(key)
        return len(self.store[key])

    def strlen(self, key) -> int:
        return len(self._typed(key, bytes) or b"")

    # -- hashes ------------------------------------------------------------

    def hset(self, name, key=None, value=None, mapping=None) -> int:
        fields = {}
        if key is not None:
            fields[_b(key)] = _b(value)
        for k, v in (mapping or {}).items():
            fields[_b(k)] = _b(v)
        record = self._typed(name, dict, create=True)
        added = sum(1 for k in fields if k not in record)
        record.update(fields)
        self._touch(_b(name))
        return added

    def hget(self, name, key) -> Optional[bytes]:
        record = self._typed(name, dict) or {}
        return record.get(_b(key))

    def hgetall(self, name) -> dict:
        return dict(self._typed(name, dict) or {})

    # -- sets --------------------------------------------------------------

    def sadd(self, name, *values) -> int:
        members = self._typed(name, set, create=True)
        before = len(members)
        members.update(_b(v) for v in values)
        self._touch(_b(name))
        return len(members) - before

    def srem(self, name, *values) -> int:
        members = self._typed(name, set)
        if members is None:
            return 0
        before = len(members)
        members.difference_update(_b(v) for v in values)
        if not members:
            del self.store[_b(name)]
        self._touch(_b(name))
        return before - len(members)

    def smembers(self, name) -> set:
        return set(self._typed(name, set) or ())

    def scard(self, name) -> int:
        return len(self._typed(name, set) or ())

    def sismember(self, name, value) -> bool:
        return _b(value) in (self._typed(name, set) or ())


@pytest.fixture
def fake_redis() -> FakeRedis:
    """An empty in-memory Redis."""
    return FakeRedis()


@pytest.fixture
def engine(fake_redis: FakeRedis) -> FilesystemEngine:
    """An engine on an initialized ``main`` volume."""
    eng = FilesystemEngine(fake_redis)
    eng.init()
    return eng


@pytest.fixture
def populated(engine: FilesystemEngine) -> FilesystemEngine:
    """A small tree::

        /
        ├── a/
        │   ├── b/
        │   │   └── c.txt        "hi"
        │   └── notes.md         "line one\\nline two\\n"
        ├── docs/
        │   └── readme.txt       "Hello Redis\\n"
        └── link -> /a/b/c.txt
    """
    engine.mkdir("/a/b", parents=True)
    engine.write_file("/a/b/c.txt", "hi")
    engine.write_file("/a/notes.md", "line one\nline two\n")
    engine.mkdir("/docs")
    engine.write_file("/docs/readme.txt", "Hello Redis\n")
    engine.symlink("/a/b/c.txt", "/link")
    return engine
