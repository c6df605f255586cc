"""Tests for redisfs.search — scan-based grep."""

from __future__ import annotations

import pytest

from redisfs.context import OperationContext
from redisfs.errors import Cancelled, InvalidArgument, IsADirectory, NotFound
from redisfs.search import grep


class TestGrep:
    """Tests for grep()."""

    def test_single_file(self, populated):
        """Matching lines carry 1-based line numbers."""
        matches = grep(populated, "two", "/a/notes.md")
        assert [(m.path, m.line_no, m.line) for m in matches] == [("/a/notes.md", 2, "line two")]

    def test_recursive(self, populated):
        """Recursive grep scans every file below the directory."""
        matches = grep(populated, "^(hi|Hello)", "/", recursive=True)
        assert [(m.path, m.line) for m in matches] == [
            ("/a/b/c.txt", "hi"),
            ("/docs/readme.txt", "Hello Redis"),
        ]

    def test_ignore_case(self, populated):
        """Case-insensitive matching."""
        assert grep(populated, "redis", "/docs/readme.txt") == []
        assert len(grep(populated, "redis", "/docs/readme.txt", ignore_case=True)) == 1

    def test_follows_symlink_file(self, populated):
        """A symlink operand is read through."""
        assert [m.line for m in grep(populated, "h", "/link")] == ["hi"]

    def test_errors(self, populated):
        """Bad patterns, missing paths and bare directories fail."""
        with pytest.raises(InvalidArgument):
            grep(populated, "(unclosed", "/a/notes.md")
        with pytest.raises(NotFound):
            grep(populated, "x", "/nope")
        with pytest.raises(IsADirectory):
            grep(populated, "x", "/a")

    def test_skips_unreadable_when_recursive(self, populated, fake_redis):
        """A file whose content cannot be read is skipped in a scan."""
        populated.write_file("/docs/broken", "Hello too")
        fake_redis.delete("fs:main:data:/docs/broken")
        fake_redis.hset("fs:main:data:/docs/broken", "wrong", "type")
        matches = grep(populated, "Hello", "/docs", recursive=True)
        assert [m.path for m in matches] == ["/docs/readme.txt"]

    def test_cancelled(self, populated):
        """A cancelled context stops the scan."""
        ctx = OperationContext()
        ctx.cancel()
        with pytest.raises(Cancelled):
            grep(populated, "x", "/", recursive=True, ctx=ctx)
