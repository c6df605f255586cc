"""
Filesystem error taxonomy.

Every failure the engine raises is an ``FSError`` carrying the operation
name, the path it was working on and a POSIX errno, so front ends can
print ``rm: /a/b: Is a directory`` style messages or map to exit codes.
"""

from __future__ import annotations

import errno as _errno
from typing import Optional


class FSError(Exception):
    """Base class for all filesystem errors."""

    errno: int = _errno.EIO
    strerror: str = "Input/output error"

    def __init__(self, op: str, path: str, detail: Optional[str] = None):
        self.op = op
        self.path = path
        self.detail = detail or self.strerror
        super().__init__(f"{op}: {path}: {self.detail}")


class NotFound(FSError):
    errno = _errno.ENOENT
    strerror = "No such file or directory"


class NotADirectory(FSError):
    errno = _errno.ENOTDIR
    strerror = "Not a directory"


class IsADirectory(FSError):
    errno = _errno.EISDIR
    strerror = "Is a directory"


class AlreadyExists(FSError):
    errno = _errno.EEXIST
    strerror = "File exists"


class NotEmpty(FSError):
    errno = _errno.ENOTEMPTY
    strerror = "Directory not empty"


class InvalidArgument(FSError):
    """Malformed mode, owner, type filter, volume name or impossible move."""

    errno = _errno.EINVAL
    strerror = "Invalid argument"


class TooManyLinks(FSError):
    errno = _errno.ELOOP
    strerror = "Too many levels of symbolic links"


class BackendFailure(FSError):
    """Transport or transaction failure from Redis.

    The original ``redis.exceptions.RedisError`` is chained as
    ``__cause__``.
    """

    errno = _errno.EIO
    strerror = "Backend failure"


class Cancelled(FSError):
    """The operation's context was cancelled or its deadline passed."""

    errno = _errno.ECANCELED
    strerror = "Operation cancelled"
