"""
Redis key naming for filesystem volumes.

Each volume owns four key classes per path::

    fs:{volume}:meta:{path}   hash, the entry's metadata record
    fs:{volume}:data:{path}   string, file content
    fs:{volume}:dir:{path}    set, immediate child basenames
    fs:{volume}:xattr:{path}  hash, extended attributes

A ``KeyGen`` is bound to exactly one volume for its whole life. Switching
volumes means building a new one, never mutating an existing instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidArgument

VOLUME_ROOT_PATTERN = "fs:*:meta:/"
"""SCAN pattern matching the root metadata key of every volume."""

DEFAULT_VOLUME = "main"

_INVALID_VOLUME_CHARS = re.compile(r"[:*?\[\]\s]")


def validate_volume(name: str) -> str:
    """Reject volume names that would corrupt the key namespace.

    Args:
        name: Candidate volume name.

    Returns:
        The name, unchanged.

    Raises:
        InvalidArgument: If the name is empty or contains ``:``, glob
            metacharacters or whitespace.
    """
    if not name or _INVALID_VOLUME_CHARS.search(name):
        raise InvalidArgument("volume", name, "invalid volume name")
    return name


def volume_from_root_key(key: str) -> str | None:
    """Extract the volume name from a ``fs:{volume}:meta:/`` key."""
    parts = key.split(":", 3)
    if len(parts) < 4 or parts[0] != "fs" or parts[2] != "meta":
        return None
    return parts[1]


@dataclass(frozen=True)
class KeyGen:
    """Deterministic key formatter for one volume."""

    volume: str

    def __post_init__(self) -> None:
        validate_volume(self.volume)

    def meta(self, path: str) -> str:
        return f"fs:{self.volume}:meta:{path}"

    def data(self, path: str) -> str:
        return f"fs:{self.volume}:data:{path}"

    def dir(self, path: str) -> str:
        return f"fs:{self.volume}:dir:{path}"

    def xattr(self, path: str) -> str:
        return f"fs:{self.volume}:xattr:{path}"

    def all_for(self, path: str) -> tuple[str, str, str, str]:
        """Every key that may exist for ``path``: meta, data, dir, xattr."""
        return self.meta(path), self.data(path), self.dir(path), self.xattr(path)
