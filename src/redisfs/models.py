"""
Pydantic models for filesystem entries and walk results.

An ``Entry`` is what lives in a ``fs:{volume}:meta:{path}`` hash. The
other models are what the engine hands back from listings, finds, trees
and greps.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EntryType(str, Enum):
    """Kind of filesystem node."""

    DIR = "dir"
    FILE = "file"
    SYMLINK = "symlink"


DEFAULT_DIR_MODE = "0755"
DEFAULT_FILE_MODE = "0644"
DEFAULT_SYMLINK_MODE = "0777"


class Entry(BaseModel):
    """Metadata record of a directory, file or symlink."""

    type: EntryType
    mode: str = DEFAULT_FILE_MODE
    uid: str = "0"
    gid: str = "0"
    size: int = 0
    ctime: int = 0
    mtime: int = 0
    atime: int = 0
    link_target: Optional[str] = None

    @property
    def is_dir(self) -> bool:
        return self.type == EntryType.DIR

    @property
    def is_file(self) -> bool:
        return self.type == EntryType.FILE

    @property
    def is_symlink(self) -> bool:
        return self.type == EntryType.SYMLINK


class DirEntry(BaseModel):
    """One child of a directory listing.

    ``entry`` is ``None`` when the name is in the membership set but its
    metadata record is gone (a dangling member left by a crashed client).
    """

    name: str
    entry: Optional[Entry] = None


class FindEntry(BaseModel):
    """A path matched by ``find``."""

    path: str
    entry: Entry


class TreeNode(BaseModel):
    """A node of a ``tree`` listing with its (possibly truncated) children."""

    name: str
    path: str
    type: EntryType
    children: list[TreeNode] = Field(default_factory=list)


TreeNode.model_rebuild()


class TreeResult(BaseModel):
    """Root of a tree walk plus directory and file tallies.

    The root itself is not counted; symlinks count as files.
    """

    root: TreeNode
    directories: int = 0
    files: int = 0


class GrepMatch(BaseModel):
    """A single matching line."""

    path: str
    line_no: int
    line: str
