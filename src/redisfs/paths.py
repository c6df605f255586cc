"""
Path helpers for the emulated filesystem.

Every key in Redis is addressed by a canonical absolute path: a leading
slash, no trailing slash (except the root itself), no ``.`` or ``..``
components and no repeated slashes. These helpers are total functions
over strings and never touch the backend.
"""

from __future__ import annotations

import posixpath

ROOT = "/"


def normalize(path: str) -> str:
    """Return the canonical absolute form of ``path``.

    ``""`` and ``"."`` map to the root; ``..`` above the root stays at
    the root.

    Args:
        path: Any path string, absolute or not.

    Returns:
        Normalized absolute path.
    """
    if not path:
        return ROOT
    cleaned = posixpath.normpath("/" + path)
    # normpath keeps a leading "//" (POSIX allows it to be special).
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def resolve(cwd: str, path: str) -> str:
    """Resolve ``path`` against the working directory ``cwd``."""
    if not path:
        return normalize(cwd)
    if path.startswith("/"):
        return normalize(path)
    return normalize(cwd + "/" + path)


def parent(path: str) -> str:
    """Parent directory of ``path``. The root is its own parent."""
    path = normalize(path)
    if path == ROOT:
        return ROOT
    return posixpath.dirname(path) or ROOT


def basename(path: str) -> str:
    """Final component of ``path``. The root's basename is ``/``."""
    path = normalize(path)
    if path == ROOT:
        return ROOT
    return posixpath.basename(path)


def split(path: str) -> tuple[str, str]:
    """Return ``(parent, basename)`` for ``path``."""
    return parent(path), basename(path)


def join(*parts: str) -> str:
    """Join components and normalize the result."""
    return normalize("/".join(parts))


def is_root(path: str) -> bool:
    return normalize(path) == ROOT


def is_within(path: str, ancestor: str) -> bool:
    """True when ``path`` equals ``ancestor`` or lies somewhere below it."""
    path, ancestor = normalize(path), normalize(ancestor)
    if ancestor == ROOT:
        return True
    return path == ancestor or path.startswith(ancestor + "/")
