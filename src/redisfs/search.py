"""
Scan-based grep over a volume.

No index is involved: every candidate file is read in full and matched
line by line. Good enough for interactive use on small trees; anything
bigger belongs behind a ``FileObserver``-fed index.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from . import paths
from .context import OperationContext
from .engine import FilesystemEngine
from .errors import Cancelled, FSError, InvalidArgument, IsADirectory, NotFound
from .models import GrepMatch

logger = logging.getLogger("redisfs.search")


def grep(
    engine: FilesystemEngine,
    pattern: str,
    path: str,
    recursive: bool = False,
    ignore_case: bool = False,
    ctx: Optional[OperationContext] = None,
) -> list[GrepMatch]:
    """Find lines matching a regular expression.

    Args:
        engine: Engine bound to the volume to search.
        pattern: Python regular expression.
        path: A file, or with ``recursive`` a directory to scan.
        recursive: Scan every file below ``path``.
        ignore_case: Match case-insensitively.
        ctx: Cancellation scope.

    Returns:
        Matches ordered by path then line number (1-based).

    Raises:
        InvalidArgument: Bad regular expression.
        NotFound: ``path`` does not exist.
        IsADirectory: ``path`` is a directory and ``recursive`` is off.
    """
    ctx = ctx or OperationContext()
    path = paths.normalize(path)
    try:
        regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error as exc:
        raise InvalidArgument("grep", pattern, str(exc)) from exc

    entry = engine.stat(path, ctx)
    if entry is None:
        raise NotFound("grep", path)
    if entry.is_dir:
        if not recursive:
            raise IsADirectory("grep", path)
        candidates = [found.path for found in engine.find(path, type_filter="f", ctx=ctx)]
    else:
        candidates = [path]

    matches: list[GrepMatch] = []
    for candidate in candidates:
        ctx.check("grep", candidate)
        try:
            content = engine.read_file(candidate, ctx)
        except Cancelled:
            raise
        except FSError as exc:
            if not recursive:
                raise
            logger.debug("Skipping %s: %s", candidate, exc)
            continue
        text = content.decode("utf-8", errors="replace")
        for line_no, line in enumerate(text.splitlines(), start=1):
            if regex.search(line):
                matches.append(GrepMatch(path=candidate, line_no=line_no, line=line))
    return matches
