"""
Metadata codec: ``Entry`` <-> Redis hash record.

Redis hashes only hold flat string fields, so every attribute is stored
as text and parsed back on read. Records come back from redis-py as
``dict[bytes, bytes]`` (the client runs with ``decode_responses=False``
so file content stays binary); both bytes and str are accepted here.
"""

from __future__ import annotations

import re
import time
from datetime import datetime
from typing import Mapping, Optional, Union

from .models import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    DEFAULT_SYMLINK_MODE,
    Entry,
    EntryType,
)

RawRecord = Mapping[Union[bytes, str], Union[bytes, str]]

_MODE_RE = re.compile(r"[0-7]{3,4}")


def now() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def new_dir(mode: str = DEFAULT_DIR_MODE) -> Entry:
    ts = now()
    return Entry(type=EntryType.DIR, mode=mode, ctime=ts, mtime=ts, atime=ts)


def new_file(size: int = 0, mode: str = DEFAULT_FILE_MODE) -> Entry:
    ts = now()
    return Entry(type=EntryType.FILE, mode=mode, size=size, ctime=ts, mtime=ts, atime=ts)


def new_symlink(target: str) -> Entry:
    ts = now()
    return Entry(
        type=EntryType.SYMLINK,
        mode=DEFAULT_SYMLINK_MODE,
        ctime=ts,
        mtime=ts,
        atime=ts,
        link_target=target,
    )


def entry_to_record(entry: Entry) -> dict[str, str]:
    """Flatten an entry into the field/value mapping written with HSET.

    ``link_target`` is only written for symlinks that carry one.
    """
    record = {
        "type": entry.type.value,
        "mode": entry.mode,
        "uid": entry.uid,
        "gid": entry.gid,
        "size": str(entry.size),
        "ctime": str(entry.ctime),
        "mtime": str(entry.mtime),
        "atime": str(entry.atime),
    }
    if entry.link_target:
        record["link_target"] = entry.link_target
    return record


def _text(value: Union[bytes, str]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _int(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def entry_from_record(record: Optional[RawRecord]) -> Optional[Entry]:
    """Parse an HGETALL result into an ``Entry``.

    Args:
        record: Raw hash fields; empty or ``None`` when the key is absent.

    Returns:
        The parsed entry, or ``None`` for an absent/empty record. Unknown
        ``type`` values fall back to ``file``; unparsable numbers read
        as 0.
    """
    if not record:
        return None
    fields = {_text(k): _text(v) for k, v in record.items()}
    try:
        entry_type = EntryType(fields.get("type", EntryType.FILE.value))
    except ValueError:
        entry_type = EntryType.FILE
    return Entry(
        type=entry_type,
        mode=fields.get("mode", ""),
        uid=fields.get("uid", "0"),
        gid=fields.get("gid", "0"),
        size=_int(fields.get("size")),
        ctime=_int(fields.get("ctime")),
        mtime=_int(fields.get("mtime")),
        atime=_int(fields.get("atime")),
        link_target=fields.get("link_target") or None,
    )


def normalize_mode(mode: str) -> str:
    """Validate an octal mode string and pad it to four digits.

    Raises:
        ValueError: If ``mode`` is not 3 or 4 octal digits.
    """
    if not _MODE_RE.fullmatch(mode or ""):
        raise ValueError(f"invalid mode: '{mode}'")
    return mode.rjust(4, "0")


def parse_owner(owner: str) -> dict[str, str]:
    """Split ``uid[:gid]`` into the fields to update.

    Either half may be empty; at least one must be present.

    Raises:
        ValueError: If neither uid nor gid can be read.
    """
    uid, _, gid = (owner or "").partition(":")
    fields = {}
    if uid:
        fields["uid"] = uid
    if gid:
        fields["gid"] = gid
    if not fields:
        raise ValueError(f"invalid owner: '{owner}'")
    return fields


def mode_string(entry: Entry) -> str:
    """POSIX ``ls -l`` permission string such as ``drwxr-xr-x``."""
    prefix = {EntryType.DIR: "d", EntryType.SYMLINK: "l"}.get(entry.type, "-")
    try:
        bits = int(entry.mode, 8)
    except ValueError:
        return prefix + "rwxr-xr-x"
    perms = "".join(
        flag if bits & (1 << (8 - i)) else "-"
        for i, flag in enumerate("rwxrwxrwx")
    )
    return prefix + perms


def format_time(ts: int) -> str:
    """Render a unix timestamp like ``ls`` does; ``-`` for zero."""
    if not ts:
        return "-"
    dt = datetime.fromtimestamp(ts)
    return f"{dt:%b} {dt.day:>2} {dt:%H:%M}"
