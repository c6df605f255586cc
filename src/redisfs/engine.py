"""
Filesystem Engine — a POSIX-like tree on top of flat Redis keys.

Redis has no directories, inodes or renames of key groups, so every
filesystem fact is manufactured here:

    fs:{vol}:meta:{path}   what the entry IS (type, mode, owner, times)
    fs:{vol}:data:{path}   file content (files only)
    fs:{vol}:dir:{path}    which children a directory HAS
    fs:{vol}:xattr:{path}  reserved, deleted and renamed with the entry

Consistency model:
    A name is listed in its parent's membership set exactly when it has a
    metadata record. Every operation reads its preconditions first and then
    writes metadata, content and membership in one MULTI/EXEC, so no reader
    ever sees one half of that pair without the other.

    Nothing is locked across operations. Two clients racing on the same
    path may interleave between the precondition reads and the
    transaction; that weak consistency is accepted.

    Recursive operations (``remove_recursive``, ``copy_recursive`` and
    directory ``move``) are atomic per node only. A failure or crash
    partway through leaves a partially removed or partially copied
    subtree behind, and a directory move interrupted between its copy and
    delete phases leaves both trees in place.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import redis
from redis.exceptions import RedisError, WatchError

from . import paths
from .context import OperationContext
from .errors import (
    AlreadyExists,
    BackendFailure,
    Cancelled,
    InvalidArgument,
    IsADirectory,
    NotADirectory,
    NotEmpty,
    NotFound,
    TooManyLinks,
)
from .globmatch import glob_match
from .keys import DEFAULT_VOLUME, VOLUME_ROOT_PATTERN, KeyGen, volume_from_root_key
from .meta import (
    entry_from_record,
    entry_to_record,
    new_dir,
    new_file,
    new_symlink,
    normalize_mode,
    now,
    parse_owner,
)
from .models import DirEntry, Entry, EntryType, FindEntry, TreeNode, TreeResult
from .observer import FileObserver

logger = logging.getLogger("redisfs.engine")

MAX_SYMLINK_DEPTH = 40

FIND_TYPES = {
    "f": EntryType.FILE,
    "d": EntryType.DIR,
    "l": EntryType.SYMLINK,
}

Content = Union[bytes, str]


def _as_bytes(content: Content) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


def _text(value: Union[bytes, str, None]) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class FilesystemEngine:
    """Filesystem operations for one volume of a Redis database.

    The engine is bound to a single volume for its whole life; use
    ``with_volume()`` to get an engine for another one. Paths may be
    given in any form and are normalized before use.

    Every public operation accepts an optional ``ctx``. It is checked
    before each Redis round trip and between the nodes of every tree
    walk; a cancelled or expired context raises ``Cancelled``.

    Args:
        client: A ``redis.Redis`` created with ``decode_responses=False``.
        volume: Volume name (key namespace).
        observer: Optional post-commit mutation observer.
    """

    def __init__(
        self,
        client: redis.Redis,
        volume: str = DEFAULT_VOLUME,
        observer: Optional[FileObserver] = None,
    ):
        self.client = client
        self.keys = KeyGen(volume)
        self.observer = observer

    @property
    def volume(self) -> str:
        return self.keys.volume

    def with_volume(self, volume: str) -> FilesystemEngine:
        """Return an engine for ``volume`` sharing this client and observer."""
        return FilesystemEngine(self.client, volume, self.observer)

    # ------------------------------------------------------------------
    # Backend plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _backend(self, op: str, path: str, ctx: OperationContext) -> Iterator[None]:
        """Check ``ctx``, then translate Redis failures into ``FSError``."""
        ctx.check(op, path)
        try:
            yield
        except WatchError as exc:
            raise BackendFailure(op, path, "concurrent modification, not applied") from exc
        except RedisError as exc:
            if ctx.cancelled or ctx.expired:
                raise Cancelled(op, path) from exc
            raise BackendFailure(op, path, str(exc)) from exc

    def _stat(self, op: str, path: str, ctx: OperationContext) -> Optional[Entry]:
        with self._backend(op, path, ctx):
            record = self.client.hgetall(self.keys.meta(path))
        return entry_from_record(record)

    def _stat_many(self, op: str, path_list: list[str], ctx: OperationContext) -> list[Optional[Entry]]:
        """Fetch metadata for many paths in one pipelined round trip."""
        if not path_list:
            return []
        with self._backend(op, path_list[0], ctx):
            pipe = self.client.pipeline(transaction=False)
            for p in path_list:
                pipe.hgetall(self.keys.meta(p))
            records = pipe.execute()
        return [entry_from_record(r) for r in records]

    def _members(self, op: str, path: str, ctx: OperationContext) -> list[str]:
        with self._backend(op, path, ctx):
            members = self.client.smembers(self.keys.dir(path))
        return sorted(_text(m) for m in members)

    def _require_parent_dir(self, op: str, path: str, ctx: OperationContext) -> str:
        parent = paths.parent(path)
        entry = self._stat(op, parent, ctx)
        if entry is None or not entry.is_dir:
            raise NotFound(op, path)
        return parent

    def _notify(self, method: str, *args, ctx: OperationContext) -> None:
        if self.observer is None:
            return
        try:
            getattr(self.observer, method)(*args, ctx=ctx)
        except Exception as exc:
            logger.warning("Observer %s failed for %s: %s", method, args[0], exc)

    # ------------------------------------------------------------------
    # Init / stat
    # ------------------------------------------------------------------

    def init(self, ctx: Optional[OperationContext] = None) -> bool:
        """Create the volume root if it does not exist yet.

        The root key is WATCHed while checking for it, so two clients
        initializing the same volume cannot both write it.

        Returns:
            True if the root was created, False if it already existed.
        """
        ctx = ctx or OperationContext()
        key = self.keys.meta(paths.ROOT)
        with self._backend("init", paths.ROOT, ctx):
            with self.client.pipeline() as pipe:
                pipe.watch(key)
                if pipe.exists(key):
                    return False
                pipe.multi()
                pipe.hset(key, mapping=entry_to_record(new_dir()))
                pipe.execute()
        logger.info("Initialized volume %s", self.volume)
        return True

    def stat(self, path: str, ctx: Optional[OperationContext] = None) -> Optional[Entry]:
        """Metadata for ``path``, or ``None`` if nothing is there.

        Symlinks are not followed.
        """
        return self._stat("stat", paths.normalize(path), ctx or OperationContext())

    def exists(self, path: str, ctx: Optional[OperationContext] = None) -> bool:
        path = paths.normalize(path)
        with self._backend("stat", path, ctx or OperationContext()):
            return self.client.exists(self.keys.meta(path)) > 0

    def is_dir(self, path: str, ctx: Optional[OperationContext] = None) -> bool:
        path = paths.normalize(path)
        with self._backend("stat", path, ctx or OperationContext()):
            value = self.client.hget(self.keys.meta(path), "type")
        return _text(value) == EntryType.DIR.value

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    def _dir_target(self, op: str, path: str, ctx: OperationContext) -> str:
        """Resolve ``path`` (following symlinks) to an existing directory."""
        target = self._resolve(op, path, ctx)
        entry = self._stat(op, target, ctx)
        if entry is None:
            raise NotFound(op, path)
        if not entry.is_dir:
            raise NotADirectory(op, path)
        return target

    def read_dir(self, path: str, ctx: Optional[OperationContext] = None) -> list[str]:
        """Names of the immediate children of a directory, sorted.

        Raises:
            NotFound: If ``path`` does not exist.
            NotADirectory: If ``path`` is not a directory.
        """
        ctx = ctx or OperationContext()
        target = self._dir_target("ls", paths.normalize(path), ctx)
        return self._members("ls", target, ctx)

    def read_dir_with_meta(self, path: str, ctx: Optional[OperationContext] = None) -> list[DirEntry]:
        """Children of a directory together with their metadata.

        All child records are fetched in a single pipelined round trip.
        Names whose metadata has vanished come back with ``entry=None``.
        """
        ctx = ctx or OperationContext()
        target = self._dir_target("ls", paths.normalize(path), ctx)
        names = self._members("ls", target, ctx)
        entries = self._stat_many("ls", [paths.join(target, n) for n in names], ctx)
        return [DirEntry(name=n, entry=e) for n, e in zip(names, entries)]

    def _create_dir(self, op: str, path: str, ctx: OperationContext, template: Optional[Entry] = None) -> None:
        parent, base = paths.split(path)
        entry = new_dir()
        if template is not None:
            entry = entry.model_copy(
                update={"mode": template.mode, "uid": template.uid, "gid": template.gid}
            )
        with self._backend(op, path, ctx):
            pipe = self.client.pipeline()
            pipe.hset(self.keys.meta(path), mapping=entry_to_record(entry))
            pipe.sadd(self.keys.dir(parent), base)
            pipe.execute()
        logger.debug("mkdir %s:%s", self.volume, path)

    def _ensure_dir(self, op: str, path: str, ctx: OperationContext, template: Optional[Entry] = None) -> None:
        entry = self._stat(op, path, ctx)
        if entry is None:
            self._create_dir(op, path, ctx, template)
        elif not entry.is_dir:
            raise NotADirectory(op, path)

    def mkdir(self, path: str, parents: bool = False, ctx: Optional[OperationContext] = None) -> None:
        """Create a directory.

        Args:
            path: Directory to create.
            parents: Create missing ancestors and tolerate existing
                directories, like ``mkdir -p``. Each level is its own
                transaction, so an interrupted call leaves the levels it
                already made; retrying picks up where it stopped.

        Raises:
            NotFound: Parent missing (non-recursive).
            NotADirectory: Parent, or with ``parents`` any ancestor or
                the target itself, exists but is not a directory.
            AlreadyExists: Target exists (non-recursive).
        """
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        if paths.is_root(path):
            return

        if parents:
            current = ""
            for part in path.strip("/").split("/"):
                current += "/" + part
                ctx.check("mkdir", current)
                self._ensure_dir("mkdir", current, ctx)
            return

        parent = paths.parent(path)
        parent_entry = self._stat("mkdir", parent, ctx)
        if parent_entry is None:
            raise NotFound("mkdir", path)
        if not parent_entry.is_dir:
            raise NotADirectory("mkdir", parent)
        if self._stat("mkdir", path, ctx) is not None:
            raise AlreadyExists("mkdir", path)
        self._create_dir("mkdir", path, ctx)

    def _delete_dir_node(self, op: str, path: str, ctx: OperationContext) -> None:
        parent, base = paths.split(path)
        with self._backend(op, path, ctx):
            pipe = self.client.pipeline()
            pipe.delete(*self.keys.all_for(path))
            pipe.srem(self.keys.dir(parent), base)
            pipe.execute()
        logger.debug("rmdir %s:%s", self.volume, path)

    def rmdir(self, path: str, ctx: Optional[OperationContext] = None) -> None:
        """Remove an empty directory.

        Raises:
            InvalidArgument: For the root.
            NotFound, NotADirectory, NotEmpty: As in POSIX.
        """
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        if paths.is_root(path):
            raise InvalidArgument("rmdir", path, "cannot remove root directory")
        entry = self._stat("rmdir", path, ctx)
        if entry is None:
            raise NotFound("rmdir", path)
        if not entry.is_dir:
            raise NotADirectory("rmdir", path)
        with self._backend("rmdir", path, ctx):
            count = self.client.scard(self.keys.dir(path))
        if count > 0:
            raise NotEmpty("rmdir", path)
        self._delete_dir_node("rmdir", path, ctx)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def touch(self, path: str, ctx: Optional[OperationContext] = None) -> None:
        """Bump mtime/atime of an existing entry or create an empty file."""
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        ts = str(now())
        if self._stat("touch", path, ctx) is not None:
            with self._backend("touch", path, ctx):
                self.client.hset(self.keys.meta(path), mapping={"mtime": ts, "atime": ts})
            return

        parent = self._require_parent_dir("touch", path, ctx)
        with self._backend("touch", path, ctx):
            pipe = self.client.pipeline()
            pipe.set(self.keys.data(path), b"")
            pipe.hset(self.keys.meta(path), mapping=entry_to_record(new_file(0)))
            pipe.sadd(self.keys.dir(parent), paths.basename(path))
            pipe.execute()
        logger.debug("touch %s:%s", self.volume, path)

    def read_file(self, path: str, ctx: Optional[OperationContext] = None) -> bytes:
        """Content of a file, following symlinks.

        Bumps the atime of the file actually read.

        Raises:
            NotFound: Path missing or a dangling symlink.
            IsADirectory: Path (or the link's target) is a directory.
            TooManyLinks: Symlink chain longer than ``MAX_SYMLINK_DEPTH``.
        """
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        entry = self._stat("cat", path, ctx)
        if entry is None:
            raise NotFound("cat", path)
        if entry.is_symlink:
            target = self._resolve("cat", path, ctx)
            entry = self._stat("cat", target, ctx)
            if entry is None:
                raise NotFound("cat", target)
            path = target
        if entry.is_dir:
            raise IsADirectory("cat", path)

        with self._backend("cat", path, ctx):
            data = self.client.get(self.keys.data(path))
            self.client.hset(self.keys.meta(path), "atime", str(now()))
        return data or b""

    def _write_target(self, op: str, path: str, ctx: OperationContext) -> tuple[str, Optional[Entry]]:
        """Where a write to ``path`` lands: a symlink writes through to its target."""
        entry = self._stat(op, path, ctx)
        if entry is not None and entry.is_symlink:
            path = self._resolve(op, path, ctx)
            entry = self._stat(op, path, ctx)
        if entry is not None and entry.is_dir:
            raise IsADirectory(op, path)
        return path, entry

    def write_file(self, path: str, content: Content, ctx: Optional[OperationContext] = None) -> None:
        """Create or overwrite a file.

        ``str`` content is UTF-8 encoded. Writing through a symlink
        writes its target, creating the target if it does not exist.

        Raises:
            IsADirectory: Path is a directory.
            NotFound: Parent directory missing.
        """
        ctx = ctx or OperationContext()
        data = _as_bytes(content)
        path, entry = self._write_target("write", paths.normalize(path), ctx)

        if entry is not None:
            with self._backend("write", path, ctx):
                pipe = self.client.pipeline()
                pipe.set(self.keys.data(path), data)
                pipe.hset(
                    self.keys.meta(path),
                    mapping={"size": str(len(data)), "mtime": str(now())},
                )
                pipe.execute()
        else:
            parent = self._require_parent_dir("write", path, ctx)
            with self._backend("write", path, ctx):
                pipe = self.client.pipeline()
                pipe.set(self.keys.data(path), data)
                pipe.hset(self.keys.meta(path), mapping=entry_to_record(new_file(len(data))))
                pipe.sadd(self.keys.dir(parent), paths.basename(path))
                pipe.execute()

        logger.debug("write %s:%s (%d bytes)", self.volume, path, len(data))
        self._notify("on_write", path, data, ctx=ctx)

    def append_file(self, path: str, content: Content, ctx: Optional[OperationContext] = None) -> None:
        """Append to a file, creating it if absent.

        The stored size is recomputed from the content's actual length
        (not from the old ``size`` field), inside a transaction guarded
        by WATCH on the content key. A concurrent write to the same file
        aborts the append with ``BackendFailure``; it is not retried.

        Raises:
            IsADirectory: Path is a directory.
            BackendFailure: Concurrent modification or transport error.
        """
        ctx = ctx or OperationContext()
        data = _as_bytes(content)
        path, entry = self._write_target("append", paths.normalize(path), ctx)
        if entry is None:
            return self.write_file(path, data, ctx)

        data_key = self.keys.data(path)
        with self._backend("append", path, ctx):
            with self.client.pipeline() as pipe:
                pipe.watch(data_key)
                current = pipe.strlen(data_key)
                pipe.multi()
                pipe.append(data_key, data)
                pipe.hset(
                    self.keys.meta(path),
                    mapping={"size": str(current + len(data)), "mtime": str(now())},
                )
                pipe.get(data_key)
                results = pipe.execute()

        logger.debug("append %s:%s (+%d bytes)", self.volume, path, len(data))
        self._notify("on_write", path, results[-1] or b"", ctx=ctx)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def _remove_node(self, op: str, path: str, ctx: OperationContext) -> None:
        parent, base = paths.split(path)
        with self._backend(op, path, ctx):
            pipe = self.client.pipeline()
            pipe.delete(*self.keys.all_for(path))
            pipe.srem(self.keys.dir(parent), base)
            pipe.execute()
        logger.debug("rm %s:%s", self.volume, path)
        self._notify("on_remove", path, ctx=ctx)

    def remove(self, path: str, ctx: Optional[OperationContext] = None) -> None:
        """Remove a file or symlink (never a directory).

        Raises:
            InvalidArgument: For the root.
            NotFound: Path missing.
            IsADirectory: Path is a directory.
        """
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        if paths.is_root(path):
            raise InvalidArgument("rm", path, "cannot remove root directory")
        entry = self._stat("rm", path, ctx)
        if entry is None:
            raise NotFound("rm", path)
        if entry.is_dir:
            raise IsADirectory("rm", path)
        self._remove_node("rm", path, ctx)

    def remove_recursive(self, path: str, ctx: Optional[OperationContext] = None) -> None:
        """Remove a file, or a directory and everything below it.

        Depth-first and post-order over an explicit stack: a directory's
        child list is read in full before any child is touched, and the
        directory itself goes last. Each node is its own transaction; the
        first error aborts the walk and leaves the rest of the subtree in
        place.

        Raises:
            InvalidArgument: For the root.
            NotFound: Path missing.
        """
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        if paths.is_root(path):
            raise InvalidArgument("rm", path, "cannot remove root directory")
        entry = self._stat("rm", path, ctx)
        if entry is None:
            raise NotFound("rm", path)
        if not entry.is_dir:
            return self._remove_node("rm", path, ctx)

        stack: list[tuple[str, bool]] = [(path, False)]
        while stack:
            current, expanded = stack.pop()
            ctx.check("rm", current)
            if expanded:
                self._delete_dir_node("rm", current, ctx)
                continue
            node = entry if current == path else self._stat("rm", current, ctx)
            if node is None:
                continue
            if not node.is_dir:
                self._remove_node("rm", current, ctx)
                continue
            children = self._members("rm", current, ctx)
            stack.append((current, True))
            for name in reversed(children):
                stack.append((paths.join(current, name), False))

    # ------------------------------------------------------------------
    # Copy / move
    # ------------------------------------------------------------------

    def _copy_node(self, src: str, src_entry: Entry, dst: str, ctx: OperationContext) -> None:
        """Copy one file or symlink to ``dst`` (no retargeting)."""
        dst_entry = self._stat("cp", dst, ctx)
        if dst_entry is not None and dst_entry.is_dir:
            raise IsADirectory("cp", dst)
        dst_parent = self._require_parent_dir("cp", dst, ctx)

        data = None
        if src_entry.is_file:
            with self._backend("cp", src, ctx):
                data = self.client.get(self.keys.data(src)) or b""

        ts = now()
        copied = src_entry.model_copy(update={"ctime": ts, "mtime": ts, "atime": ts})
        if data is not None:
            copied.size = len(data)
        with self._backend("cp", dst, ctx):
            pipe = self.client.pipeline()
            pipe.delete(*self.keys.all_for(dst))
            if data is not None:
                pipe.set(self.keys.data(dst), data)
            pipe.hset(self.keys.meta(dst), mapping=entry_to_record(copied))
            pipe.sadd(self.keys.dir(dst_parent), paths.basename(dst))
            pipe.hset(self.keys.meta(src), "atime", str(ts))
            pipe.execute()

        logger.debug("cp %s:%s -> %s", self.volume, src, dst)
        if data is not None:
            self._notify("on_write", dst, data, ctx=ctx)

    def _into_dir(self, op: str, src: str, dst: str, ctx: OperationContext) -> str:
        """``dst/basename(src)`` when ``dst`` is an existing directory."""
        dst_entry = self._stat(op, dst, ctx)
        if dst_entry is not None and dst_entry.is_dir:
            return paths.join(dst, paths.basename(src))
        return dst

    def copy_file(self, src: str, dst: str, ctx: Optional[OperationContext] = None) -> None:
        """Copy a file (or a symlink, as a link) to ``dst``.

        If ``dst`` is an existing directory the copy lands inside it under
        the source's basename. The copy gets fresh timestamps; the
        source's atime is bumped in the same transaction.

        Raises:
            NotFound: Source missing or destination parent missing.
            IsADirectory: Source is a directory, or the destination is.
            InvalidArgument: Source and destination are the same path.
        """
        ctx = ctx or OperationContext()
        src, dst = paths.normalize(src), paths.normalize(dst)
        src_entry = self._stat("cp", src, ctx)
        if src_entry is None:
            raise NotFound("cp", src)
        if src_entry.is_dir:
            raise IsADirectory("cp", src, "-r not specified; omitting directory")
        dst = self._into_dir("cp", src, dst, ctx)
        if dst == src:
            raise InvalidArgument("cp", src, "source and destination are the same file")
        self._copy_node(src, src_entry, dst, ctx)

    def _copy_tree(self, src: str, src_entry: Entry, dst: str, ctx: OperationContext) -> None:
        if paths.is_within(dst, src):
            raise InvalidArgument("cp", dst, "cannot copy a directory into itself")
        self._require_parent_dir("cp", dst, ctx)
        self._ensure_dir("cp", dst, ctx, template=src_entry)

        stack = [(src, dst)]
        while stack:
            src_dir, dst_dir = stack.pop()
            ctx.check("cp", src_dir)
            names = self._members("cp", src_dir, ctx)
            children = [paths.join(src_dir, n) for n in names]
            for name, child, child_entry in zip(names, children, self._stat_many("cp", children, ctx)):
                ctx.check("cp", child)
                if child_entry is None:
                    continue
                target = paths.join(dst_dir, name)
                if child_entry.is_dir:
                    self._ensure_dir("cp", target, ctx, template=child_entry)
                    stack.append((child, target))
                else:
                    self._copy_node(child, child_entry, target, ctx)

    def copy_recursive(self, src: str, dst: str, ctx: Optional[OperationContext] = None) -> None:
        """Copy a file or a whole directory tree.

        Non-directories go through ``copy_file``. For a directory the
        destination directory is created (or reused) and children are
        copied from an explicit work stack, each node in its own
        transaction. The first child error aborts the copy and leaves a
        partial tree behind.

        Raises:
            NotFound: Source or destination parent missing.
            InvalidArgument: Destination lies inside the source.
            NotADirectory: The destination exists and is not a directory.
        """
        ctx = ctx or OperationContext()
        src, dst = paths.normalize(src), paths.normalize(dst)
        src_entry = self._stat("cp", src, ctx)
        if src_entry is None:
            raise NotFound("cp", src)
        if not src_entry.is_dir:
            return self.copy_file(src, dst, ctx)
        dst = self._into_dir("cp", src, dst, ctx)
        self._copy_tree(src, src_entry, dst, ctx)

    def _rename_node(self, src: str, dst: str, ctx: OperationContext) -> None:
        src_parent, src_base = paths.split(src)
        dst_parent, dst_base = paths.split(dst)
        with self._backend("mv", src, ctx):
            probe = self.client.pipeline(transaction=False)
            probe.exists(self.keys.data(src))
            probe.exists(self.keys.xattr(src))
            has_data, has_xattr = probe.execute()

            pipe = self.client.pipeline()
            pipe.delete(self.keys.data(dst), self.keys.xattr(dst))
            pipe.rename(self.keys.meta(src), self.keys.meta(dst))
            if has_data:
                pipe.rename(self.keys.data(src), self.keys.data(dst))
            if has_xattr:
                pipe.rename(self.keys.xattr(src), self.keys.xattr(dst))
            pipe.srem(self.keys.dir(src_parent), src_base)
            pipe.sadd(self.keys.dir(dst_parent), dst_base)
            pipe.execute()
        logger.debug("mv %s:%s -> %s", self.volume, src, dst)
        self._notify("on_move", src, dst, ctx=ctx)

    def move(self, src: str, dst: str, ctx: Optional[OperationContext] = None) -> None:
        """Move or rename an entry.

        If ``dst`` is an existing directory the entry moves inside it.
        Files and symlinks are renamed key-by-key in one transaction
        that also updates both parents' membership. Directories are
        copied and then removed, which is not atomic as a whole: an
        interruption between the two phases leaves both trees present.

        Raises:
            NotFound: Source or destination parent missing.
            InvalidArgument: Moving the root, or a directory into itself.
            IsADirectory: A non-directory would replace a directory.
            NotADirectory: A directory would replace a non-directory.
        """
        ctx = ctx or OperationContext()
        src, dst = paths.normalize(src), paths.normalize(dst)
        if paths.is_root(src):
            raise InvalidArgument("mv", src, "cannot move root directory")
        src_entry = self._stat("mv", src, ctx)
        if src_entry is None:
            raise NotFound("mv", src)
        dst = self._into_dir("mv", src, dst, ctx)
        if dst == src:
            return
        if src_entry.is_dir and paths.is_within(dst, src):
            raise InvalidArgument("mv", dst, "cannot move a directory into itself")
        self._require_parent_dir("mv", dst, ctx)
        dst_entry = self._stat("mv", dst, ctx)

        if src_entry.is_dir:
            if dst_entry is not None and not dst_entry.is_dir:
                raise NotADirectory("mv", dst)
            self._copy_tree(src, src_entry, dst, ctx)
            self.remove_recursive(src, ctx)
            return

        if dst_entry is not None and dst_entry.is_dir:
            raise IsADirectory("mv", dst)
        self._rename_node(src, dst, ctx)

    # ------------------------------------------------------------------
    # Symlinks
    # ------------------------------------------------------------------

    def symlink(self, target: str, link_path: str, ctx: Optional[OperationContext] = None) -> None:
        """Create ``link_path`` pointing at ``target``.

        The target is stored verbatim; relative targets are resolved
        against the link's own directory when followed.

        Raises:
            InvalidArgument: Empty target.
            AlreadyExists: Something already lives at ``link_path``.
            NotFound: Parent directory missing.
        """
        ctx = ctx or OperationContext()
        link_path = paths.normalize(link_path)
        if not target:
            raise InvalidArgument("ln", link_path, "empty symlink target")
        if self._stat("ln", link_path, ctx) is not None:
            raise AlreadyExists("ln", link_path)
        parent = self._require_parent_dir("ln", link_path, ctx)
        with self._backend("ln", link_path, ctx):
            pipe = self.client.pipeline()
            pipe.hset(self.keys.meta(link_path), mapping=entry_to_record(new_symlink(target)))
            pipe.sadd(self.keys.dir(parent), paths.basename(link_path))
            pipe.execute()
        logger.debug("ln -s %s %s:%s", target, self.volume, link_path)

    def _resolve(self, op: str, path: str, ctx: OperationContext) -> str:
        current = path
        hops = 0
        while True:
            entry = self._stat(op, current, ctx)
            if entry is None or not entry.is_symlink:
                return current
            if hops >= MAX_SYMLINK_DEPTH:
                raise TooManyLinks(op, path)
            target = entry.link_target or ""
            if target.startswith("/"):
                current = paths.normalize(target)
            else:
                current = paths.join(paths.parent(current), target)
            hops += 1

    def resolve_symlink(self, path: str, ctx: Optional[OperationContext] = None) -> str:
        """Follow a symlink chain to the first non-symlink path.

        A path that does not exist (or a dangling link's target) resolves
        to itself. At most ``MAX_SYMLINK_DEPTH`` links are followed.

        Raises:
            TooManyLinks: The chain is longer than the hop limit or loops.
        """
        return self._resolve("readlink", paths.normalize(path), ctx or OperationContext())

    def readlink(self, path: str, ctx: Optional[OperationContext] = None) -> str:
        """Raw target string of a symlink."""
        path = paths.normalize(path)
        entry = self._stat("readlink", path, ctx or OperationContext())
        if entry is None:
            raise NotFound("readlink", path)
        if not entry.is_symlink:
            raise InvalidArgument("readlink", path)
        return entry.link_target or ""

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def chmod(self, path: str, mode: str, ctx: Optional[OperationContext] = None) -> None:
        """Set the octal permission string (``755`` or ``0755``)."""
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        try:
            mode = normalize_mode(mode)
        except ValueError as exc:
            raise InvalidArgument("chmod", path, str(exc)) from exc
        if self._stat("chmod", path, ctx) is None:
            raise NotFound("chmod", path)
        with self._backend("chmod", path, ctx):
            self.client.hset(self.keys.meta(path), "mode", mode)

    def chown(self, path: str, owner: str, ctx: Optional[OperationContext] = None) -> None:
        """Set uid and/or gid from ``uid``, ``uid:gid``, ``:gid`` or ``uid:``."""
        ctx = ctx or OperationContext()
        path = paths.normalize(path)
        try:
            fields = parse_owner(owner)
        except ValueError as exc:
            raise InvalidArgument("chown", path, str(exc)) from exc
        if self._stat("chown", path, ctx) is None:
            raise NotFound("chown", path)
        with self._backend("chown", path, ctx):
            self.client.hset(self.keys.meta(path), mapping=fields)

    # ------------------------------------------------------------------
    # Walks
    # ------------------------------------------------------------------

    def find(
        self,
        root: str,
        name_pattern: Optional[str] = None,
        type_filter: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> list[FindEntry]:
        """Walk the tree under ``root`` and collect matching entries.

        Pre-order depth-first over an explicit stack; siblings are
        visited in name order. Symlinks are reported, not followed.

        Args:
            root: Where to start; the root itself is a candidate too.
            name_pattern: Glob (``*``, ``?``) matched against basenames.
            type_filter: ``f`` (file), ``d`` (directory) or ``l`` (symlink).

        Returns:
            Matches in visitation order; empty if ``root`` is missing.

        Raises:
            InvalidArgument: Unknown type filter.
        """
        ctx = ctx or OperationContext()
        root = paths.normalize(root)
        wanted = None
        if type_filter:
            wanted = FIND_TYPES.get(type_filter)
            if wanted is None:
                raise InvalidArgument("find", root, f"unknown argument to -type: {type_filter}")

        results: list[FindEntry] = []
        stack = [root]
        while stack:
            current = stack.pop()
            ctx.check("find", current)
            entry = self._stat("find", current, ctx)
            if entry is None:
                continue
            if (wanted is None or entry.type == wanted) and (
                not name_pattern or glob_match(name_pattern, paths.basename(current))
            ):
                results.append(FindEntry(path=current, entry=entry))
            if entry.is_dir:
                for name in reversed(self._members("find", current, ctx)):
                    stack.append(paths.join(current, name))
        return results

    def tree(self, root: str, max_depth: int = 0, ctx: Optional[OperationContext] = None) -> TreeResult:
        """Build a nested listing of ``root``.

        Args:
            root: Directory (or single entry) to describe.
            max_depth: Levels below ``root`` to expand; 0 means unbounded.
                Directories at the cut-off are listed but not expanded.

        Returns:
            The tree plus directory and file counts (root excluded; a
            non-directory root counts as one file).

        Raises:
            NotFound: ``root`` does not exist.
        """
        ctx = ctx or OperationContext()
        root = paths.normalize(root)
        entry = self._stat("tree", root, ctx)
        if entry is None:
            raise NotFound("tree", root)

        node = TreeNode(name=paths.basename(root), path=root, type=entry.type)
        if not entry.is_dir:
            return TreeResult(root=node, files=1)

        directories = files = 0
        stack = [(node, 1)]
        while stack:
            parent, depth = stack.pop()
            ctx.check("tree", parent.path)
            if max_depth > 0 and depth > max_depth:
                continue
            names = self._members("tree", parent.path, ctx)
            children = [paths.join(parent.path, n) for n in names]
            for name, child_path, child_entry in zip(names, children, self._stat_many("tree", children, ctx)):
                if child_entry is None:
                    continue
                child = TreeNode(name=name, path=child_path, type=child_entry.type)
                parent.children.append(child)
                if child_entry.is_dir:
                    directories += 1
                    stack.append((child, depth + 1))
                else:
                    files += 1
        return TreeResult(root=node, directories=directories, files=files)

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    def list_volumes(self, ctx: Optional[OperationContext] = None) -> list[str]:
        """Names of every initialized volume in this database, sorted."""
        ctx = ctx or OperationContext()
        volumes = set()
        with self._backend("vol", VOLUME_ROOT_PATTERN, ctx):
            for key in self.client.scan_iter(match=VOLUME_ROOT_PATTERN, count=100):
                name = volume_from_root_key(_text(key))
                if name:
                    volumes.add(name)
        return sorted(volumes)
