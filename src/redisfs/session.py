"""
Front-end session state: which volume, which directory.

The engine itself is stateless about location. The CLI and the shell
share one ``Session`` that remembers the working directory and rebinds
the engine when the user switches volumes.
"""

from __future__ import annotations

from typing import Optional

from . import paths
from .engine import FilesystemEngine
from .errors import InvalidArgument, NotADirectory, NotFound


class Session:
    """Mutable navigation state around an immutable engine.

    Args:
        engine: Engine bound to the starting volume.
        json_output: Render results as JSON.
        color: Allow colored output.
        address: Server address, for prompts and ``vol info``.
    """

    def __init__(
        self,
        engine: FilesystemEngine,
        json_output: bool = False,
        color: bool = True,
        address: str = "",
    ):
        self.engine = engine
        self.json_output = json_output
        self.color = color
        self.address = address
        self.cwd = paths.ROOT
        self.prev_dir: Optional[str] = None

    @property
    def volume(self) -> str:
        return self.engine.volume

    def resolve(self, path: Optional[str]) -> str:
        """Absolute, normalized form of ``path`` relative to the cwd."""
        return paths.resolve(self.cwd, path or "")

    def cd(self, path: Optional[str] = None) -> str:
        """Change directory; ``-`` returns to the previous one.

        Symlinks are resolved physically (like ``cd -P``): the new cwd is
        the link's target directory, not the link path.

        Returns:
            The new working directory.

        Raises:
            InvalidArgument: ``cd -`` with no previous directory.
            NotFound: Target missing.
            NotADirectory: Target is not a directory.
        """
        if path == "-":
            if self.prev_dir is None:
                raise InvalidArgument("cd", "-", "OLDPWD not set")
            target = self.prev_dir
        else:
            target = self.resolve(path or paths.ROOT)

        resolved = self.engine.resolve_symlink(target)
        entry = self.engine.stat(resolved)
        if entry is None:
            raise NotFound("cd", target)
        if not entry.is_dir:
            raise NotADirectory("cd", target)

        # The engine never follows links mid-path; the cwd stays link-free.
        self.prev_dir, self.cwd = self.cwd, resolved
        return self.cwd

    def switch_volume(self, name: str) -> None:
        """Rebind to another, already initialized, volume and reset the cwd.

        Raises:
            InvalidArgument: Invalid volume name.
            NotFound: The volume has no root (run ``init`` or ``vol create``).
        """
        engine = self.engine.with_volume(name)
        if not engine.exists(paths.ROOT):
            raise NotFound("vol", name, "volume does not exist")
        self.engine = engine
        self.cwd = paths.ROOT
        self.prev_dir = None

    def create_volume(self, name: str) -> bool:
        """Initialize a volume (if needed) and make it the active one.

        Returns:
            True if it was created, False if it already existed.
        """
        created = self.engine.with_volume(name).init()
        self.switch_volume(name)
        return created
