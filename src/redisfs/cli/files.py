"""File commands: cat, echo, write, append, touch, rm, cp, mv, ln, readlink, chmod, chown, stat."""

from __future__ import annotations

import click

from ..errors import NotFound
from ..output import print_stat
from ._common import console_for, fs_command, pass_session


def register_file_commands(main: click.Group) -> None:
    """Register the file commands."""

    @main.command("cat")
    @click.argument("files", nargs=-1, required=True)
    @pass_session
    @fs_command
    def cat(session, files):
        """Print file contents."""
        for f in files:
            content = session.engine.read_file(session.resolve(f))
            click.echo(content, nl=False)
            if content and not content.endswith(b"\n"):
                click.echo()

    @main.command("echo")
    @click.argument("words", nargs=-1)
    def echo(words):
        """Print the arguments (the shell turns ``> file`` into ``write``)."""
        click.echo(" ".join(words))

    @main.command("write")
    @click.argument("path")
    @click.argument("words", nargs=-1)
    @pass_session
    @fs_command
    def write(session, path, words):
        """Replace a file's content with the given text."""
        session.engine.write_file(session.resolve(path), " ".join(words))

    @main.command("append")
    @click.argument("path")
    @click.argument("words", nargs=-1)
    @pass_session
    @fs_command
    def append(session, path, words):
        """Append the given text to a file."""
        session.engine.append_file(session.resolve(path), " ".join(words))

    @main.command("touch")
    @click.argument("files", nargs=-1, required=True)
    @pass_session
    @fs_command
    def touch(session, files):
        """Create empty files or bump their timestamps."""
        for f in files:
            session.engine.touch(session.resolve(f))

    @main.command("rm")
    @click.option("-r", "-R", "recursive", is_flag=True, help="Remove directories and their contents.")
    @click.option("-f", "force", is_flag=True, help="Ignore missing files.")
    @click.argument("targets", nargs=-1, required=True)
    @pass_session
    @fs_command
    def rm(session, recursive, force, targets):
        """Remove files (and with -r, directories)."""
        for t in targets:
            path = session.resolve(t)
            try:
                if recursive:
                    session.engine.remove_recursive(path)
                else:
                    session.engine.remove(path)
            except NotFound:
                if not force:
                    raise

    @main.command("cp")
    @click.option("-r", "-R", "recursive", is_flag=True, help="Copy directories recursively.")
    @click.argument("src")
    @click.argument("dst")
    @pass_session
    @fs_command
    def cp(session, recursive, src, dst):
        """Copy a file, or with -r a directory tree."""
        src, dst = session.resolve(src), session.resolve(dst)
        if recursive:
            session.engine.copy_recursive(src, dst)
        else:
            session.engine.copy_file(src, dst)

    @main.command("mv")
    @click.argument("src")
    @click.argument("dst")
    @pass_session
    @fs_command
    def mv(session, src, dst):
        """Move or rename."""
        session.engine.move(session.resolve(src), session.resolve(dst))

    @main.command("ln")
    @click.option("-s", "symbolic", is_flag=True, help="Create a symbolic link.")
    @click.argument("target")
    @click.argument("link")
    @pass_session
    @fs_command
    def ln(session, symbolic, target, link):
        """Create a symbolic link LINK pointing at TARGET."""
        if not symbolic:
            raise click.UsageError("hard links not supported; use ln -s")
        session.engine.symlink(target, session.resolve(link))

    @main.command("readlink")
    @click.argument("path")
    @pass_session
    @fs_command
    def readlink(session, path):
        """Print a symlink's target."""
        click.echo(session.engine.readlink(session.resolve(path)))

    @main.command("chmod")
    @click.argument("mode")
    @click.argument("paths", nargs=-1, required=True)
    @pass_session
    @fs_command
    def chmod(session, mode, paths):
        """Set octal permissions (e.g. 755)."""
        for p in paths:
            session.engine.chmod(session.resolve(p), mode)

    @main.command("chown")
    @click.argument("owner")
    @click.argument("paths", nargs=-1, required=True)
    @pass_session
    @fs_command
    def chown(session, owner, paths):
        """Set owner as UID[:GID]."""
        for p in paths:
            session.engine.chown(session.resolve(p), owner)

    @main.command("stat")
    @click.argument("paths", nargs=-1, required=True)
    @pass_session
    @fs_command
    def stat(session, paths):
        """Show metadata."""
        console = console_for(session)
        for p in paths:
            path = session.resolve(p)
            entry = session.engine.stat(path)
            if entry is None:
                raise NotFound("stat", path)
            print_stat(console, path, entry, as_json=session.json_output)
