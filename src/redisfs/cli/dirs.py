"""Directory commands: init, ls, mkdir, rmdir, cd, pwd, tree."""

from __future__ import annotations

import click

from .. import paths
from ..errors import NotFound
from ..models import DirEntry
from ..output import print_listing, print_long_listing, print_tree
from ._common import console_for, fs_command, pass_session


def register_dir_commands(main: click.Group) -> None:
    """Register the directory commands."""

    @main.command("init")
    @pass_session
    @fs_command
    def init(session):
        """Create the root directory of the current volume."""
        created = session.engine.init()
        state = "initialized" if created else "already initialized"
        click.echo(f"Volume '{session.volume}' {state}")

    @main.command("ls")
    @click.option("-l", "long_format", is_flag=True, help="Long listing.")
    @click.option("-a", "show_all", is_flag=True, help="Show dotfiles.")
    @click.argument("path", required=False)
    @pass_session
    @fs_command
    def ls(session, long_format, show_all, path):
        """List a directory (or describe a single entry)."""
        engine = session.engine
        target = session.resolve(path)
        entry = engine.stat(engine.resolve_symlink(target))
        if entry is None:
            raise NotFound("ls", target)
        if entry.is_dir:
            entries = engine.read_dir_with_meta(target)
        else:
            entries = [DirEntry(name=paths.basename(target), entry=engine.stat(target))]

        printer = print_long_listing if long_format else print_listing
        printer(console_for(session), entries, show_all=show_all, as_json=session.json_output)

    @main.command("mkdir")
    @click.option("-p", "parents", is_flag=True, help="Create parents; ignore existing.")
    @click.argument("dirs", nargs=-1, required=True)
    @pass_session
    @fs_command
    def mkdir(session, parents, dirs):
        """Create directories."""
        for d in dirs:
            session.engine.mkdir(session.resolve(d), parents=parents)

    @main.command("rmdir")
    @click.argument("dirs", nargs=-1, required=True)
    @pass_session
    @fs_command
    def rmdir(session, dirs):
        """Remove empty directories."""
        for d in dirs:
            session.engine.rmdir(session.resolve(d))

    @main.command("cd")
    @click.argument("path", required=False)
    @pass_session
    @fs_command
    def cd(session, path):
        """Change the working directory (``cd -`` goes back)."""
        session.cd(path)

    @main.command("pwd")
    @pass_session
    def pwd(session):
        """Print the working directory."""
        click.echo(session.cwd)

    @main.command("tree")
    @click.option("-L", "max_depth", type=int, default=0, help="Max depth (0 = unlimited).")
    @click.argument("path", required=False)
    @pass_session
    @fs_command
    def tree(session, max_depth, path):
        """Show a directory tree."""
        if max_depth < 0:
            raise click.BadParameter("must be >= 0", param_hint="-L")
        result = session.engine.tree(session.resolve(path), max_depth=max_depth)
        print_tree(console_for(session), result, as_json=session.json_output)
