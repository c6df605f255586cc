"""Search commands: find and grep."""

from __future__ import annotations

import click

from ..output import print_json
from ..search import grep as grep_files
from ._common import console_for, fs_command, pass_session


def register_search_commands(main: click.Group) -> None:
    """Register find and grep."""

    @main.command("find")
    @click.argument("path", required=False)
    @click.option("-name", "--name", "name_pattern", default=None, help="Glob on the basename (* and ?).")
    @click.option("-type", "--type", "type_filter", default=None, help="f, d or l.")
    @pass_session
    @fs_command
    def find(session, path, name_pattern, type_filter):
        """Find entries below PATH (default: cwd)."""
        found = session.engine.find(
            session.resolve(path), name_pattern=name_pattern, type_filter=type_filter
        )
        if session.json_output:
            print_json(
                console_for(session),
                [{"path": f.path, "type": f.entry.type.value} for f in found],
            )
            return
        for f in found:
            click.echo(f.path)

    @main.command("grep")
    @click.option("-r", "recursive", is_flag=True, help="Search directories recursively.")
    @click.option("-i", "ignore_case", is_flag=True, help="Case-insensitive matching.")
    @click.option("-n", "line_numbers", is_flag=True, help="Show line numbers.")
    @click.argument("pattern")
    @click.argument("path")
    @pass_session
    @fs_command
    def grep(session, recursive, ignore_case, line_numbers, pattern, path):
        """Print lines of files matching a regular expression."""
        matches = grep_files(
            session.engine,
            pattern,
            session.resolve(path),
            recursive=recursive,
            ignore_case=ignore_case,
        )
        if session.json_output:
            print_json(console_for(session), [m.model_dump() for m in matches])
            return
        for m in matches:
            prefix = f"{m.path}:" if recursive else ""
            if line_numbers:
                prefix += f"{m.line_no}:"
            click.echo(f"{prefix}{m.line}")
