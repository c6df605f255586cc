"""Shell command: start the interactive REPL explicitly."""

from __future__ import annotations

import click

from ._common import pass_session


def register_shell_commands(main: click.Group) -> None:
    """Register the shell command."""

    @main.command("shell")
    @pass_session
    @click.pass_context
    def shell(ctx, session):
        """Interactive shell (same as running with no command)."""
        from ..shell import run_shell

        config = ctx.find_root().meta.get("redisfs.config")
        run_shell(session, history_file=config.history_file if config else None)
