"""Shared utilities for all CLI command modules.

Provides the session lookup, console construction and the error
translation every filesystem command goes through.
"""

from __future__ import annotations

import functools

import click
from rich.console import Console

from ..errors import FSError
from ..output import make_console
from ..session import Session

pass_session = click.make_pass_decorator(Session)


def console_for(session: Session) -> Console:
    """Console honouring the session's color setting."""
    return make_console(session.color)


def fs_command(func):
    """Turn filesystem errors into clean one-line CLI failures.

    ``rm: /tmp/x: No such file or directory`` instead of a traceback.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except FSError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper
