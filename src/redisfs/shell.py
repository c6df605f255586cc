"""
redis-fs Shell — interactive REPL over a Redis-backed filesystem.

Every line is tokenized like a POSIX shell would (quotes, backslashes)
and handed to the same click group the one-shot CLI uses, with the
shell's ``Session`` as the context object. Working directory and volume
therefore persist from one line to the next.

Extras on top of the CLI commands:
    echo text > file    Write text to a file
    echo text >> file   Append text to a file
    help                Show commands
    exit / quit         Leave the shell
"""

from __future__ import annotations

import readline
import shlex
from pathlib import Path
from typing import Callable, Optional

import click
from rich.console import Console

from . import __version__
from .session import Session

console = Console(highlight=False)

MAX_PROMPT_PATH = 30
REDIRECTS = {">": "write", ">>": "append"}


def tokenize(line: str) -> list[str]:
    """Split a command line; ``>`` and ``>>`` always come out as their own tokens."""
    lexer = shlex.shlex(line, posix=True, punctuation_chars=">")
    lexer.whitespace_split = True
    lexer.commenters = ""
    return list(lexer)


def rewrite_redirect(parts: list[str]) -> list[str]:
    """Turn ``echo words > file`` into ``write file words`` (``>>`` into ``append``).

    Raises:
        ValueError: A redirect with no target, or on a command other than echo.
    """
    positions = [i for i, tok in enumerate(parts) if tok in REDIRECTS]
    if not positions:
        return parts
    idx = positions[0]
    if parts[0] != "echo":
        raise ValueError(f"{parts[0]}: output redirection is only supported for echo")
    if idx + 1 >= len(parts):
        raise ValueError("syntax error near unexpected token `newline'")
    if len(positions) > 1 or idx + 2 != len(parts):
        raise ValueError("only one redirection target is supported")
    return [REDIRECTS[parts[idx]], parts[idx + 1], *parts[1:idx]]


def prompt_path(cwd: str, max_len: int = MAX_PROMPT_PATH) -> str:
    """Shorten long paths to ``/.../parent/leaf`` (or ``/.../leaf``)."""
    if len(cwd) <= max_len:
        return cwd
    parts = cwd.split("/")
    if len(parts) <= 2:
        return cwd
    shortened = "/.../" + "/".join(parts[-2:])
    if len(shortened) <= max_len:
        return shortened
    return "/.../" + parts[-1]


def build_prompt(session: Session) -> str:
    text = f"redis-fs:{session.volume}:{prompt_path(session.cwd)}> "
    if session.color:
        return f"\001\033[32m\002{text}\001\033[0m\002"
    return text


def make_completer(session: Session, commands: list[str]) -> Callable[[str, int], Optional[str]]:
    """Tab completion: command names first, then paths in the session's volume."""

    def _completer(text: str, state: int) -> Optional[str]:
        line = readline.get_line_buffer()
        if not line.strip() or (len(line.split()) <= 1 and not line.endswith(" ")):
            options = [c for c in commands if c.startswith(text)]
        else:
            options = _complete_path(session, text)
        return options[state] if state < len(options) else None

    return _completer


def _complete_path(session: Session, text: str) -> list[str]:
    head, _, prefix = text.rpartition("/")
    if text.startswith("/") and not head:
        head = "/"
    try:
        entries = session.engine.read_dir_with_meta(session.resolve(head))
    except Exception:
        return []
    base = f"{head}/" if head and head != "/" else head
    options = []
    for e in entries:
        if e.name.startswith(prefix):
            suffix = "/" if e.entry is not None and e.entry.is_dir else ""
            options.append(f"{base}{e.name}{suffix}")
    return options


def dispatch(session: Session, parts: list[str]) -> None:
    """Run one tokenized line through the click command group."""
    from .cli import main

    try:
        main.main(args=parts, prog_name="", obj=session, standalone_mode=False)
    except click.ClickException as exc:
        console.print(exc.format_message(), style="red", markup=False)
    except click.Abort:
        console.print("Aborted.", style="red")


def run_shell(session: Session, history_file: Optional[str] = None) -> None:
    """Run the interactive REPL loop.

    Sets up tab completion, loads command history, and enters
    the prompt loop until ``exit``, ``quit`` or end of input.
    """
    from .cli import main

    commands = sorted(list(main.commands) + ["help", "exit", "quit"])
    readline.set_completer(make_completer(session, commands))
    readline.set_completer_delims(" \t\n")
    readline.parse_and_bind("tab: complete")

    hist_file = Path(history_file).expanduser() if history_file else None
    if hist_file is not None:
        try:
            readline.read_history_file(str(hist_file))
        except (FileNotFoundError, OSError):
            pass

    console.print(
        f"\n  [bold cyan]redis-fs[/] v{__version__}  "
        f"connected to [bold]{session.address or 'redis'}[/], volume [bold]{session.volume}[/]\n"
        f"  Type [bold]help[/] for commands, [bold]exit[/] to leave.\n"
    )

    while True:
        try:
            line = input(build_prompt(session))
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        line = line.strip()
        if not line:
            continue

        try:
            parts = rewrite_redirect(tokenize(line))
        except ValueError as exc:
            console.print(f"[red]Error:[/] {exc}")
            continue
        if not parts:
            continue

        cmd = parts[0]
        if cmd in ("exit", "quit"):
            break
        if cmd == "help":
            parts = ["--help"]
        elif cmd == "shell":
            console.print("Already in the shell.")
            continue

        try:
            dispatch(session, parts)
        except Exception as exc:
            console.print(f"[red]Error:[/] {exc}")

    if hist_file is not None:
        try:
            hist_file.parent.mkdir(parents=True, exist_ok=True)
            readline.write_history_file(str(hist_file))
        except OSError:
            pass
