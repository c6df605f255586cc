"""
Rendering for the CLI and the shell.

Plain output goes through a rich ``Console``; with ``--json`` every
printer emits the equivalent JSON document instead. Names are wrapped in
``Text`` objects so brackets in file names are never read as markup.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from .meta import format_time, mode_string
from .models import DirEntry, Entry, EntryType, TreeResult

STYLES = {
    EntryType.DIR: "bold blue",
    EntryType.SYMLINK: "cyan",
    EntryType.FILE: "",
}


def make_console(color: bool = True) -> Console:
    """Console writing to the current stdout."""
    return Console(no_color=not color, highlight=False, soft_wrap=True)


def entry_name(name: str, entry_type: Optional[EntryType]) -> Text:
    return Text(name, style=STYLES.get(entry_type, ""))


def print_json(console: Console, data: Any) -> None:
    console.print(json.dumps(data, indent=2), markup=False)


def _visible(entries: list[DirEntry], show_all: bool) -> list[DirEntry]:
    return [e for e in entries if show_all or not e.name.startswith(".")]


def print_listing(console: Console, entries: list[DirEntry], show_all: bool = False, as_json: bool = False) -> None:
    """Short ``ls``: one name per line, dotfiles hidden unless ``show_all``."""
    entries = _visible(entries, show_all)
    if as_json:
        print_json(console, [e.name for e in entries])
        return
    for e in entries:
        console.print(entry_name(e.name, e.entry.type if e.entry else None))


def print_long_listing(
    console: Console, entries: list[DirEntry], show_all: bool = False, as_json: bool = False
) -> None:
    """``ls -l``. Names with no metadata print as ``?`` rows."""
    entries = _visible(entries, show_all)
    if as_json:
        rows = []
        for e in entries:
            row: dict[str, Any] = {"name": e.name}
            if e.entry is not None:
                row.update(
                    type=e.entry.type.value,
                    mode=e.entry.mode,
                    uid=e.entry.uid,
                    gid=e.entry.gid,
                    size=e.entry.size,
                    mtime=e.entry.mtime,
                )
            rows.append(row)
        print_json(console, rows)
        return

    table = Table(box=None, show_header=False, pad_edge=False)
    for justify in ("left", "left", "left", "right", "left", "left"):
        table.add_column(justify=justify, no_wrap=True)

    for e in entries:
        if e.entry is None:
            table.add_row("??????????", "?", "?", "?", "?", Text(e.name))
            continue
        name = entry_name(e.name, e.entry.type)
        if e.entry.is_symlink and e.entry.link_target:
            name.append(f" -> {e.entry.link_target}")
        table.add_row(
            mode_string(e.entry),
            e.entry.uid,
            e.entry.gid,
            str(e.entry.size),
            format_time(e.entry.mtime),
            name,
        )
    console.print(table)


def print_stat(console: Console, path: str, entry: Entry, as_json: bool = False) -> None:
    if as_json:
        data = {"path": path, **entry.model_dump(mode="json", exclude_none=True)}
        print_json(console, data)
        return

    lines = [
        ("File", path),
        ("Type", entry.type.value),
        ("Mode", f"{mode_string(entry)} ({entry.mode})"),
        ("UID", entry.uid),
        ("GID", entry.gid),
        ("Size", str(entry.size)),
        ("CTime", format_time(entry.ctime)),
        ("MTime", format_time(entry.mtime)),
        ("ATime", format_time(entry.atime)),
    ]
    if entry.link_target:
        lines.append(("Link", entry.link_target))
    for label, value in lines:
        console.print(Text(f"{label:>6}: {value}"))


def _tree_json(result: TreeResult) -> dict:
    return {
        "tree": result.root.model_dump(mode="json"),
        "directories": result.directories,
        "files": result.files,
    }


def print_tree(console: Console, result: TreeResult, as_json: bool = False) -> None:
    """Box-drawn tree followed by ``N directories, M files``."""
    if as_json:
        print_json(console, _tree_json(result))
        return

    root = Tree(entry_name(result.root.name, result.root.type), guide_style="dim")
    stack = [(root, result.root)]
    while stack:
        branch, node = stack.pop()
        for child in node.children:
            sub = branch.add(entry_name(child.name, child.type))
            if child.children:
                stack.append((sub, child))
    console.print(root)
    console.print()
    console.print(f"{result.directories} directories, {result.files} files", markup=False)
