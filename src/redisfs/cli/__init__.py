"""
redis-fs CLI — a POSIX-style shell over a filesystem stored in Redis.

This package organizes the CLI into modular command groups.
Each group lives in its own module; the main Click group is defined
here and every subcommand is registered via a register function.

Run without a subcommand to get the interactive shell. Every shell line
is dispatched back into this same group with the shell's ``Session`` as
the context object, so the commands behave identically in both modes.

Entry point: redisfs.cli:main
"""

from __future__ import annotations

import click

from .. import __version__
from ..config import address, build_engine, load_config, setup_logging, should_color
from ..errors import FSError
from ..session import Session


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="redisfs")
@click.option("--host", default=None, help="Server hostname.")
@click.option("-p", "--port", type=int, default=None, help="Server port.")
@click.option("-s", "--socket", default=None, help="Unix socket path.")
@click.option("-a", "--password", default=None, help="Password (or REDISCLI_AUTH).")
@click.option("-n", "--db", type=int, default=None, help="Database number.")
@click.option("-u", "--uri", default=None, help="Server URI (redis://...).")
@click.option("--tls", is_flag=True, help="Enable TLS.")
@click.option("--cacert", default=None, type=click.Path(), help="CA certificate file.")
@click.option("--cert", default=None, type=click.Path(), help="Client certificate file.")
@click.option("--key", default=None, type=click.Path(), help="Client key file.")
@click.option("--volume", default=None, help="Filesystem volume (or REDIS_FS_VOLUME).")
@click.option("--json", "json_output", is_flag=True, help="JSON output.")
@click.option("--no-color", is_flag=True, help="Disable colors.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.pass_context
def main(ctx, host, port, socket, password, db, uri, tls, cacert, cert, key, volume, json_output, no_color, verbose):
    """redis-fs — a POSIX-like filesystem living inside Redis.

    \b
    One-shot:  redisfs ls -l /docs
    Shell:     redisfs
    """
    if isinstance(ctx.obj, Session):
        # Dispatched from the interactive shell; the session already exists.
        return

    setup_logging(verbose)
    config = load_config(
        host=host,
        port=port,
        socket=socket,
        password=password,
        db=db,
        uri=uri,
        tls=tls or None,
        cacert=cacert,
        cert=cert,
        key=key,
        volume=volume,
        json_output=json_output or None,
        color=False if no_color else None,
    )
    try:
        engine = build_engine(config)
    except FSError as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.obj = Session(
        engine,
        json_output=config.json_output,
        color=should_color(config),
        address=address(config),
    )
    ctx.meta["redisfs.config"] = config

    if ctx.invoked_subcommand is None:
        from ..shell import run_shell

        run_shell(ctx.obj, history_file=config.history_file)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .dirs import register_dir_commands
from .files import register_file_commands
from .search_cmd import register_search_commands
from .volume import register_volume_commands
from .shell_cmd import register_shell_commands

register_dir_commands(main)
register_file_commands(main)
register_search_commands(main)
register_volume_commands(main)
register_shell_commands(main)
