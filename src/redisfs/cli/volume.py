"""Volume commands: list, create, switch, info."""

from __future__ import annotations

import click

from ..output import print_json
from ._common import console_for, fs_command, pass_session


def register_volume_commands(main: click.Group) -> None:
    """Register the vol command group."""

    @main.group()
    def vol():
        """Volumes — independent filesystems in one database.

        \b
        List:    redisfs vol list
        Create:  redisfs vol create work
        Switch:  vol switch work   (inside the shell)
        """

    @vol.command("list")
    @pass_session
    @fs_command
    def vol_list(session):
        """List initialized volumes; the current one is starred."""
        volumes = session.engine.list_volumes()
        if session.json_output:
            print_json(console_for(session), volumes)
            return
        for name in volumes:
            marker = "* " if name == session.volume else "  "
            click.echo(f"{marker}{name}")

    @vol.command("create")
    @click.argument("name")
    @pass_session
    @fs_command
    def vol_create(session, name):
        """Initialize a volume and make it active."""
        created = session.create_volume(name)
        state = "created and active" if created else "already exists; now active"
        click.echo(f"Volume '{name}' {state}")

    @vol.command("switch")
    @click.argument("name")
    @pass_session
    @fs_command
    def vol_switch(session, name):
        """Make an existing volume active."""
        session.switch_volume(name)

    @vol.command("info")
    @pass_session
    def vol_info(session):
        """Show the current volume and directory."""
        info = {"volume": session.volume, "cwd": session.cwd, "server": session.address}
        if session.json_output:
            print_json(console_for(session), info)
            return
        click.echo(f"Volume: {session.volume}")
        click.echo(f"CWD:    {session.cwd}")
        click.echo(f"Server: {session.address}")
