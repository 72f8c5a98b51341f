"""Helpers shared by the CLI commands.

Configuration loading, network name resolution, opening the SSH channel
(with a password fallback) and printing reports and remote failures.
"""

import click
import paramiko
from rich.console import Console
from rich.table import Table

from swarmdeploy.base.errors import RemoteCommandError
from swarmdeploy.cli.styles import Messages, Styles
from swarmdeploy.deployment.channel import SSHChannel
from swarmdeploy.utils.config import get_config_builder, get_config_value
from swarmdeploy.utils.log_filter import quiet_logger


def load_config(config_path: str | None) -> None:
    """Make ``config_path`` the default configuration for this invocation.

    Without an explicit path, ``config.yml`` in the working directory (or
    built-in defaults) applies.
    """
    if not config_path:
        return
    with quiet_logger("CONFIG"):
        try:
            get_config_builder(config_path, set_as_default=True)
        except FileNotFoundError as e:
            raise click.BadParameter(str(e), param_hint="--config") from e


def resolve_network(network: str | None) -> str:
    """Network name from ``--network`` or the ``network`` config key."""
    network = network or get_config_value("network")
    if not network:
        raise click.UsageError("No network name given: pass --network or set 'network' in config.yml")
    return str(network)


def open_channel(server: str) -> SSHChannel:
    """Connect to ``server``, asking for a password if key authentication fails."""
    try:
        return SSHChannel.connect(server)
    except RemoteCommandError as e:
        if not isinstance(e.__cause__, paramiko.AuthenticationException):
            raise
    password = click.prompt(f"What's the login password for {server}? (won't be echoed)", hide_input=True)
    return SSHChannel.connect(server, password=password)


def print_report(console: Console, title: str, rows: dict[str, str]) -> None:
    """Render report rows as a two column table."""
    table = Table(
        title=title,
        show_header=False,
        header_style=Styles.HEADER,
        border_style=Styles.DIM,
        expand=False,
    )
    table.add_column("Property", style=Styles.LABEL, no_wrap=True)
    table.add_column("Value", style=Styles.VALUE, overflow="fold")
    for key, value in rows.items():
        table.add_row(key, value or "-")
    console.print(table)


def print_remote_failure(console: Console, error: RemoteCommandError) -> None:
    """Print a remote failure together with whatever output the host produced."""
    console.print(Messages.error(str(error)))
    if error.command:
        console.print(f"  command: [command]{error.command}[/command]", highlight=False)
    if error.output:
        console.print(error.output.decode(errors="replace").rstrip(), markup=False, highlight=False)
