"""Node status command.

Checks which Swarm node runs on a remote host and prints its configuration.
"""

import click

from swarmdeploy.base.errors import DeploymentError, RemoteCommandError, ServiceOfflineError
from swarmdeploy.cli.session import (
    load_config,
    open_channel,
    print_remote_failure,
    print_report,
    resolve_network,
)
from swarmdeploy.cli.styles import Messages, get_console
from swarmdeploy.deployment.models import Role
from swarmdeploy.deployment.report import report
from swarmdeploy.deployment.runtime_helper import get_compose_command
from swarmdeploy.deployment.status import check_swarm_node


@click.command()
@click.argument("server")
@click.option("--network", "-n", help="Network name (default: 'network' in config.yml)")
@click.option(
    "--role",
    type=click.Choice([role.value for role in Role]),
    default=Role.PEER.value,
    show_default=True,
    help="Which node flavor to check",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(),
    help="Configuration file (default: config.yml in the current directory)",
)
def status(server: str, network: str | None, role: str, config_path: str | None):
    """Show the Swarm node running on SERVER.

    SERVER is an SSH address of the form [user@]host[:port].

    Examples:

    \b
      $ swarmdeploy status node-1.example.org --network mynet
      $ swarmdeploy status deploy@10.0.0.5:2222 --role swarmboot
    """
    console = get_console()
    load_config(config_path)
    network = resolve_network(network)

    try:
        with open_channel(server) as channel:
            compose = get_compose_command(channel)
            snapshot = check_swarm_node(channel, network, Role(role), compose=compose)
    except ServiceOfflineError:
        console.print(Messages.warning(f"No {role} for network '{network}' is running on {server}"))
        return
    except RemoteCommandError as e:
        print_remote_failure(console, e)
        raise click.Abort() from None
    except DeploymentError as e:
        console.print(Messages.error(str(e)))
        raise click.Abort() from None

    print_report(console, f"{role} on {server}", report(snapshot))
