"""Swarm node deployment command.

Checks what is currently running on the target host, asks the operator for
every deployment setting (offering the running or default value), deploys,
and prints the configuration of the freshly started node.
"""

import json
import time
from pathlib import Path
from typing import Any

import click
from eth_keyfile import decode_keyfile_json

from swarmdeploy.base.errors import (
    ConfigurationError,
    DeploymentError,
    RemoteCommandError,
    ServiceOfflineError,
    ServiceUnreachableError,
)
from swarmdeploy.cli.session import (
    load_config,
    open_channel,
    print_remote_failure,
    print_report,
    resolve_network,
)
from swarmdeploy.cli.styles import Messages, get_console
from swarmdeploy.deployment.driver import deploy_swarm
from swarmdeploy.deployment.merge import apply_overrides, initial_config
from swarmdeploy.deployment.models import (
    DeploymentDefaults,
    Role,
    SwarmSnapshot,
    check_bootnodes,
    key_address,
)
from swarmdeploy.deployment.report import report
from swarmdeploy.deployment.runtime_helper import get_compose_command
from swarmdeploy.deployment.status import check_swarm_node
from swarmdeploy.utils.config import get_config_value
from swarmdeploy.utils.logger import get_logger

logger = get_logger("cli")


def read_genesis(path: str) -> tuple[bytes, int | None]:
    """Read a genesis file and the chain id it declares, if any."""
    payload = Path(path).read_bytes()
    try:
        genesis = json.loads(payload)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}", param_hint="--genesis") from e
    chain_id = (genesis.get("config") or {}).get("chainId") if isinstance(genesis, dict) else None
    return payload, int(chain_id) if chain_id is not None else None


def verify_passphrase(key_json: str, passphrase: str) -> None:
    """Check that ``passphrase`` decrypts ``key_json``.

    Raises:
        ConfigurationError: If the key cannot be decrypted
    """
    try:
        decode_keyfile_json(json.loads(key_json), passphrase.encode())
    except (ValueError, KeyError, TypeError) as e:
        raise ConfigurationError(f"Failed to decrypt key with given passphrase: {e}") from e


def _ask(text: str, offered: Any, assume_yes: bool, value_type=str) -> Any:
    if assume_yes and offered not in (None, ""):
        return offered
    return click.prompt(text, default=offered if offered not in (None, "") else None, type=value_type)


@click.command()
@click.argument("server")
@click.option("--network", "-n", help="Network name (default: 'network' in config.yml)")
@click.option(
    "--genesis",
    "genesis_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Genesis JSON file (default: 'genesis_file' in config.yml)",
)
@click.option("--network-id", type=int, help="Network id (default: config.chainId of the genesis)")
@click.option(
    "--bootnode",
    "bootnodes",
    multiple=True,
    help="enode URL of a peer to bootstrap from; repeatable (default: 'bootnodes' in config.yml)",
)
@click.option(
    "--boot/--node",
    "boot",
    default=None,
    help="Deploy the network's bootstrap node or a peer node (default: the role of the node already "
    "running, else derived from the configuration)",
)
@click.option(
    "--key-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Encrypted account key JSON (asked for when no key is deployed yet)",
)
@click.option(
    "--rebuild/--no-rebuild",
    default=None,
    help="Rebuild the image from scratch (asked for when a node already runs)",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Accept every offered value")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(),
    help="Configuration file (default: config.yml in the current directory)",
)
def deploy(
    server: str,
    network: str | None,
    genesis_path: str | None,
    network_id: int | None,
    bootnodes: tuple[str, ...],
    boot: bool | None,
    key_file: str | None,
    rebuild: bool | None,
    assume_yes: bool,
    config_path: str | None,
):
    """Deploy a Swarm node to SERVER.

    SERVER is an SSH address of the form [user@]host[:port]. An existing node
    of the same network and role is reconfigured and restarted.

    Examples:

    \b
      # First node of a network
      $ swarmdeploy deploy node-1.example.org -n mynet --genesis genesis.json --boot

      # Peer node joining it
      $ swarmdeploy deploy node-2.example.org -n mynet --genesis genesis.json \\
          --bootnode enode://<id>@node-1.example.org:30399 --key-file bzzkey.json --node
    """
    console = get_console()
    load_config(config_path)
    network = resolve_network(network)

    genesis_path = genesis_path or get_config_value("genesis_file")
    if not genesis_path:
        raise click.UsageError("No genesis configured: pass --genesis or set 'genesis_file' in config.yml")
    genesis, chain_id = read_genesis(genesis_path)
    network_id = network_id if network_id is not None else chain_id
    if network_id is None:
        raise click.UsageError("The genesis declares no config.chainId: pass --network-id")

    bootnodes = list(bootnodes) or [str(b) for b in get_config_value("bootnodes", []) or []]
    try:
        check_bootnodes(bootnodes)
    except ConfigurationError as e:
        raise click.BadParameter(str(e), param_hint="--bootnode") from e
    role = None if boot is None else Role.BOOTSTRAP if boot else Role.PEER

    try:
        with open_channel(server) as channel:
            compose = get_compose_command(channel)
            role, snapshot = _check_existing(channel, network, role, compose)

            config = initial_config(snapshot, DeploymentDefaults.from_config(), genesis, network_id)
            overrides = _collect_overrides(config, key_file, assume_yes)
            merged = apply_overrides(config, overrides)
            if role is None:
                role = Role.for_config(merged)
                logger.info(f"No node running and no role given, deploying {role}")

            nocache = False
            if snapshot is not None:
                if rebuild is not None:
                    nocache = rebuild
                elif not assume_yes:
                    nocache = click.confirm("Should the node be built from scratch?", default=False)

            deploy_swarm(channel, network, bootnodes, merged, nocache, compose=compose, role=role)

            console.print(Messages.success(f"Deployed {role} to {server}"))
            wait = float(get_config_value("deployment.boot_wait", 3))
            logger.info("Waiting for node to finish booting")
            time.sleep(wait)

            try:
                fresh = check_swarm_node(channel, network, role, compose=compose)
            except DeploymentError as e:
                console.print(Messages.warning(f"Deployed node is not reporting yet: {e}"))
                return
    except RemoteCommandError as e:
        print_remote_failure(console, e)
        raise click.Abort() from None
    except DeploymentError as e:
        console.print(Messages.error(str(e)))
        raise click.Abort() from None

    print_report(console, f"{role} on {server}", report(fresh))


def _check_existing(
    channel, network: str, role: Role | None, compose: str
) -> tuple[Role | None, SwarmSnapshot | None]:
    """Role and snapshot of the node a deployment replaces.

    Without an explicit role a running peer is looked for first, then a
    bootstrap node. The role stays None when neither exists.
    """
    for candidate in (role,) if role is not None else (Role.PEER, Role.BOOTSTRAP):
        try:
            return candidate, check_swarm_node(channel, network, candidate, compose=compose)
        except ServiceOfflineError:
            continue
        except ServiceUnreachableError as e:
            logger.warning(f"Existing {candidate} could not be queried, offering defaults: {e}")
            return candidate, None
    return role, None


def _collect_overrides(config, key_file: str | None, assume_yes: bool) -> dict[str, Any]:
    """Ask for every collected field, offering the value already in ``config``."""
    overrides: dict[str, Any] = {
        "datadir": _ask("Where should data be stored on the remote machine?", config.datadir, assume_yes),
        "port": _ask("Which TCP/UDP port to listen on?", config.port, assume_yes, int),
        "bzz_port": _ask("Which bzz port to listen on?", config.bzz_port, assume_yes, int),
        "peers_total": _ask("How many peers to allow connecting?", config.peers_total, assume_yes, int),
    }

    offered_account = config.bzz_account
    if not config.key_json:
        if key_file:
            key_json = Path(key_file).read_text()
        else:
            key_json = click.prompt("Please paste the bzzaccount's key JSON")
        passphrase = click.prompt(
            "What's the unlock password for the account? (won't be echoed)",
            hide_input=True,
            default="",
            show_default=False,
        )
        verify_passphrase(key_json, passphrase)
        overrides["key_json"] = key_json
        overrides["key_pass"] = passphrase
        offered_account = key_address(key_json)

    overrides["bzz_account"] = _ask("Please paste the bzzaccount", offered_account, assume_yes)
    return overrides
