"""Swarm node status checker.

Determines whether a Swarm node of a given network and role is running on a
remote host and, if so, what configuration it runs with. Everything is read
from the container itself: the inspect record for environment, ports and
volumes, and a few read-only commands executed inside the container for the
node identity, the genesis payload and any deployed credentials.
"""

from __future__ import annotations

from swarmdeploy.base.errors import (
    ContainerNotFoundError,
    RemoteCommandError,
    ServiceOfflineError,
    ServiceUnreachableError,
)
from swarmdeploy.deployment.channel import RemoteChannel, check_port
from swarmdeploy.deployment.inspector import inspect_container
from swarmdeploy.deployment.models import (
    CONTAINER_DATADIR,
    ContainerSnapshot,
    ProbeResult,
    Role,
    SwarmSnapshot,
)
from swarmdeploy.deployment.runtime_helper import LEGACY_COMPOSE, container_name, exec_command
from swarmdeploy.utils.config import get_config_value
from swarmdeploy.utils.logger import get_logger

logger = get_logger("status")

NODE_ID_COMMAND = f"geth --exec admin.nodeInfo.id attach {CONTAINER_DATADIR}/bzzd.ipc"
GENESIS_PATH = "/genesis.json"
KEY_PATH = "/bzzkey.json"
PASS_PATH = "/bzzpass"


def probe(channel: RemoteChannel, command: str) -> ProbeResult:
    """Run one read-only command, capturing failure instead of raising."""
    try:
        return ProbeResult(command=command, output=channel.run(command))
    except RemoteCommandError as e:
        return ProbeResult(command=command, output=e.output, error=e)


def check_swarm_node(
    channel: RemoteChannel,
    network: str,
    role: Role,
    compose: str = LEGACY_COMPOSE,
) -> SwarmSnapshot:
    """Check the Swarm node of ``network`` and ``role`` on the channel's host.

    Args:
        channel: Transport to the remote host
        network: Compose project name of the deployment
        role: Which node flavor to look for
        compose: Compose command the node was deployed with; decides the
            container naming scheme

    Returns:
        A fresh snapshot of the running node

    Raises:
        ServiceOfflineError: If no container exists or it is not running
        ServiceUnreachableError: If the container cannot be inspected or the
            node identity or genesis cannot be read from it, or its listener
            port cannot be determined
    """
    name = container_name(network, role, compose)
    logger.info(f"Checking {role} '{name}' on {channel.server}")

    try:
        container = inspect_container(channel, name)
    except ContainerNotFoundError as e:
        raise ServiceOfflineError() from e
    if not container.running:
        raise ServiceOfflineError()

    node_id = (
        probe(channel, exec_command(name, NODE_ID_COMMAND))
        .require()
        .decode(errors="replace")
        .strip()
        .strip('"')
    )
    genesis = probe(channel, exec_command(name, f"cat {GENESIS_PATH}")).require()

    key_json = probe(channel, exec_command(name, f"cat {KEY_PATH}")).value_or(b"").decode(
        errors="replace"
    )
    key_pass = probe(channel, exec_command(name, f"cat {PASS_PATH}")).value_or(b"").decode(
        errors="replace"
    )

    try:
        peers_total = int(container.env.get("TOTAL_PEERS", ""))
    except ValueError:
        peers_total = 0

    port = _listener_port(container)
    bzz_port = container.host_port(container.env.get("BZZPORT", "")) or 0

    _probe_reachability(channel, port)

    snapshot = SwarmSnapshot(
        container=container,
        role=role,
        node_id=node_id,
        genesis=genesis,
        datadir=container.volumes.get(CONTAINER_DATADIR, ""),
        port=port,
        bzz_port=bzz_port,
        peers_total=peers_total,
        bzz_account=container.env.get("BZZ_ACCOUNT", ""),
        key_json=key_json,
        key_pass=key_pass,
        enode=f"enode://{node_id}@{channel.address}:{port}",
    )
    logger.success(f"{role} on {channel.server} is running as {snapshot.enode}")
    return snapshot


def _listener_port(container: ContainerSnapshot) -> int:
    """Host port of the devp2p listener.

    Read through the ``PORT`` environment entry; without a usable one, the only
    published TCP binding other than the bzz port is taken.

    Raises:
        ServiceUnreachableError: If no single listener binding can be found
    """
    port = container.host_port(container.env.get("PORT", ""))
    if port:
        return port

    bzz_spec = container.env.get("BZZPORT", "").strip()
    if bzz_spec and "/" not in bzz_spec:
        bzz_spec = f"{bzz_spec}/tcp"
    candidates = [
        host_port
        for spec, host_port in container.ports.items()
        if spec.endswith("/tcp") and spec != bzz_spec
    ]
    if len(candidates) != 1:
        raise ServiceUnreachableError(
            f"cannot determine the listener port from bindings {container.ports}"
        )
    logger.debug(f"No usable PORT entry, using the only TCP binding {candidates[0]}")
    return candidates[0]


def _probe_reachability(channel: RemoteChannel, port: int) -> None:
    timeout = float(get_config_value("deployment.port_probe_timeout", 5))
    try:
        check_port(channel.address, port, timeout)
    except OSError as e:
        logger.warning(f"Swarm service seems unreachable on {channel.address}:{port}: {e}")
