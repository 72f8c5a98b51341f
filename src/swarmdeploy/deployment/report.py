"""Human-readable report of a checked Swarm node."""

from __future__ import annotations

from swarmdeploy.base.errors import ConfigurationError
from swarmdeploy.deployment.models import SwarmSnapshot, key_address
from swarmdeploy.utils.logger import get_logger

logger = get_logger("report")


def report(snapshot: SwarmSnapshot) -> dict[str, str]:
    """Flatten ``snapshot`` into ordered display rows.

    The account decoded from a deployed key file wins over the one recorded in
    the container environment.
    """
    account = snapshot.bzz_account
    if snapshot.key_json:
        try:
            account = key_address(snapshot.key_json)
        except ConfigurationError as e:
            logger.error(f"Failed to retrieve account from key file: {e}")

    rows = {
        "Data directory": snapshot.datadir,
        "Listener port": str(snapshot.port),
        "Bzz port": str(snapshot.bzz_port),
        "Peer count (all total)": str(snapshot.peers_total),
        "Bzz account": account,
    }
    if snapshot.enode:
        rows["Enode"] = snapshot.enode
    return rows
