"""Merge observed state, declared defaults and operator answers.

Two explicit steps produce the configuration handed to the convergence driver:

1. :func:`initial_config` - what to offer the operator: every field the
   running node reports, falling back to :class:`DeploymentDefaults` for the
   rest. Genesis and network id always come from the operator's intent.
2. :func:`apply_overrides` - the operator's explicit answers on top of that.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from swarmdeploy.base.errors import ConfigurationError
from swarmdeploy.deployment.models import (
    DeploymentDefaults,
    Role,
    SwarmConfig,
    SwarmSnapshot,
)
from swarmdeploy.utils.logger import get_logger

logger = get_logger("merge")

# Fields the operator may answer; genesis and network id are fixed by intent
OVERRIDABLE_FIELDS = (
    "datadir",
    "port",
    "bzz_port",
    "peers_total",
    "bzz_account",
    "key_json",
    "key_pass",
    "enode",
)

# Values never written to the log
_SECRET_FIELDS = frozenset({"key_json", "key_pass"})


def initial_config(
    snapshot: SwarmSnapshot | None,
    defaults: DeploymentDefaults,
    genesis: bytes,
    network_id: int,
) -> SwarmConfig:
    """Build the configuration offered to the operator.

    Args:
        snapshot: What is currently deployed, or None for a first deployment
        defaults: Declared default of every collected field
        genesis: Genesis payload to deploy
        network_id: Network id to deploy

    Returns:
        Validated starting configuration. A peer snapshot carries its node
        identity over; a bootstrap snapshot does not, so a bootstrap node is
        redeployed as a bootstrap node.

    Raises:
        ConfigurationError: If the deployed credentials are inconsistent
    """
    fields: dict[str, Any] = {
        "genesis": genesis,
        "network_id": network_id,
        "datadir": defaults.datadir,
        "port": defaults.port,
        "bzz_port": defaults.bzz_port,
        "peers_total": defaults.peers_total,
    }
    if snapshot is None:
        logger.debug("No running node, offering declared defaults")
        return SwarmConfig.create(**fields)

    observed = {
        "datadir": snapshot.datadir,
        "port": snapshot.port,
        "bzz_port": snapshot.bzz_port,
        "peers_total": snapshot.peers_total,
        "bzz_account": snapshot.bzz_account,
    }
    # Key and passphrase are read separately and carried over only as a pair
    if snapshot.key_json and snapshot.key_pass:
        observed["key_json"] = snapshot.key_json
        observed["key_pass"] = snapshot.key_pass
    elif snapshot.key_json or snapshot.key_pass:
        logger.warning("Deployed credentials are incomplete, not carrying them over")
    if snapshot.role is Role.PEER:
        observed["enode"] = snapshot.enode

    # Zero and empty mean the node did not report the field
    fields.update({key: value for key, value in observed.items() if value})
    return SwarmConfig.create(**fields)


def apply_overrides(config: SwarmConfig, overrides: Mapping[str, Any]) -> SwarmConfig:
    """Apply the operator's explicit answers and re-validate.

    Every answered field is logged as overridden or as keeping its offered
    value.

    Raises:
        ConfigurationError: For an unknown field or an invalid result
    """
    unknown = sorted(set(overrides) - set(OVERRIDABLE_FIELDS))
    if unknown:
        raise ConfigurationError(f"cannot override field(s): {', '.join(unknown)}")

    current = config.model_dump()
    for key, value in overrides.items():
        if value == current[key]:
            logger.debug(f"{key}: kept offered value")
        elif key in _SECRET_FIELDS:
            logger.info(f"{key}: overridden")
        else:
            logger.info(f"{key}: overridden {current[key]!r} -> {value!r}")

    return SwarmConfig.create(**{**current, **overrides})
