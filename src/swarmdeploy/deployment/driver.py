"""Convergence driver.

Brings a remote host to the desired Swarm node configuration in one pass:

    Start -> Rendered -> Uploaded -> Building -> Succeeded | Failed

Artifacts are rendered, uploaded into a fresh scratch directory, and the
compose tool rebuilds and recreates the service from there. Once the upload
has succeeded the scratch directory is removed again whatever the outcome.
There is no retry and no rollback beyond that cleanup.
"""

from __future__ import annotations

import time

from swarmdeploy.base.errors import RemoteCommandError
from swarmdeploy.deployment.channel import RemoteChannel
from swarmdeploy.deployment.models import Role, SwarmConfig
from swarmdeploy.deployment.renderer import render_artifacts
from swarmdeploy.deployment.runtime_helper import (
    LEGACY_COMPOSE,
    compose_up_command,
    remove_workdir_command,
)
from swarmdeploy.utils.logger import get_logger

logger = get_logger("deployment")


def deploy_swarm(
    channel: RemoteChannel,
    network: str,
    bootnodes: list[str],
    config: SwarmConfig,
    nocache: bool,
    compose: str = LEGACY_COMPOSE,
    role: Role | None = None,
) -> None:
    """Deploy (or redeploy) a Swarm node on the channel's host.

    An existing service of the same network and role is overwritten.

    Args:
        channel: Transport to the remote host
        network: Compose project name
        bootnodes: Peer addresses for a peer node; ignored for a bootstrap node
        config: Merged node configuration
        nocache: Rebuild the image from scratch with freshly pulled base layers
        compose: Compose command to drive the build with
        role: Deployment role; derived from ``config.enode`` when omitted

    Raises:
        RemoteCommandError: If the upload or the build fails; carries the
            remote output
        ConfigurationError: If the configuration cannot be rendered
    """
    if role is None:
        role = Role.for_config(config)
    if role is Role.BOOTSTRAP:
        bootnodes = []

    logger.key_info(f"Deploying {role} for network '{network}' to {channel.server}")
    artifacts = render_artifacts(config, role, bootnodes, network)
    logger.info(f"Rendered {len(artifacts.files)} files into scratch directory {artifacts.workdir}")

    # Nothing to clean up until the upload succeeded
    channel.upload(artifacts.upload_map())
    logger.info(f"Uploaded deployment files to {channel.server}")

    command = compose_up_command(artifacts.workdir, network, compose, nocache=nocache)
    try:
        logger.info("Building and starting the service" + (" from scratch" if nocache else ""))
        start = time.time()
        channel.stream(command)
        logger.timing(f"Build and restart took {time.time() - start:.1f} seconds")
    except RemoteCommandError as e:
        logger.error(f"Deployment of {role} to {channel.server} failed: {e}")
        raise
    finally:
        _remove_workdir(channel, artifacts.workdir)

    logger.success(f"Deployed {role} for network '{network}' to {channel.server}")


def _remove_workdir(channel: RemoteChannel, workdir: str) -> None:
    try:
        channel.run(remove_workdir_command(workdir))
    except RemoteCommandError as e:
        logger.debug(f"Failed to remove scratch directory {workdir}: {e}")
