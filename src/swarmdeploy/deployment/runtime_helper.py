"""Container runtime command helpers for the remote host.

Selects the compose command (legacy ``docker-compose`` or the ``docker
compose`` plugin), derives container names from it, and builds the shell
commands the status checker and convergence driver send over the channel.

Examples:
    Basic usage::

        from swarmdeploy.deployment.runtime_helper import get_compose_command

        compose = get_compose_command(channel)
        # Returns: 'docker-compose' or 'docker compose'
"""

from __future__ import annotations

import os
import shlex

from swarmdeploy.base.errors import ConfigurationError, RemoteCommandError
from swarmdeploy.deployment.channel import RemoteChannel
from swarmdeploy.utils.config import get_config_value
from swarmdeploy.utils.logger import get_logger

logger = get_logger("runtime")

LEGACY_COMPOSE = "docker-compose"
PLUGIN_COMPOSE = "docker compose"
SUPPORTED_COMPOSE = (LEGACY_COMPOSE, PLUGIN_COMPOSE)

# Per-server cache of detected compose commands
_cached_compose_cmd: dict[str, str] = {}


def reset_compose_cache() -> None:
    """Forget every detected compose command."""
    _cached_compose_cmd.clear()


def get_compose_command(channel: RemoteChannel | None = None) -> str:
    """Get the compose command to use on the remote host.

    Checks the SWARMDEPLOY_COMPOSE env var, then ``deployment.compose_command``
    in config.yml, and auto-detects over ``channel`` if 'auto' or not set. The
    detected command is cached per server.

    Args:
        channel: Channel used for auto-detection; without one, 'auto' falls
            back to the legacy ``docker-compose``

    Returns:
        ``'docker-compose'`` or ``'docker compose'``

    Raises:
        ConfigurationError: If an unsupported compose command is configured
    """
    configured = get_config_value("deployment.compose_command", "auto") or "auto"

    env_compose = os.getenv("SWARMDEPLOY_COMPOSE")
    if env_compose:
        configured = env_compose

    configured = " ".join(str(configured).split())
    if configured in SUPPORTED_COMPOSE:
        return configured
    if configured != "auto":
        raise ConfigurationError(
            f"Unsupported compose command '{configured}', expected one of: "
            f"auto, {', '.join(SUPPORTED_COMPOSE)}"
        )

    if channel is None:
        return LEGACY_COMPOSE

    if channel.server in _cached_compose_cmd:
        return _cached_compose_cmd[channel.server]

    # Prefer the plugin when the host has it
    try:
        channel.run(f"{PLUGIN_COMPOSE} version")
        detected = PLUGIN_COMPOSE
    except RemoteCommandError as e:
        logger.debug(f"'{PLUGIN_COMPOSE}' unavailable on {channel.server}: {e}")
        detected = LEGACY_COMPOSE

    logger.info(f"Using '{detected}' on {channel.server}")
    _cached_compose_cmd[channel.server] = detected
    return detected


def container_name(network: str, role: str, compose: str = LEGACY_COMPOSE) -> str:
    """Name compose gives the first container of ``role`` in project ``network``.

    The legacy tool joins with underscores, the plugin with dashes.
    """
    separator = "-" if compose == PLUGIN_COMPOSE else "_"
    return separator.join([network, str(role), "1"])


def inspect_command(name: str) -> str:
    return f"docker inspect {shlex.quote(name)}"


def exec_command(name: str, command: str) -> str:
    """``docker exec`` wrapper; ``command`` is passed through unquoted."""
    return f"docker exec {shlex.quote(name)} {command}"


def remove_workdir_command(workdir: str) -> str:
    return f"rm -rf {shlex.quote(workdir)}"


def compose_up_command(workdir: str, network: str, compose: str, nocache: bool = False) -> str:
    """Shell command that (re)builds and (re)starts the project in ``workdir``.

    With ``nocache`` the image is rebuilt from scratch with fresh base layers
    before the service is recreated; otherwise build and recreate run as one
    ``up`` invocation.
    """
    project = f"{compose} -p {shlex.quote(network)}"
    if nocache:
        return (
            f"cd {shlex.quote(workdir)} && {project} build --pull --no-cache "
            f"&& {project} up -d --force-recreate"
        )
    return f"cd {shlex.quote(workdir)} && {project} up -d --build --force-recreate"
