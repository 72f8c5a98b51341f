"""Container inspector.

Turns the JSON printed by ``docker inspect`` into a :class:`ContainerSnapshot`.
Only the fields the status checker needs are read: run state, environment,
published ports and bind mounts.
"""

from __future__ import annotations

import json
from typing import Any

from swarmdeploy.base.errors import (
    ContainerNotFoundError,
    RemoteCommandError,
    ServiceUnreachableError,
)
from swarmdeploy.deployment.channel import RemoteChannel
from swarmdeploy.deployment.models import ContainerSnapshot
from swarmdeploy.deployment.runtime_helper import inspect_command
from swarmdeploy.utils.logger import get_logger

logger = get_logger("inspector")

_NOT_FOUND_MARKERS = ("No such object", "No such container")


def inspect_container(channel: RemoteChannel, name: str) -> ContainerSnapshot:
    """Inspect container ``name`` on the remote host.

    Runs exactly one ``docker inspect`` command.

    Raises:
        ContainerNotFoundError: If the runtime knows no such container
        ServiceUnreachableError: If the command fails otherwise or its output
            cannot be parsed
    """
    command = inspect_command(name)
    try:
        raw = channel.run(command)
    except RemoteCommandError as e:
        text = e.output.decode(errors="replace")
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            raise ContainerNotFoundError(f"no container named {name}") from e
        raise ServiceUnreachableError(f"failed to inspect {name}: {e}") from e

    snapshot = parse_inspect_output(raw)
    logger.debug(f"Inspected {name}: running={snapshot.running}, ports={snapshot.ports}")
    return snapshot


def parse_inspect_output(raw: bytes | str) -> ContainerSnapshot:
    """Parse captured ``docker inspect`` output (a JSON array) into a snapshot.

    Only the first record is used. Environment entries split at the first
    ``=``; for each port the first binding with a numeric host port wins.

    Raises:
        ContainerNotFoundError: If the array is empty
        ServiceUnreachableError: If the output is not an inspect record array
    """
    try:
        records = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ServiceUnreachableError(f"unparsable inspect output: {e}") from e

    if not isinstance(records, list):
        raise ServiceUnreachableError("inspect output is not a JSON array")
    if not records:
        raise ContainerNotFoundError("inspect returned no containers")

    record = records[0]
    if not isinstance(record, dict):
        raise ServiceUnreachableError("inspect record is not a JSON object")

    state = record.get("State") or {}
    config = record.get("Config") or {}
    host_config = record.get("HostConfig") or {}

    return ContainerSnapshot(
        running=bool(state.get("Running", False)),
        env=_parse_env(config.get("Env") or []),
        ports=_parse_port_bindings(host_config.get("PortBindings") or {}),
        volumes=_parse_mounts(record.get("Mounts") or []),
    )


def _parse_env(entries: list[Any]) -> dict[str, str]:
    env = {}
    for entry in entries:
        if not isinstance(entry, str) or "=" not in entry:
            continue
        key, value = entry.split("=", 1)
        env[key] = value
    return env


def _parse_port_bindings(bindings: dict[str, Any]) -> dict[str, int]:
    ports = {}
    for spec, hosts in bindings.items():
        for binding in hosts or []:
            try:
                ports[spec] = int((binding or {}).get("HostPort", ""))
                break
            except (TypeError, ValueError):
                continue
    return ports


def _parse_mounts(mounts: list[Any]) -> dict[str, str]:
    volumes = {}
    for mount in mounts:
        if not isinstance(mount, dict):
            continue
        destination = mount.get("Destination")
        if destination:
            volumes[destination] = mount.get("Source", "")
    return volumes
