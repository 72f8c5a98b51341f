"""Data model for Swarm node deployment.

Everything that flows between the inspector, the status checker, the merge
step, the artifact renderer and the convergence driver is declared here:

- :class:`SwarmConfig` - the desired (or merged) node configuration, validated
- :class:`ContainerSnapshot` - parsed ``docker inspect`` output
- :class:`SwarmSnapshot` - what is currently deployed on a host
- :class:`DeploymentArtifacts` - rendered files plus their scratch directory
- :class:`Role` - bootstrap node or peer node
- :class:`ProbeResult` - outcome of one read-only remote command
- :class:`DeploymentDefaults` - declared defaults offered to the operator
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from eth_utils import add_0x_prefix, is_hex_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from swarmdeploy.base.errors import ConfigurationError, ServiceUnreachableError
from swarmdeploy.utils.config import get_config_value
from swarmdeploy.utils.logger import get_logger

logger = get_logger("deployment")

# Node state directory inside the container
CONTAINER_DATADIR = "/root/.ethereum"

# enode://<hex node id>@<host>:<port>[?discport=<port>]
_ENODE_PATTERN = re.compile(r"enode://[0-9a-fA-F]+@[A-Za-z0-9._\-]+:[0-9]+(\?discport=[0-9]+)?")


def checksum_address(value: str) -> str:
    """Return ``value`` in EIP-55 checksum form.

    Accepts addresses with or without the ``0x`` prefix.

    Raises:
        ValueError: If ``value`` is not a 20-byte hex address
    """
    if not is_hex_address(value):
        raise ValueError(f"invalid account address: {value!r}")
    return to_checksum_address(add_0x_prefix(value))


def key_address(key_json: str) -> str:
    """Extract the checksummed account address from an encrypted key blob.

    Only the plain ``address`` field of the keystore JSON is read; nothing is
    decrypted here.

    Raises:
        ConfigurationError: If the blob is not JSON or carries no valid address
    """
    try:
        data = json.loads(key_json)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"failed to decode key file: {e}") from e
    if not isinstance(data, dict) or not data.get("address"):
        raise ConfigurationError("key file carries no account address")
    try:
        return checksum_address(str(data["address"]))
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def check_bootnodes(bootnodes: list[str]) -> list[str]:
    """Return ``bootnodes`` unchanged after checking each is an enode URL.

    The joined list ends up on the node's shell command line.

    Raises:
        ConfigurationError: If an entry is not an enode URL
    """
    for bootnode in bootnodes:
        if not _ENODE_PATTERN.fullmatch(bootnode):
            raise ConfigurationError(f"invalid bootnode {bootnode!r}: expected enode://<node id>@<host>:<port>")
    return bootnodes


class SwarmConfig(BaseModel):
    """Desired configuration of one Swarm node.

    Also used for the merged configuration (snapshot + defaults + operator
    answers) handed to the convergence driver. Build instances through
    :meth:`create` so validation failures surface as
    :class:`~swarmdeploy.base.errors.ConfigurationError`.
    """

    model_config = ConfigDict(validate_assignment=False)

    network_id: int = Field(description="Chain / network id passed as --bzznetworkid")
    genesis: bytes = Field(description="Genesis payload, opaque")
    datadir: str = Field(default="", description="Host directory bound to the node state dir")
    port: int = Field(default=30399, description="devp2p listener port, TCP and UDP")
    bzz_port: int = Field(default=8500, description="bzz HTTP port, TCP")
    peers_total: int = Field(default=50, description="Maximum number of peers")
    bzz_account: str = Field(default="", description="Checksummed account address")
    key_json: str = Field(default="", description="Encrypted keystore JSON")
    key_pass: str = Field(default="", description="Passphrase for key_json")
    enode: str = Field(default="", description="Prior node identity, empty when none")

    @field_validator("port", "bzz_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"port {v} out of range 1..65535")
        return v

    @field_validator("peers_total")
    @classmethod
    def validate_peers(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"peer count {v} must not be negative")
        return v

    @field_validator("bzz_account")
    @classmethod
    def validate_account(cls, v: str) -> str:
        v = v.strip()
        return checksum_address(v) if v else ""

    @model_validator(mode="after")
    def validate_credentials(self) -> SwarmConfig:
        """Cross-check the passphrase, key blob and account."""
        if self.key_pass and not self.key_json:
            raise ValueError("a key passphrase was given without a key file")
        if self.key_json:
            try:
                address = key_address(self.key_json)
            except ConfigurationError as e:
                raise ValueError(str(e)) from e
            if not self.bzz_account:
                self.bzz_account = address
            elif self.bzz_account.lower() != address.lower():
                raise ValueError(
                    f"account {self.bzz_account} does not match key file account {address}"
                )
        return self

    @classmethod
    def create(cls, **fields: Any) -> SwarmConfig:
        """Validate ``fields`` into a config.

        Raises:
            ConfigurationError: If any field or cross-field check fails
        """
        try:
            return cls(**fields)
        except ValidationError as e:
            problems = "; ".join(_describe_error(err) for err in e.errors())
            raise ConfigurationError(f"invalid node configuration: {problems}") from e

    def has_credentials(self) -> bool:
        return bool(self.key_json)


def _describe_error(err: dict) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()))
    message = err.get("msg", "invalid value")
    # pydantic prefixes re-raised ValueErrors with "Value error, "
    message = message.removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


class Role(Enum):
    """Deployment role, doubling as the compose service name."""

    BOOTSTRAP = "swarmboot"
    PEER = "swarmnode"

    @classmethod
    def for_config(cls, config: SwarmConfig) -> Role:
        """A node with a known prior identity is a peer; otherwise it bootstraps."""
        return cls.PEER if config.enode else cls.BOOTSTRAP

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ContainerSnapshot:
    """Structured view of one ``docker inspect`` record.

    Attributes:
        running: Whether the container state is running
        env: Environment variables, split at the first ``=``
        ports: Declared container port spec (``"30303/tcp"``) to bound host port
        volumes: Container path to host path
    """

    running: bool
    env: dict[str, str] = field(default_factory=dict)
    ports: dict[str, int] = field(default_factory=dict)
    volumes: dict[str, str] = field(default_factory=dict)

    def host_port(self, spec: str) -> int | None:
        """Host port bound to ``spec``; a bare port number means TCP."""
        spec = spec.strip()
        if not spec:
            return None
        if "/" not in spec:
            spec = f"{spec}/tcp"
        return self.ports.get(spec)


@dataclass
class SwarmSnapshot:
    """What a status check found running on a host.

    Built fresh on every check. A missing or stopped node is reported by
    raising :class:`~swarmdeploy.base.errors.ServiceOfflineError`, never by a
    zeroed snapshot.
    """

    container: ContainerSnapshot
    role: Role
    node_id: str
    genesis: bytes
    datadir: str = ""
    port: int = 0
    bzz_port: int = 0
    peers_total: int = 0
    bzz_account: str = ""
    key_json: str = ""
    key_pass: str = ""
    enode: str = ""


@dataclass(frozen=True)
class DeploymentArtifacts:
    """Rendered deployment files and the scratch directory they go to."""

    workdir: str
    files: dict[str, bytes]

    def upload_map(self) -> dict[str, bytes]:
        """File contents keyed by their remote path ``<workdir>/<name>``."""
        return {f"{self.workdir}/{name}": content for name, content in self.files.items()}


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one read-only remote command.

    Hard probes call :meth:`require`; soft probes call :meth:`value_or`.
    """

    command: str
    output: bytes = b""
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def require(self) -> bytes:
        """Return the output or raise ServiceUnreachableError."""
        if self.error is not None:
            raise ServiceUnreachableError(f"{self.command} failed: {self.error}") from self.error
        return self.output

    def value_or(self, default: bytes = b"") -> bytes:
        """Return the output, or ``default`` when the command failed."""
        if self.error is not None:
            logger.debug(f"Optional probe '{self.command}' failed: {self.error}")
            return default
        return self.output


@dataclass(frozen=True)
class DeploymentDefaults:
    """Declared default of every operator-collected field."""

    port: int = 30399
    bzz_port: int = 8500
    peers_total: int = 50
    datadir: str = ""

    @classmethod
    def from_config(cls, config_path: str | None = None) -> DeploymentDefaults:
        """Built-in defaults overlaid with the ``defaults:`` section of config.yml."""
        base = cls()
        section = get_config_value("defaults", {}, config_path) or {}
        if not isinstance(section, dict):
            raise ConfigurationError("'defaults' must be a mapping in config.yml")
        try:
            return cls(
                port=int(section.get("port", base.port)),
                bzz_port=int(section.get("bzz_port", base.bzz_port)),
                peers_total=int(section.get("peers_total", base.peers_total)),
                datadir=str(section.get("datadir", base.datadir) or ""),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid value in 'defaults' section: {e}") from e
