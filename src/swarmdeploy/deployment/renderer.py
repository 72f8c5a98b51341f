"""Artifact renderer.

Renders the build recipe and the composition descriptor of a Swarm node from
the Jinja2 templates shipped in ``swarmdeploy/templates/swarm`` and collects
them, together with the genesis payload and optional credentials, into a
:class:`DeploymentArtifacts` bundle ready for upload.

Each template has a typed context dataclass and is rendered with
``StrictUndefined``, so a misspelled template variable fails loudly instead of
rendering empty.

.. note::
   The key passphrase is uploaded as its own file and referenced by path from
   the build recipe. It never appears in the recipe or the descriptor.
"""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass

from jinja2 import Environment, PackageLoader, StrictUndefined

from swarmdeploy.base.errors import ConfigurationError
from swarmdeploy.deployment.models import DeploymentArtifacts, Role, SwarmConfig, check_bootnodes
from swarmdeploy.utils.config import get_config_value
from swarmdeploy.utils.logger import get_logger

logger = get_logger("renderer")

DEFAULT_BASE_IMAGE = "ethereum/client-go:alltools-v1.8.3"

DOCKERFILE_TEMPLATE = "Dockerfile.j2"
COMPOSE_TEMPLATE = "docker-compose.yml.j2"

DOCKERFILE_NAME = "Dockerfile"
COMPOSE_FILE_NAME = "docker-compose.yaml"
GENESIS_FILE_NAME = "genesis.json"
KEY_FILE_NAME = "bzzkey.json"
PASS_FILE_NAME = "bzzpass"


@dataclass(frozen=True)
class DockerfileContext:
    """Variables of the build recipe template."""

    base_image: str
    network_id: int
    bzz_account: str
    port: int
    bzz_port: int
    peers_total: int
    bootnodes: str
    has_credentials: bool


@dataclass(frozen=True)
class ComposeContext:
    """Variables of the composition descriptor template."""

    role: str
    network: str
    datadir: str
    port: int
    bzz_port: int
    peers_total: int
    bzz_account: str


_environment: Environment | None = None


def _get_environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=PackageLoader("swarmdeploy", "templates/swarm"),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
    return _environment


def render_template(template_name: str, context: DockerfileContext | ComposeContext) -> bytes:
    """Render one template with its typed context."""
    template = _get_environment().get_template(template_name)
    return template.render(asdict(context)).encode()


def new_workdir() -> str:
    """Random scratch directory name for one deployment attempt."""
    return str(random.getrandbits(63))


def render_artifacts(
    config: SwarmConfig,
    role: Role,
    bootnodes: list[str],
    network: str,
    workdir: str | None = None,
    base_image: str | None = None,
) -> DeploymentArtifacts:
    """Render every file needed to deploy ``config`` as ``role``.

    Args:
        config: Merged node configuration
        role: Deployment role; a bootstrap node gets no bootnode list
        bootnodes: Peer addresses, joined with commas in the given order
        network: Compose project name, also the image namespace
        workdir: Scratch directory name; random when omitted
        base_image: Image the recipe builds on; ``deployment.base_image``
            from config.yml when omitted

    Returns:
        Artifacts whose output depends only on the arguments, apart from a
        random ``workdir``

    Raises:
        ConfigurationError: If no data directory is configured or a bootnode
            is not an enode URL
    """
    if not config.datadir:
        raise ConfigurationError("a data directory on the remote host is required")
    if base_image is None:
        base_image = get_config_value("deployment.base_image", DEFAULT_BASE_IMAGE)
    if role is Role.BOOTSTRAP:
        bootnodes = []
    check_bootnodes(bootnodes)

    dockerfile = render_template(
        DOCKERFILE_TEMPLATE,
        DockerfileContext(
            base_image=base_image,
            network_id=config.network_id,
            bzz_account=config.bzz_account,
            port=config.port,
            bzz_port=config.bzz_port,
            peers_total=config.peers_total,
            bootnodes=",".join(bootnodes),
            has_credentials=config.has_credentials(),
        ),
    )
    composefile = render_template(
        COMPOSE_TEMPLATE,
        ComposeContext(
            role=role.value,
            network=network,
            datadir=config.datadir,
            port=config.port,
            bzz_port=config.bzz_port,
            peers_total=config.peers_total,
            bzz_account=config.bzz_account,
        ),
    )

    files = {
        DOCKERFILE_NAME: dockerfile,
        COMPOSE_FILE_NAME: composefile,
        GENESIS_FILE_NAME: config.genesis,
    }
    if config.has_credentials():
        files[KEY_FILE_NAME] = config.key_json.encode()
        files[PASS_FILE_NAME] = config.key_pass.encode()

    artifacts = DeploymentArtifacts(workdir=workdir or new_workdir(), files=files)
    logger.debug(f"Rendered {', '.join(files)} into {artifacts.workdir}")
    return artifacts
