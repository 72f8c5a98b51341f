"""Remote Swarm node inspection, rendering and convergence.

This module provides the state-check and convergence engine: query a remote
host for a running node, merge what it reports with the desired
configuration, render the deployment files, and drive the upload, build and
restart sequence.
"""

from .driver import deploy_swarm
from .merge import apply_overrides, initial_config
from .models import (
    ContainerSnapshot,
    DeploymentArtifacts,
    DeploymentDefaults,
    ProbeResult,
    Role,
    SwarmConfig,
    SwarmSnapshot,
)
from .renderer import render_artifacts
from .report import report
from .status import check_swarm_node

__all__ = [
    "check_swarm_node",
    "deploy_swarm",
    "render_artifacts",
    "report",
    "initial_config",
    "apply_overrides",
    "ContainerSnapshot",
    "DeploymentArtifacts",
    "DeploymentDefaults",
    "ProbeResult",
    "Role",
    "SwarmConfig",
    "SwarmSnapshot",
]
