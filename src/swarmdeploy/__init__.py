"""swarmdeploy - remote Swarm node deployment.

Inspects a remote host over SSH, reconciles the running Swarm node with the
desired configuration and drives the upload, build and restart of its
container through the runtime's compose tool.

This package contains:
- Error taxonomy (``swarmdeploy.base``)
- Node inspection, artifact rendering and convergence (``swarmdeploy.deployment``)
- Configuration and logging utilities (``swarmdeploy.utils``)
- The ``swarmdeploy`` command line (``swarmdeploy.cli``)
"""

# Version information
__version__ = "0.3.0"

__all__ = ["__version__"]
