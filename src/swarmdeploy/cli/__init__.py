"""Command-line interface for swarmdeploy.

Commands:
    - status: Show the Swarm node running on a remote host
    - deploy: Deploy or reconfigure a Swarm node on a remote host

Commands are lazy-loaded so `swarmdeploy --help` stays fast.
"""

from .main import cli, main

__all__ = ["cli", "main"]
