"""Main CLI entry point for swarmdeploy.

This module provides the main CLI group that organizes all swarmdeploy
commands under the `swarmdeploy` command namespace.

Performance Note: Uses lazy imports to avoid loading paramiko and the
deployment engine until a command is actually invoked. This keeps
`swarmdeploy --help` fast.
"""

import sys

import click

from swarmdeploy import __version__


class LazyGroup(click.Group):
    """Click group that lazily loads subcommands only when invoked."""

    # Command name -> (module path, attribute)
    commands_map = {
        "status": ("swarmdeploy.cli.status_cmd", "status"),
        "deploy": ("swarmdeploy.cli.deploy_cmd", "deploy"),
    }

    def get_command(self, ctx, cmd_name):
        """Lazily import and return the command when it's invoked."""
        if cmd_name not in self.commands_map:
            return None

        import importlib

        module_path, attribute = self.commands_map[cmd_name]
        mod = importlib.import_module(module_path)
        return getattr(mod, attribute)

    def list_commands(self, ctx):
        """Return list of available commands (for --help)."""
        return list(self.commands_map)


@click.group(cls=LazyGroup)
@click.version_option(version=__version__, prog_name="swarmdeploy")
def cli():
    """swarmdeploy - deploy and check Swarm nodes on remote hosts.

    Use 'swarmdeploy COMMAND --help' for more information on a specific command.

    Examples:

    \b
      swarmdeploy status node-1.example.org -n mynet       Show the running node
      swarmdeploy deploy node-1.example.org -n mynet --boot Deploy a bootstrap node
    """
    # Theme loading is best-effort: the CLI must work without a config file
    try:
        from .styles import initialize_theme_from_config

        initialize_theme_from_config()
    except Exception:
        pass


def main():
    """Entry point for the swarmdeploy CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nGoodbye!", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
