"""Error Classification for Remote Node Deployment

This module defines the exception hierarchy raised by the inspection, status
checking and convergence layers. Each exception maps to one failure kind that
callers are expected to tell apart:

Error Kinds:
    - **ContainerNotFoundError**: the runtime knows no container by that name.
      Usually not an error for the caller - it means "first deployment".
    - **ServiceOfflineError**: nothing is running under the expected name.
    - **ServiceUnreachableError**: the container is running but querying it
      failed. Harder than offline: an apparently live deployment is broken.
    - **ConfigurationError**: locally detectable bad input (undecodable
      credential, mismatched account, invalid port).
    - **RemoteCommandError**: an upload, build or command failed on the remote
      host. Carries whatever output the remote side produced.

Soft failures (reachability probes, optional file reads, scratch directory
cleanup) are never raised; see :class:`swarmdeploy.deployment.models.ProbeResult`.

.. seealso::
   :mod:`swarmdeploy.deployment.status` : Raises the offline/unreachable kinds
   :mod:`swarmdeploy.deployment.driver` : Propagates RemoteCommandError
"""

from enum import Enum


class ErrorKind(Enum):
    """Short machine-readable tag for each deployment failure kind."""

    NOT_FOUND = "not_found"
    SERVICE_OFFLINE = "service_offline"
    UNREACHABLE = "unreachable"
    CONFIG_INVALID = "config_invalid"
    REMOTE_COMMAND_FAILED = "remote_command_failed"


class DeploymentError(Exception):
    """Base exception for all deployment-related errors.

    This is the root exception class for all custom exceptions raised while
    checking or converging a remote node.
    """

    kind: ErrorKind | None = None


class ContainerNotFoundError(DeploymentError):
    """Raised when the container runtime reports no such container."""

    kind = ErrorKind.NOT_FOUND


class ServiceOfflineError(DeploymentError):
    """Raised when no running service instance exists for a network and role.

    Status checks raise this both for an unknown container and for a container
    that exists but is stopped, so callers can treat it as "not deployed yet".
    """

    kind = ErrorKind.SERVICE_OFFLINE

    def __init__(self, message: str = "service container offline"):
        super().__init__(message)


class ServiceUnreachableError(DeploymentError):
    """Raised when a running container cannot be queried.

    The container exists and claims to be running, but inspecting it or
    executing a read-only command inside it failed.
    """

    kind = ErrorKind.UNREACHABLE

    def __init__(self, message: str = "service container unreachable"):
        super().__init__(message)


class ConfigurationError(DeploymentError):
    """Exception for configuration-related errors.

    Raised when desired configuration is invalid: an undecodable key file, an
    account that does not match its credential, or out-of-range values.
    """

    kind = ErrorKind.CONFIG_INVALID


class RemoteCommandError(DeploymentError):
    """A command, upload or stream failed on the remote host.

    Args:
        message: Human readable description
        server: Identity of the remote server the command ran on
        command: The shell command (or ``"upload"``) that failed
        output: Raw bytes the remote side produced before failing
        exit_status: Remote exit status, when one was reported
    """

    kind = ErrorKind.REMOTE_COMMAND_FAILED

    def __init__(
        self,
        message: str,
        *,
        server: str = "",
        command: str = "",
        output: bytes = b"",
        exit_status: int | None = None,
    ):
        super().__init__(message)
        self.server = server
        self.command = command
        self.output = output
        self.exit_status = exit_status

    def __str__(self) -> str:
        text = super().__str__()
        if self.server:
            text = f"{text} (server: {self.server})"
        return text
