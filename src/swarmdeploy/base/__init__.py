"""Base types shared across swarmdeploy: the deployment error hierarchy."""

from .errors import (
    ConfigurationError,
    ContainerNotFoundError,
    DeploymentError,
    ErrorKind,
    RemoteCommandError,
    ServiceOfflineError,
    ServiceUnreachableError,
)

__all__ = [
    "ErrorKind",
    "DeploymentError",
    "ContainerNotFoundError",
    "ServiceOfflineError",
    "ServiceUnreachableError",
    "ConfigurationError",
    "RemoteCommandError",
]
