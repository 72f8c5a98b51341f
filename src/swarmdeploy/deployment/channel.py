"""Remote command channel.

The deployment core talks to a remote host only through the
:class:`RemoteChannel` protocol: run a command and collect its output, stream a
long-running command to the console, and upload a set of files. The concrete
:class:`SSHChannel` implements it on top of paramiko.

Examples:
    Basic usage::

        with SSHChannel.connect("deploy@node-1.example.org:2222") as channel:
            channel.run("docker ps")
            channel.upload({"1234/genesis.json": b"{}"})
            channel.stream("cd 1234 && docker compose -p mynet up -d --build")
"""

from __future__ import annotations

import getpass
import posixpath
import socket
from collections.abc import Callable, Mapping
from typing import Protocol, runtime_checkable

import paramiko
from rich.console import Console

from swarmdeploy.base.errors import RemoteCommandError
from swarmdeploy.utils.config import get_config_value
from swarmdeploy.utils.logger import get_logger

logger = get_logger("channel")

DEFAULT_SSH_PORT = 22


@runtime_checkable
class RemoteChannel(Protocol):
    """Command and file transport to one remote host.

    Attributes:
        server: Identity of the host, used in messages
        address: Host name or IP, used for reachability probes and enode URLs
    """

    server: str
    address: str

    def run(self, command: str) -> bytes:
        """Run ``command`` and return its combined output.

        Raises:
            RemoteCommandError: On transport failure or non-zero exit, with the
                output produced so far attached
        """
        ...

    def stream(self, command: str) -> None:
        """Run ``command``, echoing its output line by line until it exits.

        Raises:
            RemoteCommandError: On transport failure or non-zero exit
        """
        ...

    def upload(self, files: Mapping[str, bytes]) -> bytes:
        """Write every ``path -> content`` pair on the remote host.

        Relative paths resolve against the login directory.

        Raises:
            RemoteCommandError: If any file could not be written
        """
        ...


def check_port(address: str, port: int, timeout: float = 5.0) -> None:
    """Open and close a TCP connection to ``address:port``.

    Raises:
        OSError: If the connection cannot be established within ``timeout``
    """
    sock = socket.create_connection((address, port), timeout=timeout)
    sock.close()


def parse_server(server: str) -> tuple[str, str, int]:
    """Split ``[user@]host[:port]`` into its parts.

    The user defaults to the local login name, the port to 22.
    """
    user = ""
    host = server.strip()
    if "@" in host:
        user, host = host.rsplit("@", 1)
    port = DEFAULT_SSH_PORT
    if host.count(":") == 1:
        host, raw_port = host.split(":")
        try:
            port = int(raw_port)
        except ValueError as e:
            raise ValueError(f"invalid SSH port in server address: {server!r}") from e
    if not host:
        raise ValueError(f"no host in server address: {server!r}")
    return user or getpass.getuser(), host, port


def _console_echo() -> Callable[[str], None]:
    console = Console(highlight=False, soft_wrap=True)

    def echo(line: str) -> None:
        console.print(line, markup=False)

    return echo


class SSHChannel:
    """:class:`RemoteChannel` backed by a paramiko SSH client."""

    def __init__(
        self,
        client: paramiko.SSHClient,
        server: str,
        address: str,
        echo: Callable[[str], None] | None = None,
    ):
        self.client = client
        self.server = server
        self.address = address
        self.echo = echo or _console_echo()

    @classmethod
    def connect(
        cls,
        server: str,
        password: str | None = None,
        *,
        trust_unknown_hosts: bool | None = None,
        timeout: float | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> SSHChannel:
        """Open an SSH session to ``server`` (``[user@]host[:port]``).

        Host keys are checked against the system known_hosts; unknown hosts are
        rejected unless ``trust_unknown_hosts`` (or
        ``deployment.ssh.trust_unknown_hosts`` in config.yml) is set.
        Authentication uses the SSH agent and default key files, plus
        ``password`` when given.

        Raises:
            RemoteCommandError: If the connection or authentication fails
        """
        if trust_unknown_hosts is None:
            trust_unknown_hosts = bool(
                get_config_value("deployment.ssh.trust_unknown_hosts", False)
            )
        if timeout is None:
            timeout = float(get_config_value("deployment.ssh.connect_timeout", 10))

        user, host, port = parse_server(server)

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        if trust_unknown_hosts:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.RejectPolicy())

        logger.info(f"Connecting to {user}@{host}:{port}")
        try:
            client.connect(
                host,
                port=port,
                username=user,
                password=password,
                timeout=timeout,
                allow_agent=True,
                look_for_keys=True,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise RemoteCommandError(f"failed to connect: {e}", server=server) from e

        return cls(client, server=server, address=host, echo=echo)

    def _open_session(self, command: str) -> paramiko.Channel:
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise RemoteCommandError("SSH session is closed", server=self.server, command=command)
        session = transport.open_session()
        session.set_combine_stderr(True)
        session.exec_command(command)
        return session

    def run(self, command: str) -> bytes:
        logger.debug(f"Running remote command: {command}")
        try:
            session = self._open_session(command)
            with session.makefile("rb") as stdout:
                output = stdout.read()
            status = session.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(
                f"remote command failed: {e}", server=self.server, command=command
            ) from e

        if status != 0:
            raise RemoteCommandError(
                f"remote command exited with status {status}",
                server=self.server,
                command=command,
                output=output,
                exit_status=status,
            )
        return output

    def stream(self, command: str) -> None:
        logger.debug(f"Streaming remote command: {command}")
        collected: list[bytes] = []
        try:
            session = self._open_session(command)
            with session.makefile("rb") as stdout:
                for raw in stdout:
                    collected.append(raw)
                    self.echo(raw.decode(errors="replace").rstrip("\r\n"))
            status = session.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(
                f"remote command failed: {e}",
                server=self.server,
                command=command,
                output=b"".join(collected),
            ) from e

        if status != 0:
            raise RemoteCommandError(
                f"remote command exited with status {status}",
                server=self.server,
                command=command,
                output=b"".join(collected),
                exit_status=status,
            )

    def upload(self, files: Mapping[str, bytes]) -> bytes:
        logger.debug(f"Uploading {len(files)} files")
        try:
            sftp = self.client.open_sftp()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(
                f"failed to open SFTP session: {e}", server=self.server, command="upload"
            ) from e

        written: list[str] = []
        try:
            for path, content in files.items():
                self._ensure_remote_dir(sftp, posixpath.dirname(path))
                with sftp.file(path, "wb") as handle:
                    handle.write(content)
                written.append(path)
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(
                f"upload failed after {len(written)} of {len(files)} files: {e}",
                server=self.server,
                command="upload",
                output="\n".join(written).encode(),
            ) from e
        finally:
            sftp.close()
        return b""

    @staticmethod
    def _ensure_remote_dir(sftp: paramiko.SFTPClient, directory: str) -> None:
        if not directory or directory in (".", "/"):
            return
        try:
            sftp.stat(directory)
            return
        except FileNotFoundError:
            pass
        SSHChannel._ensure_remote_dir(sftp, posixpath.dirname(directory))
        sftp.mkdir(directory)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> SSHChannel:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
