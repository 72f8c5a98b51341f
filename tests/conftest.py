"""
Pytest configuration and shared test utilities.

Provides a scripted in-memory remote channel, canned ``docker inspect``
output and encrypted key fixtures for the swarmdeploy tests.
"""

import json
from unittest.mock import patch

import pytest
from eth_keyfile import create_keyfile_json
from eth_utils import to_checksum_address

from swarmdeploy.base.errors import RemoteCommandError
from swarmdeploy.deployment.runtime_helper import reset_compose_cache
from swarmdeploy.utils.config import reset_config_cache

NODE_ID = "9a2f" * 32
GENESIS = b'{\n  "config": {\n    "chainId": 4242\n  },\n  "alloc": {}\n}\n'
KEY_PASSPHRASE = "correct horse"
PRIVATE_KEY = bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")


# ===================================================================
# Scripted Remote Channel
# ===================================================================


class FakeChannel:
    """In-memory RemoteChannel that replays scripted command output.

    ``responses`` maps a command string to the bytes it prints or to an
    exception it raises. Unscripted commands succeed with empty output.
    Every command, upload and stream is recorded in call order.
    """

    def __init__(self, responses=None, server="node-1.example.org", address="10.0.0.7"):
        self.server = server
        self.address = address
        self.responses = dict(responses or {})
        self.commands: list[str] = []
        self.streamed: list[str] = []
        self.uploads: list[dict[str, bytes]] = []
        self.stream_error: Exception | None = None
        self.upload_error: Exception | None = None
        self.closed = False

    def run(self, command: str) -> bytes:
        self.commands.append(command)
        response = self.responses.get(command, b"")
        if isinstance(response, Exception):
            raise response
        return response

    def stream(self, command: str) -> None:
        self.commands.append(command)
        self.streamed.append(command)
        if self.stream_error is not None:
            raise self.stream_error

    def upload(self, files) -> bytes:
        self.commands.append("upload")
        if self.upload_error is not None:
            raise self.upload_error
        self.uploads.append(dict(files))
        return b""

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def remote_failure(output: bytes = b"", command: str = "", status: int = 1) -> RemoteCommandError:
    """A RemoteCommandError as a channel raises it for a failed command."""
    return RemoteCommandError(
        f"remote command exited with status {status}",
        server="node-1.example.org",
        command=command,
        output=output,
        exit_status=status,
    )


def inspect_output(
    running: bool = True,
    env: dict[str, str] | None = None,
    ports: dict[str, str] | None = None,
    mounts: dict[str, str] | None = None,
) -> bytes:
    """Render a one-record ``docker inspect`` JSON array."""
    env = (
        env
        if env is not None
        else {
            "PORT": "30303/tcp",
            "BZZPORT": "8500/tcp",
            "TOTAL_PEERS": "50",
            "BZZ_ACCOUNT": "",
            "PATH": "/usr/local/sbin:/usr/local/bin",
        }
    )
    ports = ports if ports is not None else {"30303/tcp": "31000", "30303/udp": "31000", "8500/tcp": "8500"}
    mounts = mounts if mounts is not None else {"/root/.ethereum": "/data/swarm"}
    record = {
        "Id": "3f1c0ffee",
        "State": {"Status": "running" if running else "exited", "Running": running},
        "Config": {"Env": [f"{key}={value}" for key, value in env.items()]},
        "HostConfig": {
            "PortBindings": {
                spec: [{"HostIp": "", "HostPort": host}] for spec, host in ports.items()
            }
        },
        "Mounts": [
            {"Type": "bind", "Source": source, "Destination": destination, "RW": True}
            for destination, source in mounts.items()
        ],
    }
    return json.dumps([record]).encode()


def node_responses(name: str = "mynet_swarmnode_1", **inspect_kwargs) -> dict:
    """Scripted responses of a healthy node container called ``name``."""
    return {
        f"docker inspect {name}": inspect_output(**inspect_kwargs),
        f"docker exec {name} geth --exec admin.nodeInfo.id attach /root/.ethereum/bzzd.ipc": (
            f'"{NODE_ID}"\n'.encode()
        ),
        f"docker exec {name} cat /genesis.json": GENESIS,
        f"docker exec {name} cat /bzzkey.json": remote_failure(b"cat: /bzzkey.json: No such file"),
        f"docker exec {name} cat /bzzpass": remote_failure(b"cat: /bzzpass: No such file"),
    }


# ===================================================================
# Fixtures
# ===================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run every test from an empty directory with fresh caches."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    monkeypatch.delenv("SWARMDEPLOY_COMPOSE", raising=False)
    reset_config_cache()
    reset_compose_cache()
    yield
    reset_config_cache()
    reset_compose_cache()


@pytest.fixture(autouse=True)
def port_check():
    """Replace the TCP reachability check; tests may set a side_effect."""
    with patch("swarmdeploy.deployment.status.check_port") as check:
        yield check


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def running_node():
    """Channel to a host running a healthy peer node of network 'mynet'."""
    return FakeChannel(node_responses())


@pytest.fixture(scope="session")
def key_json() -> str:
    """Encrypted keystore JSON (cheap pbkdf2 parameters) for KEY_PASSPHRASE."""
    keyfile = create_keyfile_json(PRIVATE_KEY, KEY_PASSPHRASE.encode(), kdf="pbkdf2", iterations=2)
    return json.dumps(keyfile)


@pytest.fixture(scope="session")
def key_account(key_json) -> str:
    """Checksummed account address of ``key_json``."""
    return to_checksum_address("0x" + json.loads(key_json)["address"])
