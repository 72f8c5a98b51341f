"""Tests for the convergence driver."""

import pytest
from conftest import FakeChannel, remote_failure

from swarmdeploy.base.errors import RemoteCommandError
from swarmdeploy.deployment.driver import deploy_swarm
from swarmdeploy.deployment.models import Role, SwarmConfig
from swarmdeploy.deployment.runtime_helper import PLUGIN_COMPOSE

BOOTNODES = ["enode://aa@10.0.0.1:30399"]


def make_config(**fields) -> SwarmConfig:
    base = {"network_id": 4242, "genesis": b"{}", "datadir": "/data/swarm"}
    base.update(fields)
    return SwarmConfig.create(**base)


def uploaded_workdir(channel: FakeChannel) -> str:
    (paths,) = channel.uploads
    return next(iter(paths)).split("/", 1)[0]


class TestCommandShapes:
    """Build commands sent to the remote host."""

    def test_cached_build_is_one_up_invocation(self, fake_channel):
        deploy_swarm(fake_channel, "mynet", BOOTNODES, make_config(), nocache=False)

        workdir = uploaded_workdir(fake_channel)
        assert fake_channel.streamed == [
            f"cd {workdir} && docker-compose -p mynet up -d --build --force-recreate"
        ]

    def test_nocache_builds_then_recreates(self, fake_channel):
        deploy_swarm(fake_channel, "mynet", BOOTNODES, make_config(), nocache=True)

        workdir = uploaded_workdir(fake_channel)
        assert fake_channel.streamed == [
            f"cd {workdir} && docker-compose -p mynet build --pull --no-cache "
            f"&& docker-compose -p mynet up -d --force-recreate"
        ]

    def test_plugin_compose_command(self, fake_channel):
        deploy_swarm(fake_channel, "mynet", [], make_config(), nocache=False, compose=PLUGIN_COMPOSE)

        assert fake_channel.streamed[0].endswith("docker compose -p mynet up -d --build --force-recreate")

    def test_full_sequence_and_cleanup(self, fake_channel):
        deploy_swarm(fake_channel, "mynet", BOOTNODES, make_config(), nocache=False)

        workdir = uploaded_workdir(fake_channel)
        assert fake_channel.commands[0] == "upload"
        assert fake_channel.commands[-1] == f"rm -rf {workdir}"
        assert len(fake_channel.commands) == 3


class TestRoleSelection:
    def test_without_identity_deploys_bootstrap_without_bootnodes(self, fake_channel):
        deploy_swarm(fake_channel, "mynet", BOOTNODES, make_config(), nocache=False)

        (files,) = fake_channel.uploads
        workdir = uploaded_workdir(fake_channel)
        assert b"swarmboot:" in files[f"{workdir}/docker-compose.yaml"]
        assert b"--bootnodes" not in files[f"{workdir}/Dockerfile"]

    def test_with_identity_deploys_peer_with_bootnodes(self, fake_channel):
        config = make_config(enode="enode://cc@10.0.0.3:30399")

        deploy_swarm(fake_channel, "mynet", BOOTNODES, config, nocache=False)

        (files,) = fake_channel.uploads
        workdir = uploaded_workdir(fake_channel)
        assert b"swarmnode:" in files[f"{workdir}/docker-compose.yaml"]
        assert b"--bootnodes enode://aa@10.0.0.1:30399" in files[f"{workdir}/Dockerfile"]

    def test_explicit_role_wins(self, fake_channel):
        deploy_swarm(fake_channel, "mynet", BOOTNODES, make_config(), nocache=False, role=Role.PEER)

        (files,) = fake_channel.uploads
        workdir = uploaded_workdir(fake_channel)
        assert b"swarmnode:" in files[f"{workdir}/docker-compose.yaml"]


class TestFailures:
    """Error propagation and cleanup."""

    def test_upload_failure_propagates_without_cleanup(self, fake_channel):
        fake_channel.upload_error = remote_failure(b"scp: disk full", command="upload")

        with pytest.raises(RemoteCommandError) as exc_info:
            deploy_swarm(fake_channel, "mynet", [], make_config(), nocache=False)

        assert exc_info.value.output == b"scp: disk full"
        assert fake_channel.commands == ["upload"]
        assert fake_channel.streamed == []

    def test_build_failure_still_cleans_up(self):
        channel = FakeChannel()
        channel.stream_error = remote_failure(b"ERROR: build failed", command="build")

        with pytest.raises(RemoteCommandError) as exc_info:
            deploy_swarm(channel, "mynet", [], make_config(), nocache=True)

        assert exc_info.value.output == b"ERROR: build failed"
        assert channel.commands[-1].startswith("rm -rf ")

    def test_cleanup_failure_does_not_mask_build_error(self):
        channel = FakeChannel()
        channel.stream_error = remote_failure(b"ERROR: build failed")

        def run(command):
            channel.commands.append(command)
            raise remote_failure(b"rm: permission denied")

        channel.run = run

        with pytest.raises(RemoteCommandError) as exc_info:
            deploy_swarm(channel, "mynet", [], make_config(), nocache=False)

        assert exc_info.value.output == b"ERROR: build failed"

    def test_cleanup_failure_after_success_is_swallowed(self):
        channel = FakeChannel()

        def run(command):
            raise remote_failure(b"rm: permission denied")

        channel.run = run

        assert deploy_swarm(channel, "mynet", [], make_config(), nocache=False) is None
