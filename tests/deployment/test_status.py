"""Tests for the Swarm node status checker."""

import logging

import pytest
from conftest import GENESIS, NODE_ID, FakeChannel, node_responses, remote_failure

from swarmdeploy.base.errors import ServiceOfflineError, ServiceUnreachableError
from swarmdeploy.deployment.models import Role
from swarmdeploy.deployment.runtime_helper import PLUGIN_COMPOSE
from swarmdeploy.deployment.status import NODE_ID_COMMAND, check_swarm_node

NAME = "mynet_swarmnode_1"


class TestRunningNode:
    """A healthy node is read back completely."""

    def test_snapshot_from_environment_and_bindings(self, running_node):
        snapshot = check_swarm_node(running_node, "mynet", Role.PEER)

        assert snapshot.peers_total == 50
        assert snapshot.port == 31000
        assert snapshot.bzz_port == 8500
        assert snapshot.datadir == "/data/swarm"
        assert snapshot.role is Role.PEER
        assert snapshot.container.running

    def test_identity_trimmed_and_enode_synthesized(self, running_node):
        snapshot = check_swarm_node(running_node, "mynet", Role.PEER)

        assert snapshot.node_id == NODE_ID
        assert snapshot.enode == f"enode://{NODE_ID}@10.0.0.7:31000"

    def test_genesis_read_from_container(self, running_node):
        assert check_swarm_node(running_node, "mynet", Role.PEER).genesis == GENESIS

    def test_missing_credentials_are_soft(self, running_node):
        snapshot = check_swarm_node(running_node, "mynet", Role.PEER)

        assert snapshot.key_json == ""
        assert snapshot.key_pass == ""

    def test_deployed_credentials_read_back(self, key_json):
        responses = node_responses()
        responses[f"docker exec {NAME} cat /bzzkey.json"] = key_json.encode()
        responses[f"docker exec {NAME} cat /bzzpass"] = b"pw"

        snapshot = check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)

        assert snapshot.key_json == key_json
        assert snapshot.key_pass == "pw"

    def test_account_from_environment(self):
        responses = node_responses(
            env={"PORT": "30303/tcp", "BZZ_ACCOUNT": "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"}
        )
        snapshot = check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)
        assert snapshot.bzz_account == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

    def test_unparsable_peer_count_is_zero(self):
        responses = node_responses(env={"PORT": "30303/tcp", "TOTAL_PEERS": "lots"})
        assert check_swarm_node(FakeChannel(responses), "mynet", Role.PEER).peers_total == 0

    def test_command_sequence(self, running_node):
        check_swarm_node(running_node, "mynet", Role.PEER)

        assert running_node.commands == [
            f"docker inspect {NAME}",
            f"docker exec {NAME} {NODE_ID_COMMAND}",
            f"docker exec {NAME} cat /genesis.json",
            f"docker exec {NAME} cat /bzzkey.json",
            f"docker exec {NAME} cat /bzzpass",
        ]

    def test_bootstrap_container_name(self):
        channel = FakeChannel(node_responses(name="mynet_swarmboot_1"))

        snapshot = check_swarm_node(channel, "mynet", Role.BOOTSTRAP)

        assert channel.commands[0] == "docker inspect mynet_swarmboot_1"
        assert snapshot.role is Role.BOOTSTRAP

    def test_plugin_compose_container_name(self):
        channel = FakeChannel(node_responses(name="mynet-swarmnode-1"))

        check_swarm_node(channel, "mynet", Role.PEER, compose=PLUGIN_COMPOSE)

        assert channel.commands[0] == "docker inspect mynet-swarmnode-1"


class TestReachability:
    def test_checks_listener_port(self, running_node, port_check):
        check_swarm_node(running_node, "mynet", Role.PEER)
        port_check.assert_called_once_with("10.0.0.7", 31000, 5.0)

    def test_unreachable_port_only_warns(self, running_node, port_check, caplog):
        port_check.side_effect = ConnectionRefusedError("refused")

        with caplog.at_level(logging.WARNING, logger="status"):
            snapshot = check_swarm_node(running_node, "mynet", Role.PEER)

        assert snapshot.port == 31000
        assert "unreachable" in caplog.text


class TestOfflineAndUnreachable:
    def test_unknown_container_is_offline(self):
        channel = FakeChannel({f"docker inspect {NAME}": remote_failure(b"Error: No such object: " + NAME.encode())})

        with pytest.raises(ServiceOfflineError):
            check_swarm_node(channel, "mynet", Role.PEER)

    def test_stopped_container_is_offline(self):
        channel = FakeChannel(node_responses(running=False))

        with pytest.raises(ServiceOfflineError):
            check_swarm_node(channel, "mynet", Role.PEER)
        # nothing executed inside a stopped container
        assert channel.commands == [f"docker inspect {NAME}"]

    def test_identity_failure_is_unreachable(self):
        responses = node_responses()
        responses[f"docker exec {NAME} {NODE_ID_COMMAND}"] = remote_failure(b"Fatal: unable to attach")

        with pytest.raises(ServiceUnreachableError):
            check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)

    def test_genesis_failure_is_unreachable(self):
        responses = node_responses()
        responses[f"docker exec {NAME} cat /genesis.json"] = remote_failure(b"cat: no such file")

        with pytest.raises(ServiceUnreachableError):
            check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)


class TestListenerPort:
    """The listener port is found even without a PORT environment entry."""

    def test_single_binding_without_port_entry(self):
        responses = node_responses(env={"TOTAL_PEERS": "50"}, ports={"30303/tcp": "31000"})

        snapshot = check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)

        assert snapshot.peers_total == 50
        assert snapshot.port == 31000
        assert snapshot.enode == f"enode://{NODE_ID}@10.0.0.7:31000"

    def test_bzz_binding_is_skipped(self, port_check):
        responses = node_responses(
            env={"BZZPORT": "8500/tcp"},
            ports={"30303/tcp": "31000", "30303/udp": "31000", "8500/tcp": "8500"},
        )

        snapshot = check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)

        assert snapshot.port == 31000
        assert snapshot.bzz_port == 8500
        port_check.assert_called_once_with("10.0.0.7", 31000, 5.0)

    def test_unmatched_port_entry_falls_back(self):
        responses = node_responses(env={"PORT": "40404/tcp"}, ports={"30303/tcp": "31000"})

        assert check_swarm_node(FakeChannel(responses), "mynet", Role.PEER).port == 31000

    def test_ambiguous_bindings_are_unreachable(self, port_check):
        responses = node_responses(env={}, ports={"30303/tcp": "31000", "8500/tcp": "8500"})

        with pytest.raises(ServiceUnreachableError, match="listener port"):
            check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)
        port_check.assert_not_called()

    def test_no_bindings_are_unreachable(self):
        responses = node_responses(env={"TOTAL_PEERS": "50"}, ports={})

        with pytest.raises(ServiceUnreachableError):
            check_swarm_node(FakeChannel(responses), "mynet", Role.PEER)
