from __future__ import annotations

import hashlib

import pytest

from slotroute.commands.constants import CommandName
from slotroute.exceptions import ClusterRetriesExhaustedError, MovedError, UnknownCommandError
from tests.conftest import HOST, NOT_HANDLED

pytestmark = pytest.mark.anyio


@pytest.fixture
def pick_last(mocker):
    return mocker.patch(
        "slotroute.cluster._layout.random.choice", side_effect=lambda nodes: nodes[-1]
    )


class TestKeylessCommands:
    async def test_ping(self, fake_cluster, client, pick_last):
        assert await client.ping() == b"PONG"
        assert await client.ping("hello") == b"hello"
        last = client.layout.primaries[-1]
        assert {call.node for call in fake_cluster.calls_for(b"PING")} == {last.name}
        assert pick_last.call_count == 2

    async def test_echo_and_publish(self, fake_cluster, client, pick_last):
        assert await client.echo("hello") == b"hello"
        assert await client.publish("channel", "message") == 0
        assert len(fake_cluster.calls) == 2

    async def test_any_node_retries_on_another_node(self, fake_cluster, client, mocker):
        by_port = {node.port: node for node in client.layout.primaries}
        mocker.patch(
            "slotroute.cluster._layout.random.choice",
            side_effect=[by_port[7002], by_port[7001]],
        )
        fake_cluster.kill(7002)
        assert await client.ping() == b"PONG"
        assert [call.node for call in fake_cluster.calls_for(b"PING")] == [f"{HOST}:7001"]

    async def test_any_node_exhausted(self, fake_cluster, client_factory):
        async with client_factory(max_attempts=2) as client:
            for port in (7000, 7001, 7002):
                fake_cluster.kill(port)
            with pytest.raises(ClusterRetriesExhaustedError) as exc_info:
                await client.ping()
            assert exc_info.value.slot is None
            assert exc_info.value.attempts == 2

    async def test_unsupported_command_reply(self, fake_cluster, client):
        with pytest.raises(UnknownCommandError):
            await client.execute_command(b"LATENCY DOCTOR")
        assert len(fake_cluster.calls) == 1


class TestSampleKey:
    async def test_script_load_routed_by_sample_key(self, fake_cluster, client):
        script = "return 1"
        assert await client.script_load(script, sample_key="foo") == (
            hashlib.sha1(script.encode()).hexdigest().encode()
        )
        assert [call.node for call in fake_cluster.calls_for(CommandName.SCRIPT_LOAD)] == [
            f"{HOST}:7002"
        ]

    async def test_script_exists_and_flush(self, fake_cluster, client):
        assert await client.script_exists(["abc", "def"], sample_key="bar") == (False, False)
        assert await client.script_flush(sample_key="bar")
        assert {call.node for call in fake_cluster.calls} == {f"{HOST}:7000"}

    async def test_redirects_not_followed(self, fake_cluster, client):
        def moved(node, command, args):
            if command == CommandName.SCRIPT_LOAD:
                return MovedError(f"12182 {HOST}:7000")
            return NOT_HANDLED

        fake_cluster.hooks.append(moved)
        with pytest.raises(MovedError):
            await client.script_load("return 1", sample_key="foo")
        assert len(fake_cluster.calls_for(CommandName.SCRIPT_LOAD)) == 1
        assert client.layout.node_for_slot(12182).port == 7002

    async def test_connection_failure_retried_on_slot_owner(self, fake_cluster, client):
        fake_cluster.fail_over(7002, 7001)
        assert await client.script_load("return 1", sample_key="foo")
        assert [call.node for call in fake_cluster.calls_for(CommandName.SCRIPT_LOAD)] == [
            f"{HOST}:7001"
        ]

    async def test_eval_routed_by_keys(self, fake_cluster, client):
        with pytest.raises(UnknownCommandError):
            await client.eval("return 1", keys=["foo"], args=[1])
        assert [call.node for call in fake_cluster.calls_for(CommandName.EVAL)] == [
            f"{HOST}:7002"
        ]
        assert fake_cluster.calls_for(CommandName.EVAL)[0].args == ("return 1", 1, "foo", 1)
