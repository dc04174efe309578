from __future__ import annotations

import pytest
from anyio import create_task_group

from slotroute.cluster import ClusterLayout, DiscoveryService
from slotroute.commands.constants import CommandName
from slotroute.connection import TCPLocation
from slotroute.exceptions import ClusterDownError, RedisClusterError, SlotNotCoveredError
from slotroute.pool import NodePoolRegistry
from tests.conftest import HOST

pytestmark = pytest.mark.anyio


@pytest.fixture
def pools(fake_cluster):
    return NodePoolRegistry(connection_class=fake_cluster.connection_class)


@pytest.fixture
def discovery_service(fake_cluster, pools):
    return DiscoveryService([fake_cluster.startup_node], pools)


@pytest.fixture
def layout(discovery_service, pools):
    return ClusterLayout(discovery_service, pools)


class TestClusterLayout:
    async def test_initialize(self, layout):
        assert not layout.initialized
        await layout.initialize()
        assert layout.initialized
        assert layout.generation == 1
        assert layout.node_for_slot(12182).port == 7002
        assert layout.node_for_slot(0).port == 7000
        assert sorted(node.port for node in layout.nodes) == [7000, 7001, 7002]
        assert all(node.is_primary for node in layout.primaries)

    async def test_uninitialized_slot_lookup(self, layout):
        with pytest.raises(SlotNotCoveredError) as exc_info:
            layout.node_for_slot(12182)
        assert exc_info.value.slot == 12182
        assert isinstance(exc_info.value, ClusterDownError)

    async def test_random_node(self, layout, mocker):
        with pytest.raises(RedisClusterError):
            layout.random_node()
        await layout.initialize()
        choice = mocker.patch("slotroute.cluster._layout.random.choice", side_effect=lambda n: n[-1])
        assert layout.random_node() == layout.primaries[-1]
        choice.assert_called_once()

    async def test_replicas_are_not_primaries(self, fake_cluster, layout):
        fake_cluster.add_node(7003)
        fake_cluster.replicas[(HOST, 7000)] = [(HOST, 7003)]
        await layout.initialize()
        assert 7003 in [node.port for node in layout.nodes]
        assert 7003 not in [node.port for node in layout.primaries]
        assert layout.node_for_slot(0).port == 7000

    async def test_concurrent_refreshes_coalesce(self, fake_cluster, layout):
        await layout.initialize()
        fake_cluster.calls.clear()
        observed = layout.generation
        results = []

        async def refresh():
            results.append(await layout.refresh(observed))

        async with create_task_group() as tg:
            for _ in range(5):
                tg.start_soon(refresh)

        assert len(fake_cluster.calls_for(CommandName.CLUSTER_SLOTS)) == 1
        assert sorted(results) == [False, False, False, False, True]
        assert layout.generation == observed + 1

    async def test_unconditional_refresh(self, fake_cluster, layout):
        await layout.initialize()
        assert await layout.refresh()
        assert layout.generation == 2

    async def test_refresh_replaces_table(self, fake_cluster, layout):
        await layout.initialize()
        fake_cluster.move_slot(12182, 7000)
        layout.stale = True
        await layout.refresh()
        assert layout.node_for_slot(12182).port == 7000
        assert not layout.stale

    async def test_failed_refresh_keeps_table(self, fake_cluster, layout):
        await layout.initialize()
        for port in (7000, 7001, 7002):
            fake_cluster.kill(port)
        with pytest.raises(RedisClusterError):
            await layout.refresh()
        assert layout.generation == 1
        assert layout.node_for_slot(12182).port == 7002

    async def test_refresh_retires_departed_pools(self, fake_cluster, layout, pools):
        await layout.initialize()
        departed = TCPLocation(HOST, 7005)
        pools.pool_for(departed)
        await layout.refresh()
        assert departed not in pools

    async def test_update_slot(self, layout):
        await layout.initialize()
        node = layout.update_slot(12182, HOST, 7000)
        assert layout.node_for_slot(12182) is node
        assert node.port == 7000
        assert len(layout.nodes) == 3

    async def test_update_slot_unknown_node(self, layout):
        await layout.initialize()
        node = layout.update_slot(12182, HOST, 7005)
        assert node in layout.nodes
        assert node.is_primary

    async def test_refresh_due_after_moves(self, discovery_service, pools):
        layout = ClusterLayout(discovery_service, pools, reinitialize_steps=2)
        await layout.initialize()
        layout.update_slot(1, HOST, 7001)
        assert not layout.refresh_due
        layout.update_slot(2, HOST, 7001)
        assert layout.refresh_due
        await layout.refresh()
        assert not layout.refresh_due

    async def test_refresh_on_moves_disabled(self, discovery_service, pools):
        layout = ClusterLayout(discovery_service, pools, reinitialize_steps=0)
        await layout.initialize()
        for slot in range(50):
            layout.update_slot(slot, HOST, 7001)
        assert not layout.refresh_due
