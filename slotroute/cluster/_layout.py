from __future__ import annotations

import random

from anyio import Lock

from slotroute._utils import logger
from slotroute.connection import TCPLocation
from slotroute.constants import HASH_SLOTS
from slotroute.exceptions import RedisClusterError, SlotNotCoveredError
from slotroute.pool import NodePoolRegistry

from ._discovery import DiscoveryService
from ._node import ClusterNodeLocation


class ClusterLayout:
    """
    Client side view of which node owns each hash slot.

    The slot table is replaced as a whole on every refresh so that readers
    always observe a complete table. The only partial update is
    the reassignment of a single slot following a ``MOVED`` redirect.
    """

    def __init__(
        self,
        discovery_service: DiscoveryService,
        pools: NodePoolRegistry,
        reinitialize_steps: int | None = None,
    ) -> None:
        """
        :param discovery_service: The discovery service to use to get the cluster
         layout
        :param pools: The registry of node pools, pruned of departed nodes on refresh
        :param reinitialize_steps: Number of ``MOVED`` redirects to tolerate before
         scheduling a full refresh of the layout. ``0`` disables the behavior.
        """
        self._slots: list[ClusterNodeLocation | None] = [None] * HASH_SLOTS
        self._nodes: dict[TCPLocation, ClusterNodeLocation] = {}
        self._discovery_service = discovery_service
        self._pools = pools
        self._refresh_lock = Lock()
        self._generation = 0
        self._moved_count = 0
        self.reinitialize_steps = 25 if reinitialize_steps is None else reinitialize_steps
        #: Whether the layout should be refreshed before it is used next
        self.stale = False

    @property
    def initialized(self) -> bool:
        return self._generation > 0

    @property
    def generation(self) -> int:
        """
        Incremented on every completed refresh. Callers that decide to refresh
        based on an observation pass the generation they observed to :meth:`refresh`
        so that concurrent requests coalesce into one.
        """
        return self._generation

    @property
    def refresh_due(self) -> bool:
        return bool(self.reinitialize_steps) and self._moved_count >= self.reinitialize_steps

    async def initialize(self) -> None:
        await self.refresh()

    async def refresh(self, generation: int | None = None) -> bool:
        """
        Replaces the slot table with a freshly discovered one.

        :param generation: The generation the caller based its decision to refresh on.
         If another refresh completed since, this call returns without refreshing again.
        :return: ``True`` if this call performed the refresh
        """
        observed = self._generation if generation is None else generation
        async with self._refresh_lock:
            if self._generation != observed:
                return False
            logger.debug("Refreshing cluster layout")
            nodes, slots = await self._discovery_service.get_cluster_layout()
            self._nodes = {node.location: node for node in nodes}
            self._slots = slots
            self._moved_count = 0
            self.stale = False
            self._generation += 1
            await self._pools.retain(self._nodes)
            return True

    def node_for_slot(self, slot: int) -> ClusterNodeLocation:
        """
        :raises: :exc:`~slotroute.exceptions.SlotNotCoveredError` if no node is known
         to serve :paramref:`slot`
        """
        if (node := self._slots[slot]) is None:
            raise SlotNotCoveredError(slot)
        return node

    def node_for_location(self, location: TCPLocation) -> ClusterNodeLocation:
        """
        Returns the known node at :paramref:`location` or a new (unregistered)
        primary node for it.
        """
        if (node := self._nodes.get(location)) is None:
            node = ClusterNodeLocation(location.host, location.port, server_type="primary")
        return node

    def update_slot(self, slot: int, host: str, port: int) -> ClusterNodeLocation:
        """
        Reassigns :paramref:`slot` to the node at :paramref:`host`::paramref:`port`,
        registering the node if it wasn't known.
        """
        location = TCPLocation(host, port)
        node = self.node_for_location(location)
        if node.location not in self._nodes:
            self._nodes = {**self._nodes, location: node}
        self._slots[slot] = node
        self._moved_count += 1
        return node

    @property
    def nodes(self) -> list[ClusterNodeLocation]:
        return list(self._nodes.values())

    @property
    def primaries(self) -> list[ClusterNodeLocation]:
        return [node for node in self._nodes.values() if node.is_primary]

    def random_node(self) -> ClusterNodeLocation:
        if not (primaries := self.primaries):
            raise RedisClusterError("Local cluster layout cache is empty")
        return random.choice(primaries)
