from __future__ import annotations

import warnings

from slotroute._utils import logger
from slotroute.commands.constants import CommandName
from slotroute.connection import TCPLocation
from slotroute.constants import HASH_SLOTS
from slotroute.exceptions import (
    ConnectionError,
    RedisClusterError,
    ResponseError,
    TimeoutError,
)
from slotroute.pool import NodePoolRegistry
from slotroute.response._callbacks import ClusterSlotsCallback, SlotRange
from slotroute.typing import Iterable

from ._node import ClusterNodeLocation

#: Errors from a single node that discovery tolerates by moving on to the next node
DISCOVERY_ERRORS = (ConnectionError, TimeoutError, ResponseError)


class DiscoveryService:
    """
    Discovers the slot assignments of the cluster by querying ``CLUSTER SLOTS``
    on known nodes
    """

    def __init__(
        self,
        startup_nodes: Iterable[TCPLocation],
        pools: NodePoolRegistry,
        skip_full_coverage_check: bool = False,
        follow_cluster: bool = True,
    ) -> None:
        """
        :param startup_nodes: The seed nodes used to discover the cluster
        :param pools: The registry used to obtain connections to nodes
        :param skip_full_coverage_check: Skips the check of ``cluster-require-full-coverage``
         config, useful for clusters without the ``CONFIG`` command
        :param follow_cluster: Query the nodes found by the previous discovery before
         the seed nodes, allowing the client to follow a cluster whose members change
        """
        self._pools = pools
        self._startup_nodes: list[ClusterNodeLocation] = list(
            dict.fromkeys(ClusterNodeLocation(n.host, n.port) for n in startup_nodes)
        )
        if not self._startup_nodes:
            raise RedisClusterError("At least one startup node is required")
        self._known_nodes: list[ClusterNodeLocation] = []
        self._follow_cluster = follow_cluster
        self._skip_full_coverage_check = skip_full_coverage_check

    @property
    def startup_nodes(self) -> list[ClusterNodeLocation]:
        return list(self._startup_nodes)

    def candidates(self) -> list[ClusterNodeLocation]:
        """
        The nodes to query, in order
        """
        nodes = self._startup_nodes
        if self._follow_cluster:
            nodes = self._known_nodes + nodes
        unique: dict[TCPLocation, ClusterNodeLocation] = {}
        for node in nodes:
            unique.setdefault(node.location, node)
        return list(unique.values())

    async def fetch_slot_assignments(self, node: ClusterNodeLocation) -> list[SlotRange]:
        """
        Returns the slot ranges reported by :paramref:`node`
        """
        async with self._pools.pool_for(node.location).acquire() as connection:
            response = await connection.execute_command(CommandName.CLUSTER_SLOTS, decode=False)
            return ClusterSlotsCallback()(
                response, version=connection.protocol_version, current_host=node.host
            )

    async def get_cluster_layout(
        self,
    ) -> tuple[list[ClusterNodeLocation], list[ClusterNodeLocation | None]]:
        """
        Builds a complete slot table by asking the known nodes what the
        current cluster configuration is. The first node that responds
        with a configuration covering all slots (or any configuration when
        the cluster does not require full coverage) wins.

        :raises: :exc:`~slotroute.exceptions.RedisClusterError` if no node could be
         reached or the cluster does not cover all slots.
        """
        node_errors: list[tuple[ClusterNodeLocation, Exception]] = []
        slots: list[ClusterNodeLocation | None] = [None] * HASH_SLOTS
        nodes_cache: dict[TCPLocation, ClusterNodeLocation] = {}
        reachable = False
        all_slots_covered = False

        for node in self.candidates():
            try:
                slot_ranges = await self.fetch_slot_assignments(node)
            except DISCOVERY_ERRORS as err:
                logger.warning(f"Unable to fetch cluster slots from {node.name}: {err}")
                node_errors.append((node, err))
                continue
            reachable = True
            slots = [None] * HASH_SLOTS
            nodes_cache = {}
            for start, end, range_nodes in slot_ranges:
                primary, *replicas = (
                    ClusterNodeLocation(
                        n["host"], n["port"], server_type=n["server_type"], node_id=n["node_id"]
                    )
                    for n in range_nodes
                )
                primary = nodes_cache.setdefault(primary.location, primary)
                for replica in replicas:
                    nodes_cache.setdefault(replica.location, replica)
                for slot in range(start, min(end, HASH_SLOTS - 1) + 1):
                    slots[slot] = primary

            covered = sum(1 for owner in slots if owner is not None)
            all_slots_covered = covered == HASH_SLOTS
            if all_slots_covered or (
                covered
                and (
                    self._skip_full_coverage_check
                    or not await self._cluster_require_full_coverage(nodes_cache)
                )
            ):
                all_slots_covered = True
                break

        if not reachable:
            startup_error = RedisClusterError(
                "Redis Cluster cannot be connected. Please provide at least one reachable node."
            )
            if node_errors:
                raise startup_error from node_errors[-1][1]
            raise startup_error
        if not all_slots_covered:
            raise RedisClusterError(
                "Not all slots are covered after query all startup_nodes. "
                f"{sum(1 for owner in slots if owner is not None)} of {HASH_SLOTS} covered..."
            )

        self._known_nodes = list(nodes_cache.values())
        return list(nodes_cache.values()), slots

    async def _cluster_require_full_coverage(
        self, nodes: dict[TCPLocation, ClusterNodeLocation]
    ) -> bool:
        """
        If exists 'cluster-require-full-coverage no' config on redis servers,
        then even all slots are not covered, cluster still will be able to
        respond
        """

        for node in nodes.values():
            if node.is_primary and await self._node_require_full_coverage(node):
                return True
        return False

    async def _node_require_full_coverage(self, node: ClusterNodeLocation) -> bool:
        try:
            async with self._pools.pool_for(node.location).acquire() as connection:
                node_config = await connection.execute_command(
                    CommandName.CONFIG_GET, "cluster-require-full-coverage", decode=False
                )
        except ResponseError as err:
            warnings.warn(
                "Unable to determine whether the cluster requires full coverage "
                f"due to response error from `CONFIG GET`: {err}. To suppress this "
                "warning use skip_full_coverage_check=True when initializing the client."
            )
            return False
        except (ConnectionError, TimeoutError):
            return False
        values = (
            node_config.values()
            if isinstance(node_config, dict)
            else node_config[1::2]
            if isinstance(node_config, list)
            else []
        )
        return b"yes" in values
