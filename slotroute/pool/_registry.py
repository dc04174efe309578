from __future__ import annotations

import warnings

from typing_extensions import Unpack

from slotroute._utils import logger
from slotroute.connection import BaseConnection, BaseConnectionParams, TCPConnection, TCPLocation
from slotroute.typing import Iterable

from ._node import NodeConnectionPool


class NodePoolRegistry:
    """
    Tracks a :class:`NodeConnectionPool` for each node of the cluster.

    Pools are created the first time a node is addressed and retired
    (closing their idle connections) once the node is no longer part of
    the cluster layout.
    """

    def __init__(
        self,
        *,
        connection_class: type[BaseConnection] = TCPConnection,
        max_connections: int | None = None,
        max_connections_per_node: bool = False,
        timeout: float | None = None,
        **connection_kwargs: Unpack[BaseConnectionParams],
    ) -> None:
        """
        :param connection_class: The connection class to use when creating new connections
        :param max_connections: Maximum number of connections to allow concurrently from this
         client. If the value is ``None`` it will default to 32.
        :param max_connections_per_node: Whether to use the value of :paramref:`max_connections`
         on a per node basis or cluster wide. If ``False``  the per-node connection pools will have
         a maximum size of :paramref:`max_connections` divided by the number of nodes in the cluster.
        :param timeout: Number of seconds to wait when trying to obtain a connection.
        :param connection_kwargs: arguments to pass to the :paramref:`connection_class`
         constructor when creating a new connection
        """
        self.connection_class = connection_class
        self.connection_kwargs = connection_kwargs
        self.max_connections = max_connections or 32
        self.max_connections_per_node = max_connections_per_node
        self.timeout = timeout
        self._pools: dict[TCPLocation, NodeConnectionPool] = {}
        self._node_count = 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{', '.join(str(loc) for loc in self._pools)}>"

    def __contains__(self, location: TCPLocation) -> bool:
        return location in self._pools

    def __len__(self) -> int:
        return len(self._pools)

    @property
    def locations(self) -> list[TCPLocation]:
        return list(self._pools)

    def pool_for(self, location: TCPLocation) -> NodeConnectionPool:
        """
        Returns the pool for :paramref:`location`, creating it if this is the
        first request for that node.
        """
        if (pool := self._pools.get(location)) is None or pool.closed:
            pool = self._pools[location] = self._create_pool(location)
        return pool

    async def retain(self, locations: Iterable[TCPLocation]) -> None:
        """
        Retires the pools of all nodes that are not in :paramref:`locations`
        and resizes the remaining ones to their share of :paramref:`max_connections`.
        """
        current = set(locations)
        if not self.max_connections_per_node and self.max_connections < len(current):
            warnings.warn(
                f"The value of max_connections={self.max_connections} "
                "should be atleast equal to the number of nodes "
                f"({len(current)}) in the cluster and has been increased by "
                f"{len(current) - self.max_connections} connections."
            )
            self.max_connections = len(current)
        self._node_count = max(1, len(current))
        size = self._node_pool_size()
        for location, pool in list(self._pools.items()):
            if location not in current:
                logger.debug(f"Retiring connection pool for departed node {location}")
                await self._pools.pop(location).close()
            elif pool.max_connections != size:
                # borrowed connections of the old pool are closed when released
                logger.debug(f"Resizing connection pool for {location} to {size} connections")
                self._pools[location] = self._create_pool(location)
                await pool.close()

    async def close(self) -> None:
        pools, self._pools = list(self._pools.values()), {}
        for pool in pools:
            await pool.close()

    def _create_pool(self, location: TCPLocation) -> NodeConnectionPool:
        return NodeConnectionPool(
            location,
            connection_class=self.connection_class,
            max_connections=self._node_pool_size(),
            timeout=self.timeout,
            **self.connection_kwargs,
        )

    def _node_pool_size(self) -> int:
        return max(
            1,
            self.max_connections
            if self.max_connections_per_node
            else self.max_connections // self._node_count,
        )
