from __future__ import annotations

import dataclasses

from slotroute.connection import TCPLocation
from slotroute.typing import Literal


@dataclasses.dataclass(unsafe_hash=True)
class ClusterNodeLocation(TCPLocation):
    """
    Represents a cluster node (primary or replica) in a redis cluster
    """

    server_type: Literal["primary", "replica"] | None = None
    node_id: str | None = None

    @property
    def name(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def location(self) -> TCPLocation:
        """The plain address of the node, used to key connection pools"""
        return TCPLocation(self.host, self.port)

    @property
    def is_primary(self) -> bool:
        return self.server_type != "replica"
