"""
slotroute
---------

slotroute is an async redis cluster client that routes every command to the
node owning its hash slot and recovers from redirects and node failures within
a bounded retry budget.
"""

from __future__ import annotations

import logging

from slotroute.client import RedisCluster
from slotroute.cluster import ClusterLayout, ClusterNodeLocation, Dispatcher, key_slot
from slotroute.connection import BaseConnection, TCPConnection, TCPLocation
from slotroute.pool import NodeConnectionPool, NodePoolRegistry

__version__ = "0.1.0"

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = [
    "RedisCluster",
    "BaseConnection",
    "TCPConnection",
    "TCPLocation",
    "ClusterLayout",
    "ClusterNodeLocation",
    "Dispatcher",
    "NodeConnectionPool",
    "NodePoolRegistry",
    "key_slot",
]
