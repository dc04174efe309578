from __future__ import annotations

from ._node import NodeConnectionPool
from ._registry import NodePoolRegistry

__all__ = ["NodeConnectionPool", "NodePoolRegistry"]
