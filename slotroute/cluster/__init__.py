from __future__ import annotations

from ._discovery import DiscoveryService
from ._dispatch import Dispatcher
from ._keys import key_slot, pattern_slot, validate_single_slot
from ._layout import ClusterLayout
from ._node import ClusterNodeLocation

__all__ = [
    "ClusterLayout",
    "ClusterNodeLocation",
    "DiscoveryService",
    "Dispatcher",
    "key_slot",
    "pattern_slot",
    "validate_single_slot",
]
