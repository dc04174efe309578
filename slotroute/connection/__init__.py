from __future__ import annotations

from ._base import BaseConnection, BaseConnectionParams, Location
from ._tcp import TCPConnection, TCPLocation

__all__ = [
    "BaseConnection",
    "BaseConnectionParams",
    "Location",
    "TCPConnection",
    "TCPLocation",
]
