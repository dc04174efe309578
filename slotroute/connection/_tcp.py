from __future__ import annotations

import dataclasses
import socket

from anyio import connect_tcp, fail_after
from anyio.abc import ByteStream, SocketAttribute
from typing_extensions import Unpack

from ._base import BaseConnection, BaseConnectionParams, Location


@dataclasses.dataclass(unsafe_hash=True)
class TCPLocation(Location):
    """Address of a cluster node reachable over tcp"""

    host: str
    port: int

    def __repr__(self) -> str:
        return f"<host={self.host},port={self.port}>"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class TCPConnection(BaseConnection):
    """
    Connection to a single cluster node over tcp (optionally wrapped in TLS
    when an :paramref:`ssl_context` is provided)

    :param socket_keepalive: Enable ``SO_KEEPALIVE`` on the socket
    :param socket_keepalive_options: ``TCP_*`` options applied to the socket
     when keepalive is enabled
    """

    location: TCPLocation

    def __init__(
        self,
        location: TCPLocation,
        *,
        socket_keepalive: bool | None = None,
        socket_keepalive_options: dict[int, int | bytes] | None = None,
        **kwargs: Unpack[BaseConnectionParams],
    ):
        super().__init__(location, **kwargs)
        self._keepalive_options: dict[int, int | bytes] | None = (
            (socket_keepalive_options or {}) if socket_keepalive else None
        )

    def _apply_keepalive(self, stream: ByteStream) -> None:
        raw = stream.extra(SocketAttribute.raw_socket, default=None)
        if raw is None or self._keepalive_options is None:
            return
        raw.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        for option, value in self._keepalive_options.items():
            raw.setsockopt(socket.IPPROTO_TCP, option, value)

    async def _connect(self) -> ByteStream:
        tls = self._ssl_context is not None
        with fail_after(self._connect_timeout):
            stream: ByteStream = await connect_tcp(
                self.location.host,
                self.location.port,
                tls=tls,
                ssl_context=self._ssl_context,
                tls_standard_compatible=False,
            )
        self._apply_keepalive(stream)
        return stream

    def describe(self) -> str:
        return f"TCPConnection<host={self.location.host},port={self.location.port}>"
