from __future__ import annotations

import dataclasses
import ssl
from abc import ABC, abstractmethod

from anyio import (
    BrokenResourceError,
    ClosedResourceError,
    EndOfStream,
    aclose_forcefully,
    move_on_after,
)
from anyio.abc import ByteStream
from typing_extensions import NotRequired

from slotroute._packer import Packer
from slotroute._utils import logger, nativestr
from slotroute.exceptions import (
    ConnectionError,
    RedisError,
    TimeoutError,
)
from slotroute.parser import NotEnoughData, Parser
from slotroute.typing import Literal, ResponseType, TypedDict, ValueT


@dataclasses.dataclass(unsafe_hash=True)
class Location:
    """
    Abstract location
    """

    ...


class BaseConnectionParams(TypedDict):
    """
    The common parameters accepted by :class:`slotroute.connection.BaseConnection`
    """

    #: Maximum time to wait for receiving a response
    #: for requests created through this connection.
    stream_timeout: NotRequired[float | None]
    #: Maximum time to wait for establishing a connection
    connect_timeout: NotRequired[float | None]
    #: Default encoding for command responses.
    encoding: NotRequired[str]
    #: Whether to automatically decode responses.
    decode_responses: NotRequired[bool]
    #: Optional name to register with the server.
    client_name: NotRequired[str | None]
    #: The username to use for authenticating against the redis server
    username: NotRequired[str | None]
    #: The password to use for authenticating against the redis server
    password: NotRequired[str | None]
    #: RESP version to negotiate with the server
    protocol_version: NotRequired[Literal[2, 3]]
    #: For TLS connections, the ssl context to use when performing the TLS handshake
    ssl_context: NotRequired[ssl.SSLContext | None]


class BaseConnection(ABC):
    """
    A single connection to one cluster node.

    Commands are executed strictly one at a time: the request is written and
    the stream is read until the parser yields a complete reply. Any failure
    of the transport itself leaves the connection unusable (see :attr:`usable`)
    and it must be discarded by its pool.

    Subclasses provide the transport by implementing :meth:`_connect`.
    """

    Params = BaseConnectionParams
    """
    :meta private:
    """

    def __init__(
        self,
        location: Location,
        *,
        stream_timeout: float | None = None,
        connect_timeout: float | None = None,
        encoding: str = "utf-8",
        decode_responses: bool = False,
        username: str | None = None,
        password: str | None = None,
        client_name: str | None = None,
        protocol_version: Literal[2, 3] = 3,
        ssl_context: ssl.SSLContext | None = None,
    ):
        """
        :param location: The node this connection talks to

        The remaining parameters are described in :class:`BaseConnectionParams`.
        """
        self.location = location

        self._stream_timeout = stream_timeout
        self._connect_timeout = connect_timeout

        self._username = username
        self._password = password

        self._encoding = encoding
        self._decode_responses = decode_responses
        self.protocol_version = protocol_version

        # server version as reported by the server
        self.server_version: str | None = None
        # name used to identify this connection with the redis server
        self.client_name = client_name
        # id for this connection as returned by the redis server
        self.client_id: int | None = None

        self._ssl_context = ssl_context

        # The actual connection to the server
        self.stream: ByteStream | None = None
        self._parser = Parser()
        self._packer: Packer = Packer(self._encoding)

        # Error & State flags
        self._last_error: BaseException | None = None
        self._ready = False
        self._transport_failed = False
        self._terminated = False

    def __repr__(self) -> str:
        return self.describe()

    @abstractmethod
    def describe(self) -> str: ...

    @property
    def transport_healthy(self) -> bool:
        """
        Whether the underlying transport stream is healthy
        """
        return self.stream is not None and not self._transport_failed and not self._terminated

    @property
    def usable(self) -> bool:
        """
        Whether the connection is established and initial handshakes were
        performed without error
        """
        return self.transport_healthy and self._ready

    @abstractmethod
    async def _connect(self) -> ByteStream:
        """
        Establish and return the underlying transport connection to the Redis server.
        """
        ...

    async def connect(self) -> None:
        """
        Establish a connection to the redis server and perform the handshake.

        .. note:: A connection can only be established once. If it is lost
           (or terminated) it should be discarded.

        :raises: :exc:`~slotroute.exceptions.ConnectionError` if the transport
         could not be established. Errors returned by the server during the handshake
         are raised as is.
        """
        if self.stream is not None or self._terminated:
            raise RuntimeError("Connection cannot be reused")
        try:
            self.stream = await self._connect()
            await self._perform_handshake()
            self._ready = True
        except Exception as connection_error:
            self._last_error = connection_error
            await self.disconnect()
            if isinstance(connection_error, RedisError):
                raise
            # Wrap any other errors with a ConnectionError so that upstreams (pools) can
            # handle them explicitly as being part of connection creation.
            raise ConnectionError(
                f"Unable to establish a connection to {self.location}"
            ) from connection_error

    async def disconnect(self) -> None:
        """
        Closes the underlying transport. The connection is not usable
        afterwards.
        """
        self._ready = False
        self._terminated = True
        self._parser.on_disconnect()
        if self.stream is not None:
            stream, self.stream = self.stream, None
            await aclose_forcefully(stream)

    def terminate(self) -> None:
        """
        Marks the connection as unusable without closing the transport. The
        owner of the connection is expected to call :meth:`disconnect`.

        :meta private:
        """
        self._terminated = True

    async def execute_command(
        self,
        command: bytes,
        *args: ValueT,
        decode: bool | None = None,
        encoding: str | None = None,
    ) -> ResponseType:
        """
        Sends a command to the server and waits for the response.

        :raises: :exc:`~slotroute.exceptions.ConnectionError` if the connection
         is not usable or the transport fails while the request is in flight,
         :exc:`~slotroute.exceptions.TimeoutError` if no response was received
         within the stream timeout and the exception mapped from the error
         reply if the server responds with an error.
        """
        if not self.usable:
            raise ConnectionError(f"Connection to {self.location} not usable") from self._last_error
        assert self.stream
        should_decode = self._decode_responses if decode is None else decode
        response_encoding = encoding or self._encoding
        response: NotEnoughData | ResponseType = None
        completed = False
        try:
            with move_on_after(self._stream_timeout) as scope:
                try:
                    await self.stream.send(b"".join(self._packer.pack_command(command, *args)))
                    response = self._parser.get_response(should_decode, response_encoding)
                    while isinstance(response, NotEnoughData):
                        self._parser.feed(await self.stream.receive())
                        response = self._parser.get_response(should_decode, response_encoding)
                except (EndOfStream, ClosedResourceError, BrokenResourceError, OSError) as err:
                    self._last_error = err
                    raise ConnectionError(
                        f"Connection to {self.location} lost while executing "
                        f"{nativestr(command)}"
                    ) from err
                completed = True
        finally:
            # a request that did not run to completion leaves unread
            # data on the wire
            if not completed:
                self._transport_failed = True
        if scope.cancelled_caught:
            raise TimeoutError(
                f"Timed out waiting for a response to {nativestr(command)} from {self.location}"
            )
        if isinstance(response, RedisError):
            raise response
        return response

    async def _perform_handshake(self) -> None:
        if self.protocol_version == 3:
            hello_command_args: list[ValueT] = [3]
            if self._username or self._password:
                hello_command_args.extend(
                    ["AUTH", self._username or "default", self._password or b""]
                )
            if self.client_name is not None:
                hello_command_args.extend(["SETNAME", self.client_name])
            hello_resp = await self._handshake_command(b"HELLO", *hello_command_args)
            if isinstance(hello_resp, list):
                hello_resp = dict(zip(hello_resp[::2], hello_resp[1::2]))
            if not isinstance(hello_resp, dict) or hello_resp.get(b"proto") != 3:
                raise ConnectionError(f"Unexpected response to HELLO: {hello_resp!r}")
            self.server_version = nativestr(hello_resp.get(b"version", b""))
            if (client_id := hello_resp.get(b"id")) is not None:
                self.client_id = int(client_id)
        else:
            if self._password:
                auth_args: list[ValueT] = [self._password]
                if self._username:
                    auth_args.insert(0, self._username)
                if await self._handshake_command(b"AUTH", *auth_args) != b"OK":
                    raise ConnectionError("Failed to authenticate")
            if self.client_name is not None:
                if await self._handshake_command(b"CLIENT SETNAME", self.client_name) != b"OK":
                    raise ConnectionError(f"Failed to set client name: {self.client_name}")
        logger.debug(f"Established connection to {self.location}")

    async def _handshake_command(self, command: bytes, *args: ValueT) -> ResponseType:
        self._ready = True
        try:
            return await self.execute_command(command, *args, decode=False)
        finally:
            self._ready = False
