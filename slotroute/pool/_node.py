from __future__ import annotations

from contextlib import asynccontextmanager

from anyio import current_time, move_on_after
from typing_extensions import Unpack

from slotroute._concurrency import Queue
from slotroute._utils import logger
from slotroute.connection import BaseConnection, BaseConnectionParams, TCPConnection, TCPLocation
from slotroute.exceptions import ConnectionError, ConnectionPoolExhaustedError, TimeoutError
from slotroute.typing import AsyncGenerator


class NodeConnectionPool:
    """
    Bounded pool of connections to a single cluster node
    """

    def __init__(
        self,
        location: TCPLocation,
        *,
        connection_class: type[BaseConnection] = TCPConnection,
        max_connections: int | None = None,
        timeout: float | None = None,
        **connection_kwargs: Unpack[BaseConnectionParams],
    ) -> None:
        """
        :param location: The node this pool creates connections to
        :param connection_class: The connection class to use when creating new connections
        :param max_connections: Maximum connections to grow the pool.
         Once the limit is reached callers wait for a connection
         to be returned to the pool.
        :param timeout: Number of seconds to wait when trying to obtain a connection.
        :param connection_kwargs: arguments to pass to the :paramref:`connection_class`
         constructor when creating a new connection
        """
        self.location = location
        self.connection_class = connection_class
        self.connection_kwargs = connection_kwargs
        self.max_connections = max_connections or 32
        self.timeout = timeout
        self._connections: Queue[BaseConnection] = Queue(self.max_connections)
        self._in_use: set[BaseConnection] = set()
        self._closed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.location}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_use(self) -> int:
        """Number of connections currently borrowed from this pool"""
        return len(self._in_use)

    async def get_connection(self, timeout: float | None = None) -> BaseConnection:
        """
        Gets or creates a connection from the pool. The connection
        must be returned back to the pool using :meth:`release`.

        :param timeout: maximum seconds to spend obtaining a connection. It bounds
         both the wait for a free connection (together with the pool's own timeout)
         and establishing a new one.
        :raises: :exc:`~slotroute.exceptions.ConnectionPoolExhaustedError` if no
         connection was free in time, :exc:`~slotroute.exceptions.TimeoutError`
         if a new connection could not be established in time and
         :exc:`~slotroute.exceptions.ConnectionError` if it could not be
         established at all.
        """
        if self._closed:
            raise ConnectionError(f"{self} is closed")
        deadline = None if timeout is None else current_time() + timeout
        wait = min((t for t in (self.timeout, timeout) if t is not None), default=None)
        with move_on_after(wait) as scope:
            # if stack has a connection, use that
            connection = await self._connections.get()
        if scope.cancelled_caught:
            raise ConnectionPoolExhaustedError(
                f"No connection to {self.location} available within {wait} seconds"
            )
        if self._closed:
            self._connections.put_nowait(None)
            raise ConnectionError(f"{self} is closed")
        # if None, we need to create a new connection
        if connection is None or not connection.usable:
            if connection is not None:
                await connection.disconnect()
            connection = self._construct_connection()
            with move_on_after(
                None if deadline is None else max(0.0, deadline - current_time())
            ) as connect_scope:
                try:
                    await connection.connect()
                except BaseException:
                    if not self._closed:
                        self._connections.put_nowait(None)
                    raise
            if connect_scope.cancelled_caught:
                await connection.disconnect()
                raise TimeoutError(f"Timed out establishing a connection to {self.location}")
        self._in_use.add(connection)
        return connection

    @asynccontextmanager
    async def acquire(self, timeout: float | None = None) -> AsyncGenerator[BaseConnection]:
        """
        Gets or creates a connection from the pool and releases it
        afterwards regardless of how the block exits.
        """
        connection = await self.get_connection(timeout)
        try:
            yield connection
        finally:
            await self.release(connection)

    async def release(self, connection: BaseConnection) -> None:
        """
        Checks connection for liveness and releases it back to the pool.
        Connections that are no longer usable are closed and their slot in
        the pool is freed up for a new connection.
        """
        self._in_use.discard(connection)
        if self._closed:
            await connection.disconnect()
        elif connection.usable:
            self._connections.put_nowait(connection)
        else:
            self._connections.put_nowait(None)
            logger.debug(f"Discarding unusable connection {connection}")
            await connection.disconnect()

    async def close(self) -> None:
        """
        Closes all idle connections. Borrowed connections are closed
        when they are released.
        """
        self._closed = True
        idle = self._connections.drain()
        # wake any waiters so that they observe the closed pool
        while not self._connections.full():
            self._connections.put_nowait(None)
        for connection in idle:
            await connection.disconnect()

    def _construct_connection(self) -> BaseConnection:
        return self.connection_class(self.location, **self.connection_kwargs)
