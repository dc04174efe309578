from __future__ import annotations

import re

from slotroute.typing import TYPE_CHECKING, KeyT

if TYPE_CHECKING:
    from slotroute.cluster._node import ClusterNodeLocation


class RedisError(Exception):
    """Root of the errors raised for replies and transport failures"""


class ConnectionError(RedisError):
    pass


class ProtocolError(ConnectionError):
    """The server doesn't speak the requested protocol version"""


class TimeoutError(RedisError):
    pass


class BusyLoadingError(ConnectionError):
    pass


class ConnectionPoolExhaustedError(ConnectionError):
    """
    Raised when a connection could not be borrowed from a node's
    pool within the allowed wait time
    """


class InvalidResponse(RedisError):
    pass


class ResponseError(RedisError):
    pass


class DataError(RedisError):
    pass


class WrongTypeError(ResponseError):
    """``WRONGTYPE`` reply for a key holding a different data type"""


class NoScriptError(ResponseError):
    pass


class ReadOnlyError(ResponseError):
    pass


class AuthenticationError(ResponseError):
    pass


class AuthenticationFailureError(AuthenticationError):
    """``WRONGPASS``: the credentials sent during the handshake were rejected"""


class AuthenticationRequiredError(AuthenticationError):
    """``NOAUTH``: the node requires credentials that weren't configured"""


class AuthorizationError(RedisError):
    """``NOPERM``: the authenticated user may not run the command"""


class UnknownCommandError(ResponseError):
    """
    The node doesn't implement the command (or subcommand) that was sent.
    The offending command name, when the reply includes it, is available
    as :attr:`command`.
    """

    COMMAND_PATTERN = re.compile(r"unknown (?:sub)?command [`']?([^`'\s,]+)")
    command: str | None = None

    def __init__(self, message: str) -> None:
        if match := self.COMMAND_PATTERN.search(message):
            self.command = match.group(1)
        super().__init__(message)


class RedisClusterException(Exception):
    """Base exception for the RedisCluster client"""


class RedisClusterError(RedisClusterException, RedisError):
    """
    Raised when the cluster layout could not be established
    """


class ClusterRoutingError(RedisClusterException):
    """
    Raised when a request can't be routed to a single destination node,
    for example a ``KEYS`` or ``SCAN`` pattern that is not pinned to a hash tag.
    """


class ClusterUnsupportedOperationError(RedisClusterException, NotImplementedError):
    """
    Raised for operations that are meaningless when the keyspace is
    sharded across nodes (``WATCH``, ``UNWATCH``, ``SELECT``)
    """


class ClusterError(RedisError):
    """
    Base class for errors that end the execution of a command
    against the cluster
    """


class ClusterCrossSlotError(ResponseError):
    """Raised when keys in request don't hash to the same slot"""

    def __init__(
        self,
        message: str | None = None,
        command: bytes | None = None,
        keys: tuple[KeyT, ...] | None = None,
        slots: tuple[int, ...] | None = None,
    ) -> None:
        super().__init__(message or "Keys in request don't hash to the same slot")
        self.command = command
        self.keys = keys
        self.slots = slots


class ClusterDownError(ClusterError, ResponseError):
    """
    ``CLUSTERDOWN`` (or ``MASTERDOWN``) reply. The cluster refuses queries
    while any slot is uncovered, so the command is not retried and the
    slot map is refreshed before the next command.
    """

    def __init__(self, resp: str) -> None:
        self.args = (resp,)
        self.message = resp


class SlotNotCoveredError(ClusterDownError):
    """
    Raised when no node in the known layout serves a slot even
    after refreshing the layout
    """

    def __init__(self, slot: int) -> None:
        super().__init__(f"Slot {slot} is not covered by any known node")
        self.slot = slot


class _TerminalClusterError(ClusterError):
    def __init__(
        self,
        message: str,
        node: ClusterNodeLocation | None = None,
        slot: int | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        #: The node the last attempt was directed at
        self.node = node
        #: The hash slot the command was routed by (``None`` for keyless commands)
        self.slot = slot
        #: Number of attempts made before giving up
        self.attempts = attempts

    @property
    def last_error(self) -> BaseException | None:
        return self.__cause__


class ClusterRetriesExhaustedError(_TerminalClusterError):
    """
    Raised when a command used up all its attempts without
    succeeding. The most recent failure is available as ``__cause__``.
    """


class ClusterDeadlineExceededError(_TerminalClusterError):
    """
    Raised when the time budget for retrying a command ran out
    before it succeeded. The most recent failure (if any) is available
    as ``__cause__``.
    """


class AskError(ResponseError):
    """
    ``ASK`` reply: the slot is being migrated and the key is not (or no longer)
    on the node that was asked. Only the next command should be sent to the
    target node, prefixed with ``ASKING``. The slot map stays unchanged.
    """

    def __init__(self, resp: str) -> None:
        self.args = (resp,)
        self.message = resp
        slot, _, address = resp.partition(" ")
        host, _, port = address.rpartition(":")
        #: slot the redirect applies to
        self.slot_id = int(slot)
        self.host, self.port = host, int(port)
        self.node_addr = (self.host, self.port)


class TryAgainError(ResponseError):
    """
    ``TRYAGAIN`` reply: a multi key command touched a slot in the middle
    of a migration where its keys are split between the source and target
    nodes. The same command can be repeated against the same node.
    """


class MovedError(AskError):
    """
    ``MOVED`` reply: the slot is permanently served by another node.
    The client remembers the new owner for all subsequent commands.
    """
