from __future__ import annotations

from typing import Hashable

from slotroute.constants import SYM_CRLF, RESPDataType
from slotroute.exceptions import (
    AskError,
    AuthenticationFailureError,
    AuthenticationRequiredError,
    AuthorizationError,
    BusyLoadingError,
    ClusterCrossSlotError,
    ClusterDownError,
    ConnectionError,
    InvalidResponse,
    MovedError,
    NoScriptError,
    ProtocolError,
    ReadOnlyError,
    RedisError,
    ResponseError,
    TryAgainError,
    UnknownCommandError,
    WrongTypeError,
)
from slotroute.typing import Final, ResponseType


class NotEnoughData:
    pass


NOT_ENOUGH_DATA: Final[NotEnoughData] = NotEnoughData()

#: Error prefixes sent by the server and the exception each one maps to
ERROR_CLASSES: Final[dict[str, type[RedisError]]] = {
    "ASK": AskError,
    "CLUSTERDOWN": ClusterDownError,
    "CROSSSLOT": ClusterCrossSlotError,
    "LOADING": BusyLoadingError,
    "MASTERDOWN": ClusterDownError,
    "MOVED": MovedError,
    "NOAUTH": AuthenticationRequiredError,
    "NOPERM": AuthorizationError,
    "NOPROTO": ProtocolError,
    "NOSCRIPT": NoScriptError,
    "READONLY": ReadOnlyError,
    "TRYAGAIN": TryAgainError,
    "WRONGPASS": AuthenticationFailureError,
    "WRONGTYPE": WrongTypeError,
}

#: Generic ``ERR`` replies that are refined by the start of their message
GENERIC_ERROR_CLASSES: Final[tuple[tuple[str, type[RedisError]], ...]] = (
    ("max number of clients reached", ConnectionError),
    ("unknown command", UnknownCommandError),
    ("unknown subcommand", UnknownCommandError),
)

AGGREGATE_TYPES: Final[frozenset[int]] = frozenset(
    {RESPDataType.ARRAY, RESPDataType.PUSH, RESPDataType.SET, RESPDataType.MAP}
)


class _Incomplete(Exception):
    """Raised internally when the buffer ends before the reply does"""


def _hashable(item: ResponseType) -> Hashable:
    if isinstance(item, list):
        return tuple(_hashable(i) for i in item)
    if isinstance(item, (set, frozenset)):
        return frozenset(_hashable(i) for i in item)
    if isinstance(item, dict):
        return tuple((k, _hashable(v)) for k, v in item.items())
    return item


def parse_error(response: str) -> RedisError:
    """
    Maps an error reply to the matching exception. The error code is
    stripped from the message except when it isn't recognized.
    """
    code, _, message = response.partition(" ")
    if code == "ERR":
        detail = message.lower()
        for prefix, exception_class in GENERIC_ERROR_CLASSES:
            if detail.startswith(prefix):
                return exception_class(message)
        return ResponseError(message)
    if (exception_class := ERROR_CLASSES.get(code)) is not None:
        return exception_class(message)
    return ResponseError(response)


class Parser:
    """
    Incremental RESP2/RESP3 parser fed with the raw bytes
    received on a connection.

    A reply is only consumed from the buffer once it has been read completely.
    Until then every call to :meth:`get_response` starts over from the beginning
    of the reply.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)

    def on_disconnect(self) -> None:
        """Called when the stream disconnects"""
        self._buffer.clear()

    def get_response(self, decode: bool, encoding: str | None = None) -> NotEnoughData | ResponseType:
        """
        :param decode: Whether to decode simple or bulk strings
        :return: The next available parsed response read from the connection.
         Out of band push messages are discarded. Error replies are returned
         (not raised) as instances of the mapped exception. If there is not enough
         data on the wire a ``NotEnoughData`` instance will be returned.
        """
        while True:
            try:
                marker, response, end = self._read(0, decode and encoding or None)
            except _Incomplete:
                return NOT_ENOUGH_DATA
            del self._buffer[:end]
            if marker != RESPDataType.PUSH:
                return response

    def _line(self, start: int) -> tuple[bytes, int]:
        end = self._buffer.find(SYM_CRLF, start)
        if end < 0:
            raise _Incomplete()
        return bytes(self._buffer[start:end]), end + 2

    def _string(self, data: bytes, encoding: str | None) -> bytes | str:
        if encoding:
            try:
                return data.decode(encoding)
            except ValueError:
                pass
        return data

    def _read(self, start: int, encoding: str | None) -> tuple[int, ResponseType, int]:
        """
        Reads the value starting at :paramref:`start`

        :return: the type marker, the value and the offset just past the value
        """
        line, position = self._line(start)
        if not line:
            raise InvalidResponse("Protocol Error: empty line")
        marker, chunk = line[0], line[1:]

        if marker == RESPDataType.SIMPLE_STRING:
            return marker, self._string(chunk, encoding), position
        if marker in (RESPDataType.BULK_STRING, RESPDataType.VERBATIM):
            length = int(chunk)
            if length < 0:
                return marker, None, position
            end = position + length
            if len(self._buffer) < end + 2:
                raise _Incomplete()
            data = bytes(self._buffer[position:end])
            if marker == RESPDataType.VERBATIM:
                if data[:3] != b"txt":
                    raise InvalidResponse(f"Unexpected verbatim string of type {data[:3]!r}")
                data = data[4:]
            return marker, self._string(data, encoding), end + 2
        if marker in (RESPDataType.INT, RESPDataType.BIGNUMBER):
            return marker, int(chunk), position
        if marker == RESPDataType.DOUBLE:
            return marker, float(chunk), position
        if marker == RESPDataType.NONE:
            return marker, None, position
        if marker == RESPDataType.BOOLEAN:
            return marker, chunk == b"t", position
        if marker == RESPDataType.ERROR:
            return marker, parse_error(chunk.decode("utf-8", "replace")), position
        if marker == RESPDataType.ATTRIBUTE:
            # attributes annotate the value that follows them and are dropped
            _, _, position = self._read_aggregate(RESPDataType.MAP, int(chunk), position, encoding)
            return self._read(position, encoding)
        if marker in AGGREGATE_TYPES:
            return self._read_aggregate(marker, int(chunk), position, encoding)
        raise InvalidResponse(f"Protocol Error: {chr(marker)}, {chunk!r}")

    def _read_aggregate(
        self, marker: int, length: int, position: int, encoding: str | None
    ) -> tuple[int, ResponseType, int]:
        if length < 0:
            return marker, None, position
        items: list[ResponseType] = []
        for _ in range(length * 2 if marker == RESPDataType.MAP else length):
            _, item, position = self._read(position, encoding)
            items.append(item)
        if marker == RESPDataType.MAP:
            return marker, {_hashable(k): v for k, v in zip(items[::2], items[1::2])}, position
        if marker == RESPDataType.SET:
            return marker, {_hashable(item) for item in items}, position
        return marker, items, position
