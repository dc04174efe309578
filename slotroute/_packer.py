from __future__ import annotations

from slotroute.constants import SYM_CRLF, SYM_DOLLAR, SYM_EMPTY, SYM_STAR
from slotroute.typing import ValueT


class Packer:
    def __init__(self, encoding: str):
        self.encoding = encoding

    def encode(self, value: ValueT) -> bytes:
        """Returns a bytestring representation of the value"""
        if isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode(self.encoding)
        elif isinstance(value, bool):
            return b"1" if value else b"0"
        elif isinstance(value, int):
            return b"%d" % value
        elif isinstance(value, float):
            return b"%.15g" % value
        raise TypeError(f"Unable to encode argument of type {type(value).__name__}")

    def pack_command(self, command: bytes, *args: ValueT) -> list[bytes]:
        "Pack a series of arguments into the Redis protocol"
        output: list[bytes] = []
        # the command may carry literal subcommands (e.g. ``CLUSTER SLOTS``)
        # which the server expects as separate arguments
        if b" " in command:
            pieces: tuple[ValueT, ...] = tuple(command.split()) + args
        else:
            pieces = (command,) + args

        buff = SYM_EMPTY.join((SYM_STAR, b"%d" % len(pieces), SYM_CRLF))

        for piece in pieces:
            arg = self.encode(piece)
            # large values are appended as separate chunks to avoid
            # copying them into the header buffer
            if len(buff) > 6000 or len(arg) > 6000:
                buff = SYM_EMPTY.join((buff, SYM_DOLLAR, b"%d" % len(arg), SYM_CRLF))
                output.append(buff)
                output.append(arg)
                buff = SYM_CRLF
            else:
                buff = SYM_EMPTY.join((buff, SYM_DOLLAR, b"%d" % len(arg), SYM_CRLF, arg, SYM_CRLF))
        output.append(buff)
        return output
