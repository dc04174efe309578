from __future__ import annotations

from slotroute._utils import b, crc16, hash_slot, nativestr, pattern_hash_tag
from slotroute.constants import HASH_SLOTS
from slotroute.exceptions import ClusterCrossSlotError, ClusterRoutingError, DataError
from slotroute.typing import Iterable, KeyT, StringT


def key_slot(key: KeyT, encoding: str = "utf-8") -> int:
    """
    Returns the hash slot :paramref:`key` belongs to
    """
    return hash_slot(b(key, encoding))


def validate_single_slot(
    keys: Iterable[KeyT], command: bytes | None = None, encoding: str = "utf-8"
) -> int:
    """
    Ensures that all :paramref:`keys` hash to the same slot and returns it.

    For commands that store their result the destination key must be included in
    :paramref:`keys` as it is subject to the same constraint.

    :raises: :exc:`~slotroute.exceptions.ClusterCrossSlotError` if the keys span
     more than one slot.
    """
    key_tuple = tuple(keys)
    if not key_tuple:
        raise DataError(
            f"{nativestr(command) if command else 'Request'} requires at least one key for routing"
        )
    slots = tuple(dict.fromkeys(key_slot(key, encoding) for key in key_tuple))
    if len(slots) > 1:
        raise ClusterCrossSlotError(
            f"Keys in {nativestr(command) if command else 'request'} span "
            f"{len(slots)} slots: {', '.join(str(s) for s in slots)}",
            command=command,
            keys=key_tuple,
            slots=slots,
        )
    return slots[0]


def pattern_slot(pattern: StringT | None, command: bytes | None = None) -> int:
    """
    Returns the single slot every key matching :paramref:`pattern` must
    belong to.

    :raises: :exc:`~slotroute.exceptions.ClusterRoutingError` if the pattern is missing,
     empty or does not pin its matches to one hash tag.
    """
    name = nativestr(command) if command else "Pattern"
    if not pattern:
        raise ClusterRoutingError(
            f"{name} requires a match pattern with a hash tag to be routed in a cluster"
        )
    tag = pattern_hash_tag(b(pattern))
    if tag is None:
        raise ClusterRoutingError(
            f"{name} pattern {nativestr(pattern)!r} does not contain a hash tag that "
            "pins all matching keys to a single slot"
        )
    return crc16(tag) % HASH_SLOTS
