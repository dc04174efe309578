from __future__ import annotations

import itertools

from slotroute.cluster import pattern_slot
from slotroute.commands import CommandMixin
from slotroute.commands.constants import CommandName
from slotroute.exceptions import ClusterUnsupportedOperationError, DataError
from slotroute.response._callbacks import (
    BoolCallback,
    DictCallback,
    FloatCallback,
    IntCallback,
    NoopCallback,
    PairScanCallback,
    ScanCallback,
    SetCallback,
    SimpleStringCallback,
    TupleCallback,
)
from slotroute.typing import (
    AnyStr,
    AsyncIterator,
    KeyT,
    Literal,
    Mapping,
    Parameters,
    ResponseType,
    StringT,
    ValueT,
)


class CoreCommands(CommandMixin[AnyStr]):
    """
    Typed wrappers for the redis commands supported against a cluster.

    Every command declares the keys it touches so that it can be routed
    to the node owning their slot. Commands that store their result declare
    the destination as well.
    """

    # ++++++++++ strings ++++++++++++++

    async def append(self, key: KeyT, value: ValueT) -> int:
        """
        Append a value to a key

        :return: the length of the string after the append operation.
        """

        return await self.execute_command(
            CommandName.APPEND, key, value, keys=[key], callback=IntCallback()
        )

    async def decrby(self, key: KeyT, decrement: int = 1) -> int:
        """
        Decrement the integer value of a key by the given number

        :return: the value of :paramref:`key` after the decrement
        """

        return await self.execute_command(
            CommandName.DECRBY, key, decrement, keys=[key], callback=IntCallback()
        )

    async def get(self, key: KeyT) -> AnyStr | None:
        """
        Get the value of a key

        :return: the value of :paramref:`key`, or ``None`` when :paramref:`key`
         does not exist.
        """

        return await self.execute_command(
            CommandName.GET, key, keys=[key], callback=NoopCallback[AnyStr | None]()
        )

    async def getdel(self, key: KeyT) -> AnyStr | None:
        """
        Get the value of a key and delete the key
        """

        return await self.execute_command(
            CommandName.GETDEL, key, keys=[key], callback=NoopCallback[AnyStr | None]()
        )

    async def incrby(self, key: KeyT, increment: int = 1) -> int:
        """
        Increment the integer value of a key by the given amount

        :return: the value of :paramref:`key` after the increment
        """

        return await self.execute_command(
            CommandName.INCRBY, key, increment, keys=[key], callback=IntCallback()
        )

    async def mget(self, keys: Parameters[KeyT]) -> tuple[AnyStr | None, ...]:
        """
        Returns values ordered identically to :paramref:`keys`. All keys
        must belong to the same slot.
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.MGET, *keys, keys=keys, callback=TupleCallback[AnyStr | None]()
        )

    async def mset(self, key_values: Mapping[KeyT, ValueT]) -> bool:
        """
        Sets multiple keys to multiple values. All keys must belong to
        the same slot.
        """

        return await self.execute_command(
            CommandName.MSET,
            *itertools.chain.from_iterable(key_values.items()),
            keys=list(key_values),
            callback=SimpleStringCallback(),
        )

    async def msetnx(self, key_values: Mapping[KeyT, ValueT]) -> bool:
        """
        Set multiple keys to multiple values, only if none of the keys exist

        :return: Whether all the keys were set
        """

        return await self.execute_command(
            CommandName.MSETNX,
            *itertools.chain.from_iterable(key_values.items()),
            keys=list(key_values),
            callback=BoolCallback(),
        )

    async def set(
        self,
        key: KeyT,
        value: ValueT,
        *,
        condition: Literal["NX", "XX"] | None = None,
        ex: int | None = None,
        px: int | None = None,
        keepttl: bool | None = None,
    ) -> bool:
        """
        Set the string value of a key

        :param condition: Only set the key if it does not (``NX``) or does (``XX``)
         already exist
        :param ex: Number of seconds to expire in
        :param px: Number of milliseconds to expire in
        :param keepttl: Retain the time to live associated with the key

        :return: Whether the operation was performed successfully.
        """
        if len([p for p in (ex, px, keepttl) if p is not None]) > 1:
            raise DataError("Only one of ex, px or keepttl can be provided")
        pieces: list[ValueT] = [key, value]

        if ex is not None:
            pieces.extend(["EX", ex])

        if px is not None:
            pieces.extend(["PX", px])

        if keepttl:
            pieces.append("KEEPTTL")

        if condition:
            pieces.append(condition)

        return await self.execute_command(
            CommandName.SET, *pieces, keys=[key], callback=SimpleStringCallback()
        )

    async def strlen(self, key: KeyT) -> int:
        return await self.execute_command(
            CommandName.STRLEN, key, keys=[key], callback=IntCallback()
        )

    # ++++++++++ generic ++++++++++++++

    async def copy(self, source: KeyT, destination: KeyT, replace: bool | None = None) -> bool:
        """
        Copy the value stored at :paramref:`source` to :paramref:`destination`
        """
        pieces: list[ValueT] = [source, destination]

        if replace:
            pieces.append("REPLACE")

        return await self.execute_command(
            CommandName.COPY, *pieces, keys=[source, destination], callback=BoolCallback()
        )

    async def delete(self, keys: Parameters[KeyT]) -> int:
        """
        Delete one or more keys specified by :paramref:`keys`

        :return: The number of keys that were removed.
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.DEL, *keys, keys=keys, callback=IntCallback()
        )

    async def exists(self, keys: Parameters[KeyT]) -> int:
        """
        Determine if a key exists

        :return: the number of keys that exist from those specified as arguments.
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.EXISTS, *keys, keys=keys, callback=IntCallback()
        )

    async def expire(self, key: KeyT, seconds: int) -> bool:
        """
        Set a key's time to live in seconds
        """

        return await self.execute_command(
            CommandName.EXPIRE, key, seconds, keys=[key], callback=BoolCallback()
        )

    async def keys(self, pattern: StringT = "*") -> set[AnyStr]:
        """
        Find all keys matching the given pattern.

        Only patterns that pin every match to a single hash tag
        (for example ``{user:1}:*``) can be served by a cluster.

        :raises: :exc:`~slotroute.exceptions.ClusterRoutingError` for any other pattern
        """

        return await self.execute_command(
            CommandName.KEYS,
            pattern,
            slot=pattern_slot(pattern, CommandName.KEYS),
            callback=SetCallback[AnyStr](),
        )

    async def rename(self, key: KeyT, newkey: KeyT) -> bool:
        """
        Rekeys key :paramref:`key` to :paramref:`newkey`
        """

        return await self.execute_command(
            CommandName.RENAME, key, newkey, keys=[key, newkey], callback=SimpleStringCallback()
        )

    async def renamenx(self, key: KeyT, newkey: KeyT) -> bool:
        """
        Rekeys key :paramref:`key` to :paramref:`newkey` if :paramref:`newkey`
        doesn't already exist

        :return: False when :paramref:`newkey` already exists.
        """

        return await self.execute_command(
            CommandName.RENAMENX, key, newkey, keys=[key, newkey], callback=BoolCallback()
        )

    async def scan(
        self,
        cursor: int | None = 0,
        match: StringT | None = None,
        count: int | None = None,
        type_: StringT | None = None,
    ) -> tuple[int, tuple[AnyStr, ...]]:
        """
        Incrementally iterate the keys of the node owning the hash tag
        of :paramref:`match`

        :raises: :exc:`~slotroute.exceptions.ClusterRoutingError` if :paramref:`match`
         is not provided or does not pin its matches to a single hash tag
        """
        slot = pattern_slot(match, CommandName.SCAN)
        pieces: list[ValueT] = [cursor or b"0"]

        if match is not None:
            pieces.extend(["MATCH", match])

        if count is not None:
            pieces.extend(["COUNT", count])

        if type_ is not None:
            pieces.extend(["TYPE", type_])

        return await self.execute_command(
            CommandName.SCAN, *pieces, slot=slot, callback=ScanCallback()
        )

    async def scan_iter(
        self,
        match: StringT | None = None,
        count: int | None = None,
        type_: StringT | None = None,
    ) -> AsyncIterator[AnyStr]:
        """
        Make an iterator using the SCAN command so that the client doesn't
        need to remember the cursor position.
        """
        cursor = None

        while cursor != 0:
            cursor, data = await self.scan(cursor=cursor, match=match, count=count, type_=type_)

            for item in data:
                yield item

    async def sort(
        self,
        key: KeyT,
        by: StringT | None = None,
        offset: int | None = None,
        count: int | None = None,
        order: Literal["ASC", "DESC"] | None = None,
        alpha: bool | None = None,
        store: KeyT | None = None,
    ) -> tuple[AnyStr, ...] | int:
        """
        Sort the elements in a list, set or sorted set

        :return: sorted elements, or the number of sorted elements stored
         in :paramref:`store` when provided.
        """
        if (offset is None) != (count is None):
            raise DataError("Both offset and count must be specified together")
        pieces: list[ValueT] = [key]

        if by is not None:
            pieces.extend(["BY", by])

        if offset is not None and count is not None:
            pieces.extend(["LIMIT", offset, count])

        if order:
            pieces.append(order)

        if alpha:
            pieces.append("ALPHA")

        if store is not None:
            pieces.extend(["STORE", store])

            return await self.execute_command(
                CommandName.SORT, *pieces, keys=[key, store], callback=IntCallback()
            )

        return await self.execute_command(
            CommandName.SORT, *pieces, keys=[key], callback=TupleCallback[AnyStr]()
        )

    async def touch(self, keys: Parameters[KeyT]) -> int:
        keys = list(keys)

        return await self.execute_command(
            CommandName.TOUCH, *keys, keys=keys, callback=IntCallback()
        )

    async def ttl(self, key: KeyT) -> int:
        """
        Get the time to live for a key in seconds

        :return: TTL in seconds, ``-2`` if the key does not exist or ``-1``
         if it has no associated expire.
        """

        return await self.execute_command(CommandName.TTL, key, keys=[key], callback=IntCallback())

    async def type(self, key: KeyT) -> AnyStr | None:
        """
        Determine the type stored at key
        """

        return await self.execute_command(
            CommandName.TYPE, key, keys=[key], callback=NoopCallback[AnyStr | None]()
        )

    async def unlink(self, keys: Parameters[KeyT]) -> int:
        """
        Delete a key asynchronously in another thread.
        Otherwise it is just as :meth:`delete`, but non blocking.
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.UNLINK, *keys, keys=keys, callback=IntCallback()
        )

    # ++++++++++ hashes ++++++++++++++

    async def hdel(self, key: KeyT, fields: Parameters[StringT]) -> int:
        """Deletes :paramref:`fields` from hash :paramref:`key`"""

        return await self.execute_command(
            CommandName.HDEL, key, *fields, keys=[key], callback=IntCallback()
        )

    async def hget(self, key: KeyT, field: StringT) -> AnyStr | None:
        """Returns the value of :paramref:`field` within the hash :paramref:`key`"""

        return await self.execute_command(
            CommandName.HGET, key, field, keys=[key], callback=NoopCallback[AnyStr | None]()
        )

    async def hgetall(self, key: KeyT) -> dict[AnyStr, AnyStr]:
        """Returns a Python dict of the hash's name/value pairs"""

        return await self.execute_command(
            CommandName.HGETALL, key, keys=[key], callback=DictCallback[AnyStr, AnyStr]()
        )

    async def hscan(
        self,
        key: KeyT,
        cursor: int | None = None,
        match: StringT | None = None,
        count: int | None = None,
    ) -> tuple[int, dict[AnyStr, AnyStr]]:
        """
        Incrementally return key/value slices in a hash. Also returns a
        cursor pointing to the scan position.
        """
        pieces: list[ValueT] = [key, cursor or "0"]

        if match is not None:
            pieces.extend(["MATCH", match])

        if count is not None:
            pieces.extend(["COUNT", count])

        return await self.execute_command(
            CommandName.HSCAN, *pieces, keys=[key], callback=PairScanCallback()
        )

    async def hset(self, key: KeyT, field_values: Mapping[StringT, ValueT]) -> int:
        """
        Sets the value of one or more fields on a hash

        :return: The number of fields that were added.
        """

        return await self.execute_command(
            CommandName.HSET,
            key,
            *itertools.chain.from_iterable(field_values.items()),
            keys=[key],
            callback=IntCallback(),
        )

    # ++++++++++ lists ++++++++++++++

    async def blpop(
        self, keys: Parameters[KeyT], timeout: int | float
    ) -> list[AnyStr] | None:
        """
        Remove and get the first element in a list, or block until one is available

        .. note:: The wait is also bounded by the client's ``stream_timeout``.
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.BLPOP, *keys, timeout, keys=keys, callback=NoopCallback[list[AnyStr] | None]()
        )

    async def brpop(
        self, keys: Parameters[KeyT], timeout: int | float
    ) -> list[AnyStr] | None:
        """
        Remove and get the last element in a list, or block until one is available
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.BRPOP, *keys, timeout, keys=keys, callback=NoopCallback[list[AnyStr] | None]()
        )

    async def llen(self, key: KeyT) -> int:
        return await self.execute_command(CommandName.LLEN, key, keys=[key], callback=IntCallback())

    async def lmove(
        self,
        source: KeyT,
        destination: KeyT,
        wherefrom: Literal["LEFT", "RIGHT"],
        whereto: Literal["LEFT", "RIGHT"],
    ) -> AnyStr | None:
        """
        Pop an element from a list, push it to another list and return it
        """

        return await self.execute_command(
            CommandName.LMOVE,
            source,
            destination,
            wherefrom,
            whereto,
            keys=[source, destination],
            callback=NoopCallback[AnyStr | None](),
        )

    async def lpop(self, key: KeyT) -> AnyStr | None:
        return await self.execute_command(
            CommandName.LPOP, key, keys=[key], callback=NoopCallback[AnyStr | None]()
        )

    async def lpush(self, key: KeyT, elements: Parameters[ValueT]) -> int:
        """
        Prepend one or multiple elements to a list

        :return: the length of the list after the push operations.
        """

        return await self.execute_command(
            CommandName.LPUSH, key, *elements, keys=[key], callback=IntCallback()
        )

    async def lrange(self, key: KeyT, start: int, stop: int) -> list[AnyStr]:
        """
        Get a range of elements from a list
        """

        return await self.execute_command(
            CommandName.LRANGE, key, start, stop, keys=[key], callback=NoopCallback[list[AnyStr]]()
        )

    async def rpop(self, key: KeyT) -> AnyStr | None:
        return await self.execute_command(
            CommandName.RPOP, key, keys=[key], callback=NoopCallback[AnyStr | None]()
        )

    async def rpoplpush(self, source: KeyT, destination: KeyT) -> AnyStr | None:
        """
        Remove the last element in a list, prepend it to another list and return it
        """

        return await self.execute_command(
            CommandName.RPOPLPUSH,
            source,
            destination,
            keys=[source, destination],
            callback=NoopCallback[AnyStr | None](),
        )

    async def rpush(self, key: KeyT, elements: Parameters[ValueT]) -> int:
        """
        Append an element(s) to a list

        :return: the length of the list after the push operation.
        """

        return await self.execute_command(
            CommandName.RPUSH, key, *elements, keys=[key], callback=IntCallback()
        )

    # ++++++++++ sets ++++++++++++++

    async def sadd(self, key: KeyT, members: Parameters[ValueT]) -> int:
        """
        Add one or more members to a set

        :return: the number of elements that were added to the set, not including
         all the elements already present in the set.
        """

        return await self.execute_command(
            CommandName.SADD, key, *members, keys=[key], callback=IntCallback()
        )

    async def scard(self, key: KeyT) -> int:
        return await self.execute_command(CommandName.SCARD, key, keys=[key], callback=IntCallback())

    async def sdiff(self, keys: Parameters[KeyT]) -> set[AnyStr]:
        """
        Subtract multiple sets
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.SDIFF, *keys, keys=keys, callback=SetCallback[AnyStr]()
        )

    async def sdiffstore(self, keys: Parameters[KeyT], destination: KeyT) -> int:
        """
        Subtract multiple sets and store the resulting set in a key
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.SDIFFSTORE,
            destination,
            *keys,
            keys=[destination, *keys],
            callback=IntCallback(),
        )

    async def sinter(self, keys: Parameters[KeyT]) -> set[AnyStr]:
        """
        Intersect multiple sets
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.SINTER, *keys, keys=keys, callback=SetCallback[AnyStr]()
        )

    async def sinterstore(self, keys: Parameters[KeyT], destination: KeyT) -> int:
        """
        Intersect multiple sets and store the resulting set in a key
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.SINTERSTORE,
            destination,
            *keys,
            keys=[destination, *keys],
            callback=IntCallback(),
        )

    async def sismember(self, key: KeyT, member: ValueT) -> bool:
        return await self.execute_command(
            CommandName.SISMEMBER, key, member, keys=[key], callback=BoolCallback()
        )

    async def smembers(self, key: KeyT) -> set[AnyStr]:
        """Returns all members of the set"""

        return await self.execute_command(
            CommandName.SMEMBERS, key, keys=[key], callback=SetCallback[AnyStr]()
        )

    async def smove(self, source: KeyT, destination: KeyT, member: ValueT) -> bool:
        """
        Move a member from one set to another
        """

        return await self.execute_command(
            CommandName.SMOVE,
            source,
            destination,
            member,
            keys=[source, destination],
            callback=BoolCallback(),
        )

    async def srem(self, key: KeyT, members: Parameters[ValueT]) -> int:
        """
        Remove one or more members from a set

        :return: the number of members that were removed from the set, not
         including non existing members.
        """

        return await self.execute_command(
            CommandName.SREM, key, *members, keys=[key], callback=IntCallback()
        )

    async def sscan(
        self,
        key: KeyT,
        cursor: int | None = 0,
        match: StringT | None = None,
        count: int | None = None,
    ) -> tuple[int, set[AnyStr]]:
        """
        Incrementally returns subsets of elements in a set. Also returns a
        cursor pointing to the scan position.
        """
        pieces: list[ValueT] = [key, cursor or "0"]

        if match is not None:
            pieces.extend(["MATCH", match])

        if count is not None:
            pieces.extend(["COUNT", count])

        cursor, members = await self.execute_command(
            CommandName.SSCAN, *pieces, keys=[key], callback=ScanCallback()
        )
        return cursor, set(members)

    async def sunion(self, keys: Parameters[KeyT]) -> set[AnyStr]:
        """
        Add multiple sets
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.SUNION, *keys, keys=keys, callback=SetCallback[AnyStr]()
        )

    async def sunionstore(self, keys: Parameters[KeyT], destination: KeyT) -> int:
        """
        Add multiple sets and store the resulting set in a key
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.SUNIONSTORE,
            destination,
            *keys,
            keys=[destination, *keys],
            callback=IntCallback(),
        )

    # ++++++++++ sorted sets ++++++++++++++

    async def zadd(self, key: KeyT, member_scores: Mapping[StringT, int | float]) -> int:
        """
        Add one or more members to a sorted set, or update their scores

        :return: the number of elements added to the sorted set
        """
        pieces: list[ValueT] = [key]

        for member, score in member_scores.items():
            pieces.extend([score, member])

        return await self.execute_command(
            CommandName.ZADD, *pieces, keys=[key], callback=IntCallback()
        )

    async def zcard(self, key: KeyT) -> int:
        return await self.execute_command(CommandName.ZCARD, key, keys=[key], callback=IntCallback())

    async def zdiffstore(self, keys: Parameters[KeyT], destination: KeyT) -> int:
        """
        Subtract multiple sorted sets and store the resulting sorted set
        in a new key
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.ZDIFFSTORE,
            destination,
            len(keys),
            *keys,
            keys=[destination, *keys],
            callback=IntCallback(),
        )

    async def zinterstore(
        self,
        keys: Parameters[KeyT],
        destination: KeyT,
        aggregate: Literal["SUM", "MIN", "MAX"] | None = None,
    ) -> int:
        """
        Intersect multiple sorted sets and store the resulting sorted set in a new key

        :return: the number of elements in the resulting sorted set at
         :paramref:`destination`.
        """

        return await self._zaggregate(CommandName.ZINTERSTORE, keys, destination, aggregate)

    async def zrange(
        self,
        key: KeyT,
        start: int,
        stop: int,
        withscores: bool | None = None,
    ) -> tuple[AnyStr, ...]:
        """
        Return a range of members in a sorted set. When :paramref:`withscores`
        is set the members and scores are interleaved (RESP2) or paired (RESP3)
        as returned by the server.
        """
        pieces: list[ValueT] = [key, start, stop]

        if withscores:
            pieces.append("WITHSCORES")

        return await self.execute_command(
            CommandName.ZRANGE, *pieces, keys=[key], callback=TupleCallback[AnyStr]()
        )

    async def zrangestore(self, dst: KeyT, src: KeyT, min: int, max: int) -> int:
        """
        Store a range of members from sorted set into another key

        :return: the number of elements in the resulting sorted set
        """

        return await self.execute_command(
            CommandName.ZRANGESTORE, dst, src, min, max, keys=[dst, src], callback=IntCallback()
        )

    async def zscan(
        self,
        key: KeyT,
        cursor: int | None = 0,
        match: StringT | None = None,
        count: int | None = None,
    ) -> tuple[int, dict[AnyStr, AnyStr]]:
        """
        Incrementally iterate sorted sets elements and associated scores
        """
        pieces: list[ValueT] = [key, cursor or "0"]

        if match is not None:
            pieces.extend(["MATCH", match])

        if count is not None:
            pieces.extend(["COUNT", count])

        return await self.execute_command(
            CommandName.ZSCAN, *pieces, keys=[key], callback=PairScanCallback()
        )

    async def zscore(self, key: KeyT, member: ValueT) -> float | None:
        """
        Get the score associated with the given member in a sorted set
        """

        return await self.execute_command(
            CommandName.ZSCORE, key, member, keys=[key], callback=FloatCallback()
        )

    async def zunionstore(
        self,
        keys: Parameters[KeyT],
        destination: KeyT,
        aggregate: Literal["SUM", "MIN", "MAX"] | None = None,
    ) -> int:
        """
        Add multiple sorted sets and store the resulting sorted set in a new key
        """

        return await self._zaggregate(CommandName.ZUNIONSTORE, keys, destination, aggregate)

    async def _zaggregate(
        self,
        command: CommandName,
        keys: Parameters[KeyT],
        destination: KeyT,
        aggregate: str | None,
    ) -> int:
        keys = list(keys)
        pieces: list[ValueT] = [destination, len(keys), *keys]

        if aggregate:
            pieces.extend(["AGGREGATE", aggregate])

        return await self.execute_command(
            command, *pieces, keys=[destination, *keys], callback=IntCallback()
        )

    # ++++++++++ bitmaps & hyperloglog ++++++++++++++

    async def bitop(
        self,
        keys: Parameters[KeyT],
        operation: Literal["AND", "OR", "XOR", "NOT"],
        destkey: KeyT,
    ) -> int:
        """
        Perform a bitwise operation using :paramref:`operation` between
        :paramref:`keys` and store the result in :paramref:`destkey`.
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.BITOP,
            operation,
            destkey,
            *keys,
            keys=[destkey, *keys],
            callback=IntCallback(),
        )

    async def pfadd(self, key: KeyT, elements: Parameters[ValueT]) -> bool:
        """
        Adds the specified elements to the specified HyperLogLog.

        :return: Whether at least 1 HyperLogLog internal register was altered
        """

        return await self.execute_command(
            CommandName.PFADD, key, *elements, keys=[key], callback=BoolCallback()
        )

    async def pfcount(self, keys: Parameters[KeyT]) -> int:
        """
        Return the approximated cardinality of the set(s) observed by the
        HyperLogLog(s) at :paramref:`keys`
        """
        keys = list(keys)

        return await self.execute_command(
            CommandName.PFCOUNT, *keys, keys=keys, callback=IntCallback()
        )

    async def pfmerge(self, destkey: KeyT, sourcekeys: Parameters[KeyT]) -> bool:
        """
        Merge N different HyperLogLogs into a single one
        """
        sourcekeys = list(sourcekeys)

        return await self.execute_command(
            CommandName.PFMERGE,
            destkey,
            *sourcekeys,
            keys=[destkey, *sourcekeys],
            callback=SimpleStringCallback(),
        )

    # ++++++++++ geo ++++++++++++++

    async def geoadd(
        self, key: KeyT, longitude_latitude_members: Parameters[tuple[float, float, ValueT]]
    ) -> int:
        """
        Add one or more geospatial items in the geospatial index represented
        using a sorted set

        :return: Number of elements added
        """
        pieces: list[ValueT] = [key]

        for longitude, latitude, member in longitude_latitude_members:
            pieces.extend([longitude, latitude, member])

        return await self.execute_command(
            CommandName.GEOADD, *pieces, keys=[key], callback=IntCallback()
        )

    async def georadius(
        self,
        key: KeyT,
        longitude: float,
        latitude: float,
        radius: float,
        unit: Literal["M", "KM", "FT", "MI"],
        count: int | None = None,
        store: KeyT | None = None,
        storedist: KeyT | None = None,
    ) -> int | tuple[ResponseType, ...]:
        """
        Query a geospatial index to fetch members within the distance
        :paramref:`radius` of :paramref:`longitude`, :paramref:`latitude`

        :return: the matching members, or the number of stored members when
         either :paramref:`store` or :paramref:`storedist` is provided.
        """
        if store is not None and storedist is not None:
            raise DataError("store and storedist are mutually exclusive")
        pieces: list[ValueT] = [key, longitude, latitude, radius, unit]

        if count is not None:
            pieces.extend(["COUNT", count])

        if store is not None or storedist is not None:
            destination = store if store is not None else storedist
            assert destination is not None
            pieces.extend(["STORE" if store is not None else "STOREDIST", destination])

            return await self.execute_command(
                CommandName.GEORADIUS,
                *pieces,
                keys=[key, destination],
                callback=IntCallback(),
            )

        return await self.execute_command(
            CommandName.GEORADIUS, *pieces, keys=[key], callback=TupleCallback[ResponseType]()
        )

    # ++++++++++ streams ++++++++++++++

    async def xadd(
        self,
        key: KeyT,
        field_values: Mapping[StringT, ValueT],
        identifier: ValueT | None = None,
        maxlen: int | None = None,
    ) -> AnyStr:
        """
        Appends a new entry to a stream

        :return: The identifier of the added entry
        """
        pieces: list[ValueT] = [key]

        if maxlen is not None:
            pieces.extend(["MAXLEN", "~", maxlen])

        pieces.append(identifier or "*")
        pieces.extend(itertools.chain.from_iterable(field_values.items()))

        return await self.execute_command(
            CommandName.XADD, *pieces, keys=[key], callback=NoopCallback[AnyStr]()
        )

    async def xlen(self, key: KeyT) -> int:
        return await self.execute_command(CommandName.XLEN, key, keys=[key], callback=IntCallback())

    async def xread(
        self,
        streams: Mapping[KeyT, ValueT],
        count: int | None = None,
        block: int | None = None,
    ) -> ResponseType:
        """
        Read entries from one or more streams. All streams must
        belong to the same slot.

        :param streams: mapping of stream keys to the last seen identifier
        """
        pieces: list[ValueT] = []

        if count is not None:
            pieces.extend(["COUNT", count])

        if block is not None:
            pieces.extend(["BLOCK", block])

        pieces.append("STREAMS")
        pieces.extend(streams.keys())
        pieces.extend(streams.values())

        return await self.execute_command(
            CommandName.XREAD, *pieces, keys=list(streams), callback=NoopCallback[ResponseType]()
        )

    # ++++++++++ scripting ++++++++++++++

    async def eval(
        self,
        script: StringT,
        keys: Parameters[KeyT] | None = None,
        args: Parameters[ValueT] | None = None,
    ) -> ResponseType:
        """
        Execute the Lua :paramref:`script` with the key names and argument values
        in :paramref:`keys` and :paramref:`args`. Scripts without keys are
        executed on any node.
        """

        return await self._eval(CommandName.EVAL, script, keys, args)

    async def evalsha(
        self,
        sha1: StringT,
        keys: Parameters[KeyT] | None = None,
        args: Parameters[ValueT] | None = None,
    ) -> ResponseType:
        """
        Execute the Lua script cached by it's :paramref:`sha1` digest
        """

        return await self._eval(CommandName.EVALSHA, sha1, keys, args)

    async def _eval(
        self,
        command: CommandName,
        script: StringT,
        keys: Parameters[KeyT] | None,
        args: Parameters[ValueT] | None,
    ) -> ResponseType:
        _keys = list(keys or [])

        return await self.execute_command(
            command,
            script,
            len(_keys),
            *_keys,
            *(args or []),
            keys=_keys or None,
            callback=NoopCallback[ResponseType](),
        )

    async def script_exists(
        self, sha1s: Parameters[StringT], sample_key: KeyT | None = None
    ) -> tuple[bool, ...]:
        """
        Check existence of scripts in the script cache of the node owning
        :paramref:`sample_key` (or any node if not provided)
        """
        flags = await self.execute_command(
            CommandName.SCRIPT_EXISTS,
            *sha1s,
            sample_key=sample_key,
            callback=TupleCallback[int](),
        )
        return tuple(bool(flag) for flag in flags)

    async def script_flush(
        self,
        sync_type: Literal["ASYNC", "SYNC"] | None = None,
        sample_key: KeyT | None = None,
    ) -> bool:
        """
        Remove all the scripts from the script cache of the node owning
        :paramref:`sample_key` (or any node if not provided)
        """
        pieces: list[ValueT] = [sync_type] if sync_type else []

        return await self.execute_command(
            CommandName.SCRIPT_FLUSH, *pieces, sample_key=sample_key, callback=SimpleStringCallback()
        )

    async def script_kill(self, sample_key: KeyT | None = None) -> bool:
        """
        Kills the currently executing Lua script on the node owning
        :paramref:`sample_key` (or any node if not provided)
        """

        return await self.execute_command(
            CommandName.SCRIPT_KILL, sample_key=sample_key, callback=SimpleStringCallback()
        )

    async def script_load(self, script: StringT, sample_key: KeyT | None = None) -> AnyStr:
        """
        Loads a Lua :paramref:`script` into the script cache of the node owning
        :paramref:`sample_key` (or any node if not provided)

        :return: The SHA1 digest of the script added into the script cache
        """

        return await self.execute_command(
            CommandName.SCRIPT_LOAD, script, sample_key=sample_key, callback=NoopCallback[AnyStr]()
        )

    # ++++++++++ connection & server ++++++++++++++

    async def echo(self, message: StringT) -> AnyStr:
        "Echo the string back from the server"

        return await self.execute_command(
            CommandName.ECHO, message, callback=NoopCallback[AnyStr]()
        )

    async def ping(self, message: StringT | None = None) -> AnyStr:
        """
        Ping any node of the cluster

        :return: ``PONG``, when no argument is provided else the
         :paramref:`message` provided
        """
        pieces: list[ValueT] = [message] if message else []

        return await self.execute_command(
            CommandName.PING, *pieces, callback=NoopCallback[AnyStr]()
        )

    async def publish(self, channel: StringT, message: ValueT) -> int:
        """
        Publish :paramref:`message` on :paramref:`channel`. Messages are propagated
        across the cluster bus, so any node can accept them.

        :return: the number of subscribers the message was delivered to on the
         receiving node.
        """

        return await self.execute_command(
            CommandName.PUBLISH, channel, message, callback=IntCallback()
        )

    async def wait(self, key: KeyT, numreplicas: int, timeout: int) -> int:
        """
        Wait for the synchronous replication of all the write commands sent
        before it to the primary owning :paramref:`key`

        :return: the number of replicas reached by all the writes performed
         in the context of the current connection
        """

        return await self.execute_command(
            CommandName.WAIT, numreplicas, timeout, keys=[key], callback=IntCallback()
        )

    # ++++++++++ unsupported ++++++++++++++

    async def select(self, index: int) -> bool:
        """
        Not supported: a cluster only has database ``0``

        :raises: :exc:`~slotroute.exceptions.ClusterUnsupportedOperationError`
        """
        raise ClusterUnsupportedOperationError("SELECT is not supported in cluster mode")

    async def watch(self, *keys: KeyT) -> bool:
        """
        Not supported: watched keys can't be tracked across the connections
        to different nodes

        :raises: :exc:`~slotroute.exceptions.ClusterUnsupportedOperationError`
        """
        raise ClusterUnsupportedOperationError("WATCH is not supported in cluster mode")

    async def unwatch(self) -> bool:
        """
        :raises: :exc:`~slotroute.exceptions.ClusterUnsupportedOperationError`
        """
        raise ClusterUnsupportedOperationError("UNWATCH is not supported in cluster mode")


__all__ = ["CoreCommands"]
