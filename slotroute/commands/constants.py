"""
slotroute.commands.constants
----------------------------
Constants relating to redis command names and groups
"""

from __future__ import annotations

from slotroute._utils import CaseAndEncodingInsensitiveEnum
from slotroute.typing import Final


class CommandName(CaseAndEncodingInsensitiveEnum):
    """
    Enum for listing the redis commands used by slotroute
    """

    #: Commands for connection
    AUTH = b"AUTH"
    ECHO = b"ECHO"
    HELLO = b"HELLO"
    PING = b"PING"
    SELECT = b"SELECT"
    CLIENT_SETNAME = b"CLIENT SETNAME"

    #: Commands for cluster
    ASKING = b"ASKING"
    CLUSTER_SLOTS = b"CLUSTER SLOTS"
    CONFIG_GET = b"CONFIG GET"
    WAIT = b"WAIT"

    #: Commands for generic
    COPY = b"COPY"
    DEL = b"DEL"
    EXISTS = b"EXISTS"
    EXPIRE = b"EXPIRE"
    KEYS = b"KEYS"
    RENAME = b"RENAME"
    RENAMENX = b"RENAMENX"
    SCAN = b"SCAN"
    SORT = b"SORT"
    TOUCH = b"TOUCH"
    TTL = b"TTL"
    TYPE = b"TYPE"
    UNLINK = b"UNLINK"

    #: Commands for string
    APPEND = b"APPEND"
    DECRBY = b"DECRBY"
    GET = b"GET"
    GETDEL = b"GETDEL"
    INCRBY = b"INCRBY"
    MGET = b"MGET"
    MSET = b"MSET"
    MSETNX = b"MSETNX"
    SET = b"SET"
    STRLEN = b"STRLEN"

    #: Commands for hash
    HDEL = b"HDEL"
    HGET = b"HGET"
    HGETALL = b"HGETALL"
    HSCAN = b"HSCAN"
    HSET = b"HSET"

    #: Commands for list
    BLPOP = b"BLPOP"
    BRPOP = b"BRPOP"
    LLEN = b"LLEN"
    LMOVE = b"LMOVE"
    LPOP = b"LPOP"
    LPUSH = b"LPUSH"
    LRANGE = b"LRANGE"
    RPOP = b"RPOP"
    RPOPLPUSH = b"RPOPLPUSH"
    RPUSH = b"RPUSH"

    #: Commands for set
    SADD = b"SADD"
    SCARD = b"SCARD"
    SDIFF = b"SDIFF"
    SDIFFSTORE = b"SDIFFSTORE"
    SINTER = b"SINTER"
    SINTERSTORE = b"SINTERSTORE"
    SISMEMBER = b"SISMEMBER"
    SMEMBERS = b"SMEMBERS"
    SMOVE = b"SMOVE"
    SREM = b"SREM"
    SSCAN = b"SSCAN"
    SUNION = b"SUNION"
    SUNIONSTORE = b"SUNIONSTORE"

    #: Commands for sorted-set
    ZADD = b"ZADD"
    ZCARD = b"ZCARD"
    ZDIFFSTORE = b"ZDIFFSTORE"
    ZINTERSTORE = b"ZINTERSTORE"
    ZRANGE = b"ZRANGE"
    ZRANGESTORE = b"ZRANGESTORE"
    ZSCAN = b"ZSCAN"
    ZSCORE = b"ZSCORE"
    ZUNIONSTORE = b"ZUNIONSTORE"

    #: Commands for bitmap
    BITOP = b"BITOP"

    #: Commands for hyperloglog
    PFADD = b"PFADD"
    PFCOUNT = b"PFCOUNT"
    PFMERGE = b"PFMERGE"

    #: Commands for geo
    GEOADD = b"GEOADD"
    GEORADIUS = b"GEORADIUS"

    #: Commands for stream
    XADD = b"XADD"
    XLEN = b"XLEN"
    XREAD = b"XREAD"

    #: Commands for scripting
    EVAL = b"EVAL"
    EVALSHA = b"EVALSHA"
    SCRIPT_EXISTS = b"SCRIPT EXISTS"
    SCRIPT_FLUSH = b"SCRIPT FLUSH"
    SCRIPT_KILL = b"SCRIPT KILL"
    SCRIPT_LOAD = b"SCRIPT LOAD"

    #: Commands for pubsub
    PUBLISH = b"PUBLISH"

    #: Commands for transactions
    UNWATCH = b"UNWATCH"
    WATCH = b"WATCH"


#: Commands that are meaningless when the keyspace is sharded over
#: many nodes behind a single client
UNSUPPORTED_COMMANDS: Final[frozenset[CommandName]] = frozenset(
    {CommandName.SELECT, CommandName.UNWATCH, CommandName.WATCH}
)
