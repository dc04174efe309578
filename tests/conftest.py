from __future__ import annotations

import fnmatch
import hashlib
import itertools
from typing import Any, ClassVar, NamedTuple, cast

import pytest
from anyio import lowlevel, sleep
from anyio.abc import ByteStream

import slotroute
from slotroute._utils import b, hash_slot, nativestr
from slotroute.connection import BaseConnection, TCPLocation
from slotroute.constants import HASH_SLOTS
from slotroute.exceptions import (
    AskError,
    ClusterDownError,
    ConnectionError,
    MovedError,
    UnknownCommandError,
)

#: Returned by a hook to let the fake cluster handle the command as usual
NOT_HANDLED = object()

HOST = "127.0.0.1"

#: Sent while establishing a connection, not recorded as calls
HANDSHAKE_COMMANDS = {b"AUTH", b"CLIENT SETNAME", b"HELLO"}

KEYLESS_COMMANDS = {
    b"ECHO",
    b"KEYS",
    b"PING",
    b"PUBLISH",
    b"SCAN",
    b"SCRIPT EXISTS",
    b"SCRIPT FLUSH",
    b"SCRIPT KILL",
    b"SCRIPT LOAD",
    b"WAIT",
}


class Call(NamedTuple):
    node: str
    command: bytes
    args: tuple[Any, ...]


class FakeNode:
    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port
        self.node_id = hashlib.sha1(f"{host}:{port}".encode()).hexdigest()
        self.alive = True
        self.connections = 0

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port

    @property
    def name(self) -> str:
        return f"{self.host}:{self.port}"


class FakeCluster:
    """
    In memory stand in for a redis cluster. The slot table held here is the
    truth the fake servers act on; clients only learn about it through
    ``CLUSTER SLOTS`` and redirects.
    """

    def __init__(self, ports: tuple[int, ...] = (7000, 7001, 7002)) -> None:
        self.nodes: dict[tuple[str, int], FakeNode] = {}
        self.slots: list[tuple[str, int] | None] = [None] * HASH_SLOTS
        self.replicas: dict[tuple[str, int], list[tuple[str, int]]] = {}
        #: slot -> address of the node the slot is being migrated to
        self.migrating: dict[int, tuple[str, int]] = {}
        self.data: dict[bytes, Any] = {}
        self.calls: list[Call] = []
        self.hooks: list[Any] = []
        self.down = False
        self.require_full_coverage = True
        self.connect_latency = 0.0
        self._client_ids = itertools.count(1)
        for port in ports:
            self.add_node(port)
        step = HASH_SLOTS // len(ports)
        for idx, port in enumerate(ports):
            end = HASH_SLOTS - 1 if idx == len(ports) - 1 else (idx + 1) * step - 1
            self.assign(idx * step, end, port)

    @property
    def connection_class(self) -> type[BaseConnection]:
        return cast(
            type[BaseConnection], type("BoundFakeConnection", (FakeConnection,), {"cluster": self})
        )

    @property
    def startup_node(self) -> TCPLocation:
        return TCPLocation(*next(iter(self.nodes)))

    def add_node(self, port: int) -> FakeNode:
        node = self.nodes[(HOST, port)] = FakeNode(HOST, port)
        return node

    def node(self, location: TCPLocation) -> FakeNode | None:
        return self.nodes.get((location.host, location.port))

    def assign(self, start: int, end: int, port: int) -> None:
        for slot in range(start, end + 1):
            self.slots[slot] = (HOST, port)

    def move_slot(self, slot: int, port: int) -> None:
        self.slots[slot] = (HOST, port)

    def owner(self, key: str | bytes) -> FakeNode:
        owner = self.slots[hash_slot(b(key))]
        assert owner
        return self.nodes[owner]

    def kill(self, port: int) -> None:
        self.nodes[(HOST, port)].alive = False

    def fail_over(self, port: int, to_port: int) -> None:
        """Kills the node on ``port`` and hands all its slots over to ``to_port``"""
        self.kill(port)
        for slot, owner in enumerate(self.slots):
            if owner == (HOST, port):
                self.slots[slot] = (HOST, to_port)

    def calls_for(self, command: bytes) -> list[Call]:
        return [call for call in self.calls if call.command == command]

    def cluster_slots(self) -> list[Any]:
        response: list[Any] = []
        for owner, group in itertools.groupby(enumerate(self.slots), key=lambda item: item[1]):
            if owner is None:
                continue
            slots = [slot for slot, _ in group]
            node = self.nodes[owner]
            entry: list[Any] = [slots[0], slots[-1], [b(node.host), node.port, b(node.node_id)]]
            for replica in self.replicas.get(owner, []):
                replica_node = self.nodes[replica]
                entry.append([b(replica_node.host), replica_node.port, b(replica_node.node_id)])
            response.append(entry)
        return response

    async def handle(self, connection: FakeConnection, command: bytes, args: tuple[Any, ...]) -> Any:
        node = self.node(connection.location)
        assert node
        name = bytes(command).upper()
        if name not in HANDSHAKE_COMMANDS:
            self.calls.append(Call(node.name, name, args))
        if not node.alive:
            raise ConnectionError(f"Connection to {node.name} lost")
        for hook in list(self.hooks):
            result = hook(node, name, args)
            if result is NOT_HANDLED:
                continue
            if isinstance(result, Exception):
                raise result
            return result
        if name == b"HELLO":
            return {
                b"server": b"redis",
                b"version": b"7.2.4",
                b"proto": 3,
                b"id": next(self._client_ids),
                b"mode": b"cluster",
                b"role": b"master",
            }
        if name in {b"AUTH", b"CLIENT SETNAME"}:
            return b"OK"
        if name == b"ASKING":
            connection.asking = True
            return b"OK"
        if name == b"CLUSTER SLOTS":
            return self.cluster_slots()
        if name == b"CONFIG GET":
            return [b"cluster-require-full-coverage", b"yes" if self.require_full_coverage else b"no"]
        asking, connection.asking = connection.asking, False
        if self.down:
            raise ClusterDownError("The cluster is down")
        if name in KEYLESS_COMMANDS or not args:
            return self.keyless(node, name, args)
        key = b(args[2] if name in {b"EVAL", b"EVALSHA"} else args[0])
        slot = hash_slot(key)
        owner = self.slots[slot]
        importing = self.migrating.get(slot)
        if node.address != owner:
            if not (asking and importing == node.address):
                if owner is None:
                    raise ClusterDownError("Hash slot not served")
                raise MovedError(f"{slot} {owner[0]}:{owner[1]}")
        elif importing is not None and key not in self.data:
            raise AskError(f"{slot} {importing[0]}:{importing[1]}")
        return self.apply(name, [b(arg) if isinstance(arg, str) else arg for arg in args])

    def keyless(self, node: FakeNode, name: bytes, args: tuple[Any, ...]) -> Any:
        if name == b"PING":
            return b(args[0]) if args else b"PONG"
        if name == b"ECHO":
            return b(args[0])
        if name in {b"PUBLISH", b"WAIT"}:
            return 0
        if name == b"SCRIPT LOAD":
            return hashlib.sha1(b(args[0])).hexdigest().encode()
        if name == b"SCRIPT EXISTS":
            return [0 for _ in args]
        if name in {b"SCRIPT FLUSH", b"SCRIPT KILL"}:
            return b"OK"
        owned = [key for key in self.data if self.slots[hash_slot(key)] == node.address]
        if name == b"KEYS":
            return [key for key in owned if fnmatch.fnmatchcase(key, b(args[0]))]
        if name == b"SCAN":
            pattern = b(args[args.index("MATCH") + 1]) if "MATCH" in args else b"*"
            return [b"0", [key for key in owned if fnmatch.fnmatchcase(key, pattern)]]
        raise UnknownCommandError(f"unknown command '{nativestr(name)}'")

    def apply(self, name: bytes, args: list[Any]) -> Any:
        key = args[0]
        if name == b"GET":
            return self.data.get(key)
        if name == b"SET":
            self.data[key] = b(args[1])
            return b"OK"
        if name == b"DEL":
            return sum(1 for k in args if self.data.pop(k, None) is not None)
        if name == b"INCRBY":
            value = int(self.data.get(key, 0)) + int(args[1])
            self.data[key] = b(value)
            return value
        if name == b"MGET":
            return [self.data.get(k) for k in args]
        if name == b"SADD":
            members = self.data.setdefault(key, set())
            added = {b(m) for m in args[1:]} - members
            members.update(added)
            return len(added)
        if name == b"SMEMBERS":
            return set(self.data.get(key, set()))
        if name == b"SDIFFSTORE":
            first, *rest = args[1:]
            result = set(self.data.get(first, set()))
            for other in rest:
                result -= self.data.get(other, set())
            self.data[key] = result
            return len(result)
        if name == b"HSET":
            fields = self.data.setdefault(key, {})
            pairs = dict(zip(args[1::2], (b(v) for v in args[2::2])))
            added = len(set(pairs) - set(fields))
            fields.update(pairs)
            return added
        if name == b"HGETALL":
            return dict(self.data.get(key, {}))
        raise UnknownCommandError(f"unknown command '{nativestr(name)}'")


class FakeStream:
    async def aclose(self) -> None:
        pass


class FakeConnection(BaseConnection):
    """
    Connection to a node of a :class:`FakeCluster`. Commands are answered
    by the fake cluster instead of going over the wire.
    """

    cluster: ClassVar[FakeCluster]
    location: TCPLocation
    asking = False

    async def _connect(self) -> ByteStream:
        if self.cluster.connect_latency:
            await sleep(self.cluster.connect_latency)
        node = self.cluster.node(self.location)
        if node is None or not node.alive:
            raise OSError(f"Connection refused by {self.location}")
        node.connections += 1
        return cast(ByteStream, FakeStream())

    def describe(self) -> str:
        return f"FakeConnection<host={self.location.host},port={self.location.port}>"

    async def execute_command(
        self,
        command: bytes,
        *args: Any,
        decode: bool | None = None,
        encoding: str | None = None,
    ) -> Any:
        if not self.usable:
            raise ConnectionError(f"Connection to {self.location} not usable")
        await lowlevel.checkpoint()
        try:
            return await self.cluster.handle(self, command, args)
        except ConnectionError:
            self._transport_failed = True
            raise


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_cluster():
    return FakeCluster()


@pytest.fixture
def client_factory(fake_cluster):
    def factory(**kwargs: Any) -> slotroute.RedisCluster[bytes]:
        kwargs.setdefault("stream_timeout", None)
        return slotroute.RedisCluster(
            startup_nodes=[fake_cluster.startup_node],
            connection_class=fake_cluster.connection_class,
            **kwargs,
        )

    return factory


@pytest.fixture
async def client(fake_cluster, client_factory):
    async with client_factory() as client:
        fake_cluster.calls.clear()
        yield client
