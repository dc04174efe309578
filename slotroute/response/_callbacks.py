from __future__ import annotations

from abc import ABC, abstractmethod
from typing import cast

from slotroute._utils import b, nativestr
from slotroute.exceptions import InvalidResponse
from slotroute.typing import (
    Any,
    Generic,
    Literal,
    ResponsePrimitive,
    ResponseType,
    Set,
    StringT,
    TypedDict,
    TypeVar,
)

R = TypeVar("R")
CK_co = TypeVar("CK_co", covariant=True)
CR_co = TypeVar("CR_co", covariant=True)

RESP = TypeVar("RESP")
RESP3 = TypeVar("RESP3")


class ResponseCallback(ABC, Generic[RESP, RESP3, R]):
    version: Literal[2, 3]

    def __call__(self, response: RESP | RESP3, version: Literal[2, 3] = 2, **options: Any) -> R:
        self.version = version
        if version == 3:
            return self.transform_3(cast(RESP3, response), **options)
        return self.transform(cast(RESP, response), **options)

    @abstractmethod
    def transform(self, response: RESP, **options: Any) -> R:
        pass

    def transform_3(self, response: RESP3, **options: Any) -> R:
        return self.transform(cast(RESP, response), **options)


class NoopCallback(ResponseCallback[R, R, R]):
    def transform(self, response: R, **options: Any) -> R:
        return response


class SimpleStringCallback(ResponseCallback[StringT | None, StringT | None, bool]):
    def __init__(self, ok_values: Set[str] = frozenset({"OK"})):
        self.ok_values = set(ok_values) | {b(v) for v in ok_values}

    def transform(self, response: StringT | None, **options: Any) -> bool:
        return bool(response) and response in self.ok_values


class IntCallback(ResponseCallback[int, int, int]):
    def transform(self, response: ResponsePrimitive, **options: Any) -> int:
        if isinstance(response, int):
            return response
        raise ValueError(f"Unable to map {response!r} to int")


class BoolCallback(ResponseCallback[int | bool, int | bool, bool]):
    def transform(self, response: ResponseType, **options: Any) -> bool:
        if isinstance(response, bool):
            return response
        return bool(response)


class FloatCallback(ResponseCallback[StringT | float | None, float | None, float | None]):
    def transform(self, response: ResponseType, **options: Any) -> float | None:
        if response is None or isinstance(response, float):
            return response
        if isinstance(response, (int, bytes, str)):
            return float(response)
        raise ValueError(f"Unable to map {response!r} to float")


class TupleCallback(ResponseCallback[list[ResponseType], list[ResponseType], tuple[CR_co, ...]]):
    def transform(self, response: ResponseType, **options: Any) -> tuple[CR_co, ...]:
        if isinstance(response, list):
            return cast(tuple[CR_co, ...], tuple(response))
        raise ValueError(f"Unable to map {response!r} to tuple")


class SetCallback(ResponseCallback[list[ResponsePrimitive], Set[ResponsePrimitive], set[CR_co]]):
    def transform(self, response: ResponseType, **options: Any) -> set[CR_co]:
        if isinstance(response, list):
            return cast(set[CR_co], set(response))
        raise ValueError(f"Unable to map {response!r} to set")

    def transform_3(self, response: ResponseType, **options: Any) -> set[CR_co]:
        if isinstance(response, set):
            return cast(set[CR_co], response)
        return self.transform(response, **options)


class DictCallback(ResponseCallback[list[ResponseType], dict[Any, Any], dict[CK_co, CR_co]]):
    def transform(self, response: ResponseType, **options: Any) -> dict[CK_co, CR_co]:
        if isinstance(response, list):
            it = iter(response)
            return cast(dict[CK_co, CR_co], dict(zip(it, it)))
        raise ValueError(f"Unable to map {response!r} to mapping")

    def transform_3(self, response: ResponseType, **options: Any) -> dict[CK_co, CR_co]:
        if isinstance(response, dict):
            return cast(dict[CK_co, CR_co], response)
        return self.transform(response, **options)


class ScanCallback(ResponseCallback[list[ResponseType], list[ResponseType], tuple[int, tuple[Any, ...]]]):
    def transform(self, response: ResponseType, **options: Any) -> tuple[int, tuple[Any, ...]]:
        if not (isinstance(response, list) and len(response) == 2 and isinstance(response[1], list)):
            raise InvalidResponse(f"Unexpected scan response {response!r}")
        cursor, items = response
        return int(cast(StringT, cursor)), tuple(items)


class PairScanCallback(ResponseCallback[list[ResponseType], list[ResponseType], tuple[int, dict[Any, Any]]]):
    """
    Scan responses where the items are flattened ``field, value`` pairs
    (``HSCAN`` & ``ZSCAN``)
    """

    def transform(self, response: ResponseType, **options: Any) -> tuple[int, dict[Any, Any]]:
        cursor, items = ScanCallback()(response)
        it = iter(items)
        return cursor, dict(zip(it, it))


class ClusterNode(TypedDict):
    host: str
    port: int
    node_id: str | None
    server_type: Literal["primary", "replica"]


#: A contiguous range of slots and the nodes serving it (primary first)
SlotRange = tuple[int, int, tuple[ClusterNode, ...]]


class ClusterSlotsCallback(ResponseCallback[list[ResponseType], list[ResponseType], list[SlotRange]]):
    def transform(self, response: ResponseType, **options: Any) -> list[SlotRange]:
        if not isinstance(response, list):
            raise InvalidResponse(f"Unexpected CLUSTER SLOTS response {response!r}")
        # If there's only one server in the cluster its host is reported as ''
        # and is substituted with the host the response was received from
        current_host = nativestr(options.get("current_host") or "")
        res: list[SlotRange] = []
        for slot_info in response:
            min_slot, max_slot = (int(cast(int, v)) for v in slot_info[:2])
            nodes = tuple(
                self.parse_node(node, "primary" if idx == 0 else "replica", current_host)
                for idx, node in enumerate(slot_info[2:])
            )
            if nodes:
                res.append((min_slot, max_slot, nodes))
        return res

    def parse_node(
        self,
        node: list[ResponseType],
        server_type: Literal["primary", "replica"],
        current_host: str,
    ) -> ClusterNode:
        return ClusterNode(
            host=nativestr(cast(StringT, node[0])) or current_host,
            port=int(cast(int, node[1])),
            node_id=nativestr(cast(StringT, node[2])) if len(node) > 2 else None,
            server_type=server_type,
        )
