from __future__ import annotations

from collections.abc import (
    AsyncGenerator,
    AsyncIterator,
    Awaitable,
    Callable,
    Coroutine,
    Generator,
    Iterable,
    Iterator,
    Mapping,
    MutableSet,
    Set,
    ValuesView,
)
from typing import (
    TYPE_CHECKING,
    Any,
    AnyStr,
    ClassVar,
    Final,
    Generic,
    Literal,
    Protocol,
    TypedDict,
    TypeVar,
)

from typing_extensions import Self

T_co = TypeVar("T_co", covariant=True)
R = TypeVar("R")

#: A key as accepted by the command methods
KeyT = str | bytes

#: Anything that can be sent as a command argument. Strings are encoded
#: with the configured encoding and numbers with their repr.
ValueT = str | bytes | int | float

StringT = str | bytes

#: Collections accepted where a command takes a variable number of keys
#: or values. A lone ``str`` or ``bytes`` is deliberately not one of them.
Parameters = list[T_co] | Set[T_co] | tuple[T_co, ...] | ValuesView[T_co] | Iterator[T_co]

ResponsePrimitive = StringT | int | float | bool | None

#: Any value the parser can produce. Error replies are returned as exception instances.
if TYPE_CHECKING:
    ResponseType = (
        ResponsePrimitive
        | list["ResponseType"]
        | MutableSet[ResponsePrimitive | tuple[ResponsePrimitive, ...]]
        | dict[ResponsePrimitive | tuple[ResponsePrimitive, ...], "ResponseType"]
        | Exception
    )
else:
    ResponseType = ResponsePrimitive | list[Any] | MutableSet[Any] | dict[Any, Any] | Exception

__all__ = [
    "Any",
    "AnyStr",
    "AsyncGenerator",
    "AsyncIterator",
    "Awaitable",
    "Callable",
    "ClassVar",
    "Coroutine",
    "Final",
    "Generator",
    "Generic",
    "Iterable",
    "Iterator",
    "KeyT",
    "Literal",
    "Mapping",
    "MutableSet",
    "Parameters",
    "Protocol",
    "R",
    "ResponsePrimitive",
    "ResponseType",
    "Self",
    "Set",
    "StringT",
    "TypedDict",
    "TypeVar",
    "ValueT",
    "ValuesView",
    "TYPE_CHECKING",
]
