"""
slotroute.commands
------------------
Implementation of the redis commands supported against a cluster
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from slotroute.response._callbacks import NoopCallback, ResponseCallback
from slotroute.typing import Any, AnyStr, Generic, KeyT, Parameters, R, ValueT


class CommandMixin(Generic[AnyStr], ABC):
    @abstractmethod
    async def execute_command(
        self,
        command: bytes,
        *args: ValueT,
        keys: Parameters[KeyT] | None = None,
        slot: int | None = None,
        sample_key: KeyT | None = None,
        callback: ResponseCallback[Any, Any, R] = NoopCallback(),
    ) -> R:
        pass


__all__ = ["CommandMixin"]
