from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

from anyio import Event

T = TypeVar("T")


class QueueEmpty(Exception): ...


class QueueFull(Exception): ...


class Queue(Generic[T]):
    """
    Generic LIFO queue (stack) for use with connections.

    The queue starts out filled with ``None`` placeholders, one per
    slot of capacity, so that a consumer receiving ``None`` knows it
    may create a new item.
    """

    def __init__(self, maxsize: int = 0):
        self._maxsize = maxsize
        self._queue: deque[T | None] = deque([None for _ in range(self._maxsize)])
        self._getters: deque[Event] = deque()

    def empty(self) -> bool:
        return not self._queue

    def full(self) -> bool:
        return self._maxsize > 0 and len(self._queue) >= self._maxsize

    def put_nowait(self, item: T | None) -> None:
        if self.full():
            raise QueueFull()
        self._queue.append(item)
        self._wakeup_next()

    async def get(self) -> T | None:
        while self.empty():
            ev = Event()
            self._getters.append(ev)
            try:
                await ev.wait()
            except BaseException:
                # pass the wakeup on if this waiter was cancelled after being chosen
                if ev in self._getters:
                    self._getters.remove(ev)
                elif not self.empty():
                    self._wakeup_next()
                raise
        return self._queue.pop()

    def get_nowait(self) -> T | None:
        if self.empty():
            raise QueueEmpty()
        return self._queue.pop()

    def drain(self) -> list[T]:
        """
        Removes and returns every item currently in the queue, discarding
        placeholders.
        """
        items = [item for item in self._queue if item is not None]
        self._queue.clear()
        return items

    def _wakeup_next(self) -> None:
        if self._getters:
            self._getters.popleft().set()

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, item: T) -> bool:
        return item in self._queue
