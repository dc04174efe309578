from __future__ import annotations

import pytest
from anyio import create_task_group, move_on_after, sleep

from slotroute._concurrency import Queue, QueueEmpty, QueueFull

pytestmark = pytest.mark.anyio


class TestQueue:
    async def test_starts_with_placeholders(self):
        queue: Queue[str] = Queue(2)
        assert queue.full()
        assert len(queue) == 2
        assert await queue.get() is None
        assert queue.get_nowait() is None
        assert queue.empty()
        with pytest.raises(QueueEmpty):
            queue.get_nowait()

    async def test_lifo(self):
        queue: Queue[str] = Queue(3)
        queue.drain()
        queue.put_nowait("a")
        queue.put_nowait("b")
        assert "a" in queue
        assert await queue.get() == "b"
        assert await queue.get() == "a"

    async def test_full(self):
        queue: Queue[str] = Queue(1)
        with pytest.raises(QueueFull):
            queue.put_nowait("a")

    async def test_waiter_woken_by_put(self):
        queue: Queue[str] = Queue(1)
        queue.get_nowait()
        received = []

        async def consume():
            received.append(await queue.get())

        async with create_task_group() as tg:
            tg.start_soon(consume)
            await sleep(0.01)
            assert not received
            queue.put_nowait("item")
        assert received == ["item"]

    async def test_cancelled_waiter_passes_wakeup_on(self):
        queue: Queue[str] = Queue(1)
        queue.get_nowait()
        received = []

        async def consume():
            received.append(await queue.get())

        with move_on_after(0.01):
            await queue.get()
        async with create_task_group() as tg:
            tg.start_soon(consume)
            await sleep(0.01)
            queue.put_nowait("item")
        assert received == ["item"]

    async def test_drain(self):
        queue: Queue[str] = Queue(3)
        queue.get_nowait()
        queue.put_nowait("a")
        assert queue.drain() == ["a"]
        assert queue.empty()
