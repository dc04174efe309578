from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

from anyio import current_effective_deadline, current_time, sleep

from slotroute._utils import logger
from slotroute.typing import Callable, Coroutine, R


class RetryBudget:
    """
    Bounds the execution of a single command against the cluster by
    both a number of attempts and a wall clock deadline.

    The deadline is computed once, when the budget is created, and is
    additionally capped by the deadline of any enclosing cancel scope.
    Must be created from within an async context.
    """

    def __init__(self, max_attempts: int, max_duration: float | None) -> None:
        """
        :param max_attempts: maximum number of attempts (including the first)
        :param max_duration: maximum seconds that may elapse across all attempts.
         ``None`` disables the time bound.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.attempts = 0
        started = current_time()
        deadline = started + max_duration if max_duration is not None else math.inf
        self.deadline = min(deadline, current_effective_deadline())

    @property
    def attempts_left(self) -> int:
        return self.max_attempts - self.attempts

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    @property
    def expired(self) -> bool:
        return current_time() >= self.deadline

    @property
    def remaining(self) -> float:
        """Seconds left before the deadline"""
        return max(0.0, self.deadline - current_time())

    def consume(self) -> None:
        self.attempts += 1

    def backoff_delay(self) -> float:
        """
        Time to pause before forcing a topology refresh, spreading the
        remaining time over the remaining attempts so that later pauses
        grow longer.
        """
        left = self.attempts_left
        if left <= 0 or math.isinf(self.deadline):
            return 0.0
        return self.remaining / (left * (left + 1))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}<attempts={self.attempts}/{self.max_attempts}, "
            f"remaining={self.remaining:.3f}>"
        )


class RetryPolicy(ABC):
    """
    Repeats a coroutine while it fails with one of :paramref:`retryable_exceptions`.
    Used for the one off work of establishing the cluster layout, commands are
    bounded by a :class:`RetryBudget` instead.

    :param retries: how many times to repeat after the first failure
    :param retryable_exceptions: the errors that lead to another try
    """

    def __init__(self, retries: int, retryable_exceptions: tuple[type[BaseException], ...]) -> None:
        self.retryable_exceptions = retryable_exceptions
        self.retries = retries

    @abstractmethod
    async def delay(self, attempt_number: int) -> None:
        """Pause before attempt number :paramref:`attempt_number` (zero based)"""

    def will_retry(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retryable_exceptions)

    async def call_with_retries(
        self,
        func: Callable[..., Coroutine[Any, Any, R]],
        before_hook: Callable[..., Coroutine[Any, Any, Any]] | None = None,
        failure_hook: Callable[[BaseException], Coroutine[Any, Any, None]] | None = None,
    ) -> R:
        """
        :param func: called (and awaited) once per attempt
        :param before_hook: awaited before every attempt
        :param failure_hook: awaited with the error of every failed attempt
        """
        attempt = 0
        while True:
            await self.delay(attempt)
            if before_hook:
                await before_hook()
            try:
                return await func()
            except self.retryable_exceptions as error:
                if failure_hook:
                    await failure_hook(error)
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.info(f"Retrying ({attempt}/{self.retries}) after error: {error}")

    def __repr__(self) -> str:
        names = ",".join(e.__name__ for e in self.retryable_exceptions)
        return f"{self.__class__.__name__}<retries={self.retries}, retryable_exceptions={names}>"


class NoRetryPolicy(RetryPolicy):
    def __init__(self) -> None:
        super().__init__(0, ())

    async def delay(self, attempt_number: int) -> None:
        pass


class ConstantRetryPolicy(RetryPolicy):
    """Waits a fixed number of seconds between attempts"""

    def __init__(
        self,
        retryable_exceptions: tuple[type[BaseException], ...],
        retries: int,
        delay: float,
    ) -> None:
        self._delay = delay
        super().__init__(retries, retryable_exceptions)

    async def delay(self, attempt_number: int) -> None:
        if attempt_number:
            await sleep(self._delay)


class ExponentialBackoffRetryPolicy(RetryPolicy):
    """Doubles the wait after every attempt, starting from :paramref:`initial_delay`"""

    def __init__(
        self,
        retryable_exceptions: tuple[type[BaseException], ...],
        retries: int,
        initial_delay: float,
    ) -> None:
        self._initial_delay = initial_delay
        super().__init__(retries, retryable_exceptions)

    async def delay(self, attempt_number: int) -> None:
        if attempt_number:
            await sleep(self._initial_delay * 2**attempt_number)
