from __future__ import annotations

import math

from anyio import sleep

from slotroute._utils import logger
from slotroute.commands.constants import CommandName
from slotroute.connection import BaseConnection, TCPLocation
from slotroute.exceptions import (
    AskError,
    ClusterDeadlineExceededError,
    ClusterDownError,
    ClusterRetriesExhaustedError,
    ConnectionError,
    MovedError,
    RedisError,
    TimeoutError,
    TryAgainError,
)
from slotroute.pool import NodePoolRegistry
from slotroute.retry import RetryBudget
from slotroute.typing import Awaitable, Callable, Iterable, KeyT, R

from ._keys import validate_single_slot
from ._layout import ClusterLayout
from ._node import ClusterNodeLocation

#: Errors that indicate a problem with the connection to a node rather
#: than with the command. Pool exhaustion and ``LOADING`` replies are included.
CONNECTION_ERRORS = (ConnectionError, TimeoutError)

#: Pause before retrying a command that received ``TRYAGAIN``
TRY_AGAIN_DELAY = 0.05

#: A unit of work executed against a single connection
CommandBody = Callable[[BaseConnection], Awaitable[R]]


class Dispatcher:
    """
    Executes commands against the node owning their hash slot, transparently
    following redirects and recovering from connection failures within
    a bounded number of attempts and a bounded amount of time.
    """

    def __init__(
        self,
        layout: ClusterLayout,
        pools: NodePoolRegistry,
        *,
        max_attempts: int = 5,
        max_total_retries_duration: float | None = None,
        connection_failure_threshold: int = 2,
        encoding: str = "utf-8",
    ) -> None:
        """
        :param layout: The slot map used to resolve the owner of a slot
        :param pools: The registry of per node connection pools
        :param max_attempts: Maximum number of attempts (including the first) for
         a single command
        :param max_total_retries_duration: Maximum seconds to spend across all attempts
         of a single command. ``None`` disables the time bound.
        :param connection_failure_threshold: Number of consecutive connection failures
         after which the layout is refreshed before retrying
        :param encoding: encoding used to hash :class:`str` keys
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if connection_failure_threshold < 1:
            raise ValueError("connection_failure_threshold must be at least 1")
        self.layout = layout
        self.pools = pools
        self.max_attempts = max_attempts
        self.max_total_retries_duration = max_total_retries_duration
        self.connection_failure_threshold = connection_failure_threshold
        self.encoding = encoding

    async def execute(
        self,
        body: CommandBody[R],
        keys: Iterable[KeyT] | None = None,
        *,
        slot: int | None = None,
        command: bytes | None = None,
    ) -> R:
        """
        Executes :paramref:`body` against the node owning the slot of
        :paramref:`keys` (or the explicit :paramref:`slot`). Requests without
        either are executed against any node.

        :raises: :exc:`~slotroute.exceptions.ClusterCrossSlotError` if the keys span slots,
         :exc:`~slotroute.exceptions.ClusterDownError` if the cluster reports it is down,
         :exc:`~slotroute.exceptions.ClusterRetriesExhaustedError` or
         :exc:`~slotroute.exceptions.ClusterDeadlineExceededError` when the command
         could not be completed within its budget. Any other error reply is raised as is.
        """
        if keys is not None:
            slot = validate_single_slot(keys, command, self.encoding)
        if slot is None:
            return await self.execute_on_any_node(body)
        return await self._execute_on_slot(body, slot)

    async def execute_on_any_node(self, body: CommandBody[R], sample_slot: int | None = None) -> R:
        """
        Executes :paramref:`body` on some node of the cluster. If :paramref:`sample_slot`
        is provided the owner of that slot is used. Connection failures are retried;
        redirects are not followed.
        """
        budget = await self._start()
        node: ClusterNodeLocation | None = None
        last_error: BaseException | None = None
        consecutive_failures = 0
        while True:
            self._check_budget(budget, node, sample_slot, last_error)
            generation = self.layout.generation
            if sample_slot is None:
                node = self.layout.random_node()
            else:
                node = await self._owner(sample_slot, generation)
            budget.consume()
            try:
                return await self._execute_on_node(node, body, budget)
            except CONNECTION_ERRORS as error:
                last_error = error
                consecutive_failures += 1
                if await self._handle_connection_failure(
                    error, node, budget, consecutive_failures, generation
                ):
                    consecutive_failures = 0

    async def _execute_on_slot(self, body: CommandBody[R], slot: int) -> R:
        budget = await self._start()
        node: ClusterNodeLocation | None = None
        redirect: ClusterNodeLocation | None = None
        asking = False
        last_error: BaseException | None = None
        consecutive_failures = 0
        while True:
            self._check_budget(budget, node, slot, last_error)
            generation = self.layout.generation
            node = redirect or await self._owner(slot, generation)
            budget.consume()
            try:
                return await self._execute_on_node(node, body, budget, asking=asking)
            except CONNECTION_ERRORS as error:
                last_error = error
                redirect, asking = None, False
                consecutive_failures += 1
                if await self._handle_connection_failure(
                    error, node, budget, consecutive_failures, generation
                ):
                    consecutive_failures = 0
            except MovedError as error:
                last_error = error
                consecutive_failures = 0
                redirect = self.layout.update_slot(
                    error.slot_id, error.host or node.host, error.port
                )
                asking = False
                logger.debug(f"Slot {error.slot_id} moved from {node.name} to {redirect.name}")
                if self.layout.refresh_due:
                    await self._refresh(generation)
            except AskError as error:
                last_error = error
                consecutive_failures = 0
                redirect = self.layout.node_for_location(
                    TCPLocation(error.host or node.host, error.port)
                )
                asking = True
                logger.debug(
                    f"Slot {error.slot_id} is migrating from {node.name}, asking {redirect.name}"
                )
            except TryAgainError as error:
                last_error = error
                redirect, asking = None, False
                if budget.attempts_left < self.max_attempts / 2:
                    await sleep(TRY_AGAIN_DELAY)
            except ClusterDownError:
                self.layout.stale = True
                raise

    async def _start(self) -> RetryBudget:
        budget = RetryBudget(self.max_attempts, self.max_total_retries_duration)
        if not self.layout.initialized:
            await self.layout.initialize()
        elif self.layout.stale:
            await self._refresh(self.layout.generation)
        return budget

    async def _owner(self, slot: int, generation: int) -> ClusterNodeLocation:
        """
        Resolves the owner of :paramref:`slot`, refreshing the layout once if the
        slot is not covered
        """
        try:
            return self.layout.node_for_slot(slot)
        except ClusterDownError:
            logger.debug(f"Slot {slot} is not mapped to any node")
            await self._refresh(generation)
            return self.layout.node_for_slot(slot)

    async def _execute_on_node(
        self,
        node: ClusterNodeLocation,
        body: CommandBody[R],
        budget: RetryBudget,
        asking: bool = False,
    ) -> R:
        pool = self.pools.pool_for(node.location)
        wait = None if math.isinf(budget.deadline) else budget.remaining
        async with pool.acquire(timeout=wait) as connection:
            try:
                if asking:
                    await connection.execute_command(CommandName.ASKING, decode=False)
                return await body(connection)
            except CONNECTION_ERRORS:
                connection.terminate()
                raise

    async def _handle_connection_failure(
        self,
        error: BaseException,
        node: ClusterNodeLocation,
        budget: RetryBudget,
        consecutive_failures: int,
        generation: int,
    ) -> bool:
        """
        Decides whether a connection failure warrants a refresh of the layout
        and performs it.

        :return: ``True`` if the layout was refreshed
        """
        logger.info(
            f"Attempt {budget.attempts}/{budget.max_attempts} against {node.name} "
            f"failed with connection error: {error}"
        )
        if self.max_attempts < 3:
            # with so few attempts the failure threshold may never be reached,
            # so refresh once the final attempt has failed
            if budget.exhausted:
                await self._refresh(generation)
                return True
            return False
        if consecutive_failures < self.connection_failure_threshold:
            return False
        if not budget.exhausted and (delay := budget.backoff_delay()) > 0:
            await sleep(delay)
        await self._refresh(generation)
        return True

    async def _refresh(self, generation: int) -> None:
        try:
            await self.layout.refresh(generation)
        except RedisError as error:
            logger.warning(f"Unable to refresh cluster layout: {error}")

    def _check_budget(
        self,
        budget: RetryBudget,
        node: ClusterNodeLocation | None,
        slot: int | None,
        last_error: BaseException | None,
    ) -> None:
        if budget.exhausted:
            raise ClusterRetriesExhaustedError(
                f"No more cluster attempts left after {budget.attempts} attempts",
                node=node,
                slot=slot,
                attempts=budget.attempts,
            ) from last_error
        if budget.expired:
            raise ClusterDeadlineExceededError(
                f"Cluster retry deadline exceeded after {budget.attempts} attempts",
                node=node,
                slot=slot,
                attempts=budget.attempts,
            ) from last_error
