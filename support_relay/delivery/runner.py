"""
Task runners executing delivery tasks.

The host environment normally provides an at-least-once task runner; it
only needs to call DeliveryTask.attempt, wait the returned retry_in between
attempts and call DeliveryTask.failed on a terminal outcome. The asyncio
runner below does exactly that in-process.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Set

from support_relay.delivery.retry import RetryableFailure, TerminalFailure
from support_relay.delivery.task import DeliveryOutcome, DeliveryTask

logger = logging.getLogger(__name__)


class TaskRunner(Protocol):
    def submit(self, task: DeliveryTask) -> None:
        """Schedule a task and return without waiting for it."""
        ...


class AsyncioTaskRunner:
    """
    In-process runner scheduling each delivery task on the running loop.

    Args:
        sleep: Coroutine used to wait between attempts (replaceable in tests)
    """

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, task: DeliveryTask) -> None:
        scheduled = asyncio.get_running_loop().create_task(self.run(task))
        self._tasks.add(scheduled)
        scheduled.add_done_callback(self._tasks.discard)

    async def run(self, task: DeliveryTask) -> DeliveryOutcome:
        """
        Drive a task through its attempts.

        Returns:
            The final outcome (Delivered, TerminalFailure or Skipped)
        """
        attempt = 1
        while True:
            outcome = await task.attempt(attempt)

            if isinstance(outcome, RetryableFailure):
                logger.warning(
                    f"Attempt {attempt} failed for {task.request.email}. "
                    f"Waiting {outcome.retry_in:.0f} seconds before retry..."
                )
                await self._sleep(outcome.retry_in)
                attempt += 1
                continue

            if isinstance(outcome, TerminalFailure):
                await task.failed(outcome.error, outcome.attempt)

            return outcome

    async def drain(self) -> None:
        """Wait for every scheduled task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
