"""
Asynchronous Delivery Task

Retry-capable unit of work wrapping one provider.create_case call. Each
attempt returns an explicit outcome; the task runner decides when to run
the next attempt and when to invoke the terminal failure path.

Design Considerations:
- Per-attempt timeout independent of the overall task
- Configuration errors end the task immediately
- A stored record update failing never turns a delivered case into a retry
- Terminal failure logs once at CRITICAL, then runs pluggable handlers
"""

import asyncio
import logging
from typing import List, Optional, Protocol, Union

from support_relay.delivery.retry import (
    Delivered,
    RetryableFailure,
    RetryPolicy,
    Skipped,
    TerminalFailure,
)
from support_relay.errors import ConfigurationError
from support_relay.models import CaseRequest
from support_relay.providers.base import SupportProvider
from support_relay.storage.models import DeliveryStatus
from support_relay.storage.repository import SubmissionStore

logger = logging.getLogger(__name__)

DeliveryOutcome = Union[Delivered, RetryableFailure, TerminalFailure, Skipped]


class TerminalFailureHandler(Protocol):
    """Hook invoked once after a delivery task gives up."""

    async def __call__(self, request: CaseRequest, error: Exception, attempts: int) -> None:
        ...


class RecordFailureHandler:
    """Marks the local submission record as failed for manual follow-up."""

    def __init__(self, store: SubmissionStore):
        self.store = store

    async def __call__(self, request: CaseRequest, error: Exception, attempts: int) -> None:
        if not request.record_id:
            return
        await self.store.mark_delivery(
            request.record_id,
            DeliveryStatus.FAILED,
            error=str(error),
            attempts=attempts,
        )
        logger.info(f"Marked submission {request.record_id} as failed after {attempts} attempt(s)")


class DeliveryTask:
    """
    Delivery of one accepted submission to the configured provider.

    Args:
        request: Normalized case request
        provider: Support provider to deliver to
        policy: Retry policy (attempt budget, backoff, per-attempt timeout)
        store: Optional submission store updated with delivery progress
        failure_handlers: Extra handlers run after retries are exhausted
    """

    def __init__(self,
                 request: CaseRequest,
                 provider: SupportProvider,
                 policy: Optional[RetryPolicy] = None,
                 store: Optional[SubmissionStore] = None,
                 failure_handlers: Optional[List[TerminalFailureHandler]] = None):
        self.request = request
        self.provider = provider
        self.policy = policy or RetryPolicy()
        self.store = store
        self.failure_handlers = list(failure_handlers or [])

    async def attempt(self, attempt: int) -> DeliveryOutcome:
        """
        Run one delivery attempt.

        Args:
            attempt: 1-based attempt number

        Returns:
            Delivered, RetryableFailure, TerminalFailure or Skipped
        """
        if not self.provider.is_configured():
            logger.warning(
                f"Support: {self.provider.name} provider not configured, "
                f"skipping queued submission for {self.request.email}"
            )
            await self._update_record(DeliveryStatus.NOT_SENT, error="provider not configured")
            return Skipped(reason="provider not configured", attempt=attempt)

        try:
            result = await asyncio.wait_for(
                self.provider.create_case(self.request),
                timeout=self.policy.attempt_timeout,
            )
        except ConfigurationError as e:
            logger.error(f"Support: {self.provider.name} configuration error, not retrying: {e}")
            return TerminalFailure(error=e, attempt=attempt)
        except asyncio.TimeoutError as e:
            logger.error(
                f"Support: delivery attempt {attempt}/{self.policy.max_attempts} timed out "
                f"after {self.policy.attempt_timeout}s for {self.request.email}"
            )
            return await self._failure(e, attempt)
        except Exception as e:
            logger.error(
                f"Support: queued delivery failed to create case: provider={self.provider.name} "
                f"email={self.request.email} attempt={attempt} error={e}"
            )
            return await self._failure(e, attempt)

        logger.info(
            f"Support: case created via queue: provider={self.provider.name} "
            f"case_id={result.id or 'unknown'} email={self.request.email}"
        )
        await self._update_record(DeliveryStatus.DELIVERED, case_id=result.id, attempts=attempt)
        return Delivered(result=result, attempt=attempt)

    async def _failure(self, error: Exception, attempt: int) -> DeliveryOutcome:
        if self.policy.has_attempts_left(attempt):
            await self._update_record(DeliveryStatus.QUEUED, error=str(error), attempts=attempt)
            return RetryableFailure(error=error, attempt=attempt, retry_in=self.policy.delay_after(attempt))
        return TerminalFailure(error=error, attempt=attempt)

    async def failed(self, error: Exception, attempts: int) -> None:
        """
        Terminal failure path, invoked once when the task gives up.

        Args:
            error: Last error raised by the provider
            attempts: Number of attempts made
        """
        logger.critical(
            f"Support: all retry attempts exhausted for {self.provider.name} submission: "
            f"email={self.request.email or 'unknown'} subject={self.request.subject or 'unknown'} "
            f"attempts={attempts} error={error}"
        )

        for handler in self.failure_handlers:
            try:
                await handler(self.request, error, attempts)
            except Exception as e:
                logger.error(f"Terminal failure handler {handler!r} raised: {e}", exc_info=True)

    async def _update_record(self, status: str, **changes) -> None:
        if self.store is None or not self.request.record_id:
            return
        try:
            await self.store.mark_delivery(self.request.record_id, status, **changes)
        except Exception as e:
            logger.error(f"Failed to update submission record {self.request.record_id}: {e}")
