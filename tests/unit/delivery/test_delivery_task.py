"""
Unit tests for the delivery retry policy and delivery task.

Testing Strategy:
- Backoff schedule and attempt budget
- Outcome of each attempt (delivered, retryable, terminal, skipped)
- Terminal failure path logs once and runs every handler
- Record bookkeeping never changes an attempt's outcome
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from support_relay.config.settings import DeliverySettings
from support_relay.delivery.retry import Delivered, RetryableFailure, RetryPolicy, Skipped, TerminalFailure
from support_relay.delivery.task import DeliveryTask, RecordFailureHandler
from support_relay.errors import ApiError, ConfigurationError, TransportError
from support_relay.models import CaseRequest, CaseResult
from support_relay.storage.models import DeliveryStatus


def make_provider(configured=True, **create_case):
    provider = MagicMock()
    provider.name = "Mock"
    provider.is_configured.return_value = configured
    provider.create_case = AsyncMock(**create_case)
    return provider


@pytest.fixture
def request_():
    return CaseRequest(
        email="a@b.com",
        message="Hello, I need help with my order.",
        subject="Order problem",
        record_id="rec-1",
    )


@pytest.fixture
def store():
    store = MagicMock()
    store.mark_delivery = AsyncMock()
    return store


class TestRetryPolicy:
    """Test suite for RetryPolicy."""

    def test_default_schedule(self):
        policy = RetryPolicy()

        assert policy.max_attempts == 5
        assert [policy.delay_after(n) for n in range(1, 6)] == [30, 60, 300, 900, 3600]

    def test_last_delay_repeats(self):
        policy = RetryPolicy(max_attempts=10, backoff=(5, 10))

        assert policy.delay_after(2) == 10
        assert policy.delay_after(9) == 10

    def test_attempt_budget(self):
        policy = RetryPolicy()

        assert policy.has_attempts_left(4) is True
        assert policy.has_attempts_left(5) is False

    def test_from_settings(self):
        policy = RetryPolicy.from_settings(DeliverySettings(max_attempts=3, backoff=[1, 2], attempt_timeout=5))

        assert policy == RetryPolicy(max_attempts=3, backoff=(1, 2), attempt_timeout=5.0)


@pytest.mark.asyncio
class TestDeliveryTaskAttempt:
    """Test suite for DeliveryTask.attempt."""

    async def test_success_marks_record_delivered(self, request_, store):
        provider = make_provider(return_value=CaseResult(id="5000", provider="kayako"))
        task = DeliveryTask(request_, provider, store=store)

        outcome = await task.attempt(2)

        assert isinstance(outcome, Delivered)
        assert outcome.result.id == "5000"
        assert outcome.attempt == 2
        provider.create_case.assert_awaited_once_with(request_)
        store.mark_delivery.assert_awaited_once_with(
            "rec-1", DeliveryStatus.DELIVERED, case_id="5000", attempts=2
        )

    async def test_failure_with_attempts_left_is_retryable(self, request_, store):
        provider = make_provider(side_effect=ApiError("Failed to create Kayako case", status=503))
        task = DeliveryTask(request_, provider, store=store)

        outcome = await task.attempt(2)

        assert isinstance(outcome, RetryableFailure)
        assert outcome.retry_in == 60
        assert isinstance(outcome.error, ApiError)
        store.mark_delivery.assert_awaited_once_with(
            "rec-1", DeliveryStatus.QUEUED, error="Failed to create Kayako case (status=503)", attempts=2
        )

    async def test_failure_on_last_attempt_is_terminal(self, request_, store):
        provider = make_provider(side_effect=TransportError("connection refused"))
        task = DeliveryTask(request_, provider, store=store)

        outcome = await task.attempt(5)

        assert isinstance(outcome, TerminalFailure)
        assert outcome.attempt == 5
        store.mark_delivery.assert_not_awaited()

    async def test_configuration_error_is_terminal_immediately(self, request_):
        provider = make_provider(side_effect=ConfigurationError("Kayako provider is not configured."))
        task = DeliveryTask(request_, provider)

        outcome = await task.attempt(1)

        assert isinstance(outcome, TerminalFailure)
        assert outcome.attempt == 1

    async def test_attempt_timeout_is_retryable(self, request_):
        async def slow(request):
            await asyncio.sleep(1)

        provider = make_provider(side_effect=slow)
        task = DeliveryTask(request_, provider, policy=RetryPolicy(attempt_timeout=0.01))

        outcome = await task.attempt(1)

        assert isinstance(outcome, RetryableFailure)
        assert isinstance(outcome.error, asyncio.TimeoutError)

    async def test_unconfigured_provider_is_skipped(self, request_, store):
        provider = make_provider(configured=False)
        task = DeliveryTask(request_, provider, store=store)

        outcome = await task.attempt(1)

        assert isinstance(outcome, Skipped)
        provider.create_case.assert_not_awaited()
        store.mark_delivery.assert_awaited_once_with(
            "rec-1", DeliveryStatus.NOT_SENT, error="provider not configured"
        )

    async def test_store_error_does_not_turn_success_into_failure(self, request_, store):
        store.mark_delivery.side_effect = RuntimeError("database is locked")
        provider = make_provider(return_value=CaseResult(id="5000", provider="kayako"))
        task = DeliveryTask(request_, provider, store=store)

        outcome = await task.attempt(1)

        assert isinstance(outcome, Delivered)

    async def test_request_without_record_skips_store(self, store):
        request = CaseRequest(email="a@b.com", message="Hello, I need help with my order.")
        provider = make_provider(return_value=CaseResult(id="5000", provider="kayako"))
        task = DeliveryTask(request, provider, store=store)

        await task.attempt(1)

        store.mark_delivery.assert_not_awaited()


@pytest.mark.asyncio
class TestDeliveryTaskFailed:
    """Test suite for the terminal failure path."""

    async def test_logs_once_with_email_and_subject(self, request_, caplog):
        task = DeliveryTask(request_, make_provider())

        with caplog.at_level(logging.CRITICAL, logger="support_relay.delivery.task"):
            await task.failed(TransportError("connection refused"), 5)

        critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
        assert len(critical) == 1
        message = critical[0].getMessage()
        assert "email=a@b.com" in message
        assert "subject=Order problem" in message
        assert "attempts=5" in message

    async def test_handlers_run_even_if_one_raises(self, request_):
        broken = AsyncMock(side_effect=RuntimeError("pager offline"))
        working = AsyncMock()
        task = DeliveryTask(request_, make_provider(), failure_handlers=[broken, working])
        error = TransportError("connection refused")

        await task.failed(error, 5)

        broken.assert_awaited_once_with(request_, error, 5)
        working.assert_awaited_once_with(request_, error, 5)

    async def test_record_failure_handler(self, request_, store):
        handler = RecordFailureHandler(store)

        await handler(request_, TransportError("connection refused"), 5)

        store.mark_delivery.assert_awaited_once_with(
            "rec-1", DeliveryStatus.FAILED, error="connection refused", attempts=5
        )

    async def test_record_failure_handler_without_record(self, store):
        handler = RecordFailureHandler(store)
        request = CaseRequest(email="a@b.com", message="Hello, I need help with my order.")

        await handler(request, TransportError("connection refused"), 5)

        store.mark_delivery.assert_not_awaited()
