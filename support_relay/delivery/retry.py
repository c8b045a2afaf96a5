"""
Retry policy and attempt outcomes for helpdesk delivery.
"""

from dataclasses import dataclass
from typing import Tuple

from support_relay.config.settings import DeliverySettings
from support_relay.models import CaseResult


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry schedule for one delivery task.

    Attributes:
        max_attempts: Total attempts including the first one
        backoff: Seconds to wait before retry n (last value repeats)
        attempt_timeout: Upper bound for a single attempt in seconds
    """
    max_attempts: int = 5
    backoff: Tuple[float, ...] = (30, 60, 300, 900, 3600)
    attempt_timeout: float = 60.0

    @classmethod
    def from_settings(cls, settings: DeliverySettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            backoff=tuple(settings.backoff),
            attempt_timeout=settings.attempt_timeout,
        )

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        index = min(max(attempt, 1) - 1, len(self.backoff) - 1)
        return float(self.backoff[index])

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_attempts


@dataclass(frozen=True)
class Delivered:
    result: CaseResult
    attempt: int


@dataclass(frozen=True)
class RetryableFailure:
    error: Exception
    attempt: int
    retry_in: float


@dataclass(frozen=True)
class TerminalFailure:
    error: Exception
    attempt: int


@dataclass(frozen=True)
class Skipped:
    reason: str
    attempt: int = 1
