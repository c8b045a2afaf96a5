"""
Base Support Provider

Defines the capability set every helpdesk provider implements. The
pipeline and delivery task only talk to providers through this interface.

Design Considerations:
- Small closed set of implementations chosen by configuration key
- Configuration errors raise immediately, retry lives in the delivery task
- Connection tests never raise
"""

import logging
from abc import ABC, abstractmethod

from support_relay.models import CaseRequest, CaseResult

logger = logging.getLogger(__name__)


class SupportProvider(ABC):
    """
    Abstract base class for helpdesk provider implementations.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name for logging and display."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check whether the provider has everything it needs to deliver.

        Returns:
            True if cases can be created
        """
        pass

    @abstractmethod
    async def create_case(self, request: CaseRequest) -> CaseResult:
        """
        Create a support case from a normalized request.

        Args:
            request: Accepted, normalized submission

        Returns:
            CaseResult carrying the helpdesk case id and raw response

        Raises:
            ConfigurationError: Provider is unusable
            TransportError: Network failure or timeout
            AuthError: Credentials rejected
            ApiError: Non-2xx helpdesk response
        """
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """
        Best-effort connectivity check.

        Returns:
            True if an authenticated request succeeded, False otherwise
        """
        pass
