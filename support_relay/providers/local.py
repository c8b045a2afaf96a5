"""
Local-only provider that records submissions without sending them anywhere.
Used in development or when no helpdesk is configured.
"""

import logging
import uuid

from support_relay.models import CaseRequest, CaseResult
from support_relay.providers.base import SupportProvider

logger = logging.getLogger(__name__)


class LocalProvider(SupportProvider):
    """No-op provider: always configured, never calls out."""

    def __init__(self, settings=None):
        # Accepts settings for factory symmetry; nothing to configure
        self.settings = settings

    @property
    def name(self) -> str:
        return "Local"

    def is_configured(self) -> bool:
        return True

    async def create_case(self, request: CaseRequest) -> CaseResult:
        case_id = f"local-{uuid.uuid4().hex}"
        logger.info(
            f"Support case recorded locally (not sent to external service): "
            f"email={request.email} attachments={len(request.resolved_attachments)} case_id={case_id}"
        )
        return CaseResult(id=case_id, provider="local")

    async def test_connection(self) -> bool:
        return True
