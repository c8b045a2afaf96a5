"""
Provider status route.
"""

import logging

from fastapi import APIRouter, Depends

from support_relay.api.dependencies import get_pipeline
from support_relay.api.models.submissions import ProviderStatus
from support_relay.pipeline import SupportFormPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/provider", tags=["Provider"])


@router.get("/status", response_model=ProviderStatus, summary="Check helpdesk connectivity")
async def provider_status(pipeline: SupportFormPipeline = Depends(get_pipeline)):
    provider = pipeline.provider
    configured = provider.is_configured()
    connected = await provider.test_connection() if configured else False
    logger.info(f"Provider status: name={provider.name} configured={configured} connected={connected}")
    return ProviderStatus(name=provider.name, configured=configured, connected=connected)
