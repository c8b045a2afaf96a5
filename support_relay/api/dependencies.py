"""
FastAPI dependencies resolving the shared support pipeline.
"""

import logging

from fastapi import Request

from support_relay.pipeline import SupportFormPipeline

logger = logging.getLogger(__name__)


async def get_pipeline(request: Request) -> SupportFormPipeline:
    """
    Return the application's pipeline, building it on first use.

    Building lazily keeps database and provider setup out of module import.
    Runs on the event loop with no await between the check and the store,
    so concurrent first requests share one pipeline.
    """
    state = request.app.state
    pipeline = getattr(state, "pipeline", None)
    if pipeline is None:
        pipeline = SupportFormPipeline.from_settings(state.settings)
        state.pipeline = pipeline
        logger.info("Support pipeline created for API")
    return pipeline
