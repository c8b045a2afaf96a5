"""
API Application Entry Point

FastAPI application exposing the support form webhook and provider status.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from support_relay import __version__
from support_relay.api.routes import provider, submissions
from support_relay.api.utils.error_handlers import add_exception_handlers
from support_relay.config.settings import SupportSettings, get_settings
from support_relay.pipeline import SupportFormPipeline
from support_relay.utils.logging_setup import configure_logging

logger = logging.getLogger("support_relay.api")


def create_application(settings: Optional[SupportSettings] = None,
                       pipeline: Optional[SupportFormPipeline] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (loaded from the environment if omitted)
        pipeline: Pre-built pipeline (built lazily on first request if omitted)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(
        settings.log_level,
        settings.log_file,
        spam_channel=settings.spam.log_channel,
        spam_log_file=settings.spam.log_file,
    )

    app = FastAPI(
        title="Support Relay API",
        description="Support form spam screening and helpdesk delivery",
        version=__version__,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline

    add_exception_handlers(app)

    app.include_router(submissions.router)
    app.include_router(provider.router)

    @app.get("/health", tags=["Monitoring"])
    async def health_check():
        """API health check endpoint."""
        return {"status": "healthy"}

    logger.info(f"Support relay API initialized: form={settings.form_handle} provider={settings.provider}")
    return app
