"""
Command-line entry point for the support relay.

Commands:
    serve             Run the submission API with uvicorn
    check-connection  Verify the configured helpdesk provider is reachable
    list-failed       Show submissions whose delivery was given up
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import uvicorn

from support_relay.config.settings import get_settings
from support_relay.providers.factory import ProviderFactory
from support_relay.storage.models import DeliveryStatus
from support_relay.storage.repository import SubmissionRepository
from support_relay.utils.logging_setup import configure_logging

logger = logging.getLogger("support_relay.cli")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="support-relay", description="Support form relay")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the submission API")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port to bind (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    subparsers.add_parser("check-connection", help="Test the configured helpdesk provider")

    failed = subparsers.add_parser("list-failed", help="List submissions whose delivery failed")
    failed.add_argument("--limit", type=int, default=50, help="Maximum records to show")

    return parser.parse_args(argv)


async def check_connection() -> int:
    settings = get_settings()
    provider = ProviderFactory().create(settings)

    if not provider.is_configured():
        print(f"{provider.name}: not configured")
        return 1

    connected = await provider.test_connection()
    print(f"{provider.name}: {'connected' if connected else 'connection failed'}")
    return 0 if connected else 1


async def list_failed(limit: int) -> int:
    settings = get_settings()
    repository = SubmissionRepository.from_url(settings.database_url)
    records = await repository.list_by_status(DeliveryStatus.FAILED, limit=limit)

    for record in records:
        print(json.dumps({
            "id": record["id"],
            "email": record["email"],
            "subject": (record["data"] or {}).get("subject"),
            "attempts": record["attempts"],
            "last_error": record["last_error"],
            "created_at": record["created_at"],
        }))
    logger.info(f"Listed {len(records)} failed submission(s)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    settings = get_settings()
    configure_logging(
        settings.log_level,
        settings.log_file,
        spam_channel=settings.spam.log_channel,
        spam_log_file=settings.spam.log_file,
    )

    if args.command == "serve":
        logger.info(f"Server will be available at http://{args.host}:{args.port}")
        uvicorn.run(
            "support_relay.api.main:create_application",
            factory=True,
            host=args.host,
            port=args.port,
            reload=args.reload,
        )
        return 0
    if args.command == "check-connection":
        return asyncio.run(check_connection())
    if args.command == "list-failed":
        return asyncio.run(list_failed(args.limit))
    return 2


if __name__ == "__main__":
    sys.exit(main())
