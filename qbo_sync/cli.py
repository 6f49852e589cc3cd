"""Command line entry point for the QuickBooks Online sync engine.

Usage
-----
    python -m qbo_sync auth-url
    python -m qbo_sync auth-exchange --code <code> --realmId <realm>
    python -m qbo_sync sync --mode full [--entities Invoice,Payment]
    python -m qbo_sync sync --mode cdc [--since 2024-01-01T00:00:00Z]
    python -m qbo_sync status
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import List, Optional

from qbo_sync.core.database import create_client
from qbo_sync.core.logging_config import configure_logging
from qbo_sync.core.settings import settings
from qbo_sync.domains.external_accounting.quickbooks.auth.service import (
    QuickBooksAuthService,
)
from qbo_sync.domains.external_accounting.quickbooks.repository import (
    QboSyncRepository,
)
from qbo_sync.domains.external_accounting.quickbooks.sync_orchestrator import (
    REQUIRED_SYNC_SETTINGS,
    SyncOrchestrator,
)

logger = logging.getLogger(__name__)


def parse_since(value: str) -> datetime:
    """argparse type for ISO-8601 timestamps, accepting a trailing Z."""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid ISO-8601 timestamp: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qbo-sync", description="Mirror QuickBooks Online transactions"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("auth-url", help="Print the OAuth consent URL")

    exchange = subparsers.add_parser(
        "auth-exchange", help="Exchange a one-time authorization code"
    )
    exchange.add_argument("--code", required=True)
    exchange.add_argument("--realmId", dest="realm_id", required=True)

    sync = subparsers.add_parser("sync", help="Run a full or incremental sync")
    sync.add_argument("--mode", choices=["full", "cdc"], required=True)
    sync.add_argument(
        "--since",
        type=parse_since,
        default=None,
        help="CDC start timestamp (ISO-8601); overrides the stored watermark",
    )
    sync.add_argument(
        "--entities", default=None, help="Comma-separated entity types"
    )

    subparsers.add_parser("status", help="Print watermarks and mirrored row counts")

    return parser


async def run_sync(mode: str, since: Optional[datetime], entities: Optional[str]):
    settings.require("DATABASE_URL", *REQUIRED_SYNC_SETTINGS)
    db = create_client()
    try:
        await db.connect()
        orchestrator = SyncOrchestrator(db)
        if mode == "full":
            return await orchestrator.sync_full(entities_csv=entities)
        return await orchestrator.sync_cdc(since=since, entities_csv=entities)
    finally:
        if db.is_connected():
            await db.disconnect()


async def run_status():
    settings.require("DATABASE_URL", "EZCR_TENANT_ID", "QBO_REALM_ID")
    db = create_client()
    try:
        await db.connect()
        repository = QboSyncRepository(db)
        return await repository.get_sync_summary(
            str(settings.EZCR_TENANT_ID), str(settings.QBO_REALM_ID)
        )
    finally:
        if db.is_connected():
            await db.disconnect()


async def dispatch(args: argparse.Namespace) -> None:
    if args.command == "auth-url":
        print(QuickBooksAuthService().build_authorization_url())
    elif args.command == "auth-exchange":
        result = await QuickBooksAuthService().exchange_authorization_code(
            args.code, args.realm_id
        )
        print(json.dumps({"realmId": result.realm_id, **result.token}, indent=2))
    elif args.command == "sync":
        result = await run_sync(args.mode, args.since, args.entities)
        print(result.model_dump_json(indent=2))
    elif args.command == "status":
        summary = await run_status()
        print(summary.model_dump_json(indent=2))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        configure_logging(settings.LOG_LEVEL)
        asyncio.run(dispatch(args))
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
