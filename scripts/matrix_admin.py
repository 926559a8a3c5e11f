#!/usr/bin/env python3
"""
Matrix engine operator tool.

Usage:
    python scripts/matrix_admin.py status
    python scripts/matrix_admin.py drain [--limit 50]
    python scripts/matrix_admin.py unlock
    python scripts/matrix_admin.py dlq [--limit 100]
    python scripts/matrix_admin.py requeue ENTRY_ID [ENTRY_ID ...]
    python scripts/matrix_admin.py init-db
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from app.config.database import async_engine, async_session_maker
from app.config.settings import settings
from app.models import Base
from app.services.matrix_engine_service import MatrixEngineService


async def show_status(service: MatrixEngineService) -> int:
    """Print drain lock state and queue sizes."""
    status = await service.get_drain_status()
    last_run = status.last_run_at.isoformat() if status.last_run_at else "never"

    logger.info(f"Drain job:     {settings.drain_job_name}")
    logger.info(f"Lock status:   {status.status or 'IDLE'}")
    logger.info(f"Last run:      {last_run}")
    logger.info(f"Pending:       {status.pending_count}")
    logger.info(f"Dead-lettered: {status.dead_count}")
    if status.last_error:
        logger.warning(f"Last error:    {status.last_error}")
    return 0


async def run_drain(service: MatrixEngineService, limit: int | None) -> int:
    """Run one drain in this process."""
    summary = await service.trigger_drain(limit)
    if summary.skipped:
        logger.warning("Drain skipped: another run holds the lock")
        return 1

    logger.success(
        f"Drain {summary.status}: {summary.processed} processed, "
        f"{summary.failed} failed, {summary.dead_lettered} dead-lettered"
    )
    return 0 if summary.status == "COMPLETED" else 1


async def unlock(service: MatrixEngineService) -> int:
    """Force the drain lock to IDLE."""
    if await service.unlock_drain():
        logger.success(f"Drain lock '{settings.drain_job_name}' reset to IDLE")
        return 0
    logger.warning(f"Drain lock '{settings.drain_job_name}' does not exist yet")
    return 1


async def list_dead(service: MatrixEngineService, limit: int) -> int:
    """Print dead-lettered entries."""
    entries = await service.list_dead_entries(limit)
    if not entries:
        logger.info("DLQ is empty")
        return 0

    for entry in entries:
        logger.info(
            f"#{entry.id} {entry.username} -> matrix {entry.config_id} "
            f"({entry.entry_type}, attempts={entry.attempts}): {entry.last_error}"
        )
    logger.info(f"Total: {len(entries)}")
    return 0


async def requeue(service: MatrixEngineService, entry_ids: list[int]) -> int:
    """Return entries from the DLQ to the queue."""
    failed = 0
    for entry_id in entry_ids:
        if await service.requeue_entry(entry_id):
            logger.success(f"Entry {entry_id} requeued")
        else:
            failed += 1
    return 1 if failed else 0


async def init_database() -> int:
    """Create all database tables."""
    logger.info("Creating tables (checkfirst=True)...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.success("Database tables created successfully!")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(description="Matrix engine operator tool")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show drain status and queue sizes")

    drain = commands.add_parser("drain", help="Run one drain now")
    drain.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum entries to process (default: DRAIN_BATCH_LIMIT)",
    )

    commands.add_parser("unlock", help="Force the drain lock to IDLE")

    dlq = commands.add_parser("dlq", help="List dead-lettered entries")
    dlq.add_argument("--limit", type=int, default=100)

    requeue_cmd = commands.add_parser("requeue", help="Requeue DLQ entries")
    requeue_cmd.add_argument("entry_ids", type=int, nargs="+")

    commands.add_parser("init-db", help="Create database tables")

    return parser


async def run(args: argparse.Namespace) -> int:
    """Dispatch a parsed command."""
    if args.command == "init-db":
        code = await init_database()
        await async_engine.dispose()
        return code

    service = MatrixEngineService(async_session_maker, settings)
    try:
        if args.command == "status":
            return await show_status(service)
        if args.command == "drain":
            return await run_drain(service, args.limit)
        if args.command == "unlock":
            return await unlock(service)
        if args.command == "dlq":
            return await list_dead(service, args.limit)
        if args.command == "requeue":
            return await requeue(service, args.entry_ids)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await async_engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Entry point."""
    logger.remove()
    logger.add(sys.stderr, level="INFO")

    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
