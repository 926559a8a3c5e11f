"""
Matrix engine scheduler.

Enqueues the queue drain task every DRAIN_INTERVAL_SECONDS and serves the
health check endpoints.

Run with:
    python -m jobs.scheduler
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.config.database import async_engine, async_session_maker
from app.config.settings import settings
from app.services.matrix_engine_service import MatrixEngineService
from app.utils.logging_setup import setup_logging
from jobs.health import (
    set_engine_service,
    set_scheduler,
    start_health_server,
    stop_health_server,
)
from jobs.tasks.matrix_queue_drain import drain_matrix_queue

DRAIN_JOB_ID = "matrix_queue_drain"


def enqueue_drain() -> None:
    """Send one drain message to the workers."""
    drain_matrix_queue.send()
    logger.debug("Matrix queue drain enqueued")


def create_scheduler() -> AsyncIOScheduler:
    """
    Create the scheduler with the drain job registered.

    Returns:
        Configured (not started) scheduler
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        enqueue_drain,
        "interval",
        seconds=settings.drain_interval_seconds,
        id=DRAIN_JOB_ID,
        name="Matrix queue drain",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler


async def main() -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    setup_logging()

    scheduler = create_scheduler()
    set_scheduler(scheduler)
    set_engine_service(MatrixEngineService(async_session_maker, settings))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    runner, _ = await start_health_server(port=settings.health_check_port)
    scheduler.start()
    logger.info(
        f"Scheduler started: drain every {settings.drain_interval_seconds}s "
        f"(batch limit {settings.drain_batch_limit})"
    )

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)
        await async_engine.dispose()
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
