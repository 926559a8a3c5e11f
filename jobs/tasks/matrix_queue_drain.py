"""
Matrix queue drain task.

Drains pending matrix entries: placement, commissions and cycle handling.
Enqueued by the scheduler every DRAIN_INTERVAL_SECONDS; overlapping runs are
skipped by the persistent drain lock.
"""

import dramatiq
from dramatiq.middleware import CurrentMessage
from loguru import logger

from app.config.settings import settings
from app.services.matrix_engine_service import MatrixEngineService
from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import create_task_engine, create_task_session_maker

DRAIN_TIME_LIMIT_MS = 10 * 60 * 1000  # 10 minutes


@dramatiq.actor(max_retries=0, time_limit=DRAIN_TIME_LIMIT_MS)
def drain_matrix_queue(batch_limit: int | None = None) -> dict:
    """
    Drain the matrix entry queue once.

    Args:
        batch_limit: Maximum entries for this run (defaults to
            settings.drain_batch_limit)

    Returns:
        Drain summary as a dict
    """
    message = CurrentMessage.get_current_message()
    task_logger = logger.bind(
        message_id=message.message_id if message is not None else None
    )
    task_logger.info("Starting matrix queue drain...")

    try:
        summary = run_async(_drain_matrix_queue_async(batch_limit))
        task_logger.info(f"Matrix queue drain complete: {summary}")
        return summary

    except Exception as e:
        task_logger.exception(f"Matrix queue drain failed: {e}")
        return {"success": False, "error": str(e)}


async def _drain_matrix_queue_async(batch_limit: int | None) -> dict:
    """Async implementation of the drain task."""
    engine = create_task_engine()
    try:
        service = MatrixEngineService(
            create_task_session_maker(engine), settings
        )
        summary = await service.trigger_drain(batch_limit)
        return {"success": True, **summary.as_dict()}
    finally:
        await engine.dispose()
