"""
Queue drain scheduler.

Drains pending entries in bounded batches under the drain lock. Each entry
is processed in its own transaction: the position, its ledger records, the
counter updates, any re-entries and the entry deletion commit together or
not at all.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import Settings
from app.models.enums import DrainLockStatus
from app.models.pending_entry import PendingEntry
from app.repositories.pending_entry_repository import PendingEntryRepository
from app.services.matrix.drain_lock import DrainLockManager
from app.services.matrix.entry_processor import EntryProcessor
from app.services.matrix.events import MatrixEventHooks
from app.services.matrix.results import DrainSummary
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import LockContention, is_fatal_for_entry, is_transient


class QueueDrainScheduler:
    """
    Runs drains of the pending entry queue.

    A drain:
    1. Claims the drain lock (skips the run when it is held)
    2. Snapshots up to batch_limit eligible entries in submission order
    3. Processes each entry in its own transaction
    4. Parks fatal entries in the DLQ, leaves other failures queued
    5. Releases the lock with the run's counts
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings,
        hooks: MatrixEventHooks | None = None,
    ) -> None:
        """
        Initialize drain scheduler.

        Args:
            session_maker: Session factory (one session per entry)
            settings: Engine settings
            hooks: Event subscribers notified after each commit
        """
        self.session_maker = session_maker
        self.settings = settings
        self.hooks = hooks or MatrixEventHooks()
        self.lock = DrainLockManager(
            session_maker,
            settings.drain_job_name,
            stale_minutes=settings.drain_lock_stale_minutes,
        )
        self.logger = logger.bind(service="QueueDrainScheduler")

    async def drain(self, batch_limit: int | None = None) -> DrainSummary:
        """
        Run one drain.

        Args:
            batch_limit: Maximum entries to process (defaults to
                settings.drain_batch_limit)

        Returns:
            DrainSummary; skipped is True when another run held the lock

        Raises:
            ValueError: If batch_limit is negative
        """
        job_name = self.settings.drain_job_name
        limit = (
            self.settings.drain_batch_limit if batch_limit is None else batch_limit
        )
        if limit < 0:
            raise ValueError(f"batch_limit must be >= 0, got {limit}")
        summary = DrainSummary(job_name=job_name)

        try:
            claim_token = await self.lock.acquire()
        except LockContention:
            self.logger.info(f"Drain '{job_name}' already running, skipping")
            summary.skipped = True
            return summary

        status = DrainLockStatus.COMPLETED
        try:
            entry_ids = await self._snapshot_batch(limit)
            self.logger.bind(batch_limit=limit, entries=len(entry_ids)).info(
                f"Drain '{job_name}' started: {len(entry_ids)} entries"
            )

            for entry_id in entry_ids:
                summary.last_entry_id = entry_id
                await self._drain_entry(entry_id, summary)

        except Exception as e:
            status = DrainLockStatus.FAILED
            summary.last_error = str(e)
            self.logger.exception(f"Drain '{job_name}' failed: {e}")

        finally:
            summary.status = status.value
            await self.lock.release(
                claim_token,
                status,
                processed_count=summary.processed,
                failed_count=summary.failed,
                last_entry_id=summary.last_entry_id,
                last_error=summary.last_error,
            )

        self.logger.bind(**summary.as_dict()).info(
            f"Drain '{job_name}' finished: {summary.processed} processed, "
            f"{summary.failed} failed, {summary.dead_lettered} dead-lettered"
        )
        return summary

    async def _snapshot_batch(self, limit: int) -> list[int]:
        """IDs of the entries this run will process."""
        async with self.session_maker() as session:
            entries = await PendingEntryRepository(session).get_drain_batch(
                limit, utc_now()
            )
            return [entry.id for entry in entries]

    def _build_processor(self, session: AsyncSession) -> EntryProcessor:
        return EntryProcessor(
            session,
            rolling_reserve_percent=self.settings.rolling_reserve_percent,
            allow_sponsor_lookup=self.settings.allow_sponsor_lookup,
            free_referral_bonus=self.settings.free_referral_bonus,
            house_username=self.settings.house_username,
        )

    async def _drain_entry(self, entry_id: int, summary: DrainSummary) -> None:
        """
        Process one entry in its own transaction.

        Failures are recorded on the entry in a second transaction; an error
        while recording them propagates and fails the whole run.
        """
        async with self.session_maker() as session:
            entry = await session.get(PendingEntry, entry_id)
            if entry is None:
                # Removed by an operator since the snapshot
                return

            context = {
                "entry_id": entry.id,
                "username": entry.username,
                "config_id": entry.config_id,
                "entry_type": entry.entry_type,
            }

            try:
                outcome = await self._build_processor(session).process(entry)
                await session.commit()
            except Exception as e:
                await session.rollback()
                await self._record_failure(session, entry_id, e, context)
                summary.failed += 1
                if is_fatal_for_entry(e):
                    summary.dead_lettered += 1
                summary.last_error = str(e)
                return

        summary.processed += 1
        await self.hooks.dispatch(outcome.events)

    async def _record_failure(
        self,
        session: AsyncSession,
        entry_id: int,
        error: Exception,
        context: dict,
    ) -> None:
        repo = PendingEntryRepository(session)

        if is_fatal_for_entry(error):
            self.logger.bind(**context).error(
                f"Entry {entry_id} moved to DLQ: {error}"
            )
            await repo.move_to_dlq(entry_id, str(error))
        elif is_transient(error):
            self.logger.bind(**context).warning(
                f"Entry {entry_id} failed transiently, will retry: {error}"
            )
            await repo.record_failure(entry_id, str(error))
        else:
            self.logger.bind(**context).exception(
                f"Entry {entry_id} failed unexpectedly, will retry: {error}"
            )
            await repo.record_failure(entry_id, str(error))

        await session.commit()
