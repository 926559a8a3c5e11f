"""
DrainLock repository.

Conditional updates that implement the single-flight drain lock.
"""

from datetime import datetime

from sqlalchemy import and_, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import MAX_ERROR_TEXT_LENGTH
from app.models.drain_lock import DrainLock
from app.models.enums import DrainLockStatus
from app.repositories.base import BaseRepository


class DrainLockRepository(BaseRepository[DrainLock]):
    """Repository for drain lock rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(DrainLock, session)

    async def get_by_job_name(self, job_name: str) -> DrainLock | None:
        """Get the lock row of a job."""
        return await self.get_by(job_name=job_name)

    async def try_claim(
        self,
        job_name: str,
        now: datetime,
        claim_token: str,
        stale_before: datetime | None = None,
    ) -> bool:
        """
        Claim the lock with a single conditional UPDATE.

        The row is claimed when it is not RUNNING, or when it is RUNNING but
        was started before `stale_before`. Exactly one concurrent caller can
        see rowcount == 1.

        Args:
            job_name: Lock row to claim
            now: Start time of the new run
            claim_token: Owner token of the new run
            stale_before: RUNNING locks started before this are reclaimable

        Returns:
            True if the lock was acquired
        """
        claimable = DrainLock.status != DrainLockStatus.RUNNING.value
        if stale_before is not None:
            claimable = or_(claimable, DrainLock.started_at < stale_before)

        stmt = (
            update(DrainLock)
            .where(and_(DrainLock.job_name == job_name, claimable))
            .values(
                status=DrainLockStatus.RUNNING.value,
                started_at=now,
                claim_token=claim_token,
                finished_at=None,
                last_error=None,
                processed_count=0,
                failed_count=0,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def release(
        self,
        job_name: str,
        claim_token: str,
        status: DrainLockStatus,
        now: datetime,
        processed_count: int,
        failed_count: int,
        last_entry_id: int | None,
        last_error: str | None = None,
    ) -> bool:
        """
        Release the lock with the outcome of a run.

        Only the run holding `claim_token` can release; a run whose lock was
        reclaimed or force-unlocked updates nothing.

        Args:
            job_name: Lock row
            claim_token: Token written by try_claim
            status: COMPLETED or FAILED
            now: Finish time
            processed_count: Entries placed in this run
            failed_count: Entries that failed in this run
            last_entry_id: Last entry the run worked on
            last_error: Error text, if any

        Returns:
            True if this run still held the lock
        """
        stmt = (
            update(DrainLock)
            .where(
                and_(
                    DrainLock.job_name == job_name,
                    DrainLock.status == DrainLockStatus.RUNNING.value,
                    DrainLock.claim_token == claim_token,
                )
            )
            .values(
                status=status.value,
                claim_token=None,
                finished_at=now,
                last_run_at=now,
                processed_count=processed_count,
                failed_count=failed_count,
                last_entry_id=last_entry_id,
                last_error=last_error[:MAX_ERROR_TEXT_LENGTH] if last_error else None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def force_unlock(self, job_name: str, now: datetime) -> bool:
        """
        Reset the lock to IDLE regardless of its state.

        Args:
            job_name: Lock row
            now: Update time

        Returns:
            True if the row exists
        """
        stmt = (
            update(DrainLock)
            .where(DrainLock.job_name == job_name)
            .values(
                status=DrainLockStatus.IDLE.value,
                claim_token=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
