"""
Drain lock manager.

Single-flight guard for the queue drain, persisted in drain_locks so it holds
across processes and hosts. Every operation commits in its own session.
"""

import uuid
from datetime import timedelta

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.drain_lock import DrainLock
from app.models.enums import DrainLockStatus
from app.repositories.drain_lock_repository import DrainLockRepository
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import LockContention


class DrainLockManager:
    """Acquire, release and inspect the drain lock of one job."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        job_name: str,
        stale_minutes: int = 0,
    ) -> None:
        """
        Initialize lock manager.

        Args:
            session_maker: Session factory
            job_name: Lock row name
            stale_minutes: RUNNING locks older than this may be reclaimed
                (0 disables reclaim)
        """
        self.session_maker = session_maker
        self.job_name = job_name
        self.stale_minutes = stale_minutes
        self.logger = logger.bind(service="DrainLockManager")

    async def _ensure_row(self, session: AsyncSession) -> None:
        """Create the lock row on first use."""
        repo = DrainLockRepository(session)
        if await repo.get_by_job_name(self.job_name) is not None:
            return

        try:
            await repo.create(
                job_name=self.job_name, status=DrainLockStatus.IDLE.value
            )
            await session.commit()
        except IntegrityError:
            # Another process created it first
            await session.rollback()

    async def acquire(self) -> str:
        """
        Claim the lock.

        Returns:
            Claim token to pass to release()

        Raises:
            LockContention: If another run holds a non-stale lock
        """
        async with self.session_maker() as session:
            await self._ensure_row(session)

            repo = DrainLockRepository(session)
            previous = await repo.get_by_job_name(self.job_name)
            was_running = previous is not None and previous.is_running

            now = utc_now()
            token = str(uuid.uuid4())
            stale_before = None
            if self.stale_minutes > 0:
                stale_before = now - timedelta(minutes=self.stale_minutes)

            claimed = await repo.try_claim(
                self.job_name, now, token, stale_before=stale_before
            )
            await session.commit()

        if not claimed:
            raise LockContention(self.job_name)

        if was_running:
            self.logger.warning(
                f"Reclaimed stale drain lock '{self.job_name}' "
                f"(older than {self.stale_minutes} minutes)"
            )
        return token

    async def release(
        self,
        claim_token: str,
        status: DrainLockStatus,
        processed_count: int,
        failed_count: int,
        last_entry_id: int | None,
        last_error: str | None = None,
    ) -> bool:
        """
        Record the run outcome and free the lock.

        Returns:
            False if the lock was reclaimed or force-unlocked meanwhile
        """
        async with self.session_maker() as session:
            released = await DrainLockRepository(session).release(
                self.job_name,
                claim_token,
                status,
                utc_now(),
                processed_count=processed_count,
                failed_count=failed_count,
                last_entry_id=last_entry_id,
                last_error=last_error,
            )
            await session.commit()

        if not released:
            self.logger.warning(
                f"Drain lock '{self.job_name}' was taken over before release, "
                f"outcome not recorded"
            )
        return released

    async def force_unlock(self) -> bool:
        """
        Reset the lock to IDLE (operator action after a crash).

        Returns:
            True if the lock row exists
        """
        async with self.session_maker() as session:
            unlocked = await DrainLockRepository(session).force_unlock(
                self.job_name, utc_now()
            )
            await session.commit()

        if unlocked:
            self.logger.warning(f"Drain lock '{self.job_name}' forced to IDLE")
        return unlocked

    async def get(self) -> DrainLock | None:
        """Current lock row (detached snapshot)."""
        async with self.session_maker() as session:
            lock = await DrainLockRepository(session).get_by_job_name(
                self.job_name
            )
            if lock is not None:
                session.expunge(lock)
            return lock
