"""
Matrix engine service.

Entry point for collaborators: deposit confirmation enqueues entries, the
scheduler triggers drains, operators inspect and repair the queue.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import Settings
from app.models.enums import EntryType
from app.models.pending_entry import PendingEntry
from app.repositories.matrix_config_repository import MatrixConfigRepository
from app.repositories.member_repository import MemberRepository
from app.repositories.pending_entry_repository import PendingEntryRepository
from app.services.matrix import (
    DrainStatus,
    DrainSummary,
    MatrixEventHooks,
    QueueDrainScheduler,
)
from app.utils.datetime_utils import as_utc, utc_now
from app.utils.exceptions import ConfigInactive, ConfigNotFound, UserNotFound


class MatrixEngineService:
    """
    Matrix engine facade.

    Owns no long-lived session: every call opens its own, so one instance
    can be shared by the scheduler, workers and admin tools.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings,
        hooks: MatrixEventHooks | None = None,
    ) -> None:
        """
        Initialize matrix engine service.

        Args:
            session_maker: Session factory
            settings: Engine settings
            hooks: Event subscribers
        """
        self.session_maker = session_maker
        self.settings = settings
        self.hooks = hooks or MatrixEventHooks()
        self.scheduler = QueueDrainScheduler(session_maker, settings, self.hooks)
        self.logger = logger.bind(service="MatrixEngineService")

    async def enqueue_entry(
        self,
        username: str,
        config_id: int,
        sponsor_username: str | None = None,
        entry_type: EntryType = EntryType.NEW,
    ) -> PendingEntry:
        """
        Queue a paid entry for placement.

        Args:
            username: Member entering the matrix
            config_id: Target tier
            sponsor_username: Sponsor override (defaults to the member's)
            entry_type: NEW or RE_ENTRY

        Returns:
            Created pending entry

        Raises:
            UserNotFound: If the member does not exist
            ConfigNotFound: If the tier does not exist
            ConfigInactive: If the tier no longer accepts entries
        """
        async with self.session_maker() as session:
            member = await MemberRepository(session).get_by_username(username)
            if member is None:
                raise UserNotFound(username)

            config = await MatrixConfigRepository(session).get_by_id(config_id)
            if config is None:
                raise ConfigNotFound(config_id)
            if not config.is_active:
                raise ConfigInactive(config_id)

            now = utc_now()
            entry = await PendingEntryRepository(session).create(
                username=username,
                config_id=config_id,
                sponsor_username=sponsor_username or member.sponsor_username,
                entry_type=EntryType(entry_type).value,
                created_at=now,
                scheduled_at=now,
            )
            await session.commit()

        self.logger.bind(entry_id=entry.id, entry_type=entry.entry_type).info(
            f"Entry {entry.id} queued: {username} into matrix {config_id}"
        )
        return entry

    async def trigger_drain(self, batch_limit: int | None = None) -> DrainSummary:
        """Run one drain now (skipped if one is already running)."""
        return await self.scheduler.drain(batch_limit)

    async def unlock_drain(self) -> bool:
        """
        Force the drain lock back to IDLE.

        Returns:
            True if the lock row exists
        """
        return await self.scheduler.lock.force_unlock()

    async def get_drain_status(self) -> DrainStatus:
        """
        Report drain state for operators and health checks.

        Returns:
            DrainStatus with lock state, last run and queue sizes
        """
        lock = await self.scheduler.lock.get()

        async with self.session_maker() as session:
            repo = PendingEntryRepository(session)
            pending = await repo.count_pending()
            dead = await repo.count(in_dlq=True)

        return DrainStatus(
            running=lock.is_running if lock else False,
            last_run_at=as_utc(lock.last_run_at) if lock else None,
            last_error=lock.last_error if lock else None,
            pending_count=pending,
            dead_count=dead,
            status=lock.status if lock else None,
        )

    async def requeue_entry(self, entry_id: int) -> bool:
        """
        Return a dead-lettered entry to the queue.

        Args:
            entry_id: Entry ID

        Returns:
            True if the entry was in the DLQ and is queued again
        """
        async with self.session_maker() as session:
            requeued = await PendingEntryRepository(session).requeue(
                entry_id, utc_now()
            )
            await session.commit()

        if requeued:
            self.logger.info(f"Entry {entry_id} requeued from DLQ")
        else:
            self.logger.warning(f"Entry {entry_id} is not in the DLQ")
        return requeued

    async def list_dead_entries(self, limit: int = 100) -> list[PendingEntry]:
        """Entries parked in the DLQ, oldest first."""
        async with self.session_maker() as session:
            return await PendingEntryRepository(session).get_dead_entries(limit)
