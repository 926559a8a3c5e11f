"""
PendingEntry repository.

Data access layer for the matrix placement queue and its dead letter queue.
"""

from datetime import datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import MAX_ERROR_TEXT_LENGTH
from app.models.pending_entry import PendingEntry
from app.repositories.base import BaseRepository


class PendingEntryRepository(BaseRepository[PendingEntry]):
    """Repository for pending matrix entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(PendingEntry, session)

    async def get_drain_batch(
        self, limit: int, now: datetime
    ) -> list[PendingEntry]:
        """
        Get the next entries to drain.

        Args:
            limit: Maximum number of entries
            now: Entries scheduled later than this are skipped

        Returns:
            Eligible entries in submission order
        """
        result = await self.session.execute(
            select(PendingEntry)
            .where(
                and_(
                    PendingEntry.in_dlq == False,  # noqa: E712
                    PendingEntry.scheduled_at <= now,
                )
            )
            .order_by(PendingEntry.created_at.asc(), PendingEntry.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_pending(self) -> int:
        """Entries waiting to be drained (DLQ excluded)."""
        result = await self.session.execute(
            select(func.count(PendingEntry.id)).where(
                PendingEntry.in_dlq == False  # noqa: E712
            )
        )
        return result.scalar() or 0

    async def get_dead_entries(self, limit: int = 100) -> list[PendingEntry]:
        """
        Get entries parked in the dead letter queue.

        Args:
            limit: Maximum number of entries

        Returns:
            Parked entries, oldest first
        """
        result = await self.session.execute(
            select(PendingEntry)
            .where(PendingEntry.in_dlq == True)  # noqa: E712
            .order_by(PendingEntry.created_at.asc(), PendingEntry.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_latest_for_user_since(
        self, config_id: int, username: str, since: datetime
    ) -> PendingEntry | None:
        """Latest-scheduled entry of `username` for a tier at or after `since`."""
        result = await self.session.execute(
            select(PendingEntry)
            .where(
                and_(
                    PendingEntry.config_id == config_id,
                    PendingEntry.username == username,
                    PendingEntry.scheduled_at >= since,
                )
            )
            .order_by(PendingEntry.scheduled_at.desc(), PendingEntry.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def move_to_dlq(self, entry_id: int, error: str) -> bool:
        """
        Park an entry after a fatal error.

        Args:
            entry_id: Entry ID
            error: Error description

        Returns:
            True if the entry was parked
        """
        stmt = (
            update(PendingEntry)
            .where(PendingEntry.id == entry_id)
            .values(
                in_dlq=True,
                attempts=PendingEntry.attempts + 1,
                last_error=error[:MAX_ERROR_TEXT_LENGTH],
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def record_failure(self, entry_id: int, error: str) -> bool:
        """
        Record a failed attempt and leave the entry queued.

        Args:
            entry_id: Entry ID
            error: Error description

        Returns:
            True if the entry was updated
        """
        stmt = (
            update(PendingEntry)
            .where(PendingEntry.id == entry_id)
            .values(
                attempts=PendingEntry.attempts + 1,
                last_error=error[:MAX_ERROR_TEXT_LENGTH],
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def requeue(self, entry_id: int, now: datetime) -> bool:
        """
        Return a parked entry to the queue.

        Args:
            entry_id: Entry ID
            now: New scheduled time

        Returns:
            True if a parked entry was requeued
        """
        stmt = (
            update(PendingEntry)
            .where(
                and_(
                    PendingEntry.id == entry_id,
                    PendingEntry.in_dlq == True,  # noqa: E712
                )
            )
            .values(
                in_dlq=False,
                attempts=0,
                last_error=None,
                scheduled_at=now,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
