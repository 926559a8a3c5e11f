"""
PendingEntry model.

A unit of work in the matrix placement queue.
"""

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import EntryType


class PendingEntry(Base):
    """
    Pending matrix entry.

    Created by deposit confirmation (or by a cycle for re-entries) and deleted
    in the same transaction that places and settles it. Entries that hit a
    fatal error are parked in the dead letter queue (in_dlq) until an operator
    requeues them.

    Attributes:
        id: Primary key
        username: Member entering the matrix
        config_id: Target matrix tier (not a foreign key: a deleted tier must
            surface as a fatal entry error, not block the delete)
        sponsor_username: Sponsor credited for this entry
        entry_type: NEW or RE_ENTRY
        created_at: Submission time (drain order)
        scheduled_at: Entry is not drained before this time
        attempts: Failed processing attempts
        last_error: Last processing error
        in_dlq: Parked after a fatal error
    """

    __tablename__ = "pending_entries"
    __table_args__ = (
        Index("idx_pending_entries_drain", "in_dlq", "created_at", "id"),
        Index("idx_pending_entries_username_config", "username", "config_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    config_id: Mapped[int] = mapped_column(Integer, nullable=False)
    sponsor_username: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    entry_type: Mapped[str] = mapped_column(
        String(16), default=EntryType.NEW.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    in_dlq: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PendingEntry(id={self.id}, username={self.username!r}, "
            f"config_id={self.config_id}, type={self.entry_type})>"
        )
