"""
DrainLock model.

Persistent single-flight lock for the matrix queue drain job.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import DrainLockStatus


class DrainLock(Base):
    """
    Drain lock row, one per scheduler job.

    Claimed with a conditional UPDATE (status != RUNNING) so that only one
    process drains at a time across all scheduler instances.

    Attributes:
        id: Primary key
        job_name: Scheduler job name
        status: IDLE, RUNNING, COMPLETED or FAILED
        started_at: Start of the current/last run
        finished_at: End of the last run
        last_run_at: Completion time of the last finished run
        last_error: Error text of the last run
        claim_token: Token of the run currently holding the lock
        last_entry_id: Last pending entry the run worked on
        processed_count: Entries processed by the last run
        failed_count: Entries failed in the last run
    """

    __tablename__ = "drain_locks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    status: Mapped[str] = mapped_column(
        String(16), default=DrainLockStatus.IDLE.value, nullable=False
    )

    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    claim_token: Mapped[str | None] = mapped_column(String(36), nullable=True)
    last_entry_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processed_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    failed_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<DrainLock(job_name={self.job_name!r}, status={self.status})>"

    @property
    def is_running(self) -> bool:
        """Whether a drain currently holds the lock."""
        return self.status == DrainLockStatus.RUNNING.value
