"""
Result and event containers for the matrix engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.models.ledger_record import LedgerRecord
from app.models.matrix_node import MatrixNode


@dataclass(frozen=True)
class Placement:
    """Where a new position goes.

    parent_id is None only for the first position of an empty tree. root_id
    is the tree root the new position joins (None for a new root).
    """

    parent_id: int | None
    root_id: int | None

    @property
    def is_root(self) -> bool:
        """Whether the new position becomes the tree root."""
        return self.parent_id is None


@dataclass
class CommissionPaidEvent:
    """Published after commit for every ledger record written."""

    username: str
    amount: Decimal
    reserve_amount: Decimal
    purpose: str
    config_id: int
    source_node_id: int


@dataclass
class CycleCompletedEvent:
    """Published after commit for every position that cycled."""

    node_id: int
    username: str
    sponsor_username: str | None
    config_id: int
    cycled_at: datetime
    reentries_created: int = 0
    cross_entries_created: int = 0


MatrixEvent = CommissionPaidEvent | CycleCompletedEvent


@dataclass
class CycleResult:
    """Outcome of one cycle check."""

    node_id: int
    completed: bool
    bonuses: list[LedgerRecord] = field(default_factory=list)
    reentry_ids: list[int] = field(default_factory=list)
    cross_entry_ids: list[int] = field(default_factory=list)


@dataclass
class EntryOutcome:
    """Outcome of processing one pending entry."""

    entry_id: int
    node: MatrixNode
    records: list[LedgerRecord] = field(default_factory=list)
    cycles: list[CycleResult] = field(default_factory=list)
    events: list[MatrixEvent] = field(default_factory=list)


@dataclass
class DrainSummary:
    """Outcome of one drain run."""

    job_name: str
    skipped: bool = False
    processed: int = 0
    failed: int = 0
    dead_lettered: int = 0
    last_entry_id: int | None = None
    last_error: str | None = None
    status: str | None = None

    def as_dict(self) -> dict:
        """Plain dict for task results and logs."""
        return {
            "job_name": self.job_name,
            "skipped": self.skipped,
            "processed": self.processed,
            "failed": self.failed,
            "dead_lettered": self.dead_lettered,
            "last_entry_id": self.last_entry_id,
            "last_error": self.last_error,
            "status": self.status,
        }


@dataclass
class DrainStatus:
    """Operator view of the drain job."""

    running: bool
    last_run_at: datetime | None
    last_error: str | None
    pending_count: int
    dead_count: int = 0
    status: str | None = None
