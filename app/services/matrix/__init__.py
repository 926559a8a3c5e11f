"""
Matrix engine services package.

Contains the components of the forced matrix engine:
- placement_resolver: Breadth-first placement with sponsor spillover
- commission_distributor: Level, matching and referral payouts
- cycle_detector: Cycle completion, re-entries and cross-matrix entries
- ledger_writer: Ledger records and member balance credits
- entry_processor: One entry, one transaction
- drain_scheduler: Locked, bounded queue drains
- drain_lock: Persistent single-flight drain lock
- events: Post-commit event hooks
"""

from app.services.matrix.commission_distributor import CommissionDistributor
from app.services.matrix.cycle_detector import CycleDetector
from app.services.matrix.drain_lock import DrainLockManager
from app.services.matrix.drain_scheduler import QueueDrainScheduler
from app.services.matrix.entry_processor import EntryProcessor
from app.services.matrix.events import MatrixEventHooks
from app.services.matrix.ledger_writer import LedgerWriter, split_amount
from app.services.matrix.placement_resolver import PlacementResolver
from app.services.matrix.results import (
    CommissionPaidEvent,
    CycleCompletedEvent,
    CycleResult,
    DrainStatus,
    DrainSummary,
    EntryOutcome,
    MatrixEvent,
    Placement,
)


__all__ = [
    # Components
    "CommissionDistributor",
    "CycleDetector",
    "DrainLockManager",
    "EntryProcessor",
    "LedgerWriter",
    "PlacementResolver",
    "QueueDrainScheduler",
    "split_amount",
    # Events
    "MatrixEventHooks",
    "CommissionPaidEvent",
    "CycleCompletedEvent",
    "MatrixEvent",
    # Results
    "CycleResult",
    "DrainStatus",
    "DrainSummary",
    "EntryOutcome",
    "Placement",
]
