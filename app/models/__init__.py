"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.drain_lock import DrainLock
from app.models.enums import DrainLockStatus, EntryType, LedgerPurpose
from app.models.ledger_record import LedgerRecord

# Matrix Models
from app.models.matrix_config import (
    MatrixConfig,
    MatrixCycleEntry,
    MatrixLevelPayout,
)
from app.models.matrix_node import MatrixNode

# Core Models
from app.models.member import Member
from app.models.pending_entry import PendingEntry

__all__ = [
    # Base
    "Base",
    # Enums
    "DrainLockStatus",
    "EntryType",
    "LedgerPurpose",
    # Core Models
    "Member",
    # Matrix Models
    "MatrixConfig",
    "MatrixCycleEntry",
    "MatrixLevelPayout",
    "MatrixNode",
    # Queue and settlement
    "PendingEntry",
    "LedgerRecord",
    "DrainLock",
]
