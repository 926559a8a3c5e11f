"""
Enumerations shared by matrix engine models.
"""

from enum import StrEnum


class EntryType(StrEnum):
    """Pending entry type."""

    NEW = "NEW"
    RE_ENTRY = "RE_ENTRY"


class DrainLockStatus(StrEnum):
    """Drain lock lifecycle state."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class LedgerPurpose(StrEnum):
    """Ledger record purpose tags (level commissions are built per level)."""

    REFERRAL_BONUS = "REFERRAL_BONUS"
    CYCLE_BONUS = "CYCLE_BONUS"
    MATCHING_BONUS = "MATCHING_BONUS"

    @staticmethod
    def level_commission(level: int) -> str:
        """Purpose tag for a per-level commission, e.g. LEVEL_3_COMMISSION."""
        return f"LEVEL_{level}_COMMISSION"

    @staticmethod
    def level_cycle_bonus(level: int) -> str:
        """Purpose tag for a filled-level bonus, e.g. LEVEL_2_CYCLE_BONUS."""
        return f"LEVEL_{level}_CYCLE_BONUS"


class PayoutMode(StrEnum):
    """
    When a tier pays its per-level table.

    PER_PLACEMENT pays level commissions on every placement below an
    ancestor. LEVEL_CYCLE pays the level cycle bonus once, when an
    ancestor's level fills. CYCLE_COMPLETION pays only the cycle bonus.
    """

    CYCLE_COMPLETION = "CYCLE_COMPLETION"
    PER_PLACEMENT = "PER_PLACEMENT"
    LEVEL_CYCLE = "LEVEL_CYCLE"
