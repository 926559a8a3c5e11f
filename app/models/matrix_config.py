"""
Matrix configuration models.

One MatrixConfig per purchasable tier, with its per-level payout table and the
cross-matrix entries granted when a position cycles.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import PayoutMode
from app.models.types import MoneyType, PercentType


class MatrixConfig(Base):
    """
    Forced matrix tier.

    Attributes:
        id: Primary key (the "matrix id" entries refer to)
        name: Display name
        width: Children per node (forced matrix branching factor)
        depth: Commission-eligible levels (1-10)
        payout_mode: When the per-level table is paid (see PayoutMode)
        entry_fee: Price of one position
        referral_bonus: Paid to the placing member's sponsor
        referral_reserve_percent: Share of the referral bonus held in reserve
        pay_referral_on_reentry: Also pay the referral bonus for re-entries
        cycle_bonus: Paid to the owner when the position cycles
        matching_bonus: Paid to the owner's sponsor when the position cycles
        spillover_enabled: Search the sponsor's downline for an open slot
        reentry_enabled: Re-queue the owner after a cycle
        reentry_count: Number of re-entries created per cycle
        is_active: Tier accepts new entries
    """

    __tablename__ = "matrix_configs"
    __table_args__ = (
        CheckConstraint("width >= 1", name="check_matrix_width_positive"),
        CheckConstraint(
            "depth >= 1 AND depth <= 10", name="check_matrix_depth_range"
        ),
        CheckConstraint(
            "referral_reserve_percent >= 0 AND referral_reserve_percent <= 100",
            name="check_matrix_reserve_percent_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    width: Mapped[int] = mapped_column(Integer, nullable=False)
    depth: Mapped[int] = mapped_column(Integer, nullable=False)
    entry_fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    payout_mode: Mapped[str] = mapped_column(
        String(24), default=PayoutMode.PER_PLACEMENT.value, nullable=False
    )

    referral_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referral_reserve_percent: Mapped[Decimal] = mapped_column(
        PercentType, default=Decimal("0"), nullable=False
    )
    pay_referral_on_reentry: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    cycle_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    matching_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    spillover_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    reentry_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    reentry_count: Mapped[int] = mapped_column(
        Integer, default=1, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    level_payouts: Mapped[list["MatrixLevelPayout"]] = relationship(
        "MatrixLevelPayout",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="MatrixLevelPayout.level",
        lazy="selectin",
    )
    cycle_entries: Mapped[list["MatrixCycleEntry"]] = relationship(
        "MatrixCycleEntry",
        back_populates="config",
        cascade="all, delete-orphan",
        foreign_keys="MatrixCycleEntry.config_id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MatrixConfig(id={self.id}, name={self.name!r}, "
            f"width={self.width}, depth={self.depth})>"
        )

    @property
    def cycle_capacity(self) -> int:
        """Descendants required across `depth` levels for a cycle."""
        return self.width ** self.depth

    def _payout(self, level: int) -> "MatrixLevelPayout | None":
        if level < 1 or level > self.depth:
            return None
        for payout in self.level_payouts:
            if payout.level == level:
                return payout
        return None

    def commission_for(self, level: int) -> Decimal:
        """Commission paid to the ancestor at `level` (0 outside 1..depth)."""
        payout = self._payout(level)
        return payout.commission if payout else Decimal("0")

    def matching_commission_for(self, level: int) -> Decimal:
        """Matching commission paid to the level ancestor's sponsor."""
        payout = self._payout(level)
        return payout.matching_commission if payout else Decimal("0")

    def cycle_commission_for(self, level: int) -> Decimal:
        """Bonus paid to an ancestor when its `level` fills."""
        payout = self._payout(level)
        return payout.cycle_commission if payout else Decimal("0")

    def cycle_matching_commission_for(self, level: int) -> Decimal:
        """Matching bonus paid to that ancestor's sponsor when `level` fills."""
        payout = self._payout(level)
        return payout.cycle_matching_commission if payout else Decimal("0")

    @property
    def pays_per_placement(self) -> bool:
        return self.payout_mode == PayoutMode.PER_PLACEMENT.value

    @property
    def pays_level_cycles(self) -> bool:
        return self.payout_mode == PayoutMode.LEVEL_CYCLE.value


class MatrixLevelPayout(Base):
    """Per-level payout row of a matrix tier."""

    __tablename__ = "matrix_level_payouts"
    __table_args__ = (
        UniqueConstraint("config_id", "level", name="uq_matrix_level_payout"),
        CheckConstraint(
            "level >= 1 AND level <= 10", name="check_level_payout_range"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    config_id: Mapped[int] = mapped_column(
        ForeignKey("matrix_configs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    matching_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    cycle_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    cycle_matching_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    config: Mapped["MatrixConfig"] = relationship(
        "MatrixConfig", back_populates="level_payouts"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MatrixLevelPayout(config_id={self.config_id}, level={self.level}, "
            f"commission={self.commission})>"
        )


class MatrixCycleEntry(Base):
    """Entries into another tier granted when a position of this tier cycles."""

    __tablename__ = "matrix_cycle_entries"
    __table_args__ = (
        CheckConstraint("count >= 1", name="check_cycle_entry_count_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    config_id: Mapped[int] = mapped_column(
        ForeignKey("matrix_configs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_config_id: Mapped[int] = mapped_column(
        ForeignKey("matrix_configs.id", ondelete="CASCADE"),
        nullable=False,
    )
    count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    config: Mapped["MatrixConfig"] = relationship(
        "MatrixConfig",
        back_populates="cycle_entries",
        foreign_keys=[config_id],
    )
