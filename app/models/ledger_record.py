"""
LedgerRecord model.

Append-only record of every commission and bonus paid by the engine.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class LedgerRecord(Base):
    """
    Ledger record (immutable).

    Rows are only ever inserted. `amount` is the full credited amount;
    `reserve_amount` is the part of it held in rolling reserve.

    Attributes:
        id: Primary key
        username: Beneficiary
        source_node_id: Position whose placement or cycle produced the payout
        config_id: Matrix tier
        amount: Credited amount
        reserve_amount: Part of amount held in reserve
        purpose: REFERRAL_BONUS, LEVEL_{n}_COMMISSION, CYCLE_BONUS or
            MATCHING_BONUS
        created_at: Write time
    """

    __tablename__ = "ledger_records"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_ledger_amount_positive"),
        CheckConstraint(
            "reserve_amount >= 0 AND reserve_amount <= amount",
            name="check_ledger_reserve_within_amount",
        ),
        Index("idx_ledger_records_username_created", "username", "created_at"),
        Index("idx_ledger_records_source_node", "source_node_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    source_node_id: Mapped[int] = mapped_column(Integer, nullable=False)
    config_id: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    reserve_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    purpose: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerRecord(id={self.id}, username={self.username!r}, "
            f"amount={self.amount}, purpose={self.purpose})>"
        )

    @property
    def immediate_amount(self) -> Decimal:
        """Immediately payable part of the amount."""
        return self.amount - self.reserve_amount
