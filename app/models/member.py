"""
Member model.

The engine's view of a user account: identity, sponsor link and the running
balances credited by the ledger writer.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class Member(Base):
    """
    Member entity.

    Balances are split the same way every ledger record is split:
    - unpaid_balance: immediately payable part
    - reserve_balance: rolling reserve held back
    - total_earned: lifetime sum of both

    Attributes:
        id: Primary key
        username: Unique login name (referenced by nodes and ledger rows)
        sponsor_username: Member who referred this member
        is_active: Paid/active member flag
        total_earned: Lifetime earnings
        unpaid_balance: Immediately payable balance
        reserve_balance: Rolling reserve balance
        created_at: Registration timestamp
    """

    __tablename__ = "members"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    username: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    sponsor_username: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    unpaid_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    reserve_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Member(id={self.id}, username={self.username!r}, "
            f"sponsor={self.sponsor_username!r})>"
        )
