"""
Member repository.

Data access layer for Member model.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.member import Member
from app.repositories.base import BaseRepository


class MemberRepository(BaseRepository[Member]):
    """Repository for member lookups and balance credits."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Member, session)

    async def get_by_username(self, username: str) -> Member | None:
        """
        Get member by username.

        Args:
            username: Member username

        Returns:
            Member or None if not found
        """
        result = await self.session.execute(
            select(Member).where(Member.username == username)
        )
        return result.scalar_one_or_none()

    async def credit(
        self,
        username: str,
        immediate_amount: Decimal,
        reserve_amount: Decimal,
    ) -> bool:
        """
        Credit member balances atomically.

        Uses column arithmetic so concurrent credits never overwrite each
        other.

        Args:
            username: Member username
            immediate_amount: Amount added to unpaid_balance
            reserve_amount: Amount added to reserve_balance

        Returns:
            True if a member row was updated
        """
        stmt = (
            update(Member)
            .where(Member.username == username)
            .values(
                total_earned=Member.total_earned
                + immediate_amount
                + reserve_amount,
                unpaid_balance=Member.unpaid_balance + immediate_amount,
                reserve_balance=Member.reserve_balance + reserve_amount,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
