"""
Ledger writer.

Appends earnings records and credits member balances, splitting every
amount into an immediately payable part and a rolling reserve.
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import HUNDRED, MONEY_QUANTUM, ZERO
from app.models.ledger_record import LedgerRecord
from app.repositories.ledger_repository import LedgerRepository
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService
from app.services.matrix.results import CommissionPaidEvent
from app.utils.exceptions import UserNotFound


def split_amount(
    amount: Decimal, reserve_percent: Decimal | float | int
) -> tuple[Decimal, Decimal]:
    """
    Split an amount into (immediate, reserve).

    The reserve is rounded to MONEY_QUANTUM and the immediate part takes the
    remainder, so the two always add up to `amount` exactly.

    Args:
        amount: Amount to split
        reserve_percent: Share held in reserve, 0-100

    Returns:
        Tuple of (immediate amount, reserve amount)

    Example:
        >>> split_amount(Decimal("100"), 10)
        (Decimal('90.00000000'), Decimal('10.00000000'))
    """
    percent = Decimal(str(reserve_percent))
    if percent <= ZERO:
        return amount, ZERO

    reserve = (amount * percent / HUNDRED).quantize(
        MONEY_QUANTUM, rounding=ROUND_HALF_UP
    )
    reserve = min(reserve, amount)
    return amount - reserve, reserve


class LedgerWriter(BaseService):
    """
    Writes ledger records for one transaction.

    Every record written is also queued as a CommissionPaidEvent in
    `events`; the caller publishes them once the transaction commits.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger writer."""
        super().__init__(session)
        self.ledger_repo = LedgerRepository(session)
        self.member_repo = MemberRepository(session)
        self.events: list[CommissionPaidEvent] = []

    async def write(
        self,
        username: str,
        amount: Decimal,
        purpose: str,
        source_node_id: int,
        config_id: int,
        reserve_percent: Decimal | float | int = 0,
    ) -> LedgerRecord | None:
        """
        Credit a member and append the ledger record.

        Zero or negative amounts write nothing.

        Args:
            username: Beneficiary
            amount: Gross amount
            purpose: Ledger purpose tag
            source_node_id: Position whose placement or cycle triggered it
            config_id: Matrix tier
            reserve_percent: Share held in reserve, 0-100

        Returns:
            Written record, or None for a zero amount

        Raises:
            UserNotFound: If the beneficiary has no member row
        """
        if amount is None or amount <= ZERO:
            return None

        immediate, reserve = split_amount(amount, reserve_percent)

        credited = await self.member_repo.credit(username, immediate, reserve)
        if not credited:
            raise UserNotFound(username)

        record = await self.ledger_repo.create(
            username=username,
            source_node_id=source_node_id,
            config_id=config_id,
            amount=amount,
            reserve_amount=reserve,
            purpose=purpose,
        )

        self.events.append(
            CommissionPaidEvent(
                username=username,
                amount=amount,
                reserve_amount=reserve,
                purpose=purpose,
                config_id=config_id,
                source_node_id=source_node_id,
            )
        )

        self.logger.bind(
            username=username,
            amount=str(amount),
            reserve_amount=str(reserve),
            purpose=purpose,
            source_node_id=source_node_id,
        ).debug(f"Ledger {purpose}: {amount} to {username}")

        return record
