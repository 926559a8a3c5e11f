"""
Commission distributor.

Pays per-level commissions up the tree, matching commissions to each paid
ancestor's sponsor, and the referral bonus to the entering member's sponsor.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import ZERO
from app.models.enums import EntryType, LedgerPurpose
from app.models.ledger_record import LedgerRecord
from app.models.matrix_config import MatrixConfig
from app.models.matrix_node import MatrixNode
from app.repositories.matrix_node_repository import MatrixNodeRepository
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService
from app.services.matrix.ledger_writer import LedgerWriter


class CommissionDistributor(BaseService):
    """Distributes placement earnings through the ledger writer."""

    def __init__(
        self,
        session: AsyncSession,
        ledger_writer: LedgerWriter,
        rolling_reserve_percent: float = 0,
        free_referral_bonus: bool = False,
    ) -> None:
        """
        Initialize commission distributor.

        Args:
            session: Async database session
            ledger_writer: Writer shared with the rest of the transaction
            rolling_reserve_percent: Reserve share for level and matching
                commissions
            free_referral_bonus: Pay referral bonuses to inactive sponsors
        """
        super().__init__(session)
        self.ledger_writer = ledger_writer
        self.rolling_reserve_percent = rolling_reserve_percent
        self.free_referral_bonus = free_referral_bonus
        self.node_repo = MatrixNodeRepository(session)
        self.member_repo = MemberRepository(session)

    async def distribute(
        self,
        node: MatrixNode,
        config: MatrixConfig,
        entry_type: EntryType | str = EntryType.NEW,
    ) -> list[LedgerRecord]:
        """
        Pay everything owed for a new placement.

        Level commissions are paid only by PER_PLACEMENT tiers: ancestors are
        visited iteratively from level 1 to config.depth and levels with a
        zero commission are skipped. The referral bonus is paid in every
        payout mode.

        Args:
            node: Newly placed position
            config: Matrix tier
            entry_type: NEW or RE_ENTRY

        Returns:
            Ledger records written, in write order
        """
        records: list[LedgerRecord] = []
        ancestors = []
        if config.pays_per_placement:
            ancestors = await self.node_repo.get_ancestors(node, config.depth)

        for level, ancestor in enumerate(ancestors, start=1):
            commission = config.commission_for(level)
            if commission > ZERO:
                record = await self.ledger_writer.write(
                    username=ancestor.username,
                    amount=commission,
                    purpose=LedgerPurpose.level_commission(level),
                    source_node_id=node.id,
                    config_id=config.id,
                    reserve_percent=self.rolling_reserve_percent,
                )
                await self.node_repo.add_earnings(ancestor.id, commission)
                records.append(record)

            matching = config.matching_commission_for(level)
            if matching > ZERO:
                record = await self._pay_sponsor(
                    ancestor.sponsor_username,
                    matching,
                    LedgerPurpose.MATCHING_BONUS.value,
                    node,
                    config,
                    self.rolling_reserve_percent,
                )
                if record is not None:
                    records.append(record)

        referral = await self.pay_referral_bonus(node, config, entry_type)
        if referral is not None:
            records.append(referral)

        return records

    async def pay_referral_bonus(
        self,
        node: MatrixNode,
        config: MatrixConfig,
        entry_type: EntryType | str = EntryType.NEW,
    ) -> LedgerRecord | None:
        """
        Pay the referral bonus to the entering member's sponsor.

        Re-entries pay it only when the tier says so. The reserve share
        comes from the tier's referral_reserve_percent.

        Args:
            node: Newly placed position
            config: Matrix tier
            entry_type: NEW or RE_ENTRY

        Returns:
            Ledger record or None if nothing was paid
        """
        if (
            entry_type == EntryType.RE_ENTRY
            and not config.pay_referral_on_reentry
        ):
            return None

        return await self._pay_sponsor(
            node.sponsor_username,
            config.referral_bonus,
            LedgerPurpose.REFERRAL_BONUS.value,
            node,
            config,
            config.referral_reserve_percent,
        )

    async def _pay_sponsor(
        self,
        sponsor_username: str | None,
        amount: Decimal,
        purpose: str,
        node: MatrixNode,
        config: MatrixConfig,
        reserve_percent: Decimal | float,
    ) -> LedgerRecord | None:
        if not sponsor_username or amount is None or amount <= ZERO:
            return None

        sponsor = await self.member_repo.get_by_username(sponsor_username)
        if sponsor is None:
            self.logger.bind(node_id=node.id, config_id=config.id).warning(
                f"Sponsor {sponsor_username} not found, {purpose} not paid"
            )
            return None

        if not sponsor.is_active and not self.free_referral_bonus:
            self.logger.bind(node_id=node.id, config_id=config.id).info(
                f"Sponsor {sponsor_username} is inactive, {purpose} not paid"
            )
            return None

        return await self.ledger_writer.write(
            username=sponsor_username,
            amount=amount,
            purpose=purpose,
            source_node_id=node.id,
            config_id=config.id,
            reserve_percent=reserve_percent,
        )
