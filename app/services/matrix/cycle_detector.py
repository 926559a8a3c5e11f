"""
Cycle detector.

Detects positions whose downline is full, pays cycle and matching bonuses
and queues re-entries and cross-matrix entries. LEVEL_CYCLE tiers are also
paid here, each time one level of a position fills.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import CROSS_MATRIX_ENTRY_SPACING_MINUTES, ZERO
from app.models.enums import EntryType, LedgerPurpose
from app.models.ledger_record import LedgerRecord
from app.models.matrix_config import MatrixConfig, MatrixCycleEntry
from app.models.matrix_node import MatrixNode
from app.repositories.matrix_node_repository import MatrixNodeRepository
from app.repositories.member_repository import MemberRepository
from app.repositories.pending_entry_repository import PendingEntryRepository
from app.services.base_service import BaseService
from app.services.matrix.ledger_writer import LedgerWriter
from app.services.matrix.results import (
    CycleCompletedEvent,
    CycleResult,
    MatrixEvent,
)
from app.utils.datetime_utils import as_utc, utc_now


class CycleDetector(BaseService):
    """
    Cycle detection and cycle payouts.

    A position cycles once the positions below it across levels 1..depth
    reach width ** depth. A cycled position is stamped and never cycles
    again.
    """

    def __init__(
        self,
        session: AsyncSession,
        ledger_writer: LedgerWriter,
        rolling_reserve_percent: float = 0,
        house_username: str = "admin",
        events: list[MatrixEvent] | None = None,
    ) -> None:
        """
        Initialize cycle detector.

        Args:
            session: Async database session
            ledger_writer: Writer shared with the rest of the transaction
            rolling_reserve_percent: Reserve share for cycle and matching
                bonuses
            house_username: Account that never re-enters or receives
                cross-matrix entries
            events: Event list shared with the ledger writer
        """
        super().__init__(session)
        self.ledger_writer = ledger_writer
        self.rolling_reserve_percent = rolling_reserve_percent
        self.house_username = house_username
        self.node_repo = MatrixNodeRepository(session)
        self.member_repo = MemberRepository(session)
        self.entry_repo = PendingEntryRepository(session)
        self.events: list[MatrixEvent] = events if events is not None else []

    async def check_cycle(
        self, node: MatrixNode, config: MatrixConfig
    ) -> CycleResult:
        """
        Complete the cycle of `node` if its downline is full.

        Idempotent: an already cycled position is left untouched.

        Args:
            node: Position to check
            config: Matrix tier

        Returns:
            CycleResult (completed is False when nothing happened)
        """
        result = CycleResult(node_id=node.id, completed=False)

        if node.is_cycled:
            return result
        if node.occupied_count(config.depth) < config.cycle_capacity:
            return result

        now = utc_now()
        if not await self.node_repo.mark_cycled(node.id, now):
            return result

        result.completed = True
        self.logger.bind(
            node_id=node.id, username=node.username, config_id=config.id
        ).info(f"Node {node.id} ({node.username}) cycled in matrix {config.id}")

        if config.cycle_bonus > ZERO:
            record = await self.ledger_writer.write(
                username=node.username,
                amount=config.cycle_bonus,
                purpose=LedgerPurpose.CYCLE_BONUS.value,
                source_node_id=node.id,
                config_id=config.id,
                reserve_percent=self.rolling_reserve_percent,
            )
            await self.node_repo.add_earnings(node.id, config.cycle_bonus)
            result.bonuses.append(record)

        matching = await self._pay_matching_bonus(
            node, config, config.matching_bonus
        )
        if matching is not None:
            result.bonuses.append(matching)

        if node.username != self.house_username:
            if config.reentry_enabled:
                result.reentry_ids = await self._create_reentries(node, config, now)

            for cycle_entry in config.cycle_entries:
                result.cross_entry_ids.extend(
                    await self._create_cross_entries(node, cycle_entry, now)
                )

        self.events.append(
            CycleCompletedEvent(
                node_id=node.id,
                username=node.username,
                sponsor_username=node.sponsor_username,
                config_id=config.id,
                cycled_at=now,
                reentries_created=len(result.reentry_ids),
                cross_entries_created=len(result.cross_entry_ids),
            )
        )
        return result

    async def check_ancestors(
        self, ancestors: list[MatrixNode], config: MatrixConfig
    ) -> list[CycleResult]:
        """
        Check every ancestor of a new position, nearest first.

        Args:
            ancestors: Ancestors within config.depth levels
            config: Matrix tier

        Returns:
            Results of the checks that completed a cycle
        """
        completed = []
        for ancestor in ancestors:
            result = await self.check_cycle(ancestor, config)
            if result.completed:
                completed.append(result)
        return completed

    async def check_level_cycles(
        self, ancestors: list[MatrixNode], config: MatrixConfig
    ) -> list[LedgerRecord]:
        """
        Pay level cycle bonuses for the levels a new position just filled.

        Only LEVEL_CYCLE tiers pay them. The ancestor at distance L has just
        gained a position on its level L; the level is full when it holds
        width ** L positions, and an exact match pays it once.

        Args:
            ancestors: Ancestors of the new position, nearest first, with
                their level counters already incremented
            config: Matrix tier

        Returns:
            Ledger records written, nearest ancestor first
        """
        if not config.pays_level_cycles:
            return []

        records: list[LedgerRecord] = []
        for level, ancestor in enumerate(ancestors[: config.depth], start=1):
            if ancestor.level_count(level) != config.width ** level:
                continue

            self.logger.bind(node_id=ancestor.id, config_id=config.id).info(
                f"Level {level} of node {ancestor.id} ({ancestor.username}) filled"
            )

            bonus = config.cycle_commission_for(level)
            if bonus > ZERO:
                record = await self.ledger_writer.write(
                    username=ancestor.username,
                    amount=bonus,
                    purpose=LedgerPurpose.level_cycle_bonus(level),
                    source_node_id=ancestor.id,
                    config_id=config.id,
                    reserve_percent=self.rolling_reserve_percent,
                )
                await self.node_repo.add_earnings(ancestor.id, bonus)
                records.append(record)

            matching = await self._pay_matching_bonus(
                ancestor, config, config.cycle_matching_commission_for(level)
            )
            if matching is not None:
                records.append(matching)

        return records

    async def _pay_matching_bonus(
        self, node: MatrixNode, config: MatrixConfig, amount: Decimal
    ) -> LedgerRecord | None:
        if amount <= ZERO or not node.sponsor_username:
            return None

        sponsor = await self.member_repo.get_by_username(node.sponsor_username)
        if sponsor is None:
            self.logger.bind(node_id=node.id, config_id=config.id).warning(
                f"Sponsor {node.sponsor_username} not found, "
                f"matching bonus for node {node.id} not paid"
            )
            return None

        return await self.ledger_writer.write(
            username=node.sponsor_username,
            amount=amount,
            purpose=LedgerPurpose.MATCHING_BONUS.value,
            source_node_id=node.id,
            config_id=config.id,
            reserve_percent=self.rolling_reserve_percent,
        )

    async def _create_reentries(
        self, node: MatrixNode, config: MatrixConfig, now: datetime
    ) -> list[int]:
        ids = []
        for _ in range(config.reentry_count):
            entry = await self.entry_repo.create(
                username=node.username,
                config_id=config.id,
                sponsor_username=node.sponsor_username,
                entry_type=EntryType.RE_ENTRY.value,
                created_at=now,
                scheduled_at=now,
            )
            ids.append(entry.id)
        return ids

    async def _create_cross_entries(
        self, node: MatrixNode, cycle_entry: MatrixCycleEntry, now: datetime
    ) -> list[int]:
        """
        Queue NEW entries into another tier for the cycled member.

        Consecutive entries for the same member and tier are spaced
        CROSS_MATRIX_ENTRY_SPACING_MINUTES apart.
        """
        spacing = timedelta(minutes=CROSS_MATRIX_ENTRY_SPACING_MINUTES)
        target = cycle_entry.target_config_id
        ids = []

        for _ in range(cycle_entry.count):
            scheduled_at = now
            since = now - spacing

            recent_entry = await self.entry_repo.get_latest_for_user_since(
                target, node.username, since
            )
            if recent_entry is not None:
                scheduled_at = max(
                    scheduled_at, as_utc(recent_entry.scheduled_at) + spacing
                )

            recent_node = await self.node_repo.get_latest_for_user_since(
                target, node.username, since
            )
            if recent_node is not None:
                scheduled_at = max(
                    scheduled_at, as_utc(recent_node.created_at) + spacing
                )

            entry = await self.entry_repo.create(
                username=node.username,
                config_id=target,
                sponsor_username=node.sponsor_username,
                entry_type=EntryType.NEW.value,
                created_at=now,
                scheduled_at=scheduled_at,
            )
            ids.append(entry.id)

        if ids:
            self.logger.bind(node_id=node.id, target_config_id=target).info(
                f"Queued {len(ids)} cross-matrix entries for {node.username} "
                f"into matrix {target}"
            )
        return ids
