"""
Entry processor.

Turns one pending entry into a placed, paid and cycle-checked position.
Runs inside the caller's transaction and never commits.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import EntryType
from app.models.pending_entry import PendingEntry
from app.repositories.matrix_config_repository import MatrixConfigRepository
from app.repositories.matrix_node_repository import MatrixNodeRepository
from app.repositories.member_repository import MemberRepository
from app.repositories.pending_entry_repository import PendingEntryRepository
from app.services.base_service import BaseService, log_operation
from app.services.matrix.commission_distributor import CommissionDistributor
from app.services.matrix.cycle_detector import CycleDetector
from app.services.matrix.ledger_writer import LedgerWriter
from app.services.matrix.placement_resolver import PlacementResolver
from app.services.matrix.results import EntryOutcome
from app.utils.exceptions import ConfigInactive, ConfigNotFound, UserNotFound


class EntryProcessor(BaseService):
    """
    Processes a single pending entry.

    Steps, all in one transaction:
    1. Validate member and tier
    2. Resolve placement and create the position
    3. Update ancestor occupancy counters
    4. Distribute commissions and the referral bonus
    5. Pay level cycle bonuses for filled levels
    6. Check ancestors for completed cycles
    7. Delete the pending entry
    """

    def __init__(
        self,
        session: AsyncSession,
        rolling_reserve_percent: float = 0,
        allow_sponsor_lookup: bool = False,
        free_referral_bonus: bool = False,
        house_username: str = "admin",
    ) -> None:
        """Initialize entry processor and its collaborators."""
        super().__init__(session)
        self.member_repo = MemberRepository(session)
        self.config_repo = MatrixConfigRepository(session)
        self.node_repo = MatrixNodeRepository(session)
        self.entry_repo = PendingEntryRepository(session)

        self.ledger_writer = LedgerWriter(session)
        self.placement_resolver = PlacementResolver(
            session, allow_sponsor_lookup=allow_sponsor_lookup
        )
        self.commission_distributor = CommissionDistributor(
            session,
            self.ledger_writer,
            rolling_reserve_percent=rolling_reserve_percent,
            free_referral_bonus=free_referral_bonus,
        )
        self.cycle_detector = CycleDetector(
            session,
            self.ledger_writer,
            rolling_reserve_percent=rolling_reserve_percent,
            house_username=house_username,
            events=self.ledger_writer.events,
        )

    @log_operation
    async def process(self, entry: PendingEntry) -> EntryOutcome:
        """
        Place and settle one entry.

        Args:
            entry: Pending entry (deleted on success)

        Returns:
            EntryOutcome with the new position, ledger records, completed
            cycles and the events to publish after commit

        Raises:
            UserNotFound: If the member does not exist
            ConfigNotFound: If the tier does not exist
            ConfigInactive: If the tier no longer accepts entries
        """
        member = await self.member_repo.get_by_username(entry.username)
        if member is None:
            raise UserNotFound(entry.username)

        config = await self.config_repo.get_by_id(entry.config_id)
        if config is None:
            raise ConfigNotFound(entry.config_id)
        if not config.is_active:
            raise ConfigInactive(entry.config_id)

        sponsor_username = entry.sponsor_username or member.sponsor_username
        if sponsor_username == entry.username:
            sponsor_username = None

        placement = await self.placement_resolver.resolve_placement(
            config.id, sponsor_username
        )

        node = await self.node_repo.create(
            config_id=config.id,
            username=entry.username,
            sponsor_username=sponsor_username,
            parent_id=placement.parent_id,
            main_id=placement.root_id,
            entry_type=entry.entry_type,
            pending_entry_id=entry.id,
        )
        if placement.is_root:
            node.main_id = node.id
            await self.flush()

        ancestors = await self.node_repo.get_ancestors(node, config.depth)
        await self.placement_resolver.register_occupancy(ancestors, config.depth)

        records = await self.commission_distributor.distribute(
            node, config, EntryType(entry.entry_type)
        )
        records.extend(
            await self.cycle_detector.check_level_cycles(ancestors, config)
        )
        cycles = await self.cycle_detector.check_ancestors(ancestors, config)

        await self.entry_repo.delete(entry.id)

        self.logger.bind(
            entry_id=entry.id,
            node_id=node.id,
            config_id=config.id,
            entry_type=entry.entry_type,
            records=len(records),
            cycles=len(cycles),
        ).info(
            f"Placed {entry.username} in matrix {config.id} "
            f"under node {placement.parent_id}"
        )

        return EntryOutcome(
            entry_id=entry.id,
            node=node,
            records=records,
            cycles=cycles,
            events=list(self.ledger_writer.events),
        )
