"""
Placement resolver.

Chooses the parent position for a new entry using breadth-first
(level-order) search, preferring the sponsor's own downline.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import SPILLOVER_SCAN_LEVELS, SPONSOR_LOOKUP_DEPTH
from app.models.matrix_config import MatrixConfig
from app.models.matrix_node import MatrixNode
from app.repositories.matrix_config_repository import MatrixConfigRepository
from app.repositories.matrix_node_repository import MatrixNodeRepository
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService
from app.services.matrix.results import Placement
from app.utils.exceptions import ConfigNotFound


class PlacementResolver(BaseService):
    """
    Resolves placements and maintains downline occupancy counters.

    Search order:
    1. Empty tree: the entry becomes the root.
    2. Sponsor's oldest position in the tier (optionally found through the
       sponsor chain): with spillover, a level-order scan of its downline
       bounded to SPILLOVER_SCAN_LEVELS; without, only its own open slots.
    3. Level-order scan of the whole tree from the root.
    """

    def __init__(
        self,
        session: AsyncSession,
        allow_sponsor_lookup: bool = False,
    ) -> None:
        """
        Initialize placement resolver.

        Args:
            session: Async database session
            allow_sponsor_lookup: Walk the sponsor chain when the direct
                sponsor has no position in the tier
        """
        super().__init__(session)
        self.allow_sponsor_lookup = allow_sponsor_lookup
        self.config_repo = MatrixConfigRepository(session)
        self.node_repo = MatrixNodeRepository(session)
        self.member_repo = MemberRepository(session)

    async def resolve_placement(
        self, config_id: int, sponsor_username: str | None
    ) -> Placement:
        """
        Find the parent for a new position.

        Args:
            config_id: Matrix tier ID
            sponsor_username: Sponsor of the entering member

        Returns:
            Placement with parent and tree root

        Raises:
            ConfigNotFound: If the tier does not exist
        """
        config = await self.config_repo.get_by_id(config_id)
        if config is None:
            raise ConfigNotFound(config_id)

        root = await self.node_repo.get_root(config.id)
        if root is None:
            return Placement(parent_id=None, root_id=None)

        start = await self._find_sponsor_node(config, sponsor_username)
        if start is not None:
            if config.spillover_enabled:
                parent, _ = await self._scan(
                    config, start, max_levels=SPILLOVER_SCAN_LEVELS
                )
                if parent is not None:
                    return self._placement_under(parent)
            elif start.direct_children < config.width:
                return self._placement_under(start)

        parent, last_scanned = await self._scan(config, root)
        if parent is not None:
            return self._placement_under(parent)

        # A finite tree always has an open slot at its leaves; reaching this
        # means the scan saw inconsistent counters.
        self.logger.bind(config_id=config.id, node_id=last_scanned.id).warning(
            f"No open slot found in matrix {config.id}, "
            f"appending under node {last_scanned.id}"
        )
        return self._placement_under(last_scanned)

    async def register_occupancy(
        self, ancestors: list[MatrixNode], depth: int
    ) -> None:
        """
        Count a new position in its ancestors' level counters.

        Args:
            ancestors: Ancestors of the new position, nearest first
            depth: Tier depth; ancestors farther away are not counted
        """
        for level, ancestor in enumerate(ancestors[:depth], start=1):
            await self.node_repo.increment_level_count(ancestor.id, level)

    @staticmethod
    def _placement_under(parent: MatrixNode) -> Placement:
        return Placement(
            parent_id=parent.id,
            root_id=parent.main_id if parent.main_id is not None else parent.id,
        )

    async def _scan(
        self,
        config: MatrixConfig,
        start: MatrixNode,
        max_levels: int | None = None,
    ) -> tuple[MatrixNode | None, MatrixNode]:
        """
        Level-order scan for the first position with a free slot.

        Args:
            config: Matrix tier
            start: Scan origin (level 0)
            max_levels: Levels below `start` to scan (None: unbounded)

        Returns:
            Tuple of (open position or None, last position scanned)
        """
        frontier = [start]
        last_scanned = start
        level = 0

        while frontier:
            for node in frontier:
                last_scanned = node
                if node.direct_children < config.width:
                    return node, last_scanned

            if max_levels is not None and level >= max_levels:
                break

            frontier = await self.node_repo.get_children_of(frontier)
            level += 1

        return None, last_scanned

    async def _find_sponsor_node(
        self, config: MatrixConfig, sponsor_username: str | None
    ) -> MatrixNode | None:
        """
        Find the position to start a sponsor-preferred scan from.

        Args:
            config: Matrix tier
            sponsor_username: Direct sponsor

        Returns:
            Oldest position of the sponsor (or of the nearest upline sponsor
            when lookup is enabled), None if there is none
        """
        if not sponsor_username:
            return None

        node = await self.node_repo.get_oldest_for_user(config.id, sponsor_username)
        if node is not None or not self.allow_sponsor_lookup:
            return node

        current = sponsor_username
        seen = {current}
        for _ in range(SPONSOR_LOOKUP_DEPTH):
            member = await self.member_repo.get_by_username(current)
            if member is None or not member.sponsor_username:
                return None

            current = member.sponsor_username
            if current in seen:
                return None
            seen.add(current)

            upline = await self.member_repo.get_by_username(current)
            if upline is None or not upline.is_active:
                continue

            node = await self.node_repo.get_oldest_for_user(config.id, current)
            if node is not None:
                self.logger.bind(config_id=config.id, sponsor=sponsor_username).debug(
                    f"Sponsor {sponsor_username} has no position in matrix "
                    f"{config.id}, using upline {current}"
                )
                return node

        return None
