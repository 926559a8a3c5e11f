"""
MatrixNode repository.

Tree queries for matrix placement, occupancy counters and cycle marking.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.matrix_node import MatrixNode
from app.repositories.base import BaseRepository

# Upper bound on ids per IN (...) clause when loading a BFS frontier
FRONTIER_CHUNK_SIZE = 500


class MatrixNodeRepository(BaseRepository[MatrixNode]):
    """Repository for matrix position operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(MatrixNode, session)

    async def get_root(self, config_id: int) -> MatrixNode | None:
        """
        Get the tree root of a tier.

        Args:
            config_id: Matrix tier ID

        Returns:
            Oldest parentless position or None if the tree is empty
        """
        result = await self.session.execute(
            select(MatrixNode)
            .where(
                and_(
                    MatrixNode.config_id == config_id,
                    MatrixNode.parent_id.is_(None),
                )
            )
            .order_by(MatrixNode.created_at.asc(), MatrixNode.id.asc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_oldest_for_user(
        self, config_id: int, username: str
    ) -> MatrixNode | None:
        """
        Get the first position a member took in a tier.

        Args:
            config_id: Matrix tier ID
            username: Position owner

        Returns:
            Oldest position or None if the member has none
        """
        result = await self.session.execute(
            select(MatrixNode)
            .where(
                and_(
                    MatrixNode.config_id == config_id,
                    MatrixNode.username == username,
                )
            )
            .order_by(MatrixNode.created_at.asc(), MatrixNode.id.asc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_latest_for_user_since(
        self, config_id: int, username: str, since: datetime
    ) -> MatrixNode | None:
        """Most recent position of `username` in a tier created after `since`."""
        result = await self.session.execute(
            select(MatrixNode)
            .where(
                and_(
                    MatrixNode.config_id == config_id,
                    MatrixNode.username == username,
                    MatrixNode.created_at >= since,
                )
            )
            .order_by(MatrixNode.created_at.desc(), MatrixNode.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_children_of(
        self, parents: Sequence[MatrixNode]
    ) -> list[MatrixNode]:
        """
        Load the next BFS level below `parents`.

        Children are grouped by the order of their parent in `parents` and,
        within one parent, by (created_at, id). This keeps level-order scans
        deterministic.

        Args:
            parents: Current frontier, in scan order

        Returns:
            Children of every parent, in scan order
        """
        if not parents:
            return []

        position = {parent.id: index for index, parent in enumerate(parents)}
        ids = list(position)
        children: list[MatrixNode] = []

        for start in range(0, len(ids), FRONTIER_CHUNK_SIZE):
            chunk = ids[start:start + FRONTIER_CHUNK_SIZE]
            result = await self.session.execute(
                select(MatrixNode)
                .where(MatrixNode.parent_id.in_(chunk))
                .order_by(MatrixNode.created_at.asc(), MatrixNode.id.asc())
            )
            children.extend(result.scalars().all())

        # sorted() is stable: creation order survives within each parent
        return sorted(children, key=lambda child: position[child.parent_id])

    async def get_ancestors(
        self, node: MatrixNode, max_levels: int
    ) -> list[MatrixNode]:
        """
        Walk up the tree from `node`.

        Args:
            node: Starting position (not included)
            max_levels: Maximum number of ancestors to return

        Returns:
            Ancestors nearest first; index 0 is level 1
        """
        ancestors: list[MatrixNode] = []
        parent_id = node.parent_id

        while parent_id is not None and len(ancestors) < max_levels:
            parent = await self.session.get(MatrixNode, parent_id)
            if parent is None:
                break
            ancestors.append(parent)
            parent_id = parent.parent_id

        return ancestors

    async def increment_level_count(self, node_id: int, level: int) -> None:
        """
        Add one occupied position `level` levels below a node.

        Args:
            node_id: Ancestor position ID
            level: Distance from the ancestor to the new position
        """
        column = MatrixNode.level_column(level)
        stmt = (
            update(MatrixNode)
            .where(MatrixNode.id == node_id)
            .values({column: getattr(MatrixNode, column) + 1})
        )
        await self.session.execute(stmt)

    async def add_earnings(self, node_id: int, amount: Decimal) -> None:
        """Add `amount` to a position's total_earned."""
        stmt = (
            update(MatrixNode)
            .where(MatrixNode.id == node_id)
            .values(total_earned=MatrixNode.total_earned + amount)
        )
        await self.session.execute(stmt)

    async def mark_cycled(self, node_id: int, cycled_at: datetime) -> bool:
        """
        Stamp a position as cycled.

        The update is conditional on cycled_at being unset, so a cycle can be
        claimed only once.

        Args:
            node_id: Position ID
            cycled_at: Cycle completion time

        Returns:
            True if this call stamped the position
        """
        stmt = (
            update(MatrixNode)
            .where(
                and_(
                    MatrixNode.id == node_id,
                    MatrixNode.cycled_at.is_(None),
                )
            )
            .values(cycled_at=cycled_at)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
