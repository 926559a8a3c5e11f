"""
Shared fixtures for integration tests.

Integration tests run the real engine against an in-memory SQLite database.
"""

import pytest
from sqlalchemy import select

from app.models import DrainLock, LedgerRecord, MatrixNode, Member, PendingEntry
from app.services.matrix import MatrixEventHooks
from app.services.matrix_engine_service import MatrixEngineService


@pytest.fixture
def hooks():
    """Event hooks shared with the engine service."""
    return MatrixEventHooks()


@pytest.fixture
def engine_service(session_maker, engine_settings, hooks):
    """Engine service factory; accepts setting overrides."""

    def _engine_service(**overrides) -> MatrixEngineService:
        settings = engine_settings.model_copy(update=overrides)
        return MatrixEngineService(session_maker, settings, hooks)

    return _engine_service


@pytest.fixture
def db(session_maker):
    """Read helpers that query the database in fresh sessions."""

    class Reader:
        async def nodes(self, config_id: int) -> list[MatrixNode]:
            async with session_maker() as session:
                result = await session.execute(
                    select(MatrixNode)
                    .where(MatrixNode.config_id == config_id)
                    .order_by(MatrixNode.id)
                )
                return list(result.scalars().all())

        async def parents(self, config_id: int) -> dict[str, str | None]:
            """Position owner -> parent owner, for tiers with one position per member."""
            nodes = await self.nodes(config_id)
            by_id = {node.id: node for node in nodes}
            return {
                node.username: (
                    by_id[node.parent_id].username if node.parent_id else None
                )
                for node in nodes
            }

        async def node(self, config_id: int, username: str) -> MatrixNode:
            nodes = [n for n in await self.nodes(config_id) if n.username == username]
            return nodes[0]

        async def ledger(self, username: str | None = None) -> list[LedgerRecord]:
            async with session_maker() as session:
                stmt = select(LedgerRecord).order_by(LedgerRecord.id)
                if username is not None:
                    stmt = stmt.where(LedgerRecord.username == username)
                result = await session.execute(stmt)
                return list(result.scalars().all())

        async def member(self, username: str) -> Member:
            async with session_maker() as session:
                result = await session.execute(
                    select(Member).where(Member.username == username)
                )
                return result.scalar_one()

        async def pending(self) -> list[PendingEntry]:
            async with session_maker() as session:
                result = await session.execute(
                    select(PendingEntry).order_by(PendingEntry.id)
                )
                return list(result.scalars().all())

        async def lock(self, job_name: str = "matrix_queue_drain") -> DrainLock | None:
            async with session_maker() as session:
                result = await session.execute(
                    select(DrainLock).where(DrainLock.job_name == job_name)
                )
                return result.scalar_one_or_none()

    return Reader()
