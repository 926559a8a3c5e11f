"""
MatrixConfig repository.

Data access layer for matrix tiers and their payout tables.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.matrix_config import MatrixConfig
from app.repositories.base import BaseRepository


class MatrixConfigRepository(BaseRepository[MatrixConfig]):
    """Repository for matrix tier operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(MatrixConfig, session)
