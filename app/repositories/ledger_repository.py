"""
LedgerRecord repository.

Data access layer for the append-only earnings ledger.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ledger_record import LedgerRecord
from app.repositories.base import BaseRepository


class LedgerRepository(BaseRepository[LedgerRecord]):
    """Repository for ledger records (append only)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LedgerRecord, session)
