"""
MatrixNode model.

A position occupied by a member inside one matrix tier's tree.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.config.constants import MAX_MATRIX_DEPTH
from app.models.base import Base
from app.models.enums import EntryType
from app.models.types import MoneyType


class MatrixNode(Base):
    """
    Matrix position.

    The per-level counters hold how many positions exist N levels below this
    one (level_1_count is the number of direct children), so cycle checks never
    re-scan a subtree.

    Attributes:
        id: Primary key (creation order)
        config_id: Matrix tier
        username: Position owner
        sponsor_username: Receives referral/matching credit; may differ from
            the owner of the parent position
        parent_id: Upline position (None for the tree root)
        main_id: Root position id shared by every node of the same tree
        entry_type: NEW or RE_ENTRY
        pending_entry_id: Queue entry this position was created from
        level_1_count..level_10_count: Downline occupancy per level
        total_earned: Commissions and bonuses earned by this position
        created_at: Placement time
        cycled_at: Cycle completion time (None while active)
    """

    __tablename__ = "matrix_nodes"
    __table_args__ = (
        Index("idx_matrix_nodes_config_created", "config_id", "created_at", "id"),
        Index("idx_matrix_nodes_config_username", "config_id", "username"),
        CheckConstraint("level_1_count >= 0", name="check_node_level_1_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    config_id: Mapped[int] = mapped_column(
        ForeignKey("matrix_configs.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    sponsor_username: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("matrix_nodes.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    main_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    entry_type: Mapped[str] = mapped_column(
        String(16), default=EntryType.NEW.value, nullable=False
    )
    pending_entry_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    level_1_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_2_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_3_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_4_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_5_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_6_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_7_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_8_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_9_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_10_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    cycled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MatrixNode(id={self.id}, config_id={self.config_id}, "
            f"username={self.username!r}, parent_id={self.parent_id})>"
        )

    @staticmethod
    def level_column(level: int) -> str:
        """Attribute name of the occupancy counter for `level`."""
        if level < 1 or level > MAX_MATRIX_DEPTH:
            raise ValueError(f"Level must be 1..{MAX_MATRIX_DEPTH}, got {level}")
        return f"level_{level}_count"

    def level_count(self, level: int) -> int:
        """Occupied positions `level` levels below this node."""
        return getattr(self, self.level_column(level)) or 0

    def occupied_count(self, depth: int) -> int:
        """Occupied positions across levels 1..depth."""
        return sum(self.level_count(level) for level in range(1, depth + 1))

    @property
    def direct_children(self) -> int:
        """Number of direct children."""
        return self.level_1_count or 0

    @property
    def is_cycled(self) -> bool:
        """Whether this position has completed its cycle."""
        return self.cycled_at is not None
