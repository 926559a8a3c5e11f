"""Unit tests for matrix model helpers."""

from decimal import Decimal

import pytest

from app.models import MatrixConfig, MatrixLevelPayout, MatrixNode
from app.models.enums import LedgerPurpose


class TestMatrixNode:
    """Occupancy counter helpers."""

    def test_level_column_bounds(self):
        assert MatrixNode.level_column(1) == "level_1_count"
        assert MatrixNode.level_column(10) == "level_10_count"

        with pytest.raises(ValueError):
            MatrixNode.level_column(0)
        with pytest.raises(ValueError):
            MatrixNode.level_column(11)

    def test_occupied_count_limited_to_depth(self):
        node = MatrixNode(level_1_count=2, level_2_count=4, level_3_count=8)

        assert node.occupied_count(1) == 2
        assert node.occupied_count(2) == 6
        assert node.occupied_count(3) == 14
        assert node.direct_children == 2

    def test_is_cycled(self):
        assert MatrixNode().is_cycled is False


class TestMatrixConfig:
    """Payout table lookups."""

    def _config(self):
        config = MatrixConfig(name="3x2", width=3, depth=2)
        config.level_payouts.extend(
            [
                MatrixLevelPayout(
                    level=1,
                    commission=Decimal("10"),
                    matching_commission=Decimal("1"),
                ),
                MatrixLevelPayout(
                    level=2,
                    commission=Decimal("5"),
                    matching_commission=Decimal("0"),
                ),
                # Stale row beyond depth is never paid
                MatrixLevelPayout(
                    level=3,
                    commission=Decimal("99"),
                    matching_commission=Decimal("99"),
                ),
            ]
        )
        return config

    def test_cycle_capacity(self):
        assert self._config().cycle_capacity == 9

    def test_commission_for_levels(self):
        config = self._config()

        assert config.commission_for(1) == Decimal("10")
        assert config.commission_for(2) == Decimal("5")
        assert config.commission_for(3) == Decimal("0")
        assert config.commission_for(0) == Decimal("0")

    def test_matching_commission_for_levels(self):
        config = self._config()

        assert config.matching_commission_for(1) == Decimal("1")
        assert config.matching_commission_for(2) == Decimal("0")
        assert config.matching_commission_for(3) == Decimal("0")


def test_level_commission_purpose():
    assert LedgerPurpose.level_commission(4) == "LEVEL_4_COMMISSION"
