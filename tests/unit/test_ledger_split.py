"""Unit tests for immediate/reserve splitting."""

from decimal import Decimal

import pytest

from app.services.matrix.ledger_writer import split_amount


class TestSplitAmount:
    """split_amount keeps immediate + reserve == amount."""

    def test_ten_percent_reserve(self):
        immediate, reserve = split_amount(Decimal("100"), Decimal("10"))

        assert immediate == Decimal("90")
        assert reserve == Decimal("10")

    def test_zero_percent_keeps_everything_immediate(self):
        immediate, reserve = split_amount(Decimal("42.5"), 0)

        assert immediate == Decimal("42.5")
        assert reserve == Decimal("0")

    def test_full_reserve(self):
        immediate, reserve = split_amount(Decimal("7"), 100)

        assert immediate == Decimal("0")
        assert reserve == Decimal("7")

    @pytest.mark.parametrize(
        "amount,percent",
        [
            ("10", "33.33"),
            ("0.00000001", "50"),
            ("123.45678901", "12.5"),
            ("1", 7.5),
        ],
    )
    def test_parts_add_up_exactly(self, amount, percent):
        amount = Decimal(amount)

        immediate, reserve = split_amount(amount, percent)

        assert immediate + reserve == amount
        assert reserve >= 0
        assert reserve == reserve.quantize(Decimal("0.00000001"))
