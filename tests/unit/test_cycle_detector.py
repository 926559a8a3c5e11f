"""Unit tests for CycleDetector with mocked repositories."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.matrix.cycle_detector import CycleDetector


def make_node(occupied_level_1=2, occupied_level_2=2, cycled_at=None, username="owner"):
    node = MagicMock()
    node.id = 10
    node.username = username
    node.sponsor_username = None
    node.cycled_at = cycled_at
    node.is_cycled = cycled_at is not None
    node.occupied_count = MagicMock(return_value=occupied_level_1 + occupied_level_2)
    return node


@pytest.fixture
def detector(mock_session):
    writer = AsyncMock()
    writer.write = AsyncMock(return_value=MagicMock(purpose="CYCLE_BONUS"))
    detector = CycleDetector(mock_session, writer, house_username="admin")
    detector.node_repo = AsyncMock()
    detector.node_repo.mark_cycled = AsyncMock(return_value=True)
    detector.member_repo = AsyncMock()
    detector.entry_repo = AsyncMock()
    detector.entry_repo.create = AsyncMock(side_effect=lambda **kw: MagicMock(id=99))
    return detector


class TestCycleDetector:
    """Cycle threshold, idempotency and re-entry rules."""

    @pytest.mark.asyncio
    async def test_below_capacity_does_nothing(self, detector, mock_config):
        node = make_node(occupied_level_1=2, occupied_level_2=1)

        result = await detector.check_cycle(node, mock_config)

        assert result.completed is False
        detector.node_repo.mark_cycled.assert_not_called()
        detector.ledger_writer.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_full_downline_cycles(self, detector, mock_config):
        node = make_node()

        result = await detector.check_cycle(node, mock_config)

        assert result.completed is True
        detector.node_repo.mark_cycled.assert_awaited_once()
        detector.ledger_writer.write.assert_awaited_once()
        kwargs = detector.ledger_writer.write.await_args.kwargs
        assert kwargs["username"] == "owner"
        assert kwargs["amount"] == Decimal("100")
        assert kwargs["purpose"] == "CYCLE_BONUS"
        detector.node_repo.add_earnings.assert_awaited_once_with(10, Decimal("100"))
        assert len(detector.events) == 1

    @pytest.mark.asyncio
    async def test_already_cycled_is_noop(self, detector, mock_config):
        node = make_node(cycled_at=MagicMock())

        result = await detector.check_cycle(node, mock_config)

        assert result.completed is False
        detector.node_repo.mark_cycled.assert_not_called()
        assert detector.events == []

    @pytest.mark.asyncio
    async def test_lost_mark_race_is_noop(self, detector, mock_config):
        detector.node_repo.mark_cycled = AsyncMock(return_value=False)

        result = await detector.check_cycle(make_node(), mock_config)

        assert result.completed is False
        detector.ledger_writer.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_reentries_created(self, detector, mock_config):
        mock_config.reentry_enabled = True
        mock_config.reentry_count = 2

        result = await detector.check_cycle(make_node(), mock_config)

        assert result.reentry_ids == [99, 99]
        assert detector.entry_repo.create.await_count == 2
        kwargs = detector.entry_repo.create.await_args.kwargs
        assert kwargs["entry_type"] == "RE_ENTRY"
        assert kwargs["username"] == "owner"

    @pytest.mark.asyncio
    async def test_house_account_has_no_reentry(self, detector, mock_config):
        mock_config.reentry_enabled = True

        result = await detector.check_cycle(make_node(username="admin"), mock_config)

        assert result.completed is True
        assert result.reentry_ids == []
        detector.entry_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_zero_cycle_bonus_writes_nothing(self, detector, mock_config):
        mock_config.cycle_bonus = Decimal("0")

        result = await detector.check_cycle(make_node(), mock_config)

        assert result.completed is True
        assert result.bonuses == []
        detector.ledger_writer.write.assert_not_called()


class TestLevelCycles:
    """Level cycle bonuses of LEVEL_CYCLE tiers."""

    @pytest.mark.asyncio
    async def test_skipped_for_other_modes(self, detector, mock_config):
        mock_config.pays_level_cycles = False

        records = await detector.check_level_cycles([make_node()], mock_config)

        assert records == []
        detector.ledger_writer.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_paid_only_for_full_levels(self, detector, mock_config):
        mock_config.pays_level_cycles = True
        mock_config.cycle_commission_for = MagicMock(
            side_effect=lambda level: Decimal("7") if level == 1 else Decimal("9")
        )
        mock_config.cycle_matching_commission_for = MagicMock(
            return_value=Decimal("0")
        )
        parent = make_node(username="parent")
        parent.level_count = MagicMock(return_value=2)
        grandparent = make_node(username="grandparent")
        grandparent.level_count = MagicMock(return_value=3)

        records = await detector.check_level_cycles(
            [parent, grandparent], mock_config
        )

        assert len(records) == 1
        kwargs = detector.ledger_writer.write.await_args.kwargs
        assert kwargs["username"] == "parent"
        assert kwargs["amount"] == Decimal("7")
        assert kwargs["purpose"] == "LEVEL_1_CYCLE_BONUS"
        parent.level_count.assert_called_once_with(1)
        grandparent.level_count.assert_called_once_with(2)
