"""Unit tests for MatrixEventHooks."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.services.matrix.events import MatrixEventHooks
from app.services.matrix.results import CommissionPaidEvent, CycleCompletedEvent


def commission_event():
    return CommissionPaidEvent(
        username="a",
        amount=Decimal("10"),
        reserve_amount=Decimal("0"),
        purpose="LEVEL_1_COMMISSION",
        config_id=1,
        source_node_id=2,
    )


def cycle_event():
    return CycleCompletedEvent(
        node_id=1,
        username="a",
        sponsor_username=None,
        config_id=1,
        cycled_at=datetime.now(UTC),
    )


class TestMatrixEventHooks:
    """Routing and isolation of subscribers."""

    @pytest.mark.asyncio
    async def test_events_routed_by_type(self):
        hooks = MatrixEventHooks()
        cycles, commissions = [], []

        async def on_cycle(event):
            cycles.append(event)

        async def on_commission(event):
            commissions.append(event)

        hooks.subscribe_cycle_completed(on_cycle)
        hooks.subscribe_commission_paid(on_commission)

        await hooks.dispatch([commission_event(), cycle_event(), commission_event()])

        assert len(cycles) == 1
        assert len(commissions) == 2

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        hooks = MatrixEventHooks()
        received = []

        async def broken(event):
            raise RuntimeError("down")

        async def working(event):
            received.append(event)

        hooks.subscribe_commission_paid(broken)
        hooks.subscribe_commission_paid(working)

        await hooks.dispatch([commission_event()])

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_no_subscribers(self):
        await MatrixEventHooks().dispatch([cycle_event()])
