"""Integration tests for repositories and the ledger writer."""

from decimal import Decimal

import pytest

from app.models import MatrixNode
from app.repositories.matrix_node_repository import MatrixNodeRepository
from app.repositories.member_repository import MemberRepository
from app.services.matrix.ledger_writer import LedgerWriter
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import UserNotFound


async def add_node(repo, config_id, username, parent=None):
    return await repo.create(
        config_id=config_id,
        username=username,
        parent_id=parent.id if parent else None,
    )


class TestMatrixNodeRepository:
    """Tree queries."""

    @pytest.mark.asyncio
    async def test_children_grouped_by_frontier_order(self, session, make_config):
        config = await make_config(width=3)
        repo = MatrixNodeRepository(session)
        root = await add_node(repo, config.id, "root")
        left = await add_node(repo, config.id, "left", root)
        right = await add_node(repo, config.id, "right", root)
        # Created interleaved: right's child first
        r1 = await add_node(repo, config.id, "r1", right)
        l1 = await add_node(repo, config.id, "l1", left)
        r2 = await add_node(repo, config.id, "r2", right)

        children = await repo.get_children_of([left, right])

        assert [c.username for c in children] == ["l1", "r1", "r2"]
        assert await repo.get_children_of([]) == []
        assert {r1.id, l1.id, r2.id} == {c.id for c in children}

    @pytest.mark.asyncio
    async def test_ancestors_nearest_first(self, session, make_config):
        config = await make_config(width=1, depth=3)
        repo = MatrixNodeRepository(session)
        a = await add_node(repo, config.id, "a")
        b = await add_node(repo, config.id, "b", a)
        c = await add_node(repo, config.id, "c", b)
        d = await add_node(repo, config.id, "d", c)

        assert [n.username for n in await repo.get_ancestors(d, 10)] == ["c", "b", "a"]
        assert [n.username for n in await repo.get_ancestors(d, 2)] == ["c", "b"]
        assert await repo.get_ancestors(a, 10) == []

    @pytest.mark.asyncio
    async def test_root_and_oldest_position(self, session, make_config):
        config = await make_config()
        repo = MatrixNodeRepository(session)
        assert await repo.get_root(config.id) is None

        root = await add_node(repo, config.id, "a")
        await add_node(repo, config.id, "a", root)

        assert (await repo.get_root(config.id)).id == root.id
        assert (await repo.get_oldest_for_user(config.id, "a")).id == root.id
        assert await repo.get_oldest_for_user(config.id, "b") is None
        assert await repo.count(config_id=config.id) == 2

    @pytest.mark.asyncio
    async def test_mark_cycled_only_once(self, session, make_config):
        config = await make_config()
        repo = MatrixNodeRepository(session)
        node = await add_node(repo, config.id, "a")

        assert await repo.mark_cycled(node.id, utc_now()) is True
        assert await repo.mark_cycled(node.id, utc_now()) is False

    @pytest.mark.asyncio
    async def test_level_counter_increment(self, session, make_config):
        config = await make_config()
        repo = MatrixNodeRepository(session)
        node = await add_node(repo, config.id, "a")

        await repo.increment_level_count(node.id, 1)
        await repo.increment_level_count(node.id, 3)
        await repo.increment_level_count(node.id, 3)
        await session.commit()

        stored = await session.get(MatrixNode, node.id, populate_existing=True)
        assert stored.level_1_count == 1
        assert stored.level_3_count == 2


class TestLedgerWriter:
    """Ledger records and balance credits."""

    @pytest.mark.asyncio
    async def test_zero_amount_writes_nothing(self, session, make_member):
        await make_member("a")
        writer = LedgerWriter(session)

        record = await writer.write("a", Decimal("0"), "CYCLE_BONUS", 1, 1)

        assert record is None
        assert writer.events == []

    @pytest.mark.asyncio
    async def test_write_credits_member(self, session, make_member):
        await make_member("a")
        writer = LedgerWriter(session)

        record = await writer.write(
            "a", Decimal("50"), "CYCLE_BONUS", 1, 1, reserve_percent=Decimal("20")
        )
        await session.commit()

        assert record.reserve_amount == Decimal("10")
        member = await MemberRepository(session).get_by_username("a")
        await session.refresh(member)
        assert member.unpaid_balance == Decimal("40")
        assert member.reserve_balance == Decimal("10")
        assert len(writer.events) == 1
        assert writer.events[0].purpose == "CYCLE_BONUS"

    @pytest.mark.asyncio
    async def test_unknown_beneficiary(self, session):
        writer = LedgerWriter(session)

        with pytest.raises(UserNotFound):
            await writer.write("ghost", Decimal("5"), "CYCLE_BONUS", 1, 1)
