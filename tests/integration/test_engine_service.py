"""Integration tests for the matrix engine service facade."""

import pytest
from sqlalchemy import update

from app.models import EntryType, MatrixConfig, PendingEntry
from app.utils.exceptions import ConfigInactive, ConfigNotFound, UserNotFound


class TestEnqueue:
    """Entry submission."""

    @pytest.mark.asyncio
    async def test_enqueue_defaults_sponsor_from_member(
        self, make_member, make_config, engine_service
    ):
        await make_member("s")
        await make_member("m", sponsor_username="s")
        config = await make_config()

        entry = await engine_service().enqueue_entry("m", config.id)

        assert entry.id is not None
        assert entry.sponsor_username == "s"
        assert entry.entry_type == EntryType.NEW.value
        assert entry.in_dlq is False
        assert entry.attempts == 0

    @pytest.mark.asyncio
    async def test_enqueue_unknown_member(self, make_config, engine_service):
        config = await make_config()

        with pytest.raises(UserNotFound):
            await engine_service().enqueue_entry("nobody", config.id)

    @pytest.mark.asyncio
    async def test_enqueue_unknown_config(self, make_member, engine_service, db):
        await make_member("m")

        with pytest.raises(ConfigNotFound):
            await engine_service().enqueue_entry("m", 12345)

        assert await db.pending() == []

    @pytest.mark.asyncio
    async def test_enqueue_inactive_config(
        self, make_member, make_config, engine_service, db
    ):
        await make_member("m")
        config = await make_config(is_active=False)

        with pytest.raises(ConfigInactive):
            await engine_service().enqueue_entry("m", config.id)

        assert await db.pending() == []

    @pytest.mark.asyncio
    async def test_entry_for_deactivated_config_is_dead_lettered(
        self, session_maker, make_member, make_config, engine_service, db
    ):
        await make_member("m")
        config = await make_config()
        service = engine_service()
        await service.enqueue_entry("m", config.id)
        async with session_maker() as session:
            await session.execute(
                update(MatrixConfig)
                .where(MatrixConfig.id == config.id)
                .values(is_active=False)
            )
            await session.commit()

        summary = await service.trigger_drain()

        [entry] = await db.pending()
        assert summary.processed == 0
        assert summary.dead_lettered == 1
        assert entry.in_dlq is True
        assert "not active" in entry.last_error
        assert await db.nodes(config.id) == []

    @pytest.mark.asyncio
    async def test_enqueue_braced_username(
        self, make_member, make_config, engine_service
    ):
        await make_member("{s}")
        await make_member("x{y}", sponsor_username="{s}")
        config = await make_config()
        service = engine_service()

        entry = await service.enqueue_entry("x{y}", config.id)

        assert entry.username == "x{y}"
        assert entry.sponsor_username == "{s}"
        with pytest.raises(UserNotFound):
            await service.enqueue_entry("no{body}", config.id)


class TestOperatorOperations:
    """Status, DLQ listing and requeue."""

    @pytest.mark.asyncio
    async def test_status_before_first_drain(self, engine_service):
        status = await engine_service().get_drain_status()

        assert status.running is False
        assert status.last_run_at is None
        assert status.last_error is None
        assert status.pending_count == 0

    @pytest.mark.asyncio
    async def test_status_counts_pending_and_dead(
        self, session_maker, make_member, make_config, engine_service
    ):
        await make_member("m")
        config = await make_config()
        service = engine_service()
        await service.enqueue_entry("m", config.id)
        async with session_maker() as session:
            session.add(PendingEntry(username="m", config_id=999))
            await session.commit()

        before = await service.get_drain_status()
        await service.trigger_drain()
        after = await service.get_drain_status()

        assert before.pending_count == 2
        assert before.dead_count == 0
        assert after.pending_count == 0
        assert after.dead_count == 1
        assert after.last_run_at is not None
        assert "999" in after.last_error

    @pytest.mark.asyncio
    async def test_requeue_dead_entry(
        self, session_maker, make_member, make_config, engine_service, db
    ):
        await make_member("m")
        config = await make_config()
        service = engine_service()
        async with session_maker() as session:
            entry = PendingEntry(username="m", config_id=999)
            session.add(entry)
            await session.commit()

        await service.trigger_drain()
        assert [e.id for e in await service.list_dead_entries()] == [entry.id]

        # Operator fixes the tier reference, then requeues
        async with session_maker() as session:
            stored = await session.get(PendingEntry, entry.id)
            stored.config_id = config.id
            await session.commit()

        assert await service.requeue_entry(entry.id) is True
        requeued = (await db.pending())[0]
        assert requeued.in_dlq is False
        assert requeued.attempts == 0
        assert requeued.last_error is None

        summary = await service.trigger_drain()
        assert summary.processed == 1
        assert [n.username for n in await db.nodes(config.id)] == ["m"]

    @pytest.mark.asyncio
    async def test_requeue_ignores_live_entries(
        self, make_member, make_config, engine_service
    ):
        await make_member("m")
        config = await make_config()
        service = engine_service()
        entry = await service.enqueue_entry("m", config.id)

        assert await service.requeue_entry(entry.id) is False
        assert await service.requeue_entry(424242) is False
