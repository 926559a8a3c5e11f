"""Unit tests for the health check handlers."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.matrix.results import DrainStatus
from jobs import health


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch):
    monkeypatch.setattr(health, "_scheduler", None)
    monkeypatch.setattr(health, "_engine_service", None)


class TestDrainStatusHandler:
    """/drain endpoint."""

    @pytest.mark.asyncio
    async def test_uninitialized_service(self):
        response = await health.drain_status_handler(MagicMock())

        assert response.status == 503

    @pytest.mark.asyncio
    async def test_reports_status(self):
        service = MagicMock()
        service.get_drain_status = AsyncMock(
            return_value=DrainStatus(
                running=False,
                last_run_at=datetime(2026, 10, 19, 12, 0, tzinfo=UTC),
                last_error=None,
                pending_count=7,
                dead_count=1,
                status="COMPLETED",
            )
        )
        health.set_engine_service(service)

        response = await health.drain_status_handler(MagicMock())
        body = json.loads(response.text)

        assert response.status == 200
        assert body["status"] == "COMPLETED"
        assert body["pending_count"] == 7
        assert body["dead_count"] == 1
        assert body["last_run_at"].startswith("2026-10-19T12:00")

    @pytest.mark.asyncio
    async def test_status_error(self):
        service = MagicMock()
        service.get_drain_status = AsyncMock(side_effect=RuntimeError("db down"))
        health.set_engine_service(service)

        response = await health.drain_status_handler(MagicMock())

        assert response.status == 503
        assert json.loads(response.text)["error"] == "db down"


class TestHealthHandler:
    """/health endpoint."""

    @pytest.mark.asyncio
    async def test_no_scheduler(self):
        response = await health.health_handler(MagicMock())

        assert response.status == 503

    @pytest.mark.asyncio
    async def test_running_scheduler(self):
        job = MagicMock()
        job.id = "matrix_queue_drain"
        job.name = "Matrix queue drain"
        job.next_run_time = None
        scheduler = MagicMock()
        scheduler.running = True
        scheduler.get_jobs.return_value = [job]
        health.set_scheduler(scheduler)

        response = await health.health_handler(MagicMock())
        body = json.loads(response.text)

        assert body["status"] == "healthy"
        assert body["jobs"][0]["id"] == "matrix_queue_drain"


class TestReadinessHandler:
    """/readiness endpoint."""

    @pytest.mark.asyncio
    async def test_not_ready_without_engine_service(self):
        scheduler = MagicMock()
        scheduler.running = True
        health.set_scheduler(scheduler)

        response = await health.readiness_handler(MagicMock())

        assert response.status == 503
        assert json.loads(response.text)["ready"] is False

    @pytest.mark.asyncio
    async def test_ready(self):
        scheduler = MagicMock()
        scheduler.running = True
        health.set_scheduler(scheduler)
        health.set_engine_service(MagicMock())

        response = await health.readiness_handler(MagicMock())

        assert response.status == 200
        assert json.loads(response.text)["status"] == "ready"
