"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings; the engine tests run on in-memory SQLite
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("REDIS_HOST", "localhost")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config.settings import Settings
from app.models import Base, MatrixConfig, MatrixCycleEntry, MatrixLevelPayout, Member


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test database."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    """Single session for repository and component tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def engine_settings():
    """Engine settings with test-friendly defaults."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        environment="test",
        log_file=None,
        drain_batch_limit=24,
        drain_lock_stale_minutes=30,
        rolling_reserve_percent=0,
        allow_sponsor_lookup=False,
        free_referral_bonus=False,
        house_username="admin",
    )


@pytest.fixture
def make_member(session_maker):
    """Create and commit a member."""

    async def _make_member(
        username: str,
        sponsor_username: str | None = None,
        is_active: bool = True,
    ) -> Member:
        async with session_maker() as session:
            member = Member(
                username=username,
                sponsor_username=sponsor_username,
                is_active=is_active,
            )
            session.add(member)
            await session.commit()
            return member

    return _make_member


@pytest.fixture
def make_config(session_maker):
    """Create and commit a matrix tier with its payout table."""

    async def _make_config(
        width: int = 2,
        depth: int = 2,
        commissions: dict[int, str] | None = None,
        matching_commissions: dict[int, str] | None = None,
        cycle_commissions: dict[int, str] | None = None,
        cycle_matching_commissions: dict[int, str] | None = None,
        cycle_entries: dict[int, int] | None = None,
        **fields,
    ) -> MatrixConfig:
        commissions = commissions or {}
        matching_commissions = matching_commissions or {}
        cycle_commissions = cycle_commissions or {}
        cycle_matching_commissions = cycle_matching_commissions or {}
        levels = (
            set(commissions)
            | set(matching_commissions)
            | set(cycle_commissions)
            | set(cycle_matching_commissions)
        )

        async with session_maker() as session:
            config = MatrixConfig(
                name=fields.pop("name", f"{width}x{depth}"),
                width=width,
                depth=depth,
                **fields,
            )
            for level in sorted(levels):
                config.level_payouts.append(
                    MatrixLevelPayout(
                        level=level,
                        commission=Decimal(commissions.get(level, "0")),
                        matching_commission=Decimal(
                            matching_commissions.get(level, "0")
                        ),
                        cycle_commission=Decimal(
                            cycle_commissions.get(level, "0")
                        ),
                        cycle_matching_commission=Decimal(
                            cycle_matching_commissions.get(level, "0")
                        ),
                    )
                )
            session.add(config)
            await session.flush()

            for target_id, count in (cycle_entries or {}).items():
                session.add(
                    MatrixCycleEntry(
                        config_id=config.id,
                        target_config_id=target_id,
                        count=count,
                    )
                )

            await session.commit()
            return config

    return _make_config
