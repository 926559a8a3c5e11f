"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Mock database session
- Mock matrix tier and positions
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_session():
    """
    Mock async database session.

    Returns:
        AsyncMock: Mocked async session for database operations
    """
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_config():
    """
    Mock 2x2 matrix tier.

    Default values:
    - width: 2, depth: 2 (cycle capacity 4)
    - cycle_bonus: 100
    - matching_bonus: 0
    - re-entry disabled, no cross-matrix entries

    Returns:
        MagicMock: Mock config object
    """
    config = MagicMock()
    config.id = 1
    config.width = 2
    config.depth = 2
    config.cycle_capacity = 4
    config.cycle_bonus = Decimal("100")
    config.matching_bonus = Decimal("0")
    config.reentry_enabled = False
    config.reentry_count = 1
    config.cycle_entries = []
    return config
