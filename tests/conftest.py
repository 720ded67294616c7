"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from cadence.database.models import Base
from cadence.engine.tiers import RoleTierTable

# Role ids for the seven default tiers (1-5, 6-10, 11-20, 21-30, 31-40, 41-50, 51+)
TIER_ROLE_IDS: list[int] = [701, 702, 703, 704, 705, 706, 707]


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all Cadence tables.

    Uses StaticPool so every thread shares the same in-memory database
    (``run_db`` hops to worker threads via ``asyncio.to_thread``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def tier_table() -> RoleTierTable:
    return RoleTierTable.from_bounds(TIER_ROLE_IDS)
