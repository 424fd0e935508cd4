"""
Pytest configuration and shared fixtures for saml_replay_guard tests.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from saml_replay_guard.config import ReplayGuardConfig
from saml_replay_guard.core.guard import ReplayGuard
from saml_replay_guard.storage.memory import MemoryDedupStore
from saml_replay_guard.storage.sql import SqlDedupStore

# Reference instant "T" used throughout the scenarios
BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for the guard and the purge loop."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def base_time() -> datetime:
    """Provide the reference instant T."""
    return BASE_TIME


@pytest.fixture
def clock(base_time: datetime) -> FakeClock:
    """Provide a clock frozen at T."""
    return FakeClock(base_time)


@pytest.fixture
def memory_store() -> MemoryDedupStore:
    """Create a fresh in-memory store for each test."""
    return MemoryDedupStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    """Create a SQLite-backed store with its schema for each test."""
    store = SqlDedupStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'saml_message_ids.db'}")
    await store.create_schema()
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    """Run the test against every store backend."""
    if request.param == "memory":
        yield MemoryDedupStore()
        return

    sql = SqlDedupStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'saml_message_ids.db'}")
    await sql.create_schema()
    yield sql
    await sql.close()


@pytest.fixture
def guard(store, clock: FakeClock) -> ReplayGuard:
    """Create a guard with default config over the parametrized store."""
    return ReplayGuard(store, ReplayGuardConfig(), clock=clock)
