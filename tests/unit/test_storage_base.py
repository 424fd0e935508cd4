"""Unit tests for the dedup store protocols and factory.

Tests in this module verify that the DedupStore protocol is correctly
defined and that the shipped stores conform to it.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.ext.asyncio import create_async_engine

from saml_replay_guard.config import ReplayGuardConfig
from saml_replay_guard.models import ProcessedMessageRecord
from saml_replay_guard.storage import create_store
from saml_replay_guard.storage.base import DedupStore, DedupTransaction
from saml_replay_guard.storage.memory import MemoryDedupStore, _MemoryTransaction
from saml_replay_guard.storage.sql import SqlDedupStore


class TestDedupStoreProtocol:
    """Test suite for the DedupStore protocol definition."""

    def test_has_required_methods(self):
        assert hasattr(DedupStore, "transaction")
        assert hasattr(DedupStore, "get")
        assert hasattr(DedupStore, "purge_expired_before")
        assert hasattr(DedupStore, "count")
        assert hasattr(DedupStore, "close")
        assert hasattr(DedupTransaction, "get")
        assert hasattr(DedupTransaction, "insert_if_absent")

    def test_memory_store_conforms(self):
        assert isinstance(MemoryDedupStore(), DedupStore)
        assert isinstance(_MemoryTransaction({}), DedupTransaction)

    def test_sql_store_conforms(self):
        store = SqlDedupStore(create_async_engine("sqlite+aiosqlite:///:memory:"))
        assert isinstance(store, DedupStore)

    def test_conforming_class(self):
        """A class implementing every method conforms structurally."""

        class ConformingStore:
            @asynccontextmanager
            async def transaction(self) -> AsyncIterator[DedupTransaction]:
                yield _MemoryTransaction({})

            async def get(self, message_id: str) -> ProcessedMessageRecord | None:  # noqa: ARG002
                return None

            async def purge_expired_before(self, now: datetime) -> int:  # noqa: ARG002
                return 0

            async def count(self) -> int:
                return 0

            async def close(self) -> None:
                return None

        assert isinstance(ConformingStore(), DedupStore)

    def test_non_conforming_class(self):
        """A class missing methods does not conform."""

        class PartialStore:
            async def get(self, message_id: str) -> ProcessedMessageRecord | None:  # noqa: ARG002
                return None

        assert not isinstance(PartialStore(), DedupStore)


class TestCreateStore:
    """Tests for create_store()."""

    def test_memory(self):
        assert isinstance(create_store(ReplayGuardConfig()), MemoryDedupStore)

    def test_sql(self, tmp_path):
        config = ReplayGuardConfig(
            storage_adapter="sql",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'saml.db'}",
        )
        store = create_store(config)
        assert isinstance(store, SqlDedupStore)
        assert str(store.engine.url).endswith("saml.db")
