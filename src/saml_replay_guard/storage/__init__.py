"""Dedup store backends for the SAML replay guard.

This package provides the store implementations that persist processed
message ids. All stores implement the DedupStore protocol defined in base.py.

Available Stores:
    - MemoryDedupStore: In-memory, single process, for development and tests
    - SqlDedupStore: SQLAlchemy async store shared by every server process
"""

from saml_replay_guard.config import ReplayGuardConfig
from saml_replay_guard.storage.base import DedupStore, DedupTransaction
from saml_replay_guard.storage.memory import MemoryDedupStore
from saml_replay_guard.storage.sql import SqlDedupStore


def create_store(config: ReplayGuardConfig) -> DedupStore:
    """Build the store selected by ``config.storage_adapter``.

    The SQL store's schema is not created here; call
    ``SqlDedupStore.create_schema()`` or run a migration first.

    Examples:
        >>> store = create_store(ReplayGuardConfig(storage_adapter="memory"))
        >>> isinstance(store, MemoryDedupStore)
        True
    """
    if config.storage_adapter == "sql":
        return SqlDedupStore.from_url(config.database_url)
    return MemoryDedupStore()


__all__ = [
    "DedupStore",
    "DedupTransaction",
    "MemoryDedupStore",
    "SqlDedupStore",
    "create_store",
]
