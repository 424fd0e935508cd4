"""In-memory dedup store with asyncio concurrency control.

This module provides an in-memory implementation of the DedupStore
interface. A single asyncio.Lock is held for the whole span of a
transaction, which makes lookup-then-insert serializable within one
process.

The MemoryDedupStore is suitable for:
    - Development and testing
    - Single-process deployments where losing the dedup table on restart
      is acceptable

It gives no protection across processes. Horizontally scaled deployments
must use SqlDedupStore.

Examples:
    Basic usage::

        from saml_replay_guard.storage.memory import MemoryDedupStore

        store = MemoryDedupStore()

        async with store.transaction() as txn:
            if await txn.get("msg-001") is None:
                await txn.insert_if_absent("msg-001", expiration_time)

    Concurrent duplicate handling::

        # Two tasks run the same transaction body for "msg-001".
        # The second one to acquire the lock finds the first one's record.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from saml_replay_guard.exceptions import ConflictError
from saml_replay_guard.models import ProcessedMessageRecord
from saml_replay_guard.storage.base import DedupStore
from saml_replay_guard.utils.time import ensure_utc


class _MemoryTransaction:
    """Transaction over a MemoryDedupStore.

    Writes are buffered in ``_pending`` and applied to the store only when
    the enclosing context exits cleanly.
    """

    def __init__(self, store: dict[str, ProcessedMessageRecord]) -> None:
        self._store = store
        self._pending: dict[str, ProcessedMessageRecord] = {}

    async def get(self, message_id: str) -> ProcessedMessageRecord | None:
        if message_id in self._pending:
            return self._pending[message_id]
        return self._store.get(message_id)

    async def insert_if_absent(
        self,
        message_id: str,
        expiration_time: datetime,
    ) -> ProcessedMessageRecord:
        if message_id in self._store or message_id in self._pending:
            raise ConflictError(
                message=f"Message id {message_id} has already been recorded",
                message_id=message_id,
            )
        record = ProcessedMessageRecord(
            message_id=message_id,
            expiration_time=expiration_time,
        )
        self._pending[message_id] = record
        return record

    def commit(self) -> None:
        self._store.update(self._pending)
        self._pending.clear()


class MemoryDedupStore(DedupStore):
    """In-memory dedup store.

    Attributes:
        _store: Dictionary mapping message ids to records.
        _lock: Lock serializing transactions and purges.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._store: dict[str, ProcessedMessageRecord] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_MemoryTransaction]:
        """Open a serializable transaction.

        The lock is held until the context exits, so a concurrent
        transaction for the same message id only runs its lookup after this
        one has committed or rolled back.
        """
        async with self._lock:
            txn = _MemoryTransaction(self._store)
            yield txn
            # Only reached when the block did not raise
            txn.commit()

    async def get(self, message_id: str) -> ProcessedMessageRecord | None:
        """Retrieve a record by message id."""
        return self._store.get(message_id)

    async def purge_expired_before(self, now: datetime) -> int:
        """Remove records whose expiration_time is before ``now``.

        Returns:
            The number of records removed.
        """
        now = ensure_utc(now)
        async with self._lock:
            expired = [
                message_id
                for message_id, record in self._store.items()
                if record.is_expired(now)
            ]
            for message_id in expired:
                del self._store[message_id]
        return len(expired)

    async def count(self) -> int:
        """Return the number of stored records."""
        return len(self._store)

    async def close(self) -> None:
        """Nothing to release for the in-memory store."""
