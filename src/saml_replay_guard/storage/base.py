"""Dedup store protocol for the SAML replay guard.

This module defines the interface that every dedup store backend must
implement. A store is a durable, transactional table of processed message
identifiers keyed by message id, each row carrying the expiration instant
after which it may be purged.

The replay guard performs its lookup and its insert inside one transaction
obtained from ``DedupStore.transaction()``. Stores are responsible for making
that pair atomic with respect to every other process sharing the table.

Examples:
    Using a store transaction::

        async with store.transaction() as txn:
            if await txn.get(message_id) is not None:
                raise ReplayDetectedError(...)
            await txn.insert_if_absent(message_id, expiration_time)
        # committed here; rolled back if the block raised

    Implementing a custom store::

        class MyDedupStore:
            def transaction(self) -> AbstractAsyncContextManager[DedupTransaction]:
                return self._begin()

            async def get(self, message_id: str) -> ProcessedMessageRecord | None:
                ...

            async def purge_expired_before(self, now: datetime) -> int:
                ...

Atomicity Requirements:
    All DedupStore implementations MUST guarantee:

    1. **Uniqueness**: the store never holds two records with the same
       message id. A racing second insert must fail with ConflictError,
       either through a uniqueness constraint or through serializable
       isolation around the lookup and insert.

    2. **Commit before success**: a transaction context exits normally only
       after the write is durable. Commit failures raise.

    3. **Rollback on error**: if the transaction block raises, nothing it
       wrote is kept.

    4. **Immutability**: records are never updated once written.

    5. **Purge safety**: purge_expired_before(now) removes only records whose
       expiration_time is strictly before now.

Error Handling:
    Stores raise ConflictError for uniqueness violations and
    StoreUnavailableError for every backend failure. Backend-specific
    exceptions must not escape.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable

from saml_replay_guard.models import ProcessedMessageRecord


@runtime_checkable
class DedupTransaction(Protocol):
    """Operations available inside one dedup store transaction."""

    async def get(self, message_id: str) -> ProcessedMessageRecord | None:
        """Look up a processed message id.

        Args:
            message_id: The message identifier to look up.

        Returns:
            The stored record if present (expired or not), None otherwise.
        """
        ...

    async def insert_if_absent(
        self,
        message_id: str,
        expiration_time: datetime,
    ) -> ProcessedMessageRecord:
        """Insert a new record for ``message_id``.

        Args:
            message_id: The message identifier being accepted.
            expiration_time: Instant after which the record may be purged.

        Returns:
            The record that will be committed with the transaction.

        Raises:
            ConflictError: If a record with this message id already exists.
            StoreUnavailableError: If the backend fails.
        """
        ...


@runtime_checkable
class DedupStore(Protocol):
    """Protocol defining the interface for dedup store backends.

    All methods must be safe to call concurrently from multiple asyncio
    tasks and, for shared backends, from multiple processes.
    """

    def transaction(self) -> AbstractAsyncContextManager[DedupTransaction]:
        """Open a transaction spanning a lookup and an insert.

        The transaction commits when the context exits normally and rolls
        back when it exits with an exception.

        Raises:
            StoreUnavailableError: If the transaction cannot be opened or
                committed.
        """
        ...

    async def get(self, message_id: str) -> ProcessedMessageRecord | None:
        """Read-only lookup outside of a check transaction.

        Intended for operators and tests; the replay guard never uses it.
        """
        ...

    async def purge_expired_before(self, now: datetime) -> int:
        """Remove records whose expiration_time is before ``now``.

        Args:
            now: The reference instant (timezone-aware).

        Returns:
            The number of records removed.
        """
        ...

    async def count(self) -> int:
        """Return the number of stored records."""
        ...

    async def close(self) -> None:
        """Release backend resources (connections, pools)."""
        ...
