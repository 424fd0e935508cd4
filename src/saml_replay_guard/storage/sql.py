"""SQL dedup store built on SQLAlchemy's asyncio extension.

This is the store to use when several server processes share one database.
Processed message ids live in the ``saml_message_ids`` table, whose primary
key is the message id. The replay guard's lookup and insert run in one
session; if two processes race past the lookup with the same message id, the
primary key turns the second insert (or its commit) into an IntegrityError,
which is reported as ConflictError. No isolation level stronger than read
committed is needed.

Expirations are stored as epoch milliseconds so the column behaves the same
on every backend, timezone support or not.

Examples:
    Creating a store::

        from saml_replay_guard.storage.sql import SqlDedupStore

        store = SqlDedupStore.from_url("postgresql+asyncpg://sso@db/sso")
        await store.create_schema()

    Using an existing engine::

        engine = create_async_engine("sqlite+aiosqlite:///./saml.db")
        store = SqlDedupStore(engine)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, Index, String, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from saml_replay_guard.exceptions import ConflictError, StoreUnavailableError
from saml_replay_guard.models import MESSAGE_ID_MAX_LENGTH, ProcessedMessageRecord
from saml_replay_guard.storage.base import DedupStore
from saml_replay_guard.utils.time import from_epoch_millis, to_epoch_millis


class Base(DeclarativeBase):
    """Declarative base for the dedup store tables."""


class SamlMessageIdRow(Base):
    """A processed SAML message id."""

    __tablename__ = "saml_message_ids"
    __table_args__ = (Index("ix_saml_message_ids_expiration_date", "expiration_date"),)

    message_id: Mapped[str] = mapped_column(String(MESSAGE_ID_MAX_LENGTH), primary_key=True)
    expiration_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def to_record(self) -> ProcessedMessageRecord:
        return ProcessedMessageRecord(
            message_id=self.message_id,
            expiration_time=from_epoch_millis(self.expiration_date),
            created_at=from_epoch_millis(self.created_at),
        )

    def __repr__(self) -> str:
        return (
            f"<SamlMessageIdRow message_id={self.message_id} "
            f"expiration_date={self.expiration_date}>"
        )


class _SqlTransaction:
    """Lookup and insert bound to one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.inserted_message_id: str | None = None

    async def get(self, message_id: str) -> ProcessedMessageRecord | None:
        try:
            row = await self._session.get(SamlMessageIdRow, message_id)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                message=f"Failed to look up message id: {e}",
                cause=e,
            ) from e
        return row.to_record() if row is not None else None

    async def insert_if_absent(
        self,
        message_id: str,
        expiration_time: datetime,
    ) -> ProcessedMessageRecord:
        record = ProcessedMessageRecord(
            message_id=message_id,
            expiration_time=expiration_time,
        )
        self._session.add(
            SamlMessageIdRow(
                message_id=record.message_id,
                expiration_date=to_epoch_millis(record.expiration_time),
                created_at=to_epoch_millis(record.created_at),
            )
        )
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictError(
                message=f"Message id {message_id} has already been recorded",
                message_id=message_id,
            ) from e
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                message=f"Failed to insert message id: {e}",
                cause=e,
            ) from e
        self.inserted_message_id = message_id
        return record


class SqlDedupStore(DedupStore):
    """Dedup store backed by a SQL database.

    Attributes:
        engine: The AsyncEngine the store runs on.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize the store on an existing engine.

        Args:
            engine: SQLAlchemy AsyncEngine. The store owns it from here on
                and disposes of it in close().
        """
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: Any) -> "SqlDedupStore":
        """Create a store from a database URL.

        Args:
            database_url: SQLAlchemy async URL, e.g.
                "postgresql+asyncpg://user@host/db".
            **engine_kwargs: Passed through to create_async_engine().
        """
        return cls(create_async_engine(database_url, **engine_kwargs))

    async def create_schema(self) -> None:
        """Create the ``saml_message_ids`` table if it does not exist."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                message=f"Failed to create dedup schema: {e}",
                cause=e,
            ) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_SqlTransaction]:
        """Open a session for one check.

        If the block raises, the session is closed without committing, which
        rolls back the insert. A uniqueness violation detected at commit
        time is reported as ConflictError.
        """
        async with self._session_factory() as session:
            txn = _SqlTransaction(session)
            yield txn
            try:
                await session.commit()
            except IntegrityError as e:
                raise ConflictError(
                    message=f"Message id {txn.inserted_message_id} has already been recorded",
                    message_id=txn.inserted_message_id or "",
                ) from e
            except SQLAlchemyError as e:
                raise StoreUnavailableError(
                    message=f"Failed to commit message id: {e}",
                    cause=e,
                ) from e

    async def get(self, message_id: str) -> ProcessedMessageRecord | None:
        """Retrieve a record by message id."""
        async with self._session_factory() as session:
            return await _SqlTransaction(session).get(message_id)

    async def purge_expired_before(self, now: datetime) -> int:
        """Delete rows whose expiration is before ``now``.

        Returns:
            The number of rows removed.
        """
        cutoff = to_epoch_millis(now)
        stmt = delete(SamlMessageIdRow).where(SamlMessageIdRow.expiration_date < cutoff)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                removed = result.rowcount or 0
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                message=f"Failed to purge expired message ids: {e}",
                cause=e,
            ) from e
        return removed

    async def count(self) -> int:
        """Return the number of stored rows."""
        stmt = select(func.count()).select_from(SamlMessageIdRow)
        try:
            async with self._session_factory() as session:
                total = (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                message=f"Failed to count message ids: {e}",
                cause=e,
            ) from e
        return total

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self.engine.dispose()

