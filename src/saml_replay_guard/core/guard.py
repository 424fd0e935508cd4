"""Replay guard for validated SAML responses.

This module implements the check that runs after a SAML response has been
parsed and its signature verified, and before a session is established. It
enforces that each message id is accepted at most once across every server
process sharing the dedup store.

Per message id the state machine is::

    Unseen -> Accepted

Accepted is terminal until purge removes the record. Rejections are never
stored.

The check:
- Refuses assertions without a message id or without any NotOnOrAfter bound
- Derives the record's expiration from the NotOnOrAfter bounds
- Optionally refuses assertions that are already expired
- Looks up and inserts the message id in one store transaction
- Treats a uniqueness conflict on insert as a replay

Examples:
    Checking a response in a login handler::

        from saml_replay_guard.core.guard import ReplayGuard
        from saml_replay_guard.storage.sql import SqlDedupStore

        guard = ReplayGuard(SqlDedupStore.from_url(database_url))

        await guard.check(
            message_id=response.message_id,
            not_on_or_after=response.not_on_or_after,
        )
        # Only reached for first-time, unexpired messages
        await establish_session(response)
"""

import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from saml_replay_guard.config import ReplayGuardConfig
from saml_replay_guard.exceptions import (
    AssertionExpiredError,
    AssertionRejectedError,
    ConflictError,
    InconsistentExpiryError,
    MalformedAssertionError,
    MissingExpiryError,
    MissingMessageIdError,
    ReplayDetectedError,
    StoreUnavailableError,
)
from saml_replay_guard.models import (
    MESSAGE_ID_MAX_LENGTH,
    ExpiryPolicy,
    ProcessedMessageRecord,
    RejectionReason,
)
from saml_replay_guard.observability.logging import get_logger
from saml_replay_guard.observability.metrics import record_check, record_check_duration
from saml_replay_guard.storage.base import DedupStore
from saml_replay_guard.utils.time import Instant, ensure_utc, normalize_instant, utc_now

logger = get_logger(__name__)


def select_expiration(
    candidates: Iterable[Instant] | None,
    policy: ExpiryPolicy = ExpiryPolicy.EARLIEST,
    message_id: str | None = None,
) -> datetime:
    """Derive one expiration instant from an assertion's NotOnOrAfter bounds.

    A response may carry several SubjectConfirmationData elements, each with
    its own bound. Under the EARLIEST policy the most restrictive one wins,
    so a generous bound cannot widen the replay window of a tight one.

    Args:
        candidates: NotOnOrAfter bounds (datetimes or epoch milliseconds)
        policy: How to combine several bounds
        message_id: Message id, attached to any error raised

    Returns:
        The selected expiration as a UTC datetime

    Raises:
        MissingExpiryError: If there are no candidates
        InconsistentExpiryError: If policy is REJECT_INCONSISTENT and the
            candidates are not all equal
        MalformedAssertionError: If a candidate is neither a datetime nor an
            int, or candidates is not iterable

    Examples:
        >>> select_expiration([datetime(2024, 1, 1, 12, 10), datetime(2024, 1, 1, 12, 2)])
        datetime.datetime(2024, 1, 1, 12, 2, tzinfo=datetime.timezone.utc)
    """
    try:
        normalized = [normalize_instant(candidate) for candidate in candidates or ()]
    except TypeError as e:
        raise MalformedAssertionError(
            message=f"Unreadable NotOnOrAfter element: {e}",
            message_id=message_id,
        ) from e
    if not normalized:
        raise MissingExpiryError(
            message="Missing NotOnOrAfter element",
            message_id=message_id,
        )

    if policy == ExpiryPolicy.REJECT_INCONSISTENT and len(set(normalized)) > 1:
        raise InconsistentExpiryError(
            message=f"Assertion carries {len(set(normalized))} different NotOnOrAfter values",
            message_id=message_id,
        )

    return min(normalized)


class ReplayGuard:
    """Rejects SAML messages whose id has already been processed.

    The guard is stateless apart from its collaborators: every decision is
    made by the dedup store inside one transaction, so any number of guards
    in any number of processes may share a store.

    Attributes:
        store: Dedup store holding processed message ids
        config: Expiry policy and clock settings
    """

    def __init__(
        self,
        store: DedupStore,
        config: ReplayGuardConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the guard.

        Args:
            store: Dedup store holding processed message ids
            config: Configuration (defaults to ReplayGuardConfig())
            clock: Returns the current UTC time; replaceable in tests
        """
        self.store = store
        self.config = config or ReplayGuardConfig()
        self._clock = clock

    async def check(
        self,
        message_id: str | None,
        not_on_or_after: Iterable[Instant] | None,
    ) -> ProcessedMessageRecord:
        """Accept a message id exactly once.

        Args:
            message_id: ID of the SAML response
            not_on_or_after: Every NotOnOrAfter bound the assertion carries

        Returns:
            The record written for this message

        Raises:
            MissingMessageIdError: No message id (no store access)
            MissingExpiryError: No NotOnOrAfter bound (no store access)
            InconsistentExpiryError: Bounds disagree under REJECT_INCONSISTENT
            MalformedAssertionError: Non-string or over-long message id, or an
                unreadable bound (no store access)
            AssertionExpiredError: Bound already passed while reject_expired
            ReplayDetectedError: The message id was already processed
            StoreUnavailableError: The store failed; the login must fail too
        """
        start_time = time.perf_counter()
        try:
            record = await self._check(message_id, not_on_or_after)
        except AssertionRejectedError as e:
            record_check(e.reason.value)
            if e.reason == RejectionReason.REPLAY_DETECTED:
                logger.warning(
                    "replay_guard.replay_detected",
                    message_id=message_id,
                    security_event=True,
                )
            else:
                logger.info(
                    "replay_guard.rejected",
                    message_id=message_id,
                    reason=e.reason.value,
                    error=e.message,
                )
            raise
        except StoreUnavailableError as e:
            record_check("store_error")
            logger.error(
                "replay_guard.store_unavailable",
                message_id=message_id,
                error=e.message,
            )
            raise
        finally:
            record_check_duration(time.perf_counter() - start_time)

        record_check("accepted")
        logger.info(
            "replay_guard.accepted",
            message_id=record.message_id,
            expiration_time=record.expiration_time.isoformat(),
        )
        return record

    async def check_assertion(self, assertion: Any) -> ProcessedMessageRecord:
        """Check a parsed assertion object.

        The object must expose ``message_id`` and ``not_on_or_after``
        attributes; missing attributes are treated as absent values.
        """
        return await self.check(
            getattr(assertion, "message_id", None),
            getattr(assertion, "not_on_or_after", None),
        )

    async def _check(
        self,
        message_id: str | None,
        not_on_or_after: Iterable[Instant] | None,
    ) -> ProcessedMessageRecord:
        if message_id is None:
            raise MissingMessageIdError(message="Message ID is missing")
        if not isinstance(message_id, str):
            raise MalformedAssertionError(
                message=f"Message ID must be a string, got {type(message_id).__name__}"
            )
        if not message_id.strip():
            raise MissingMessageIdError(message="Message ID is missing")
        if len(message_id) > MESSAGE_ID_MAX_LENGTH:
            raise MalformedAssertionError(
                message=f"Message ID exceeds {MESSAGE_ID_MAX_LENGTH} characters"
            )

        expiration_time = select_expiration(
            not_on_or_after,
            policy=self.config.expiry_policy,
            message_id=message_id,
        )

        if self.config.reject_expired:
            skew = timedelta(seconds=self.config.allowed_clock_skew_seconds)
            now = ensure_utc(self._clock())
            if expiration_time <= now - skew:
                raise AssertionExpiredError(
                    message=f"Assertion expired at {expiration_time.isoformat()}",
                    message_id=message_id,
                )

        try:
            async with self.store.transaction() as txn:
                if await txn.get(message_id) is not None:
                    raise ReplayDetectedError(
                        message="This message has already been processed",
                        message_id=message_id,
                    )
                record = await txn.insert_if_absent(message_id, expiration_time)
        except ConflictError as e:
            # Another process inserted the same id between our lookup and insert
            raise ReplayDetectedError(
                message="This message has already been processed",
                message_id=message_id,
            ) from e

        return record
