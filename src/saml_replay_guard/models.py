"""Core type definitions for the SAML replay guard.

This module provides the persisted record type along with the enumerations
used to describe rejection reasons and the policy for choosing among several
NotOnOrAfter bounds.

Examples:
    Creating a record::

        from datetime import UTC, datetime, timedelta
        from saml_replay_guard.models import ProcessedMessageRecord

        record = ProcessedMessageRecord(
            message_id="_8e8dc5f69a98cc4c1ff3427e5ce34606fd672f91e6",
            expiration_time=datetime.now(UTC) + timedelta(minutes=5),
        )
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

# Longest message id the stores accept; matches the SQL key column
MESSAGE_ID_MAX_LENGTH = 255


class RejectionReason(str, Enum):
    """Why an assertion was refused.

    Attributes:
        MISSING_MESSAGE_ID: The assertion had no message identifier.
        MISSING_EXPIRY: The assertion had no NotOnOrAfter bound.
        REPLAY_DETECTED: The message identifier was already processed.
        ASSERTION_EXPIRED: The earliest NotOnOrAfter bound has passed.
        INCONSISTENT_EXPIRY: Multiple NotOnOrAfter bounds disagree.
        MALFORMED_ASSERTION: The message identifier or a NotOnOrAfter bound
            has an unusable type or size.
    """

    MISSING_MESSAGE_ID = "MISSING_MESSAGE_ID"
    MISSING_EXPIRY = "MISSING_EXPIRY"
    REPLAY_DETECTED = "REPLAY_DETECTED"
    ASSERTION_EXPIRED = "ASSERTION_EXPIRED"
    INCONSISTENT_EXPIRY = "INCONSISTENT_EXPIRY"
    MALFORMED_ASSERTION = "MALFORMED_ASSERTION"


class ExpiryPolicy(str, Enum):
    """How to derive a single expiration from several NotOnOrAfter bounds.

    Attributes:
        EARLIEST: Use the most restrictive bound.
        REJECT_INCONSISTENT: Refuse assertions whose bounds are not all equal.
    """

    EARLIEST = "earliest"
    REJECT_INCONSISTENT = "reject_inconsistent"


class ProcessedMessageRecord(BaseModel):
    """A message identifier that has been accepted once.

    Records are immutable: they are created when a message passes the check
    and deleted by purge once ``expiration_time`` has passed. Nothing ever
    updates them.

    Attributes:
        message_id: Identifier asserted by the identity provider.
        expiration_time: Earliest NotOnOrAfter bound at acceptance (UTC).
        created_at: When the record was accepted (UTC).
    """

    message_id: str = Field(
        ...,
        description="Message identifier asserted by the identity provider",
        min_length=1,
        max_length=MESSAGE_ID_MAX_LENGTH,
        examples=["_8e8dc5f69a98cc4c1ff3427e5ce34606fd672f91e6", "msg-001"],
    )
    expiration_time: datetime = Field(
        ...,
        description="Instant after which the record may be purged",
        examples=["2023-12-15T10:35:00Z"],
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the message was accepted",
    )

    model_config = {"frozen": True}

    @field_validator("expiration_time", "created_at")
    @classmethod
    def validate_utc(cls, v: datetime) -> datetime:
        """Normalize timestamps to timezone-aware UTC.

        Naive datetimes are interpreted as UTC.

        Args:
            v: The datetime to normalize.

        Returns:
            The datetime expressed in UTC.
        """
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    def is_expired(self, now: datetime) -> bool:
        """Return True if the record may be purged at ``now``.

        Examples:
            >>> record.is_expired(record.expiration_time)
            False
        """
        return self.expiration_time < now
