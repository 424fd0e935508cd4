"""Unit tests for the replay guard models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from saml_replay_guard.models import (
    MESSAGE_ID_MAX_LENGTH,
    ExpiryPolicy,
    ProcessedMessageRecord,
    RejectionReason,
)


class TestProcessedMessageRecord:
    """Tests for ProcessedMessageRecord."""

    def test_create_record(self, base_time: datetime) -> None:
        """A record keeps its message id and expiration."""
        record = ProcessedMessageRecord(
            message_id="msg-001",
            expiration_time=base_time + timedelta(minutes=5),
        )
        assert record.message_id == "msg-001"
        assert record.expiration_time == base_time + timedelta(minutes=5)
        assert record.created_at.tzinfo is not None

    def test_empty_message_id_rejected(self, base_time: datetime) -> None:
        """The message id must not be empty."""
        with pytest.raises(ValidationError):
            ProcessedMessageRecord(message_id="", expiration_time=base_time)

    def test_overlong_message_id_rejected(self, base_time: datetime) -> None:
        """The message id must fit the store's key column."""
        ProcessedMessageRecord(message_id="m" * MESSAGE_ID_MAX_LENGTH, expiration_time=base_time)
        with pytest.raises(ValidationError):
            ProcessedMessageRecord(
                message_id="m" * (MESSAGE_ID_MAX_LENGTH + 1), expiration_time=base_time
            )

    def test_naive_expiration_is_utc(self) -> None:
        """Naive datetimes are interpreted as UTC."""
        record = ProcessedMessageRecord(
            message_id="msg-001",
            expiration_time=datetime(2024, 1, 1, 12, 5),
        )
        assert record.expiration_time == datetime(2024, 1, 1, 12, 5, tzinfo=UTC)

    def test_offset_expiration_converted_to_utc(self) -> None:
        """Aware datetimes in other zones are converted to UTC."""
        plus_two = timezone(timedelta(hours=2))
        record = ProcessedMessageRecord(
            message_id="msg-001",
            expiration_time=datetime(2024, 1, 1, 14, 5, tzinfo=plus_two),
        )
        assert record.expiration_time.utcoffset() == timedelta(0)
        assert record.expiration_time == datetime(2024, 1, 1, 12, 5, tzinfo=UTC)

    def test_record_is_immutable(self, base_time: datetime) -> None:
        """Expiration cannot be changed once the record exists."""
        record = ProcessedMessageRecord(message_id="msg-001", expiration_time=base_time)
        with pytest.raises(ValidationError):
            record.expiration_time = base_time + timedelta(hours=1)

    def test_is_expired_strictly_after(self, base_time: datetime) -> None:
        """A record is expired only once now is past its expiration."""
        record = ProcessedMessageRecord(message_id="msg-001", expiration_time=base_time)
        assert record.is_expired(base_time - timedelta(seconds=1)) is False
        assert record.is_expired(base_time) is False
        assert record.is_expired(base_time + timedelta(milliseconds=1)) is True


class TestEnums:
    """Tests for the enumerations."""

    def test_rejection_reason_values(self) -> None:
        assert RejectionReason.REPLAY_DETECTED.value == "REPLAY_DETECTED"
        assert {reason.value for reason in RejectionReason} == {
            "MISSING_MESSAGE_ID",
            "MISSING_EXPIRY",
            "REPLAY_DETECTED",
            "ASSERTION_EXPIRED",
            "INCONSISTENT_EXPIRY",
            "MALFORMED_ASSERTION",
        }

    def test_expiry_policy_from_string(self) -> None:
        assert ExpiryPolicy("earliest") is ExpiryPolicy.EARLIEST
        assert ExpiryPolicy("reject_inconsistent") is ExpiryPolicy.REJECT_INCONSISTENT
