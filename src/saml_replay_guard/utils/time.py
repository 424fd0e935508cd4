"""Timestamp helpers for the replay guard.

NotOnOrAfter bounds reach the guard in whatever form the SAML toolkit hands
them over. These helpers normalize them to timezone-aware UTC datetimes and
convert to and from the epoch-millisecond form used for persistence.
"""

from datetime import UTC, datetime, timedelta

# Accepted representations of a NotOnOrAfter bound
Instant = datetime | int

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware UTC datetime.

    Naive datetimes are interpreted as UTC.

    Example:
        >>> ensure_utc(datetime(2024, 1, 1, 12, 0))
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to milliseconds since the Unix epoch.

    Example:
        >>> to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC))
        1000
    """
    return (ensure_utc(value) - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    """Convert milliseconds since the Unix epoch to a UTC datetime.

    Example:
        >>> from_epoch_millis(1000)
        datetime.datetime(1970, 1, 1, 0, 0, 1, tzinfo=datetime.timezone.utc)
    """
    return _EPOCH + timedelta(milliseconds=millis)


def normalize_instant(value: Instant) -> datetime:
    """Normalize a NotOnOrAfter bound to a UTC datetime.

    Args:
        value: A datetime (naive values are treated as UTC) or an integer
            number of epoch milliseconds.

    Returns:
        The bound as a timezone-aware UTC datetime.

    Raises:
        TypeError: If the value is neither a datetime nor an int.
    """
    # bool is an int subclass but never a meaningful instant
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return from_epoch_millis(value)
    raise TypeError(f"Unsupported NotOnOrAfter value: {value!r}")


def utc_now() -> datetime:
    """Return the current time as a UTC datetime."""
    return datetime.now(UTC)
