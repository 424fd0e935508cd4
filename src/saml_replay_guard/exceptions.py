"""Custom exceptions for the SAML replay guard.

This module defines the exception hierarchy used to signal why an assertion
was refused, as well as the store-level failures that the guard surfaces to
its caller. Every rejection aborts the current authentication attempt; none
of them are retried by the guard itself.

Examples:
    Handling a rejection in a login handler::

        from saml_replay_guard.exceptions import (
            AssertionRejectedError,
            StoreUnavailableError,
        )

        try:
            await guard.check(message_id, not_on_or_after)
        except AssertionRejectedError as e:
            logger.warning("saml.login_rejected", reason=e.reason.value)
            return Response(status_code=401)
        except StoreUnavailableError:
            # Fail closed: never establish a session without the check
            return Response(status_code=503)
"""

from saml_replay_guard.models import RejectionReason


class ReplayGuardError(Exception):
    """Base exception for all replay guard errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class AssertionRejectedError(ReplayGuardError):
    """The assertion was refused by the replay check.

    Rejections are permanent for the message that caused them: retrying the
    same message can never change the outcome. Callers should surface every
    subclass as the same generic authentication failure.

    Attributes:
        message: Human-readable error description.
        reason: Machine-readable rejection reason.
        message_id: The offending message identifier, if one was supplied.
    """

    reason: RejectionReason

    def __init__(self, message: str, message_id: str | None = None) -> None:
        """Initialize the rejection.

        Args:
            message: Human-readable error description.
            message_id: The offending message identifier, if any.
        """
        super().__init__(message)
        self.message_id = message_id


class MissingMessageIdError(AssertionRejectedError):
    """The assertion carried no message identifier."""

    reason = RejectionReason.MISSING_MESSAGE_ID


class MissingExpiryError(AssertionRejectedError):
    """The assertion carried no NotOnOrAfter bound."""

    reason = RejectionReason.MISSING_EXPIRY


class ReplayDetectedError(AssertionRejectedError):
    """The message identifier has already been processed.

    This is raised whether the stored record is expired or not: an expired
    record still proves the message was consumed once.

    Examples:
        Raising a replay error::

            if await txn.get(message_id) is not None:
                raise ReplayDetectedError(
                    message="This message has already been processed",
                    message_id=message_id,
                )
    """

    reason = RejectionReason.REPLAY_DETECTED


class AssertionExpiredError(AssertionRejectedError):
    """The earliest NotOnOrAfter bound is already in the past."""

    reason = RejectionReason.ASSERTION_EXPIRED


class InconsistentExpiryError(AssertionRejectedError):
    """The assertion carried NotOnOrAfter bounds that disagree."""

    reason = RejectionReason.INCONSISTENT_EXPIRY


class MalformedAssertionError(AssertionRejectedError):
    """The assertion carried a value the guard cannot use.

    Covers a message identifier that is not a string or is longer than
    MESSAGE_ID_MAX_LENGTH, and a NotOnOrAfter bound that is neither a
    datetime nor epoch milliseconds. Raised before any store access.
    """

    reason = RejectionReason.MALFORMED_ASSERTION


class ConflictError(ReplayGuardError):
    """A record with the same message identifier already exists in the store.

    Raised by ``DedupTransaction.insert_if_absent`` when the store's
    uniqueness constraint rejects the insert. This is how a concurrent
    duplicate that slipped past the lookup is detected; the guard translates
    it into ``ReplayDetectedError``.

    Attributes:
        message: Human-readable error description.
        message_id: The message identifier that conflicted.
    """

    def __init__(self, message: str, message_id: str) -> None:
        """Initialize the conflict error.

        Args:
            message: Human-readable error description.
            message_id: The message identifier that conflicted.
        """
        super().__init__(message)
        self.message_id = message_id


class StoreUnavailableError(ReplayGuardError):
    """The dedup store could not complete the operation.

    Covers connection failures, lock timeouts and failed commits. The guard
    propagates it unchanged so the caller fails the login attempt; it must
    never be treated as permission to accept the assertion unchecked.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the failure.

    Examples:
        Wrapping a backend error::

            try:
                await session.commit()
            except SQLAlchemyError as e:
                raise StoreUnavailableError(
                    message=f"Failed to commit message id: {e}",
                    cause=e,
                ) from e
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the store error.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.cause = cause
