"""
Replay protection for SAML single sign-on.

This package records the message id of every accepted SAML response in a
shared dedup store, ensuring that each response is used to log in at most
once across all server processes.
"""

from saml_replay_guard.config import ReplayGuardConfig
from saml_replay_guard.core.guard import ReplayGuard
from saml_replay_guard.exceptions import (
    AssertionExpiredError,
    AssertionRejectedError,
    ConflictError,
    InconsistentExpiryError,
    MalformedAssertionError,
    MissingExpiryError,
    MissingMessageIdError,
    ReplayDetectedError,
    ReplayGuardError,
    StoreUnavailableError,
)
from saml_replay_guard.models import ExpiryPolicy, ProcessedMessageRecord, RejectionReason

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AssertionExpiredError",
    "AssertionRejectedError",
    "ConflictError",
    "ExpiryPolicy",
    "InconsistentExpiryError",
    "MalformedAssertionError",
    "MissingExpiryError",
    "MissingMessageIdError",
    "ProcessedMessageRecord",
    "RejectionReason",
    "ReplayDetectedError",
    "ReplayGuard",
    "ReplayGuardConfig",
    "ReplayGuardError",
    "StoreUnavailableError",
]
