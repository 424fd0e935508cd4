"""Core replay-protection logic.

This package contains:
- Guard: the check-and-record transaction for SAML message ids
- Cleanup: purge of expired message ids

The core logic is framework-agnostic; adapters wire it into web frameworks.
"""

from saml_replay_guard.core.cleanup import purge_expired, start_purge_task, stop_purge_task
from saml_replay_guard.core.guard import ReplayGuard, select_expiration

__all__ = [
    "ReplayGuard",
    "purge_expired",
    "select_expiration",
    "start_purge_task",
    "stop_purge_task",
]
