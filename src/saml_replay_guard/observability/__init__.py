"""Observability utilities for the SAML replay guard.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for check outcomes and purge activity
- Structured logging with contextual information

Replay detections are security events; both the logs and the metrics make
them visible to operators.
"""

from saml_replay_guard.observability.logging import (
    configure_logging,
    configure_logging_from_config,
    get_logger,
)
from saml_replay_guard.observability.metrics import (
    record_check,
    record_check_duration,
    record_purge,
)

__all__ = [
    "configure_logging",
    "configure_logging_from_config",
    "get_logger",
    "record_check",
    "record_check_duration",
    "record_purge",
]
