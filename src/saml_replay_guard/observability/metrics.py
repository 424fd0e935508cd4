"""Prometheus metrics for the SAML replay guard.

Metrics include:

- Check counters by result (accepted, or the rejection reason)
- Check duration histogram (includes the store transaction)
- Purge operation tracking

Examples:
    Recording a detected replay::

        from saml_replay_guard.observability.metrics import record_check

        record_check(result="REPLAY_DETECTED")

    Recording a purge run::

        from saml_replay_guard.observability.metrics import record_purge

        record_purge(records_removed=42)
"""

from prometheus_client import Counter, Histogram

# Labels: result (accepted, MISSING_MESSAGE_ID, REPLAY_DETECTED, ..., store_error)
checks_total = Counter(
    "saml_replay_checks_total",
    "Total number of SAML message id checks performed",
    ["result"],
)

check_duration_seconds = Histogram(
    "saml_replay_check_duration_seconds",
    "Duration of SAML message id checks in seconds",
    buckets=[
        0.001,
        0.0025,
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
    ],  # 1ms to 1s
)

purge_operations = Counter(
    "saml_replay_purge_operations_total",
    "Total number of purge operations performed",
)

purge_records_removed = Counter(
    "saml_replay_purge_records_removed_total",
    "Total number of expired message ids removed by purge",
)


def record_check(result: str) -> None:
    """Record the outcome of one check.

    Args:
        result: "accepted", "store_error" or a RejectionReason value

    Examples:
        >>> record_check("accepted")
        >>> record_check("REPLAY_DETECTED")
    """
    checks_total.labels(result=result).inc()


def record_check_duration(duration_seconds: float) -> None:
    """Record how long a check took, store round trips included.

    Examples:
        >>> record_check_duration(0.004)
    """
    check_duration_seconds.observe(duration_seconds)


def record_purge(records_removed: int) -> None:
    """Record a purge operation.

    Args:
        records_removed: Number of expired records removed

    Examples:
        >>> record_purge(42)
    """
    purge_operations.inc()
    purge_records_removed.inc(records_removed)
