"""Structured logging configuration for the SAML replay guard.

This module provides structured logging using structlog to emit
JSON-formatted logs with contextual information. Replay detections are
logged as security events so they can be alerted on in log aggregation
systems.

Examples:
    Configure logging::

        from saml_replay_guard.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Use the logger::

        from saml_replay_guard.observability.logging import get_logger

        logger = get_logger(__name__)
        logger.warning(
            "replay_guard.replay_detected",
            message_id="_8e8dc5f69a98cc4c1ff3427e5ce34606fd672f91e6",
            security_event=True,
        )

    Output (JSON)::

        {
            "event": "replay_guard.replay_detected",
            "message_id": "_8e8dc5f69a98cc4c1ff3427e5ce34606fd672f91e6",
            "security_event": true,
            "category": "security",
            "component": "saml_replay_guard.core.guard",
            "timestamp": "2024-01-01T00:00:00.000000Z",
            "level": "warning"
        }
"""

import logging
import sys
from typing import Any

import structlog

from saml_replay_guard.config import ReplayGuardConfig


# Loggers that are noisy at DEBUG and only useful when debugging the store
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


def tag_security_events(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add ``category="security"`` to events flagged with ``security_event``.

    Log pipelines route on the category; the flag is what call sites set.
    """
    if event_dict.get("security_event"):
        event_dict.setdefault("category", "security")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Call once at application startup, before the guard logs anything.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines when True, coloured console output otherwise

    Examples:
        >>> configure_logging(level="DEBUG", json_output=False)
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        tag_security_events,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(config: ReplayGuardConfig) -> None:
    """Configure logging from a ReplayGuardConfig.

    Examples:
        >>> configure_logging_from_config(ReplayGuardConfig.from_env())
    """
    configure_logging(level=config.log_level, json_output=config.json_logs)


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to ``component=name``."""
    return structlog.get_logger(name).bind(component=name)
