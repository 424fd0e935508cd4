"""Configuration module for the SAML replay guard.

This module provides the ReplayGuardConfig class for configuring the dedup
store backend, the expiry policy applied to incoming assertions, and the
purge cadence.

Example:
    Basic usage with defaults:

        >>> config = ReplayGuardConfig()
        >>> config.expiry_policy
        <ExpiryPolicy.EARLIEST: 'earliest'>

    Custom configuration:

        >>> config = ReplayGuardConfig(
        ...     storage_adapter="sql",
        ...     database_url="postgresql+asyncpg://sso@db/sso",
        ...     allowed_clock_skew_seconds=30,
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['SAML_REPLAY_STORAGE_ADAPTER'] = 'sql'
        >>> os.environ['SAML_REPLAY_PURGE_INTERVAL_SECONDS'] = '600'
        >>> config = ReplayGuardConfig.from_env()
"""

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from saml_replay_guard.models import ExpiryPolicy

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ReplayGuardConfig(BaseModel):
    """Configuration for the SAML replay guard.

    Attributes:
        storage_adapter: Dedup store backend, "memory" or "sql". The memory
            store only protects a single process and is meant for
            development and tests. Default is "memory".
        database_url: SQLAlchemy async database URL for the "sql" adapter.
            Default is "sqlite+aiosqlite:///./saml_message_ids.db".
        expiry_policy: How to derive one expiration from several
            NotOnOrAfter bounds. Default is "earliest".
        reject_expired: Refuse assertions whose earliest NotOnOrAfter bound
            has already passed. Default is True.
        allowed_clock_skew_seconds: Tolerance applied to the expiry check
            for clock drift between the identity provider and this server.
            Must be between 0 and 600. Default is 0.
        purge_interval_seconds: Time between runs of the background purge
            task. Must be between 1 and 86400. Default is 300.
        log_level: Log level for configure_logging(). Default is "INFO".
        json_logs: Emit JSON logs instead of console output. Default is True.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    storage_adapter: Literal["memory", "sql"] = Field(
        default="memory",
        description="Type of dedup store backend",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./saml_message_ids.db",
        description="SQLAlchemy async database URL for the sql adapter",
    )
    expiry_policy: ExpiryPolicy = Field(
        default=ExpiryPolicy.EARLIEST,
        description="Policy for assertions carrying several NotOnOrAfter bounds",
    )
    reject_expired: bool = Field(
        default=True,
        description="Reject assertions whose NotOnOrAfter bound has passed",
    )
    allowed_clock_skew_seconds: int = Field(
        default=0,
        description="Clock skew tolerated by the expiry check (0-600)",
    )
    purge_interval_seconds: int = Field(
        default=300,
        description="Seconds between background purge runs (1-86400)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit JSON formatted logs",
    )

    model_config = {"frozen": True}

    @field_validator("allowed_clock_skew_seconds")
    @classmethod
    def validate_allowed_clock_skew_seconds(cls, v: int) -> int:
        """Validate clock skew is within acceptable range.

        Raises:
            ValueError: If skew is not between 0 and 600 (10 minutes).
        """
        if not (0 <= v <= 600):
            raise ValueError(
                f"allowed_clock_skew_seconds must be between 0 and 600 (10 minutes), got {v}"
            )
        return v

    @field_validator("purge_interval_seconds")
    @classmethod
    def validate_purge_interval_seconds(cls, v: int) -> int:
        """Validate purge interval is within acceptable range.

        Raises:
            ValueError: If interval is not between 1 and 86400 (1 day).
        """
        if not (1 <= v <= 86400):
            raise ValueError(f"purge_interval_seconds must be between 1 and 86400 (1 day), got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        """Validate and normalize the log level.

        Example:
            >>> ReplayGuardConfig(log_level="debug").log_level
            'DEBUG'
        """
        level = str(v).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. "
                f"Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return level

    @model_validator(mode="after")
    def validate_storage_config(self) -> "ReplayGuardConfig":
        """Validate storage-specific configuration.

        Raises:
            ValueError: If the sql adapter is selected without a database URL.
        """
        if self.storage_adapter == "sql" and not self.database_url.strip():
            raise ValueError("database_url is required when storage_adapter is 'sql'")
        return self

    @classmethod
    def from_env(cls, prefix: str = "SAML_REPLAY_") -> "ReplayGuardConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix, for
        example ``SAML_REPLAY_DATABASE_URL``. Missing variables use the
        model defaults.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            ReplayGuardConfig populated from the environment.

        Raises:
            ValueError: If a boolean variable holds an unrecognized value.
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "storage_adapter": str,
            "database_url": str,
            "expiry_policy": str,
            "reject_expired": bool,
            "allowed_clock_skew_seconds": int,
            "purge_interval_seconds": int,
            "log_level": str,
            "json_logs": bool,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is not None:
                if field_type is int:
                    config_dict[field_name] = int(env_value)
                elif field_type is bool:
                    config_dict[field_name] = _parse_bool(env_var, env_value)
                else:
                    config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "ReplayGuardConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")
