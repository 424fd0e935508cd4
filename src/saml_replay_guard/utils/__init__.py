"""Utility modules for the SAML replay guard."""

from .time import (
    Instant,
    ensure_utc,
    from_epoch_millis,
    normalize_instant,
    to_epoch_millis,
    utc_now,
)

__all__ = [
    "Instant",
    "ensure_utc",
    "from_epoch_millis",
    "normalize_instant",
    "to_epoch_millis",
    "utc_now",
]
