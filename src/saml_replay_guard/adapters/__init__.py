"""Web framework adapters for the SAML replay guard.

This package provides integrations that wire the framework-agnostic guard
into web frameworks:
- FastAPI: exception handlers, purge lifespan and guard dependency
"""

from saml_replay_guard.adapters.fastapi import (
    get_replay_guard,
    install_replay_guard,
    register_exception_handlers,
    replay_guard_lifespan,
)

__all__ = [
    "get_replay_guard",
    "install_replay_guard",
    "register_exception_handlers",
    "replay_guard_lifespan",
]
