"""FastAPI integration for the SAML replay guard.

The assertion consumer service (the route receiving the IdP's POST) calls
the guard after validating the response. This module provides the glue
around that call:

1. Exception handlers that turn every rejection into the same generic
   authentication failure, so a client cannot tell a replay apart from any
   other refusal
2. A lifespan factory that runs the purge task while the application is up
3. A dependency returning the application's guard

Examples:
    Wiring the guard into an application::

        from fastapi import Depends, FastAPI
        from saml_replay_guard.adapters.fastapi import (
            get_replay_guard,
            install_replay_guard,
            replay_guard_lifespan,
        )

        store = SqlDedupStore.from_url(config.database_url)
        app = FastAPI(lifespan=replay_guard_lifespan(store, config.purge_interval_seconds))
        install_replay_guard(app, ReplayGuard(store, config))

        @app.post("/saml/acs")
        async def acs(request: Request, guard: ReplayGuard = Depends(get_replay_guard)):
            response = await validate_saml_response(request)
            await guard.check(response.message_id, response.not_on_or_after)
            return await establish_session(response)
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from saml_replay_guard.core.cleanup import start_purge_task, stop_purge_task
from saml_replay_guard.core.guard import ReplayGuard
from saml_replay_guard.exceptions import AssertionRejectedError, StoreUnavailableError
from saml_replay_guard.observability.logging import get_logger
from saml_replay_guard.storage.base import DedupStore

logger = get_logger(__name__)

# Deliberately identical for every failure cause
GENERIC_FAILURE_DETAIL = "Authentication failed"


async def assertion_rejected_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map any AssertionRejectedError to 401 with a generic body."""
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": GENERIC_FAILURE_DETAIL},
    )


async def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map StoreUnavailableError to 503; the login is never accepted unchecked."""
    logger.error(
        "auth.replay_check_unavailable",
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": GENERIC_FAILURE_DETAIL},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the replay guard's exception handlers on ``app``."""
    app.add_exception_handler(AssertionRejectedError, assertion_rejected_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)


def install_replay_guard(app: FastAPI, guard: ReplayGuard) -> None:
    """Attach ``guard`` to ``app`` and register the exception handlers.

    The guard is then available to routes through get_replay_guard().
    """
    app.state.replay_guard = guard
    register_exception_handlers(app)


def get_replay_guard(request: Request) -> ReplayGuard:
    """FastAPI dependency returning the guard installed on the application."""
    guard: ReplayGuard = request.app.state.replay_guard
    return guard


def replay_guard_lifespan(
    store: DedupStore,
    interval_seconds: int = 300,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build a lifespan that purges ``store`` in the background.

    The purge task starts with the application and is stopped, and the store
    closed, on shutdown.

    Args:
        store: Dedup store to purge
        interval_seconds: Time between purge runs
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task = await start_purge_task(store, interval_seconds=interval_seconds)
        try:
            yield
        finally:
            await stop_purge_task(task)
            await store.close()

    return lifespan
