"""Demo FastAPI assertion consumer protected by the SAML replay guard.

This application stands in for a service provider's assertion consumer
service. SAML parsing and signature verification are out of scope, so the
route accepts the already-validated fields as JSON.

Run with: python demo_app.py
Then try:
    curl -X POST localhost:8000/saml/acs -H 'Content-Type: application/json' \
        -d '{"message_id": "msg-001", "not_on_or_after": ["2030-01-01T00:00:00Z"]}'
Posting the same body twice returns 401 the second time.
"""

from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import Depends, FastAPI
from pydantic import BaseModel

from saml_replay_guard.adapters.fastapi import (
    get_replay_guard,
    install_replay_guard,
    replay_guard_lifespan,
)
from saml_replay_guard.config import ReplayGuardConfig
from saml_replay_guard.core.guard import ReplayGuard
from saml_replay_guard.observability.logging import configure_logging_from_config
from saml_replay_guard.storage import create_store
from saml_replay_guard.storage.sql import SqlDedupStore

config = ReplayGuardConfig.from_env()
configure_logging_from_config(config)
store = create_store(config)


purge_lifespan = replay_guard_lifespan(store, interval_seconds=config.purge_interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if isinstance(store, SqlDedupStore):
        await store.create_schema()
    async with purge_lifespan(app):
        yield


# Create FastAPI app
app = FastAPI(
    title="SAML Replay Guard Demo",
    description="Assertion consumer that accepts each SAML message id once",
    version="0.1.0",
    lifespan=lifespan,
)
install_replay_guard(app, ReplayGuard(store, config))


class ValidatedAssertion(BaseModel):
    message_id: str | None = None
    not_on_or_after: list[datetime] = []


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "SAML Replay Guard Demo",
        "version": "0.1.0",
        "storage_adapter": config.storage_adapter,
        "endpoints": {
            "POST /saml/acs": "Consume a validated assertion (each message id once)",
        },
    }


@app.post("/saml/acs")
async def consume_assertion(
    assertion: ValidatedAssertion,
    guard: ReplayGuard = Depends(get_replay_guard),
):
    """Accept a validated assertion and establish a (pretend) session."""
    record = await guard.check(assertion.message_id, assertion.not_on_or_after)
    return {
        "status": "authenticated",
        "message_id": record.message_id,
        "replay_window_ends": record.expiration_time.isoformat(),
    }


if __name__ == "__main__":
    print("=" * 60)
    print("SAML Replay Guard Demo Server")
    print("=" * 60)
    print(f"\nStorage adapter: {config.storage_adapter}")
    print("Starting server at http://localhost:8000")
    print("\nPress Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.log_level.lower())
