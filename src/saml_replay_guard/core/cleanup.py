"""Purge of expired message ids.

Processed message ids would accumulate forever without a purge. This module
removes records whose expiration has passed, either once (for an external
scheduler such as cron) or from a background task running inside the web
application.

A record is only ever removed strictly after its expiration_time, so a
message id cannot become acceptable again while the assertion that carried
it is still valid.

The purge task:
1. Runs at configurable intervals (default 5 minutes)
2. Calls store.purge_expired_before(now)
3. Reports metrics and logs
4. Logs and survives store errors, retrying on the next interval

Examples:
    One-shot purge from a scheduled job::

        from saml_replay_guard.core.cleanup import purge_expired

        removed = await purge_expired(store)

    Background task::

        from saml_replay_guard.core.cleanup import start_purge_task, stop_purge_task

        task = await start_purge_task(store, interval_seconds=300)
        ...
        await stop_purge_task(task)
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from saml_replay_guard.observability.logging import get_logger
from saml_replay_guard.observability.metrics import record_purge
from saml_replay_guard.storage.base import DedupStore
from saml_replay_guard.utils.time import utc_now

logger = get_logger(__name__)


async def purge_expired(
    store: DedupStore,
    now: datetime | None = None,
) -> int:
    """Remove every record that expired before ``now``.

    Args:
        store: Dedup store to purge
        now: Reference instant (defaults to the current UTC time)

    Returns:
        Number of records removed

    Raises:
        StoreUnavailableError: If the store fails
    """
    if now is None:
        now = utc_now()

    count = await store.purge_expired_before(now)
    record_purge(count)

    if count > 0:
        logger.info("purge.completed", records_removed=count)
    else:
        logger.debug("purge.completed", records_removed=0)

    return count


async def purge_loop(
    store: DedupStore,
    interval_seconds: int = 300,
    stop_event: asyncio.Event | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> None:
    """Background task that periodically purges expired records.

    Runs until stop_event is set. Failures are logged and the loop carries
    on with the next interval.

    Args:
        store: Dedup store to purge
        interval_seconds: Time between purge runs (default 300s = 5 minutes)
        stop_event: Event to signal the loop to stop (optional)
        clock: Returns the current UTC time
    """
    if stop_event is None:
        stop_event = asyncio.Event()

    logger.info(
        "purge.started",
        interval_seconds=interval_seconds,
    )

    while not stop_event.is_set():
        try:
            await purge_expired(store, now=clock())
        except Exception as e:
            logger.error(
                "purge.failed",
                error=str(e),
                error_type=type(e).__name__,
            )

        try:
            await asyncio.wait_for(
                stop_event.wait(),
                timeout=interval_seconds,
            )
        except asyncio.TimeoutError:
            continue

    logger.info("purge.stopped")


async def start_purge_task(
    store: DedupStore,
    interval_seconds: int = 300,
) -> asyncio.Task[None]:
    """Start the purge background task.

    Args:
        store: Dedup store to purge
        interval_seconds: Time between purge runs (default 300s = 5 minutes)

    Returns:
        The asyncio Task running the purge loop
    """
    stop_event = asyncio.Event()

    task = asyncio.create_task(
        purge_loop(
            store=store,
            interval_seconds=interval_seconds,
            stop_event=stop_event,
        )
    )

    task._stop_event = stop_event  # type: ignore[attr-defined]

    return task


async def stop_purge_task(task: asyncio.Task[None]) -> None:
    """Stop a running purge task gracefully.

    Args:
        task: The purge task returned by start_purge_task
    """
    stop_event: asyncio.Event | None = getattr(task, "_stop_event", None)

    if stop_event:
        stop_event.set()

    try:
        await asyncio.wait_for(task, timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("purge.stop_timeout", message="Purge task did not stop in time")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("purge.cancelled")
