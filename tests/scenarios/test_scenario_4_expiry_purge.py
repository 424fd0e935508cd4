"""Scenario 4: Expiry and Purge Conformance Tests

This module tests the lifecycle of a record after it expires:
- Purge removes records whose expiration has passed
- Purge never removes a record before its expiration
- A purged message id can be accepted again
- An expired but unpurged record still blocks replays
"""

from datetime import datetime, timedelta

import pytest

from saml_replay_guard.core.cleanup import purge_expired
from saml_replay_guard.core.guard import ReplayGuard
from saml_replay_guard.exceptions import ReplayDetectedError


@pytest.mark.asyncio
async def test_purged_message_id_is_available_again(
    guard: ReplayGuard, base_time: datetime, clock
) -> None:
    """Purge at T+6m removes {msg-001 -> T+5m}; msg-001 is then accepted again.

    Verifies:
    - The record is removed
    - check("msg-001", {T+20m}) succeeds and records T+20m
    """
    await guard.check("msg-001", [base_time + timedelta(minutes=5)])

    clock.advance(minutes=6)
    removed = await purge_expired(guard.store, now=clock())

    assert removed == 1
    assert await guard.store.get("msg-001") is None

    record = await guard.check("msg-001", [base_time + timedelta(minutes=20)])
    assert record.expiration_time == base_time + timedelta(minutes=20)
    assert await guard.store.count() == 1


@pytest.mark.asyncio
async def test_purge_keeps_unexpired_records(
    guard: ReplayGuard, base_time: datetime, clock
) -> None:
    """Purge before or at the expiration keeps the record and the replay block."""
    await guard.check("msg-001", [base_time + timedelta(minutes=5)])

    assert await purge_expired(guard.store, now=base_time + timedelta(minutes=4)) == 0
    assert await purge_expired(guard.store, now=base_time + timedelta(minutes=5)) == 0

    with pytest.raises(ReplayDetectedError):
        await guard.check("msg-001", [base_time + timedelta(minutes=5)])


@pytest.mark.asyncio
async def test_expired_unpurged_record_blocks_replay(
    guard: ReplayGuard, base_time: datetime, clock
) -> None:
    """Without a purge the identifier stays consumed after expiry."""
    await guard.check("msg-001", [base_time + timedelta(minutes=5)])

    clock.advance(minutes=30)

    with pytest.raises(ReplayDetectedError):
        await guard.check("msg-001", [base_time + timedelta(hours=1)])


@pytest.mark.asyncio
async def test_purge_batch(guard: ReplayGuard, base_time: datetime) -> None:
    """Purge removes every expired record in one run."""
    for minutes in (1, 2, 3, 10, 20):
        await guard.check(f"msg-{minutes}", [base_time + timedelta(minutes=minutes)])

    removed = await purge_expired(guard.store, now=base_time + timedelta(minutes=5))

    assert removed == 3
    assert await guard.store.count() == 2
