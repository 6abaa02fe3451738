"""Capacity bookkeeping under random operation sequences.

After every step the session counter must equal the number of entries in
WAITING, YOUR_TURN or JOINED, and stay within [0, max_queue_size].
"""

import asyncio
import random

import pytest

from app.domain.live.live_queue_domain import LiveQueueService
from app.schemas.live_queue_state import QueueEntryStatus
from tests.fixtures.live_queue_fixtures import REVIEWER_ID, make_context, seed_session

APPLICANTS = [f"u.applicant{i}" for i in range(8)]
MAX_QUEUE_SIZE = 4


async def _assert_capacity_consistent(service: LiveQueueService) -> None:
    store = service.ctx.store
    session = await store.get_session("ls_test")
    assert session is not None
    active = await store.count_active_entries("ls_test")
    assert session.current_queue_size == active
    assert 0 <= session.current_queue_size <= session.max_queue_size


async def _random_step(service: LiveQueueService, rng: random.Random, clock) -> None:
    store = service.ctx.store
    entries = list(store._entries.values())
    action = rng.choice(["join", "join", "advance", "confirm", "complete", "skip", "sweep"])

    if action == "join":
        await service.join_queue("ls_test", rng.choice(APPLICANTS))
    elif action == "advance":
        await service.advance_queue("ls_test", REVIEWER_ID)
    elif action == "sweep":
        clock.advance(seconds=rng.choice([10, 60, 130]))
        await service.auto_skip_expired()
    elif entries:
        entry = rng.choice(entries)
        if action == "confirm":
            await service.confirm_join(entry.entry_id, entry.applicant_id)
        elif action == "complete":
            await service.complete_entry(entry.entry_id, REVIEWER_ID)
        else:
            await service.skip_entry(entry.entry_id, REVIEWER_ID)


@pytest.mark.parametrize("seed", range(20))
async def test_sequential_operations_keep_capacity_consistent(
    seed, store, clock, link_provider, email
):
    rng = random.Random(seed)
    service = LiveQueueService(make_context(store, clock, link_provider, email))
    await seed_session(store, clock, duration_minutes=600, max_queue_size=MAX_QUEUE_SIZE)

    for _ in range(60):
        await _random_step(service, rng, clock)
        await _assert_capacity_consistent(service)

    result = await service.end_session("ls_test", REVIEWER_ID)
    assert result.success
    await _assert_capacity_consistent(service)
    pending = [QueueEntryStatus.WAITING, QueueEntryStatus.YOUR_TURN]
    assert await store.list_entries("ls_test", pending) == []


@pytest.mark.parametrize("seed", range(10))
async def test_concurrent_operations_keep_capacity_consistent(
    seed, store, clock, link_provider, email
):
    rng = random.Random(seed)
    service = LiveQueueService(make_context(store, clock, link_provider, email))
    await seed_session(store, clock, duration_minutes=600, max_queue_size=MAX_QUEUE_SIZE)

    for _ in range(15):
        await asyncio.gather(*(_random_step(service, rng, clock) for _ in range(5)))
        await _assert_capacity_consistent(service)

    # End the session while joins and skips are still in flight
    await asyncio.gather(
        service.end_session("ls_test", REVIEWER_ID),
        *(service.join_queue("ls_test", a) for a in APPLICANTS[:3]),
        *(_random_step(service, rng, clock) for _ in range(3)),
    )
    await _assert_capacity_consistent(service)
