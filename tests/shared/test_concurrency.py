import asyncio

import pytest

from helpdesk.shared.concurrency import SerializerClosedError, SingleFlight, TicketSerializer


async def test_same_ticket_runs_one_at_a_time():
    serializer = TicketSerializer(max_concurrency=4)
    events = []

    async def work(label):
        events.append(("start", label))
        await asyncio.sleep(0.01)
        events.append(("end", label))

    await asyncio.gather(serializer.run(1, work, "a"), serializer.run(1, work, "b"))

    assert events == [("start", "a"), ("end", "a"), ("start", "b"), ("end", "b")]
    assert serializer.tracked_tickets == 0


async def test_distinct_tickets_run_in_parallel():
    serializer = TicketSerializer(max_concurrency=4)
    both_started = asyncio.Event()
    started = []

    async def work(ticket_id):
        started.append(ticket_id)
        if len(started) == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1)
        return ticket_id

    results = await asyncio.gather(serializer.run(1, work, 1), serializer.run(2, work, 2))

    assert results == [1, 2]


async def test_concurrency_is_bounded():
    serializer = TicketSerializer(max_concurrency=2)
    active = 0
    peak = 0

    async def work():
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    await asyncio.gather(*(serializer.run(ticket_id, work) for ticket_id in range(6)))

    assert peak == 2


async def test_exception_releases_the_lock():
    serializer = TicketSerializer()

    async def boom():
        raise ValueError("boom")

    async def ok():
        return "ok"

    with pytest.raises(ValueError):
        await serializer.run(1, boom)
    assert await serializer.run(1, ok) == "ok"
    assert serializer.inflight == 0


async def test_drain_waits_then_rejects_new_work():
    serializer = TicketSerializer()
    release = asyncio.Event()

    async def slow():
        await release.wait()

    task = asyncio.create_task(serializer.run(1, slow))
    await asyncio.sleep(0)
    assert serializer.inflight == 1

    assert not await serializer.drain(timeout=0.01)
    release.set()
    assert await serializer.drain(timeout=1)
    await task

    with pytest.raises(SerializerClosedError):
        await serializer.run(2, slow)


async def test_single_flight_skips_overlapping_run():
    guard = SingleFlight("sweep")
    release = asyncio.Event()

    async def job():
        await release.wait()
        return "done"

    first = asyncio.create_task(guard.run(job))
    await asyncio.sleep(0)
    assert guard.is_running

    second = await guard.run(job)
    release.set()

    assert second.skipped
    outcome = await first
    assert not outcome.skipped
    assert outcome.result == "done"
    assert not guard.is_running
