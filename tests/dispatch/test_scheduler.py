import asyncio

import pytest

from helpdesk.dispatch.infrastructure import PeriodicJobs


async def test_manual_run_returns_result():
    jobs = PeriodicJobs()

    async def job():
        return {"tickets": 3}

    jobs.register("sweep", job, 60)
    outcome = await jobs.run("sweep")

    assert not outcome.skipped
    assert outcome.result == {"tickets": 3}


async def test_overlapping_run_is_skipped():
    jobs = PeriodicJobs()
    release = asyncio.Event()

    async def job():
        await release.wait()
        return "done"

    jobs.register("sweep", job, 60)
    first = asyncio.create_task(jobs.run("sweep"))
    await asyncio.sleep(0)

    assert jobs.is_running("sweep")
    assert (await jobs.run("sweep")).skipped

    release.set()
    assert (await first).result == "done"


async def test_job_failure_is_contained():
    jobs = PeriodicJobs()

    async def job():
        raise RuntimeError("boom")

    jobs.register("sweep", job, 60)
    outcome = await jobs.run("sweep")

    assert not outcome.skipped
    assert outcome.result is None
    assert not jobs.is_running("sweep")


async def test_unknown_job():
    with pytest.raises(KeyError):
        await PeriodicJobs().run("nope")


async def test_scheduler_lifecycle():
    jobs = PeriodicJobs()

    async def job():
        return None

    jobs.register("sweep", job, 3600)
    await jobs.start()
    assert jobs.scheduler_running
    await jobs.stop()
    assert not jobs.scheduler_running
