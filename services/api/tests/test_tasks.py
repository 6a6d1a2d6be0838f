"""Tests for the side-effect dispatcher."""

import asyncio

import pytest

from umoja.services.tasks import SideEffectDispatcher


@pytest.mark.asyncio
async def test_runs_submitted_jobs():
    dispatcher = SideEffectDispatcher(workers=2, max_queue=10, job_timeout=1.0)
    await dispatcher.start()
    ran = []

    async def job():
        ran.append(1)

    assert dispatcher.submit("job", job, order_id=1)
    assert dispatcher.submit("job", job, order_id=2)
    await dispatcher.join()
    await dispatcher.stop()

    assert ran == [1, 1]
    assert dispatcher.stats.submitted == 2
    assert dispatcher.stats.succeeded == 2
    assert not dispatcher.running


@pytest.mark.asyncio
async def test_full_queue_drops_without_raising():
    dispatcher = SideEffectDispatcher(workers=1, max_queue=1)

    async def job():
        return None

    # Not started, so nothing drains the queue
    assert dispatcher.submit("first", job) is True
    assert dispatcher.submit("second", job) is False
    assert dispatcher.stats.dropped == 1


@pytest.mark.asyncio
async def test_failures_and_timeouts_do_not_stop_workers():
    dispatcher = SideEffectDispatcher(workers=1, max_queue=10, job_timeout=0.05)
    await dispatcher.start()
    ran = []

    async def boom():
        raise ValueError("boom")

    async def slow():
        await asyncio.sleep(1)

    async def ok():
        ran.append("ok")

    dispatcher.submit("boom", boom)
    dispatcher.submit("slow", slow)
    dispatcher.submit("ok", ok)
    await dispatcher.join()
    await dispatcher.stop()

    assert ran == ["ok"]
    assert dispatcher.stats.failed == 1
    assert dispatcher.stats.timed_out == 1
    assert dispatcher.stats.succeeded == 1
