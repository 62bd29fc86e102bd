"""Tests for execution unit supervision."""

import asyncio
import inspect

import pytest

from chainbot.scheduler import ExecutionScheduler


@pytest.mark.asyncio
async def test_unit_removed_after_success():
    """A finished unit leaves the in-flight set."""
    scheduler = ExecutionScheduler()
    done = []

    async def work():
        done.append(True)

    task = scheduler.spawn(work())
    assert scheduler.in_flight == 1
    await task
    assert done == [True]
    assert scheduler.in_flight == 0


@pytest.mark.asyncio
async def test_unit_failure_logged_and_swallowed():
    """A failing unit completes without an exception."""
    scheduler = ExecutionScheduler()

    async def work():
        raise ValueError("bad")

    task = scheduler.spawn(work())
    await task
    assert task.exception() is None
    assert scheduler.in_flight == 0


@pytest.mark.asyncio
async def test_units_named_sequentially():
    """Units are named ct-N unless a name is given."""
    scheduler = ExecutionScheduler()

    async def work():
        return None

    first = scheduler.spawn(work())
    second = scheduler.spawn(work())
    named = scheduler.spawn(work(), name="custom")
    await asyncio.gather(first, second, named)
    assert (first.get_name(), second.get_name(), named.get_name()) == ("ct-1", "ct-2", "custom")


@pytest.mark.asyncio
async def test_drain_waits_for_quick_units():
    """drain() lets fast units finish."""
    scheduler = ExecutionScheduler()
    finished = []

    async def work():
        await asyncio.sleep(0.01)
        finished.append(True)

    scheduler.spawn(work())
    scheduler.spawn(work())
    cancelled = await scheduler.drain(timeout=2)
    assert cancelled == 0
    assert finished == [True, True]
    assert scheduler.in_flight == 0


@pytest.mark.asyncio
async def test_drain_cancels_after_timeout():
    """drain() cancels units still running after the timeout."""
    scheduler = ExecutionScheduler()

    async def work():
        await asyncio.Event().wait()

    task = scheduler.spawn(work())
    assert await scheduler.drain(timeout=0.05) == 1
    assert task.cancelled()
    assert scheduler.in_flight == 0


@pytest.mark.asyncio
async def test_drain_with_nothing_in_flight():
    """drain() with no units returns immediately."""
    assert await ExecutionScheduler().drain(timeout=0) == 0


@pytest.mark.asyncio
async def test_unit_cancelled_before_start_closes_work():
    """Cancelling a unit before it runs closes its coroutine instead of leaking it."""
    scheduler = ExecutionScheduler()

    async def work():
        return None

    coro = work()
    task = scheduler.spawn(coro)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    assert task.cancelled()
    assert inspect.getcoroutinestate(coro) == inspect.CORO_CLOSED
    assert scheduler.in_flight == 0
