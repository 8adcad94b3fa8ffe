"""Admission gate and completion barrier."""

import asyncio

import pytest

from seedcrawl.crawler.admission import AdmissionGate
from seedcrawl.crawler.completion import CompletionBarrier


async def test_gate_never_exceeds_capacity():
    gate = AdmissionGate(capacity=3)
    active = 0
    observed = []

    async def work():
        nonlocal active
        async with gate:
            active += 1
            observed.append(active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(work() for _ in range(10)))

    assert max(observed) == 3
    assert gate.peak_in_flight == 3
    assert gate.in_flight == 0


async def test_gate_releases_on_exception():
    gate = AdmissionGate(capacity=1)

    with pytest.raises(RuntimeError):
        async with gate:
            raise RuntimeError("boom")

    assert gate.in_flight == 0
    assert not gate.locked()


async def test_gate_rejects_extra_release():
    gate = AdmissionGate(capacity=2)
    with pytest.raises(ValueError):
        gate.release()


def test_gate_capacity_must_be_positive():
    with pytest.raises(ValueError):
        AdmissionGate(capacity=0)


async def test_barrier_waits_for_every_unit():
    barrier = CompletionBarrier()
    barrier.add(2)

    waiter = asyncio.create_task(barrier.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    barrier.done()
    await asyncio.sleep(0)
    assert not waiter.done()

    barrier.done()
    await asyncio.wait_for(waiter, timeout=1)
    assert barrier.pending == 0
    assert barrier.completed == 2


async def test_empty_barrier_does_not_block():
    await asyncio.wait_for(CompletionBarrier().wait(), timeout=1)


def test_barrier_rejects_extra_done():
    barrier = CompletionBarrier()
    barrier.add()
    barrier.done()
    with pytest.raises(ValueError):
        barrier.done()
