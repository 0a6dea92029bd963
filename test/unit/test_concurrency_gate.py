from __future__ import annotations

import asyncio

import pytest

from domain.services import ConcurrencyGate


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ConcurrencyGate(0)


def test_burst_never_exceeds_capacity() -> None:
    async def _run() -> tuple[int, int]:
        gate = ConcurrencyGate(3)
        active = 0
        peak = 0

        async def worker() -> None:
            nonlocal active, peak
            async with gate.slot():
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.001)
                active -= 1

        await asyncio.gather(*(worker() for _ in range(25)))
        return peak, gate.active

    peak, remaining = asyncio.run(_run())
    assert peak == 3
    assert remaining == 0


def test_release_admits_exactly_one_waiter() -> None:
    async def _run() -> tuple[int, int, int]:
        gate = ConcurrencyGate(1)
        held = await gate.acquire()
        blocked = [asyncio.create_task(gate.acquire()) for _ in range(3)]
        await asyncio.sleep(0)
        waiting_before = gate.waiting

        gate.release(held)
        for _ in range(3):
            await asyncio.sleep(0)
        admitted = [task for task in blocked if task.done()]
        active = gate.active

        for task in blocked:
            if task not in admitted:
                task.cancel()
        await asyncio.gather(*blocked, return_exceptions=True)
        return waiting_before, len(admitted), active

    waiting_before, admitted, active = asyncio.run(_run())
    assert waiting_before == 3
    assert admitted == 1
    assert active == 1


def test_waiters_are_admitted_in_arrival_order() -> None:
    async def _run() -> list[int]:
        gate = ConcurrencyGate(1)
        order: list[int] = []

        async def worker(n: int) -> None:
            async with gate.slot():
                order.append(n)
                await asyncio.sleep(0)

        first = await gate.acquire()
        tasks = []
        for n in range(6):
            tasks.append(asyncio.create_task(worker(n)))
            await asyncio.sleep(0)
        gate.release(first)
        await asyncio.gather(*tasks)
        return order

    assert asyncio.run(_run()) == [0, 1, 2, 3, 4, 5]


def test_newcomer_does_not_overtake_queue() -> None:
    async def _run() -> list[str]:
        gate = ConcurrencyGate(1)
        order: list[str] = []
        held = await gate.acquire()

        async def worker(name: str) -> None:
            async with gate.slot():
                order.append(name)

        queued = asyncio.create_task(worker("queued"))
        await asyncio.sleep(0)
        gate.release(held)
        # Slot now belongs to "queued" even though it has not resumed yet.
        late = asyncio.create_task(worker("late"))
        await asyncio.gather(queued, late)
        return order

    assert asyncio.run(_run()) == ["queued", "late"]


def test_double_release_is_rejected() -> None:
    async def _run() -> None:
        gate = ConcurrencyGate(1)
        permit = await gate.acquire()
        gate.release(permit)
        with pytest.raises(RuntimeError):
            gate.release(permit)
        assert gate.active == 0

    asyncio.run(_run())


def test_slot_released_when_body_raises() -> None:
    async def _run() -> int:
        gate = ConcurrencyGate(1)
        with pytest.raises(ValueError):
            async with gate.slot():
                raise ValueError("boom")
        return gate.active

    assert asyncio.run(_run()) == 0


def test_cancelled_waiter_leaves_queue() -> None:
    async def _run() -> tuple[int, int]:
        gate = ConcurrencyGate(1)
        held = await gate.acquire()
        waiter = asyncio.create_task(gate.acquire())
        await asyncio.sleep(0)
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)
        waiting = gate.waiting
        gate.release(held)
        return waiting, gate.active

    assert asyncio.run(_run()) == (0, 0)


def test_waiter_cancelled_after_grant_passes_slot_on() -> None:
    async def _run() -> tuple[bool, int]:
        gate = ConcurrencyGate(1)
        held = await gate.acquire()
        first = asyncio.create_task(gate.acquire())
        await asyncio.sleep(0)
        second = asyncio.create_task(gate.acquire())
        await asyncio.sleep(0)
        gate.release(held)
        first.cancel()
        await asyncio.gather(first, return_exceptions=True)
        permit = await asyncio.wait_for(second, timeout=1)
        gate.release(permit)
        return first.cancelled(), gate.active

    cancelled, active = asyncio.run(_run())
    assert cancelled
    assert active == 0
