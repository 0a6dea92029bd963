from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator


class Permit:
    """Proof of one held gate slot. Must be released exactly once."""

    __slots__ = ("number", "_released")

    def __init__(self, number: int) -> None:
        self.number = number
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def __repr__(self) -> str:
        return f"Permit(number={self.number}, released={self._released})"


class ConcurrencyGate:
    """
    Process-wide admission control for capture jobs.

    At most ``capacity`` permits are held at any time. Callers beyond that
    wait in arrival order; a released slot is handed straight to the oldest
    waiter so newcomers can never overtake the queue.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._active = 0
        self._issued = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> Permit:
        if self._active < self._capacity and not self.waiting:
            self._active += 1
            return self._issue()

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before cancellation.
                self._hand_off()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise
        return self._issue()

    def release(self, permit: Permit) -> None:
        if permit.released:
            raise RuntimeError(f"{permit!r} was already released")
        permit._released = True
        self._hand_off()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[Permit]:
        permit = await self.acquire()
        try:
            yield permit
        finally:
            self.release(permit)

    def _issue(self) -> Permit:
        self._issued += 1
        return Permit(self._issued)

    def _hand_off(self) -> None:
        # The active count stays the same when a waiter inherits the slot.
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._active -= 1
