"""
Bounded admission gate for in-flight fetch and handoff work.
"""

import asyncio
import logging


class AdmissionGate:
    """
    Counting semaphore capping the number of URLs being fetched at once.

    Usable as ``async with gate:`` so the slot is released on every exit
    path. Keeps in-flight and peak counters for instrumentation.
    """

    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.capacity = capacity
        self.logger = logging.getLogger(__name__)
        self._semaphore = asyncio.BoundedSemaphore(capacity)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def acquire(self):
        """Wait for a free slot and take it."""
        await self._semaphore.acquire()
        self.in_flight += 1
        if self.in_flight > self.peak_in_flight:
            self.peak_in_flight = self.in_flight

    def release(self):
        """
        Return a slot.

        Raises:
            ValueError: if more slots are released than were acquired
        """
        self._semaphore.release()
        self.in_flight -= 1

    def locked(self) -> bool:
        """True when no slot is free."""
        return self._semaphore.locked()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
