"""
Countdown barrier used to tell when every task of a batch has finished.
"""

import asyncio


class CompletionBarrier:
    """
    Counts outstanding units of work; ``wait()`` returns once it reaches zero.

    Each unit added with ``add()`` must be matched by exactly one ``done()``.
    """

    def __init__(self):
        self._pending = 0
        self.completed = 0
        self._event = asyncio.Event()
        self._event.set()

    @property
    def pending(self) -> int:
        return self._pending

    def add(self, count: int = 1):
        if count < 0:
            raise ValueError("count must be non-negative")
        self._pending += count
        if self._pending:
            self._event.clear()

    def done(self):
        """
        Mark one unit finished.

        Raises:
            ValueError: if called more times than units were added
        """
        if self._pending <= 0:
            raise ValueError("CompletionBarrier.done() called too many times")
        self._pending -= 1
        self.completed += 1
        if self._pending == 0:
            self._event.set()

    async def wait(self):
        await self._event.wait()
