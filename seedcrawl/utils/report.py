"""
Report line channel between concurrent crawl tasks and the display.
"""

import asyncio
import logging
from typing import Callable, List, Optional

_CLOSE = object()


def _print_line(line: str):
    print(line, flush=True)


class ReportChannel:
    """
    Many producers, one consumer.

    Tasks call ``send()``; a single consumer task owns the sink and the
    ``lines`` history, so lines are never interleaved or lost. Order is
    arrival order.
    """

    def __init__(self, sink: Optional[Callable[[str], None]] = None):
        self.sink = sink or _print_line
        self.lines: List[str] = []
        self.logger = logging.getLogger(__name__)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None

    def start(self):
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume())

    def send(self, line: str):
        self._queue.put_nowait(line)

    async def close(self):
        """Flush every queued line and stop the consumer."""
        if self._consumer is None:
            return
        self._queue.put_nowait(_CLOSE)
        await self._consumer
        self._consumer = None

    async def _consume(self):
        while True:
            line = await self._queue.get()
            if line is _CLOSE:
                break
            self.lines.append(line)
            try:
                self.sink(line)
            except Exception:
                self.logger.exception("Report sink failed")

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
