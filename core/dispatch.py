"""
In-process dispatch bus between fetching and parsing.

Fetched transactions are queued and delivered by a dedicated worker task,
so a slow parser never holds up the fetch limiter.
"""
import asyncio
import inspect
import logging
from typing import Callable, List, Optional

from core.models import TransactionRecord

logger = logging.getLogger(__name__)


class DispatchBus:
    """Single producer, many subscribers, publish order preserved."""

    def __init__(self):
        self._queue: Optional[asyncio.Queue] = None
        self._subscribers: List[Callable] = []
        self._worker: Optional[asyncio.Task] = None
        self.published = 0
        self.delivered = 0

    @property
    def queue(self) -> asyncio.Queue:
        # Created lazily so the bus can be built outside the event loop
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def subscribe(self, callback: Callable) -> None:
        """Register a sync or async callable receiving each record."""
        self._subscribers.append(callback)

    def publish(self, record: TransactionRecord) -> None:
        """Queue a record for delivery. Never blocks."""
        self.queue.put_nowait(record)
        self.published += 1

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="dispatch_bus")
            logger.info("Dispatch bus started")

    async def stop(self) -> None:
        """Deliver what is already queued, then stop the worker."""
        if self._worker is None:
            return
        await self.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Dispatch bus stopped")

    async def join(self) -> None:
        """Wait until every published record has been delivered."""
        await self.queue.join()

    async def _run(self) -> None:
        while True:
            record = await self.queue.get()
            try:
                await self._deliver(record)
            finally:
                self.queue.task_done()

    async def _deliver(self, record: TransactionRecord) -> None:
        for callback in self._subscribers:
            try:
                result = callback(record)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Subscriber {getattr(callback, '__name__', callback)} failed on {record.signature}: {e}", exc_info=True)
        self.delivered += 1
