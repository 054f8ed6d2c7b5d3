"""
Composable admission gates and the rate limiter that chains them.

Every gate exposes the same capability, ``admit(cost)``, an async context
manager holding a permit for the duration of the block:

- ConcurrencyGate: at most N permits at once, and a minimum spacing
  between successive admissions.
- ReservoirGate: a cost budget (e.g. bytes) refilled to a ceiling on a
  fixed interval.

A RateLimiter passes each operation through all of its gates, in order,
before running it. ``submit`` enqueues and returns immediately so that
callers (websocket handlers) never wait on admission.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from aiolimiter import AsyncLimiter

logger = logging.getLogger(__name__)


class Gate(ABC):
    """Admission gate. Waiters are admitted in FIFO order."""

    @abstractmethod
    async def acquire(self, cost: float = 1) -> None:
        """Wait until the gate admits an operation of the given cost."""

    @abstractmethod
    def release(self, cost: float = 1) -> None:
        """Return whatever acquire() took that is returnable."""

    @asynccontextmanager
    async def admit(self, cost: float = 1):
        """Scoped permit: acquired on entry, released on exit."""
        await self.acquire(cost)
        try:
            yield self
        finally:
            self.release(cost)


class ConcurrencyGate(Gate):
    """
    Bounds operations in flight and spaces their starts.

    Args:
        max_concurrent: Maximum permits held at once (None = unbounded)
        min_time_ms: Minimum milliseconds between two admissions (0 = none)
    """

    def __init__(self, max_concurrent: Optional[int] = None, min_time_ms: int = 0):
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError(f"max_concurrent must be positive, got {max_concurrent}")
        if min_time_ms < 0:
            raise ValueError(f"min_time_ms must not be negative, got {min_time_ms}")

        self.max_concurrent = max_concurrent
        self.min_time_ms = min_time_ms
        self.in_flight = 0

        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        # One start per min_time window
        self._spacing = AsyncLimiter(1, min_time_ms / 1000) if min_time_ms > 0 else None

    async def acquire(self, cost: float = 1) -> None:
        if self._semaphore:
            await self._semaphore.acquire()
        try:
            if self._spacing:
                await self._spacing.acquire()
        except BaseException:
            if self._semaphore:
                self._semaphore.release()
            raise
        self.in_flight += 1

    def release(self, cost: float = 1) -> None:
        self.in_flight -= 1
        if self._semaphore:
            self._semaphore.release()


class ReservoirGate(Gate):
    """
    Cost budget refilled to a ceiling every refresh interval.

    The refill grid starts at the first admission. A cost larger than the
    ceiling is admitted only when the reservoir is full and empties it.

    Args:
        reservoir: Initial budget
        refresh_interval_ms: Milliseconds between refills
        refresh_amount: Budget after each refill (defaults to reservoir)
    """

    def __init__(self, reservoir: float, refresh_interval_ms: int, refresh_amount: Optional[float] = None):
        if reservoir < 0:
            raise ValueError(f"reservoir must not be negative, got {reservoir}")
        if refresh_interval_ms <= 0:
            raise ValueError(f"refresh_interval_ms must be positive, got {refresh_interval_ms}")

        self.ceiling = refresh_amount if refresh_amount is not None else reservoir
        self.reservoir = reservoir
        self.refresh_interval = refresh_interval_ms / 1000

        self._last_refresh: Optional[float] = None
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        if self._last_refresh is None:
            self._last_refresh = now
            return

        elapsed = now - self._last_refresh
        if elapsed >= self.refresh_interval:
            periods = int(elapsed // self.refresh_interval)
            self._last_refresh += periods * self.refresh_interval
            self.reservoir = self.ceiling
            logger.debug(f"Reservoir refilled to {self.ceiling}")

    def _fits(self, cost: float) -> bool:
        if cost <= self.reservoir:
            return True
        return cost > self.ceiling and self.reservoir >= self.ceiling

    def seconds_until_refill(self) -> float:
        if self._last_refresh is None:
            return 0.0
        return max(0.0, self._last_refresh + self.refresh_interval - time.monotonic())

    async def acquire(self, cost: float = 1) -> None:
        # Waiters queue on the lock, so only the head of the line sleeps
        async with self._lock:
            while True:
                self._refill()
                if self._fits(cost):
                    self.reservoir = max(0, self.reservoir - cost)
                    return
                wait = self.seconds_until_refill()
                logger.debug(f"Reservoir exhausted ({self.reservoir} < {cost}), waiting {wait:.2f}s")
                await asyncio.sleep(max(wait, 0.001))

    def release(self, cost: float = 1) -> None:
        # Spent budget only comes back with the next refill
        pass


class RateLimiter:
    """Runs operations once every gate has admitted them."""

    def __init__(self, name: str, *gates: Gate):
        self.name = name
        self.gates = gates

        self._queued = 0
        self._running = 0
        self._done = 0
        self._failed = 0
        self._tasks: Set[asyncio.Task] = set()

    async def schedule(self, operation: Callable[..., Awaitable[Any]], *args, cost: float = 1, **kwargs) -> Any:
        """Wait for admission, run the operation and return its result."""
        async with AsyncExitStack() as permits:
            self._queued += 1
            try:
                for gate in self.gates:
                    await permits.enter_async_context(gate.admit(cost))
            finally:
                self._queued -= 1

            self._running += 1
            try:
                result = await operation(*args, **kwargs)
            except Exception:
                self._failed += 1
                raise
            finally:
                self._running -= 1

            self._done += 1
            return result

    def submit(self, operation: Callable[..., Awaitable[Any]], *args, cost: float = 1, **kwargs) -> asyncio.Task:
        """Enqueue an operation and return its task without waiting for admission."""
        task = asyncio.create_task(self.schedule(operation, *args, cost=cost, **kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[{self.name}] Scheduled operation failed: {exc!r}")

    async def join(self) -> None:
        """Wait for every submitted operation, including ones submitted meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def counts(self) -> Dict[str, int]:
        return {
            "queued": self._queued,
            "running": self._running,
            "done": self._done,
            "failed": self._failed,
        }

    def __repr__(self) -> str:
        return f"RateLimiter({self.name!r}, gates={len(self.gates)})"


def build_fetch_limiter(max_concurrent: int, min_time_ms: int) -> RateLimiter:
    """Limiter for getTransaction calls."""
    return RateLimiter("fetch", ConcurrencyGate(max_concurrent, min_time_ms))


def build_dispatch_limiter(reservoir_bytes: int, refresh_interval_ms: int) -> RateLimiter:
    """Limiter for the bytes handed to the dispatch bus."""
    return RateLimiter("dispatch", ReservoirGate(reservoir_bytes, refresh_interval_ms))


def build_event_limiter(max_concurrent: Optional[int], min_time_ms: int = 0) -> Optional[RateLimiter]:
    """Optional limiter for inbound event handling."""
    if not max_concurrent and not min_time_ms:
        return None
    return RateLimiter("events", ConcurrencyGate(max_concurrent or None, min_time_ms))
