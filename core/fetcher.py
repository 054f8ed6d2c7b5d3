"""
Fetch orchestration for swap candidates.

Each new signature is fetched once under the fetch limiter; the resulting
record is handed to the dispatch bus under the dispatch limiter, charged
by its response size.
"""
import asyncio
import logging
from typing import Optional, Protocol

import aiohttp

from core.dedup import SignatureStore
from core.dispatch import DispatchBus
from core.errors import FetchError
from core.models import CandidateSignal, PipelineStats, TransactionRecord
from core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
fetch_logger = logging.getLogger("swaptracker.fetch")


class TransactionFetcher(Protocol):
    async def get_transaction(
        self, signature: str, max_supported_transaction_version: int = 0
    ) -> TransactionRecord:
        ...


class FetchOrchestrator:
    """
    Dedup gate, fetch budget and dispatch budget for candidates.

    Fetch failures are logged once and dropped; nothing is retried.
    """

    def __init__(
        self,
        client: TransactionFetcher,
        dedup: SignatureStore,
        bus: DispatchBus,
        fetch_limiter: RateLimiter,
        dispatch_limiter: RateLimiter,
        nominal_cost: Optional[int] = None,
        stats: Optional[PipelineStats] = None
    ):
        self.client = client
        self.dedup = dedup
        self.bus = bus
        self.fetch_limiter = fetch_limiter
        self.dispatch_limiter = dispatch_limiter
        self.nominal_cost = nominal_cost
        self.stats = stats if stats is not None else PipelineStats()

    def on_candidate(self, candidate: CandidateSignal) -> Optional[asyncio.Task]:
        """
        Schedule the fetch for a candidate seen for the first time.

        Returns:
            The fetch task, or None if the signature was already seen
        """
        if not self.dedup.mark_if_new(candidate.signature):
            self.stats.duplicates += 1
            logger.debug(f"Duplicate signature ignored: {candidate.signature}")
            return None

        return self.fetch_limiter.submit(self._fetch, candidate.signature)

    async def _fetch(self, signature: str) -> Optional[TransactionRecord]:
        try:
            record = await self.client.get_transaction(signature, max_supported_transaction_version=0)
        except (FetchError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.stats.fetches_failed += 1
            fetch_logger.error(f"Error fetching transaction {signature}: {e}")
            return None

        self.stats.fetches_ok += 1
        fetch_logger.info(f"Transaction fetched: {signature} ({record.raw_size} bytes, slot {record.slot})")

        cost = self.nominal_cost if self.nominal_cost is not None else record.raw_size
        self.dispatch_limiter.submit(self._dispatch, record, cost=cost)
        return record

    async def _dispatch(self, record: TransactionRecord) -> None:
        self.bus.publish(record)

    async def drain(self) -> None:
        """Wait for in-flight fetches and the dispatches they schedule."""
        await self.fetch_limiter.join()
        await self.dispatch_limiter.join()
