"""
Swap volume pipeline.

log event -> candidate filter -> dedup -> fetch (rate limited)
    -> dispatch bus -> amount extractor -> validator -> aggregator
"""
import asyncio
import logging
from typing import Optional

from config import Settings
from core.aggregator import VolumeAggregator
from core.dedup import SignatureStore
from core.dispatch import DispatchBus
from core.extractor import AmountExtractor
from core.fetcher import FetchOrchestrator, TransactionFetcher
from core.models import LogEvent, ParsedAmount, PipelineStats, TransactionRecord
from core.rate_limiter import (
    RateLimiter, build_dispatch_limiter, build_event_limiter, build_fetch_limiter
)
from core.swap_filter import SwapCandidateFilter
from core.validator import AmountValidator
from utils.formatting import format_status, format_swap, format_total
from utils.logging_config import log_swap, log_total

logger = logging.getLogger(__name__)
events_logger = logging.getLogger("swaptracker.events")


class SwapPipeline:
    """Wires the filter, fetch orchestration and amount processing together."""

    def __init__(
        self,
        settings: Settings,
        client: TransactionFetcher,
        fetch_limiter: Optional[RateLimiter] = None,
        dispatch_limiter: Optional[RateLimiter] = None,
        event_limiter: Optional[RateLimiter] = None
    ):
        self.settings = settings
        self.stats = PipelineStats()

        self.filter = SwapCandidateFilter(settings.target_program_id, settings.filter_mode)
        self.dedup = SignatureStore(settings.dedup_max_size)
        self.bus = DispatchBus()
        self.extractor = AmountExtractor(
            program_id=settings.target_program_id,
            strategy=settings.amount_strategy,
            scaling_factor=settings.lamports_per_sol,
            wrapped_mint=settings.wrapped_sol_mint,
        )
        self.validator = AmountValidator(
            max_amount=settings.max_amount_for(settings.amount_strategy),
            epsilon=settings.round_epsilon,
        )
        self.aggregator = VolumeAggregator()

        self.event_limiter = event_limiter or build_event_limiter(
            settings.event_max_concurrent, settings.event_min_time_ms
        )
        self.orchestrator = FetchOrchestrator(
            client=client,
            dedup=self.dedup,
            bus=self.bus,
            fetch_limiter=fetch_limiter or build_fetch_limiter(
                settings.fetch_max_concurrent, settings.fetch_min_time_ms
            ),
            dispatch_limiter=dispatch_limiter or build_dispatch_limiter(
                settings.dispatch_reservoir_bytes, settings.dispatch_refresh_interval_ms
            ),
            nominal_cost=settings.dispatch_nominal_cost,
            stats=self.stats,
        )

        self.bus.subscribe(self.process_record)

    def start(self):
        """Start the dispatch worker."""
        self.bus.start()
        logger.info(
            f"Pipeline started: program={self.settings.target_program_id} "
            f"filter={self.settings.filter_mode} strategy={self.settings.amount_strategy.value} "
            f"max_amount={self.validator.max_amount}"
        )

    async def stop(self):
        """Finish in-flight fetches and deliver queued records."""
        await self.drain()
        await self.bus.stop()
        logger.info(f"Pipeline stopped. {self.status_line()}")

    async def drain(self):
        """Wait until everything received so far has been fully processed."""
        if self.event_limiter:
            await self.event_limiter.join()
        await self.orchestrator.drain()
        await self.bus.join()

    def handle_event(self, event: LogEvent) -> Optional[asyncio.Task]:
        """
        Feed handler. Returns immediately; admission waits happen in tasks.

        Returns:
            The task created for the event, if any
        """
        self.stats.events_received += 1

        if self.event_limiter:
            return self.event_limiter.submit(self._handle_event_async, event)
        return self._handle_event(event)

    async def _handle_event_async(self, event: LogEvent) -> Optional[asyncio.Task]:
        return self._handle_event(event)

    def _handle_event(self, event: LogEvent) -> Optional[asyncio.Task]:
        if event.err is not None:
            self.stats.events_errored += 1
            events_logger.debug(f"Skipping event with error: {event.err}")
            return None

        candidate = self.filter.classify(event)
        if candidate is None:
            events_logger.debug(f"Not a swap candidate: {event.signature}")
            return None

        self.stats.candidates += 1
        events_logger.info(f"Swap candidate detected: {event.signature}")
        return self.orchestrator.on_candidate(candidate)

    def process_record(self, record: TransactionRecord) -> Optional[ParsedAmount]:
        """Dispatch bus subscriber: extract, validate, aggregate."""
        parsed = self.extractor.extract(record)
        if parsed is None:
            self.stats.not_applicable += 1
            return None

        log_swap(f"SOL amount detected: {format_swap(parsed)}")

        reason = self.validator.rejection_reason(parsed.raw_amount)
        if reason is not None:
            self.stats.amounts_rejected += 1
            log_swap(f"Invalid SOL amount: {parsed.raw_amount} ({reason}) {parsed.signature}")
            return None

        self.stats.amounts_accepted += 1
        log_swap(f"Valid SOL amount: {parsed.raw_amount} {parsed.signature}")
        self.aggregator.record(parsed.raw_amount)
        log_total(format_total(self.aggregator.snapshot()))
        return parsed

    def status_line(self) -> str:
        return format_status(self.stats, self.aggregator.snapshot())
