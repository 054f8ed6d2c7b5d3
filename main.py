"""
SwapTracker - Main Entry Point
Real-time tracking of human-sized Jupiter swap volume for a Solana token.
"""
import asyncio
import logging
import sys
import time
from typing import List, Optional

from config import Settings, get_settings
from core.pipeline import SwapPipeline
from core.solana_logs_ws import SolanaLogsWebSocket
from core.solana_rpc import SolanaRpcClient
from utils.formatting import is_valid_address
from utils.logging_config import setup_logging

USAGE = "Usage: python run.py <token_mint_address>"

logger = logging.getLogger(__name__)


class SwapTracker:
    """Main application orchestrating feed, pipeline and status reporting."""

    def __init__(self, mint_address: str, settings: Optional[Settings] = None):
        """Initialize application components."""
        self.mint_address = mint_address
        self.settings = settings or get_settings()

        self.rpc: Optional[SolanaRpcClient] = None
        self.feed: Optional[SolanaLogsWebSocket] = None
        self.pipeline: Optional[SwapPipeline] = None

        # Start time for uptime tracking
        self.start_time = time.time()
        self._status_task: Optional[asyncio.Task] = None

    async def setup(self):
        """Setup all components."""
        logger.info("Setting up SwapTracker...")

        self.rpc = SolanaRpcClient(
            rpc_url=self.settings.solana_rpc_url,
            commitment=self.settings.commitment,
            request_timeout=self.settings.rpc_request_timeout
        )
        self.pipeline = SwapPipeline(self.settings, self.rpc)

        self.feed = SolanaLogsWebSocket(
            ws_url=self.settings.solana_ws_url,
            commitment=self.settings.commitment,
            reconnect_delay=self.settings.ws_reconnect_delay,
            max_reconnect_delay=self.settings.ws_max_reconnect_delay,
            ping_interval=self.settings.ws_ping_interval,
            ping_timeout=self.settings.ws_ping_timeout
        )
        self.feed.on_logs = self.pipeline.handle_event
        await self.feed.subscribe(self.mint_address)

        logger.info("Setup complete!")

    async def report_status(self):
        """Log pipeline counters and the running total periodically."""
        while True:
            await asyncio.sleep(self.settings.status_interval)
            uptime = int(time.time() - self.start_time)
            logger.info(f"Status (uptime {uptime}s): {self.pipeline.status_line()}")

    async def start(self):
        """Start the pipeline and the log feed."""
        logger.info(f"Starting to monitor transactions for mint address: {self.mint_address}")

        self.pipeline.start()
        self._status_task = asyncio.create_task(self.report_status(), name="status_reporter")

        try:
            await self.feed.start()
        finally:
            await self.shutdown()

    async def shutdown(self):
        """Graceful shutdown."""
        logger.info("Shutting down SwapTracker...")

        if self._status_task:
            self._status_task.cancel()
        await self.feed.stop()
        await self.pipeline.stop()
        await self.rpc.close()

        logger.info(f"Shutdown complete. {self.pipeline.status_line()}")


def parse_mint_address(argv: List[str]) -> str:
    """Return the mint address argument or exit with the usage message."""
    if len(argv) < 2 or not is_valid_address(argv[1]):
        print(USAGE, file=sys.stderr)
        sys.exit(1)
    return argv[1]


async def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    mint_address = parse_mint_address(sys.argv if argv is None else argv)
    settings = get_settings()
    setup_logging(log_level=settings.log_level)

    app = SwapTracker(mint_address, settings)

    try:
        await app.setup()
        await app.start()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("SwapTracker stopped by user")
