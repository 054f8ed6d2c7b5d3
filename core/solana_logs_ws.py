"""
Solana logsSubscribe WebSocket client.
Streams log notifications for transactions mentioning an address.
"""
import asyncio
import json
import logging
import itertools
from typing import Callable, Dict, Optional

import websockets
from pydantic import ValidationError

from core.models import LogEvent

logger = logging.getLogger(__name__)


class SolanaLogsWebSocket:
    """
    Auto-reconnecting WebSocket client for Solana log notifications.
    Delivery is at least once: a resubscription after reconnect can replay
    recent signatures.
    """

    def __init__(
        self,
        ws_url: str,
        commitment: str = "confirmed",
        reconnect_delay: int = 1,
        max_reconnect_delay: int = 60,
        ping_interval: int = 20,
        ping_timeout: int = 10
    ):
        """Initialize Solana logs WebSocket client."""
        self.ws_url = ws_url
        self.commitment = commitment
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

        self.ws = None
        self.running = False
        self.mentions: set = set()

        # Callback handler, called with each LogEvent
        self.on_logs: Optional[Callable[[LogEvent], object]] = None

        self._current_delay = reconnect_delay
        self._ids = itertools.count(1)
        # request id -> address, then subscription id -> address once confirmed
        self._pending: Dict[int, str] = {}
        self._subscriptions: Dict[int, str] = {}

    async def start(self):
        """Start the WebSocket connection with auto-reconnect."""
        self.running = True

        logger.info("Starting Solana logs WebSocket")

        while self.running:
            try:
                await self._connect_and_listen()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"WebSocket error: {e}")
            if self.running:
                logger.info(f"Reconnecting in {self._current_delay} seconds...")
                await asyncio.sleep(self._current_delay)
                self._current_delay = min(self._current_delay * 2, self.max_reconnect_delay)

    async def stop(self):
        """Stop the WebSocket connection."""
        self.running = False
        if self.ws:
            await self.ws.close()
        logger.info("Solana logs WebSocket stopped")

    async def _connect_and_listen(self):
        """Connect to WebSocket and listen for messages."""
        logger.info(f"Connecting to Solana WebSocket: {self.ws_url}")

        async with websockets.connect(
            self.ws_url,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
            max_size=None
        ) as ws:
            self.ws = ws
            logger.info("Connected to Solana WebSocket")
            self._current_delay = self.reconnect_delay

            await self._resubscribe()

            async for message in ws:
                try:
                    await self._handle_message(message)
                except Exception as e:
                    logger.error(f"Error handling message: {e}")
                    logger.debug(f"Message content: {message}")

        self.ws = None

    async def _resubscribe(self):
        """Resubscribe to all mentioned addresses after reconnection."""
        self._pending.clear()
        self._subscriptions.clear()
        for address in list(self.mentions):
            await self._subscribe_logs(address)

    async def subscribe(self, address: str):
        """Subscribe to logs of transactions mentioning an address."""
        if address not in self.mentions:
            self.mentions.add(address)
            if self.ws:
                await self._subscribe_logs(address)

    async def _subscribe_logs(self, address: str):
        """Send logsSubscribe for one address."""
        request_id = next(self._ids)
        subscription = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "logsSubscribe",
            "params": [
                {"mentions": [address]},
                {"commitment": self.commitment}
            ]
        }
        self._pending[request_id] = address
        logger.info(f"Sending subscription: {json.dumps(subscription)}")
        await self.ws.send(json.dumps(subscription))

    async def _handle_message(self, message: str):
        """Parse and route incoming WebSocket messages."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            logger.warning(f"Failed to decode message: {message[:200]}")
            return

        # Subscription confirmation: {"id": 1, "result": <subscription id>}
        if "id" in data and "method" not in data:
            address = self._pending.pop(data["id"], None)
            if "error" in data:
                logger.error(f"Subscription for {address} rejected: {data['error']}")
            elif address is not None:
                self._subscriptions[data.get("result")] = address
                logger.info(f"Subscription confirmed for {address}: {data.get('result')}")
            return

        if data.get("method") != "logsNotification":
            logger.debug(f"Unknown message format: {list(data.keys())}")
            return

        result = data.get("params", {}).get("result", {})
        value = result.get("value") or {}
        slot = (result.get("context") or {}).get("slot")

        try:
            event = LogEvent.from_notification(value, slot)
        except ValidationError as e:
            logger.error(f"Error parsing log notification: {e}")
            logger.debug(f"Notification content: {value}")
            return

        if self.on_logs:
            self.on_logs(event)
        else:
            logger.warning("No on_logs callback registered")
