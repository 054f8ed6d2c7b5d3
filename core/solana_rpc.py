"""
Solana JSON-RPC client.
Fetches full transactions for signatures picked up from the log feed.
"""
import asyncio
import itertools
import json
import logging
from typing import Optional

import aiohttp
from pydantic import ValidationError

from core.errors import (
    MalformedTransactionError, RpcResponseError, RpcTimeoutError,
    TransactionNotFoundError
)
from core.models import TransactionRecord

logger = logging.getLogger(__name__)


class SolanaRpcClient:
    """
    Minimal async client for the getTransaction call.

    Failures are raised as FetchError subclasses; there is no retry here.
    """

    def __init__(
        self,
        rpc_url: str = "https://api.mainnet-beta.solana.com",
        commitment: str = "confirmed",
        request_timeout: float = 30.0
    ):
        """Initialize the RPC client."""
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_transaction(
        self,
        signature: str,
        max_supported_transaction_version: int = 0
    ) -> TransactionRecord:
        """
        Fetch a transaction by signature.

        Args:
            signature: Transaction signature (base58)
            max_supported_transaction_version: Highest message version to return

        Returns:
            The parsed transaction; raw_size is the byte length of the response

        Raises:
            TransactionNotFoundError: The node returned a null result
            RpcResponseError: HTTP error status or JSON-RPC error object
            RpcTimeoutError: No response within request_timeout
            MalformedTransactionError: The response could not be parsed
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "getTransaction",
            "params": [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": max_supported_transaction_version,
                }
            ]
        }

        await self._ensure_session()
        logger.debug(f"Fetching transaction: {signature[:8]}...")

        try:
            async with self._session.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"}
            ) as response:
                if response.status != 200:
                    raise RpcResponseError(signature, f"HTTP {response.status}", code=response.status)
                body = await response.read()
        except asyncio.TimeoutError:
            raise RpcTimeoutError(signature, self.request_timeout)
        except aiohttp.ClientError as e:
            raise RpcResponseError(signature, str(e))

        return self.parse_response(signature, body)

    @staticmethod
    def parse_response(signature: str, body: bytes) -> TransactionRecord:
        """Turn a raw getTransaction response body into a TransactionRecord."""
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedTransactionError(signature, f"invalid JSON: {e}")

        if not isinstance(data, dict):
            raise MalformedTransactionError(signature, "response is not an object")

        error = data.get("error")
        if error and not isinstance(error, dict):
            raise RpcResponseError(signature, str(error))
        if error:
            raise RpcResponseError(
                signature,
                error.get("message", "Unknown error"),
                code=error.get("code"),
                data=error.get("data")
            )

        result = data.get("result")
        if result is None:
            raise TransactionNotFoundError(signature)

        try:
            return TransactionRecord.from_rpc(signature, result, raw_size=len(body))
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise MalformedTransactionError(signature, str(e))
