"""
Exceptions raised by SwapTracker components.

Fetch errors never leave the pipeline: the fetch orchestrator logs them once
and drops the signature.
"""
from typing import Any, Optional


class SwapTrackerError(Exception):
    """Base class for SwapTracker errors."""


class FetchError(SwapTrackerError):
    """A transaction could not be retrieved."""

    def __init__(self, signature: str, message: str):
        self.signature = signature
        super().__init__(f"{message} (signature: {signature})")


class TransactionNotFoundError(FetchError):
    """getTransaction returned a null result."""

    def __init__(self, signature: str):
        super().__init__(signature, "Transaction not found")


class RpcResponseError(FetchError):
    """The RPC node answered with an error object or a bad HTTP status."""

    def __init__(self, signature: str, message: str, code: Optional[int] = None, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(signature, f"RPC error {code}: {message}" if code is not None else f"RPC error: {message}")


class RpcTimeoutError(FetchError):
    """The RPC request exceeded the client timeout."""

    def __init__(self, signature: str, timeout: float):
        self.timeout = timeout
        super().__init__(signature, f"Request timed out after {timeout}s")


class MalformedTransactionError(FetchError):
    """The response could not be turned into a TransactionRecord."""

    def __init__(self, signature: str, reason: str):
        self.reason = reason
        super().__init__(signature, f"Malformed transaction response: {reason}")
