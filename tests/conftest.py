"""
Shared fixtures for SwapTracker tests.
"""
import asyncio
import json
from typing import Dict, List, Optional, Set

import pytest

from config import Settings
from core.errors import TransactionNotFoundError
from core.models import AmountStrategy, LogEvent, TransactionRecord
from core.solana_rpc import SolanaRpcClient

JUP_PROGRAM_ID = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
WSOL_MINT = "So11111111111111111111111111111111111111112"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
FEE_PAYER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
POOL_ACCOUNT = "58oQChx4yWmvKdwLLZzBi4ChoCc2fqCUWBkwMihLYQo2"


def rpc_result(
    pre_balance: int = 5_000_000_000,
    post_balance: int = 4_000_000_000,
    program_id: str = JUP_PROGRAM_ID,
    pre_token_balances: Optional[List[dict]] = None,
    post_token_balances: Optional[List[dict]] = None,
) -> dict:
    """getTransaction result shaped like a mainnet response (json encoding)."""
    return {
        "slot": 250_000_000,
        "blockTime": 1_710_000_000,
        "transaction": {
            "signatures": ["sig"],
            "message": {
                "accountKeys": [FEE_PAYER, POOL_ACCOUNT, TOKEN_PROGRAM_ID, program_id],
                "instructions": [
                    {"programIdIndex": 2, "accounts": [0, 1], "data": "3Bxs4h24hBtQy9rw"},
                    {"programIdIndex": 3, "accounts": [0, 1, 2], "data": "PrpFmsY4d26dKbdK"},
                ],
            },
        },
        "meta": {
            "err": None,
            "fee": 5000,
            "preBalances": [pre_balance, 2_039_280, 934_087_680, 1_141_440],
            "postBalances": [post_balance, 2_039_280, 934_087_680, 1_141_440],
            "preTokenBalances": pre_token_balances or [],
            "postTokenBalances": post_token_balances or [],
        },
        "version": 0,
    }


def token_balance(mint: str, owner: str, ui_amount: str, account_index: int = 1) -> dict:
    return {
        "accountIndex": account_index,
        "mint": mint,
        "owner": owner,
        "uiTokenAmount": {
            "uiAmount": float(ui_amount),
            "uiAmountString": ui_amount,
            "decimals": 9,
            "amount": str(int(float(ui_amount) * 1_000_000_000)),
        },
    }


def swap_logs(program_id: str = JUP_PROGRAM_ID) -> List[str]:
    return [
        f"Program {program_id} invoke [1]",
        "Program log: Instruction: Route",
        f"Program {TOKEN_PROGRAM_ID} invoke [2]",
        "Program log: Instruction: Transfer",
        f"Program {TOKEN_PROGRAM_ID} success",
        f"Program {program_id} consumed 81234 of 200000 compute units",
        f"Program {program_id} success",
    ]


class FakeRpcClient:
    """Stands in for SolanaRpcClient; fails for signatures in `failures`."""

    def __init__(self, results: Optional[Dict[str, dict]] = None, failures: Optional[Set[str]] = None, delay: float = 0):
        self.results = results or {}
        self.failures = failures or set()
        self.delay = delay
        self.calls: List[str] = []

    async def get_transaction(self, signature: str, max_supported_transaction_version: int = 0) -> TransactionRecord:
        self.calls.append(signature)
        await asyncio.sleep(self.delay)
        if signature in self.failures:
            raise TransactionNotFoundError(signature)
        result = self.results.get(signature, rpc_result())
        body = json.dumps({"jsonrpc": "2.0", "id": 1, "result": result}).encode()
        return SolanaRpcClient.parse_response(signature, body)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        target_program_id=JUP_PROGRAM_ID,
        wrapped_sol_mint=WSOL_MINT,
        filter_mode="route_transfer",
        amount_strategy=AmountStrategy.NATIVE_BALANCE_DIFF,
        fetch_max_concurrent=10,
        fetch_min_time_ms=0,
        dispatch_reservoir_bytes=100 * 1024 * 1024,
        dispatch_refresh_interval_ms=30_000,
        event_max_concurrent=None,
        event_min_time_ms=0,
        dedup_max_size=None,
    )


@pytest.fixture
def make_event():
    def _make(signature: str = "5h6xBEauJ3PK6SWCZ1PGjBvj8vDdWG3KpwATGy1ARAXF", logs=None, err=None) -> LogEvent:
        return LogEvent(signature=signature, logs=swap_logs() if logs is None else logs, err=err)
    return _make


@pytest.fixture
def make_record():
    def _make(signature: str = "sig1", **kwargs) -> TransactionRecord:
        return TransactionRecord.from_rpc(signature, rpc_result(**kwargs), raw_size=2048)
    return _make


@pytest.fixture
def fake_client():
    return FakeRpcClient()
