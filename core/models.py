"""
Pydantic models for SwapTracker data structures.
"""
from enum import Enum
from typing import Any, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SwapMarker(str, Enum):
    """Markers searched for in a transaction's log lines."""
    PROGRAM_PRESENT = "program_present"
    ROUTE_INSTRUCTION = "route_instruction"
    TRANSFER_INSTRUCTION = "transfer_instruction"
    SWAP_INSTRUCTION = "swap_instruction"


class AmountStrategy(str, Enum):
    """Balance accounting used to measure the SOL moved by a swap."""
    NATIVE_BALANCE_DIFF = "native_balance_diff"
    TOKEN_BALANCE_DIFF = "token_balance_diff"


class LogEvent(BaseModel):
    """One logsNotification from the websocket feed."""
    model_config = ConfigDict(frozen=True)

    signature: str
    logs: List[str] = Field(default_factory=list)
    err: Optional[Any] = None
    slot: Optional[int] = None

    @classmethod
    def from_notification(cls, value: dict, slot: Optional[int] = None) -> "LogEvent":
        """Build an event from the `value` object of a logsNotification."""
        return cls(
            signature=value.get("signature", ""),
            logs=value.get("logs") or [],
            err=value.get("err"),
            slot=slot,
        )


class CandidateSignal(BaseModel):
    """Markers found in an event's logs, and the ones it needed."""
    model_config = ConfigDict(frozen=True)

    signature: str
    matched_markers: FrozenSet[SwapMarker] = frozenset()
    required_markers: FrozenSet[SwapMarker] = frozenset()

    @property
    def is_candidate(self) -> bool:
        return bool(self.required_markers) and self.required_markers <= self.matched_markers


class CompiledInstruction(BaseModel):
    """Top-level instruction of a transaction message."""
    program_id_index: int
    accounts: List[int] = Field(default_factory=list)
    data: str = ""


class TokenBalance(BaseModel):
    """Entry of meta.preTokenBalances / meta.postTokenBalances."""
    account_index: Optional[int] = None
    mint: str
    owner: Optional[str] = None
    ui_amount: Optional[float] = None

    @field_validator("ui_amount", mode="before")
    @classmethod
    def _parse_ui_amount(cls, value):
        # uiAmountString arrives as text ("10.0")
        if value is None or value == "":
            return None
        return float(value)

    @classmethod
    def from_rpc(cls, entry: dict) -> "TokenBalance":
        ui = entry.get("uiTokenAmount") or {}
        ui_amount = ui.get("uiAmountString")
        if ui_amount is None:
            ui_amount = ui.get("uiAmount")
        return cls(
            account_index=entry.get("accountIndex"),
            mint=entry["mint"],
            owner=entry.get("owner"),
            ui_amount=ui_amount,
        )


class TransactionRecord(BaseModel):
    """Transaction returned by getTransaction, reduced to what the parser reads."""
    signature: str
    slot: Optional[int] = None
    block_time: Optional[int] = None
    static_account_keys: List[str] = Field(default_factory=list)
    instructions: List[CompiledInstruction] = Field(default_factory=list)
    pre_balances: List[int] = Field(default_factory=list)
    post_balances: List[int] = Field(default_factory=list)
    pre_token_balances: List[TokenBalance] = Field(default_factory=list)
    post_token_balances: List[TokenBalance] = Field(default_factory=list)
    err: Optional[Any] = None
    raw_size: int = 0

    @classmethod
    def from_rpc(cls, signature: str, result: dict, raw_size: int = 0) -> "TransactionRecord":
        """
        Parse a getTransaction result (json encoding).

        Sections missing from the response become empty lists; the
        extractor treats them as "no amount" rather than failing.
        Instructions without a program index and token balances without a
        mint are skipped.
        """
        transaction = result.get("transaction") or {}
        message = transaction.get("message") or {}
        meta = result.get("meta") or {}

        return cls(
            signature=signature,
            slot=result.get("slot"),
            block_time=result.get("blockTime"),
            static_account_keys=message.get("accountKeys") or [],
            instructions=[
                CompiledInstruction(
                    program_id_index=ix["programIdIndex"],
                    accounts=ix.get("accounts") or [],
                    data=ix.get("data") or "",
                )
                for ix in message.get("instructions") or []
                if ix.get("programIdIndex") is not None
            ],
            pre_balances=meta.get("preBalances") or [],
            post_balances=meta.get("postBalances") or [],
            pre_token_balances=[
                TokenBalance.from_rpc(b) for b in meta.get("preTokenBalances") or [] if b.get("mint")
            ],
            post_token_balances=[
                TokenBalance.from_rpc(b) for b in meta.get("postTokenBalances") or [] if b.get("mint")
            ],
            err=meta.get("err"),
            raw_size=raw_size,
        )

    def program_id(self, instruction: CompiledInstruction) -> Optional[str]:
        """Resolve an instruction's program through the static account keys."""
        index = instruction.program_id_index
        if 0 <= index < len(self.static_account_keys):
            return self.static_account_keys[index]
        return None

    @property
    def fee_payer(self) -> Optional[str]:
        return self.static_account_keys[0] if self.static_account_keys else None


class ParsedAmount(BaseModel):
    """SOL amount measured for one swap."""
    signature: str
    owner: Optional[str] = None
    raw_amount: float
    strategy: AmountStrategy


class AggregateState(BaseModel):
    """Snapshot of the running volume total."""
    total_traded: float = 0.0
    swaps_counted: int = 0


class PipelineStats(BaseModel):
    """Counters for the periodic status line."""
    events_received: int = 0
    events_errored: int = 0
    candidates: int = 0
    duplicates: int = 0
    fetches_ok: int = 0
    fetches_failed: int = 0
    not_applicable: int = 0
    amounts_accepted: int = 0
    amounts_rejected: int = 0
