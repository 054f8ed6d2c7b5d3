"""
Display formatting utilities for console and log output.
"""
import re
from typing import Optional

from core.models import AggregateState, ParsedAmount, PipelineStats

BASE58_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_address(address: str) -> bool:
    """Check that a string looks like a base58 Solana address."""
    return bool(address) and BASE58_ADDRESS.match(address) is not None


def format_address(address: Optional[str], length: int = 4) -> str:
    """
    Format an address or signature for display (AbCd...WxYz).

    Args:
        address: Full base58 string
        length: Number of characters to show on each side

    Returns:
        Shortened string
    """
    if not address:
        return "unknown"
    if len(address) <= length * 2:
        return address
    return f"{address[:length]}...{address[-length:]}"


def format_sol(amount: float, decimals: int = 4) -> str:
    """Format a SOL amount, dropping trailing zeros (1.5 SOL, 12 SOL)."""
    text = f"{amount:,.{decimals}f}".rstrip("0").rstrip(".")
    return f"{text} SOL"


def format_swap(parsed: ParsedAmount) -> str:
    """One-line description of a parsed swap."""
    owner = format_address(parsed.owner)
    return f"{format_sol(parsed.raw_amount)} by {owner} ({parsed.strategy.value}, {format_address(parsed.signature, 8)})"


def format_total(state: AggregateState) -> str:
    return f"Total SOL Traded: {state.total_traded:,.4f} ({state.swaps_counted} swaps)"


def format_status(stats: PipelineStats, state: AggregateState) -> str:
    """Status line for the periodic report."""
    return (
        f"events={stats.events_received} errored={stats.events_errored} "
        f"candidates={stats.candidates} duplicates={stats.duplicates} "
        f"fetched={stats.fetches_ok} fetch_failed={stats.fetches_failed} "
        f"not_applicable={stats.not_applicable} "
        f"accepted={stats.amounts_accepted} rejected={stats.amounts_rejected} | "
        f"{format_total(state)}"
    )
