"""
SOL amount extraction from fetched transactions.

Two balance accountings are supported:

NATIVE_BALANCE_DIFF
    Lamport change of the fee payer (account 0), scaled to SOL.
TOKEN_BALANCE_DIFF
    Change of the wrapped SOL token balance, matched by mint and owner
    between preTokenBalances and postTokenBalances.
"""
import logging
from typing import List, Optional

from core.models import (
    AmountStrategy, ParsedAmount, TokenBalance, TransactionRecord
)

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


class AmountExtractor:
    """
    Measures the SOL moved by a swap transaction.

    Args:
        program_id: Swap program whose instruction must be present
        strategy: Balance accounting to use
        scaling_factor: Lamports per SOL for the native strategy
        wrapped_mint: Mint tracked by the token strategy
    """

    def __init__(
        self,
        program_id: str,
        strategy: AmountStrategy = AmountStrategy.NATIVE_BALANCE_DIFF,
        scaling_factor: float = LAMPORTS_PER_SOL,
        wrapped_mint: str = WRAPPED_SOL_MINT
    ):
        if scaling_factor <= 0:
            raise ValueError(f"scaling_factor must be positive, got {scaling_factor}")
        self.program_id = program_id
        self.strategy = strategy
        self.scaling_factor = scaling_factor
        self.wrapped_mint = wrapped_mint

    def has_program_instruction(self, record: TransactionRecord) -> bool:
        return any(record.program_id(ix) == self.program_id for ix in record.instructions)

    def extract(self, record: TransactionRecord) -> Optional[ParsedAmount]:
        """
        Extract the swap amount.

        Returns:
            None if the transaction has no instruction for the swap program,
            otherwise the parsed amount (0 when balances are missing)
        """
        if not self.has_program_instruction(record):
            logger.info(f"Transaction does not contain swap program instruction: {record.signature}")
            return None

        if self.strategy == AmountStrategy.TOKEN_BALANCE_DIFF:
            return self._token_balance_diff(record)
        return self._native_balance_diff(record)

    def _native_balance_diff(self, record: TransactionRecord) -> ParsedAmount:
        if record.pre_balances and record.post_balances:
            amount = abs(record.pre_balances[0] - record.post_balances[0]) / self.scaling_factor
        else:
            logger.warning(f"Missing native balances in {record.signature}")
            amount = 0.0

        return ParsedAmount(
            signature=record.signature,
            owner=record.fee_payer,
            raw_amount=amount,
            strategy=AmountStrategy.NATIVE_BALANCE_DIFF,
        )

    def _token_balance_diff(self, record: TransactionRecord) -> ParsedAmount:
        pre = self._find_balance(record.pre_token_balances)
        post = None
        if pre is not None:
            post = self._find_balance(record.post_token_balances, owner=pre.owner)

        if pre is None or post is None or pre.ui_amount is None or post.ui_amount is None:
            logger.info(f"No wrapped SOL balance pair in {record.signature}")
            amount = 0.0
        else:
            amount = abs(post.ui_amount - pre.ui_amount)

        return ParsedAmount(
            signature=record.signature,
            owner=pre.owner if pre is not None else None,
            raw_amount=amount,
            strategy=AmountStrategy.TOKEN_BALANCE_DIFF,
        )

    def _find_balance(self, balances: List[TokenBalance], owner: Optional[str] = None) -> Optional[TokenBalance]:
        for balance in balances:
            if balance.mint != self.wrapped_mint:
                continue
            if owner is not None and balance.owner != owner:
                continue
            return balance
        return None
