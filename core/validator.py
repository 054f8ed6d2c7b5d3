"""
Plausibility rules for extracted swap amounts.

Amounts typed by a person tend to be round (1, 0.5, 2.3 SOL); bots and
liquidity providers move arbitrary amounts. Only amounts within epsilon of
a multiple of 0.1 are counted.
"""
import math
from typing import Optional


class AmountValidator:
    """
    Args:
        max_amount: Amounts at or above this are rejected (None = no bound)
        epsilon: Allowed distance from the nearest tenth
    """

    def __init__(self, max_amount: Optional[float] = None, epsilon: float = 1e-5):
        self.max_amount = max_amount
        self.epsilon = epsilon

    def rejection_reason(self, amount: float) -> Optional[str]:
        """Why an amount is rejected, or None if it is acceptable."""
        if not math.isfinite(amount):
            return "not finite"
        nearest_tenth = round(amount * 10) / 10
        # Fee-only diffs round to zero too
        if amount == 0 or nearest_tenth == 0:
            return "zero"
        if self.max_amount is not None and abs(amount) >= self.max_amount:
            return f"at or above {self.max_amount}"
        if abs(amount - nearest_tenth) > self.epsilon:
            return "not a round tenth"
        return None

    def is_acceptable(self, amount: float) -> bool:
        return self.rejection_reason(amount) is None
