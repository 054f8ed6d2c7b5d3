"""
Running total of validated swap volume.
"""
import threading

from core.models import AggregateState


class VolumeAggregator:
    """Adds absolute amounts only, so the total never decreases."""

    def __init__(self):
        self._total = 0.0
        self._count = 0
        self._lock = threading.Lock()

    def record(self, amount: float) -> float:
        """Add an amount and return the new total."""
        with self._lock:
            self._total += abs(amount)
            self._count += 1
            return self._total

    @property
    def total(self) -> float:
        with self._lock:
            return self._total

    def snapshot(self) -> AggregateState:
        with self._lock:
            return AggregateState(total_traded=self._total, swaps_counted=self._count)
