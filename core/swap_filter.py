"""
Swap candidate filter.
Decides from an event's log lines alone whether the transaction looks like an
aggregator swap worth fetching.
"""
import logging
from typing import Dict, FrozenSet, Optional

from core.models import CandidateSignal, LogEvent, SwapMarker

logger = logging.getLogger(__name__)

ROUTE_TAG = "Instruction: Route"
TRANSFER_TAG = "Instruction: Transfer"
SWAP_TAG = "Instruction: Swap"

# Instruction markers per filter mode; program presence is always required
FILTER_MODES: Dict[str, Dict[SwapMarker, str]] = {
    "route_transfer": {
        SwapMarker.ROUTE_INSTRUCTION: ROUTE_TAG,
        SwapMarker.TRANSFER_INSTRUCTION: TRANSFER_TAG,
    },
    "swap": {
        SwapMarker.SWAP_INSTRUCTION: SWAP_TAG,
    },
}


class SwapCandidateFilter:
    """
    Substring heuristic over log lines, not a structural parse.

    Args:
        program_id: Address of the swap program that must appear in the logs
        mode: Key of FILTER_MODES selecting the instruction markers
    """

    def __init__(self, program_id: str, mode: str = "route_transfer"):
        if mode not in FILTER_MODES:
            raise ValueError(f"Unknown filter mode '{mode}', expected one of {sorted(FILTER_MODES)}")
        self.program_id = program_id
        self.mode = mode
        self._tags = FILTER_MODES[mode]
        self.required_markers: FrozenSet[SwapMarker] = frozenset(
            {SwapMarker.PROGRAM_PRESENT, *self._tags}
        )

    def scan(self, event: LogEvent) -> CandidateSignal:
        """Collect the markers present in the event, reading each line once."""
        matched = set()
        for line in event.logs:
            if self.program_id in line:
                matched.add(SwapMarker.PROGRAM_PRESENT)
            for marker, tag in self._tags.items():
                if tag in line:
                    matched.add(marker)

        return CandidateSignal(
            signature=event.signature,
            matched_markers=frozenset(matched),
            required_markers=self.required_markers,
        )

    def classify(self, event: LogEvent) -> Optional[CandidateSignal]:
        """
        Classify an event.

        Returns:
            The candidate signal if every required marker matched,
            None if the event is rejected
        """
        if event.err is not None:
            logger.debug(f"Skipping event with error: {event.err} ({event.signature})")
            return None

        signal = self.scan(event)
        if not signal.is_candidate:
            return None
        return signal
