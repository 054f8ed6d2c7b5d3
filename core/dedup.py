"""
Signature deduplication.

The log feed delivers at least once, so the same signature can arrive
several times. Only the first delivery is allowed through to a fetch.
"""
import threading
from collections import OrderedDict
from typing import Optional


class SignatureStore:
    """
    Set of signatures already scheduled for processing.

    With max_size=None nothing is ever evicted and memory grows with the
    number of distinct signatures seen. With a max_size the oldest
    signatures are forgotten first.
    """

    def __init__(self, max_size: Optional[int] = None):
        if max_size is not None and max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._seen: "OrderedDict[str, None]" = OrderedDict()
        self._lock = threading.Lock()
        self.evicted = 0

    def mark_if_new(self, signature: str) -> bool:
        """Record the signature; True only the first time it is seen."""
        with self._lock:
            if signature in self._seen:
                return False

            self._seen[signature] = None
            if self.max_size is not None and len(self._seen) > self.max_size:
                self._seen.popitem(last=False)
                self.evicted += 1
            return True

    def __contains__(self, signature: str) -> bool:
        with self._lock:
            return signature in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
