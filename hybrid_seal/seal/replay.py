"""
Consumed-envelope registry for optional single-use enforcement.

Without it an unexpired envelope can be unsealed any number of times by the
principal it was sealed for. With it each key identifier is accepted once.

Identifiers only need to be remembered until their envelope leaves the
replay window; after that the expiry check rejects it on its own, so those
entries are pruned.
"""
import time
import logging
import threading
from typing import Optional

logger = logging.getLogger("hybrid_seal")


class ConsumedEnvelopeRegistry:
    """Thread-safe in-memory set of consumed key identifiers.

    Only covers a single process. Deployments with several workers need a
    shared store with the same ``claim`` semantics.
    """

    def __init__(self, max_age: int, clock_skew: int = 0):
        if max_age < 1:
            raise ValueError(f"max_age must be positive, got {max_age}")
        self._max_age = max_age
        self._clock_skew = clock_skew
        self._lock = threading.Lock()
        self._consumed: dict[str, int] = {}  # key_identifier -> forget_after

    def __len__(self) -> int:
        with self._lock:
            return len(self._consumed)

    def __contains__(self, key_identifier: object) -> bool:
        with self._lock:
            return key_identifier in self._consumed

    def claim(
        self,
        key_identifier: str,
        sealed_at: int,
        now: Optional[float] = None,
    ) -> bool:
        """Mark an envelope as consumed.

        Args:
            key_identifier: Identifier of the envelope being unsealed.
            sealed_at: Unix timestamp the envelope was sealed at.
            now: Current time, defaults to ``time.time()``.

        Returns:
            True if this is the first claim, False if already consumed.
        """
        now = time.time() if now is None else now
        forget_after = sealed_at + self._max_age + self._clock_skew
        with self._lock:
            self._prune_locked(now)
            if key_identifier in self._consumed:
                return False
            self._consumed[key_identifier] = forget_after
            return True

    def prune(self, now: Optional[float] = None) -> int:
        """Drop entries whose envelopes can no longer pass the expiry check.

        Returns:
            Number of entries removed.
        """
        now = time.time() if now is None else now
        with self._lock:
            return self._prune_locked(now)

    def _prune_locked(self, now: float) -> int:
        stale = [k for k, forget_after in self._consumed.items() if forget_after < now]
        for k in stale:
            del self._consumed[k]
        if stale:
            logger.debug("Pruned %d consumed envelope id(s)", len(stale))
        return len(stale)
