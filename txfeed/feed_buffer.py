"""
Bounded, hash-deduplicated, newest-first feed of enriched transactions.

While frozen, upserts keep landing in the live list but readers get the
snapshot taken at freeze time. thaw() unions snapshot and live entries by
hash (live wins), re-sorts by observed_at and truncates to capacity.

All mutations are single synchronous steps, so on one event loop no reader
ever sees a half-applied update.
"""

from typing import Dict, List, Optional

from .schemas import EnrichedTransaction


class FeedBuffer:
    def __init__(self, capacity: int = 100):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._live: List[EnrichedTransaction] = []
        self._snapshot: Optional[List[EnrichedTransaction]] = None

    def __len__(self) -> int:
        return len(self._live)

    @property
    def frozen(self) -> bool:
        return self._snapshot is not None

    def upsert(self, tx: EnrichedTransaction) -> None:
        """Remove any entry with the same hash, prepend tx, drop the oldest overflow."""
        kept = [t for t in self._live if t.tx_hash != tx.tx_hash]
        self._live = [tx] + kept[: self.capacity - 1]

    def freeze(self) -> None:
        if self._snapshot is None:
            self._snapshot = list(self._live)

    def thaw(self) -> None:
        if self._snapshot is None:
            return

        merged: Dict[str, EnrichedTransaction] = {t.tx_hash: t for t in self._snapshot}
        for t in self._live:
            merged[t.tx_hash] = t

        ordered = sorted(merged.values(), key=lambda t: t.observed_at, reverse=True)
        self._live = ordered[: self.capacity]
        self._snapshot = None

    def live(self) -> List[EnrichedTransaction]:
        return list(self._live)

    def view(self) -> List[EnrichedTransaction]:
        """What the presentation layer should show right now."""
        if self._snapshot is not None:
            return list(self._snapshot)
        return list(self._live)

    def hashes(self) -> List[str]:
        return [t.tx_hash for t in self.view()]
