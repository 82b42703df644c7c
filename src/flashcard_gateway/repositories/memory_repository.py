"""In-process implementation of ResponseStore.

Process-local and non-durable: a restart loses every entry, which only
causes recomputation. Memory is bounded by capacity (LRU eviction) and by
expiry (periodic sweep plus expiry on access).
"""

import time
from collections.abc import Callable

from flashcard_gateway.entities import CacheEntryEntity
from flashcard_gateway.utils import TTLLRUStore


class InMemoryResponseRepository:
    """Bounded in-memory store for cached responses.

    This class satisfies the ResponseStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the repository.

        Args:
            max_entries: Capacity before least-recently-used entries are evicted
            ttl_seconds: Entry lifetime, also enforced by the caller on read
            clock: Monotonic clock used for the backing store's own expiry
        """
        self._store = TTLLRUStore(maxsize=max_entries, ttl_seconds=ttl_seconds, clock=clock)

    @classmethod
    def create(cls, max_entries: int, ttl_seconds: int) -> "InMemoryResponseRepository":
        """Factory method mirroring the other repositories."""
        return cls(max_entries=max_entries, ttl_seconds=ttl_seconds)

    def get(self, fingerprint: str) -> CacheEntryEntity | None:
        return self._store.get(fingerprint)

    def put(self, entry: CacheEntryEntity, ttl: int) -> None:
        # The backing store applies its configured ttl; callers pass the same value.
        self._store.set(entry.fingerprint, entry)

    def delete(self, fingerprint: str) -> bool:
        return self._store.delete(fingerprint)

    def purge_expired(self, now: float, ttl: int) -> int:
        """Remove entries that are stale by creation time or by store expiry.

        Args:
            now: Current wall-clock time, compared with entry.created_at
            ttl: Maximum entry age in seconds

        Returns:
            Number of entries removed
        """
        removed = self._store.purge_expired()
        for key in self._store.keys():
            entry: CacheEntryEntity | None = self._store.get(key)
            if entry is not None and not entry.is_fresh(now, ttl):
                self._store.delete(key)
                removed += 1
        return removed

    def clear_all(self) -> int:
        return self._store.clear()

    def count_all(self) -> int:
        return len(self._store)

    def health_check(self) -> bool:
        return True
