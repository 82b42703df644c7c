"""Bounded key/value store with per-entry expiry and LRU eviction.

Expiry is measured from the time an entry was created, independently of how
recently it was read. Capacity pressure evicts the least-recently-used key.
Whichever happens first removes the entry.
"""

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any


@dataclass
class _Slot:
    value: Any
    created_at: float


class TTLLRUStore:
    """Fixed-capacity, time-expiring mapping.

    Example:
        ```python
        store = TTLLRUStore(maxsize=500, ttl_seconds=60.0)
        store.set("203.0.113.7", 1)
        store.get("203.0.113.7")  # 1, until 60s after creation
        ```
    """

    def __init__(
        self,
        maxsize: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            maxsize: Maximum number of keys held at once (>= 1)
            ttl_seconds: Lifetime of an entry from its creation (> 0)
            clock: Monotonic time source, injectable for tests
        """
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        self._clock = clock
        self._data: OrderedDict[Hashable, _Slot] = OrderedDict()

    def _is_expired(self, slot: _Slot, now: float) -> bool:
        return now - slot.created_at >= self._ttl

    def _live_slot(self, key: Hashable) -> _Slot | None:
        slot = self._data.get(key)
        if slot is None:
            return None
        if self._is_expired(slot, self._clock()):
            del self._data[key]
            return None
        return slot

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for key and mark it most recently used."""
        slot = self._live_slot(key)
        if slot is None:
            return default
        self._data.move_to_end(key)
        return slot.value

    def set(self, key: Hashable, value: Any, keep_ttl: bool = False) -> None:
        """Insert or update a value.

        Args:
            key: Entry key
            value: Value to store
            keep_ttl: When the key is live, keep its original creation time so
                      the expiry window is not extended by the update
        """
        now = self._clock()
        slot = self._live_slot(key)
        if slot is not None:
            slot.value = value
            if not keep_ttl:
                slot.created_at = now
            self._data.move_to_end(key)
            return

        while len(self._data) >= self._maxsize:
            self._data.popitem(last=False)
        self._data[key] = _Slot(value=value, created_at=now)

    def created_at(self, key: Hashable) -> float | None:
        """Creation time of a live entry on the store's clock, or None."""
        slot = self._live_slot(key)
        return slot.created_at if slot is not None else None

    def remaining_ttl(self, key: Hashable) -> float:
        """Seconds until a live entry expires (0.0 if absent)."""
        created = self.created_at(key)
        if created is None:
            return 0.0
        return max(0.0, self._ttl - (self._clock() - created))

    def delete(self, key: Hashable) -> bool:
        return self._data.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, slot in self._data.items() if self._is_expired(slot, now)]
        for key in expired:
            del self._data[key]
        return len(expired)

    def clear(self) -> int:
        count = len(self._data)
        self._data.clear()
        return count

    def keys(self) -> list[Hashable]:
        """Keys in LRU order, least recently used first (expired ones included)."""
        return list(self._data.keys())

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return self._live_slot(key) is not None  # type: ignore[arg-type]
