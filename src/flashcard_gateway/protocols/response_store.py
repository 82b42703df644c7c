"""Response store protocol.

Defines the interface for any backend that can hold cached upstream results
keyed by request fingerprint.

Implementations:
- In-process bounded TTL/LRU store (default)
- Redis (shared between workers, expiry delegated to Redis)
"""

from typing import Protocol, runtime_checkable

from flashcard_gateway.entities import CacheEntryEntity


@runtime_checkable
class ResponseStore(Protocol):
    """Protocol for response cache backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed.
    """

    def get(self, fingerprint: str) -> CacheEntryEntity | None:
        """Fetch an entry by fingerprint.

        Args:
            fingerprint: The request fingerprint

        Returns:
            The stored entry, or None. Freshness is checked by the caller.
        """
        ...

    def put(self, entry: CacheEntryEntity, ttl: int) -> None:
        """Store an entry.

        Args:
            entry: The entry to store (keyed by its fingerprint)
            ttl: Time-to-live in seconds
        """
        ...

    def delete(self, fingerprint: str) -> bool:
        """Delete an entry.

        Returns:
            True if deleted, False otherwise
        """
        ...

    def purge_expired(self, now: float, ttl: int) -> int:
        """Remove entries created more than ttl seconds before now.

        Returns:
            Number of entries removed
        """
        ...

    def clear_all(self) -> int:
        """Clear all entries.

        Returns:
            Number of entries deleted
        """
        ...

    def count_all(self) -> int:
        """Count stored entries."""
        ...

    def health_check(self) -> bool:
        """Check if the backend is accessible."""
        ...
