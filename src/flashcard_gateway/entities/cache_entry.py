"""Cached response domain entity."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for one cached upstream result.

    This is an internal representation used by services and repositories.
    For API contracts, use the DTO classes from the dto package.

    Attributes:
        fingerprint: Digest of the request fields that determine the result
        payload: The structured response returned to callers
        created_at: When the entry was stored (Unix timestamp)
        metadata: Optional extra data (operation kind, partial transcript flag)
    """

    fingerprint: str
    payload: dict[str, Any]
    created_at: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def age(self, now: float) -> float:
        """Seconds elapsed since creation."""
        return now - self.created_at

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        """Check whether the entry may still be served."""
        return self.age(now) < ttl_seconds
