"""Redis implementation of ResponseStore.

Lets several gateway workers share cached responses. Each entry is one JSON
string written with SETEX, so expiry is enforced by Redis itself and the
periodic sweep has nothing to do.
"""

import json

import redis

from flashcard_gateway.config import Settings, get_redis_client
from flashcard_gateway.entities import CacheEntryEntity
from flashcard_gateway.logging import get_logger

logger = get_logger(__name__)


class RedisResponseRepository:
    """Redis-backed response store.

    This class satisfies the ResponseStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "flashcard_gateway:response",
    ) -> None:
        """Initialize the Redis response repository.

        Args:
            redis_client: Redis client instance (decode_responses=True)
            key_prefix: Namespace for entry keys
        """
        self._client = redis_client
        self._prefix = key_prefix

    @classmethod
    def create(cls, settings: Settings) -> "RedisResponseRepository":
        """Factory method to create RedisResponseRepository from settings.

        Args:
            settings: Application settings providing REDIS_URL/REDIS_PASSWORD

        Returns:
            Configured RedisResponseRepository
        """
        return cls(redis_client=get_redis_client(settings))

    def _key(self, fingerprint: str) -> str:
        return f"{self._prefix}:{fingerprint}"

    def get(self, fingerprint: str) -> CacheEntryEntity | None:
        raw = self._client.get(self._key(fingerprint))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return CacheEntryEntity(
                fingerprint=fingerprint,
                payload=data["payload"],
                created_at=float(data["created_at"]),
                metadata=data.get("metadata") or {},
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("cache_entry_corrupt", fingerprint=fingerprint, error=str(e))
            self._client.delete(self._key(fingerprint))
            return None

    def put(self, entry: CacheEntryEntity, ttl: int) -> None:
        """Store an entry as JSON with a Redis-side expiry.

        Args:
            entry: The entry to store
            ttl: Time-to-live in seconds
        """
        value = json.dumps(
            {
                "payload": entry.payload,
                "created_at": entry.created_at,
                "metadata": entry.metadata,
            }
        )
        self._client.setex(self._key(entry.fingerprint), ttl, value)

    def delete(self, fingerprint: str) -> bool:
        result: int = self._client.delete(self._key(fingerprint))  # type: ignore[assignment]
        return result > 0

    def purge_expired(self, now: float, ttl: int) -> int:
        """Expiry is handled by Redis; nothing to sweep."""
        return 0

    def clear_all(self) -> int:
        count = 0
        for key in self._client.scan_iter(match=f"{self._prefix}:*"):
            if self._client.delete(key):
                count += 1
        return count

    def count_all(self) -> int:
        count = 0
        for _ in self._client.scan_iter(match=f"{self._prefix}:*"):
            count += 1
        return count

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
