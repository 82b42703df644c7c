"""Request cache: fingerprint-keyed reuse of successful upstream results.

Best-effort and non-durable. Identical logical requests made within the TTL
get the stored payload instead of a new upstream call. Only successes are
stored, and concurrent identical requests are not coalesced while the first
one is still in flight.
"""

import asyncio
import hashlib
import json
import time
from collections.abc import Callable
from typing import Any

from flashcard_gateway.entities import CacheEntryEntity
from flashcard_gateway.logging import get_logger
from flashcard_gateway.protocols import ResponseStore

logger = get_logger(__name__)


def fingerprint(
    kind: str,
    language: str,
    transcript: str,
    count: int | None = None,
    course_data: dict[str, Any] | None = None,
    existing_questions: list[str] | None = None,
) -> str:
    """Deterministic digest of the fields that determine an upstream result.

    Args:
        kind: Operation type
        language: Requested output language
        transcript: Transcript as forwarded upstream (the sample when partial)
        count: Requested item count for batch operations
        course_data: Subject/outline used to steer batch generation
        existing_questions: Questions the caller has already seen

    Returns:
        32-character hex key
    """
    canonical = json.dumps(
        {
            "kind": kind,
            "language": language,
            "transcript": transcript,
            "count": count,
            "course_data": course_data,
            "existing_questions": existing_questions or [],
        },
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:32]


class RequestCache:
    """TTL cache in front of the upstream provider.

    Example:
        ```python
        cache = RequestCache(InMemoryResponseRepository.create(1000, 300), ttl_seconds=300)
        await cache.start()
        if (payload := cache.get(key)) is None:
            payload = await compute()
            cache.put(key, payload)
        await cache.stop()
        ```
    """

    def __init__(
        self,
        store: ResponseStore,
        ttl_seconds: int,
        sweep_interval_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Storage backend
            ttl_seconds: Maximum age of a served entry
            sweep_interval_seconds: Period of the background expiry sweep
            clock: Wall-clock time source used for entry timestamps
        """
        self._store = store
        self._ttl = ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._swept = 0
        self._sweep_task: asyncio.Task | None = None

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @property
    def store(self) -> ResponseStore:
        return self._store

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached payload for key if it is still fresh."""
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            logger.debug("cache_miss", fingerprint=key)
            return None

        if not entry.is_fresh(self._clock(), self._ttl):
            self._store.delete(key)
            self._misses += 1
            logger.debug("cache_stale", fingerprint=key, age=round(entry.age(self._clock()), 1))
            return None

        self._hits += 1
        logger.info("cache_hit", fingerprint=key)
        return entry.payload

    def put(self, key: str, payload: dict[str, Any], metadata: dict[str, Any] | None = None) -> None:
        """Store a successful result."""
        entry = CacheEntryEntity(
            fingerprint=key,
            payload=payload,
            created_at=self._clock(),
            metadata=metadata or {},
        )
        self._store.put(entry, self._ttl)
        logger.debug("cache_stored", fingerprint=key, ttl=self._ttl)

    def sweep(self) -> int:
        """Remove every entry older than the TTL.

        Returns:
            Number of entries removed
        """
        removed = self._store.purge_expired(self._clock(), self._ttl)
        self._swept += removed
        if removed:
            logger.info("cache_swept", removed=removed, remaining=self._store.count_all())
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                # Keep sweeping; a failed pass only delays reclamation.
                logger.error("cache_sweep_failed", error=str(e))

    async def start(self) -> None:
        """Start the periodic background sweep."""
        if self._sweep_task is not None:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info("cache_sweeper_started", interval=self._sweep_interval)

    async def stop(self) -> None:
        """Stop the background sweep."""
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None
        logger.info("cache_sweeper_stopped")

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def clear(self) -> int:
        return self._store.clear_all()

    def stats(self) -> dict[str, Any]:
        """Hit/miss counters and current entry count."""
        return {
            "hits": self._hits,
            "misses": self._misses,
            "swept": self._swept,
            "entries": self._store.count_all(),
            "ttl_seconds": self._ttl,
        }
