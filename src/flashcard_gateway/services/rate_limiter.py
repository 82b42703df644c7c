"""Per-client fixed-window rate limiter.

Counters live in a bounded TTL/LRU store: each key's window starts at its
first request and lasts ``interval_seconds``. A new key arriving at capacity
evicts the least-recently-used key instead of being rejected.
"""

import math
import time
from collections.abc import Callable

from flashcard_gateway.entities import RateLimitStatus
from flashcard_gateway.errors import RateLimitExceeded
from flashcard_gateway.logging import get_logger
from flashcard_gateway.utils import TTLLRUStore

logger = get_logger(__name__)


class RateLimiter:
    """Bounded per-key request counter.

    Example:
        ```python
        limiter = RateLimiter(limit=10, interval_seconds=60, max_tracked_keys=500)
        limiter.check(10, "203.0.113.7")  # raises RateLimitExceeded on the 11th call
        ```
    """

    def __init__(
        self,
        limit: int,
        interval_seconds: float,
        max_tracked_keys: int,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Default allowed requests per window
            interval_seconds: Window length, measured from the key's first request
            max_tracked_keys: Capacity of the counter store
            clock: Monotonic time source for window expiry
            wall_clock: Epoch time source for the X-RateLimit-Reset header
        """
        self._limit = limit
        self._interval = interval_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._counters = TTLLRUStore(maxsize=max_tracked_keys, ttl_seconds=interval_seconds, clock=clock)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def tracked_keys(self) -> int:
        return len(self._counters)

    def check(self, limit: int | None, key: str) -> RateLimitStatus:
        """Count one request from key and enforce the limit.

        The request is counted even when it is rejected, so a client probing
        the limit does not get its window reset.

        Args:
            limit: Allowed requests per window (None uses the default)
            key: Client identifier

        Returns:
            RateLimitStatus for an admitted request

        Raises:
            RateLimitExceeded: When the count exceeds limit
        """
        limit = self._limit if limit is None else limit

        current = self._counters.get(key)
        if current is None:
            count = 1
            self._counters.set(key, count)
        else:
            count = current + 1
            self._counters.set(key, count, keep_ttl=True)

        reset_after = self._counters.remaining_ttl(key)

        if count > limit:
            retry_after = max(1, math.ceil(reset_after))
            reset_at_ms = int((self._wall_clock() + reset_after) * 1000)
            logger.warning(
                "rate_limit_exceeded",
                key=key,
                count=count,
                limit=limit,
                retry_after=retry_after,
            )
            raise RateLimitExceeded(key=key, limit=limit, retry_after=retry_after, reset_at_ms=reset_at_ms)

        return RateLimitStatus(key=key, count=count, limit=limit, reset_after_seconds=reset_after)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when key is None."""
        if key is None:
            self._counters.clear()
        else:
            self._counters.delete(key)
