"""Rate limit domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitStatus:
    """Outcome of an admitted rate-limit check.

    Attributes:
        key: Client identifier (validated IP string)
        count: Requests seen from key in the current window, this one included
        limit: Allowed requests per window
        reset_after_seconds: Time until the window for key expires
    """

    key: str
    count: int
    limit: int
    reset_after_seconds: float

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)
