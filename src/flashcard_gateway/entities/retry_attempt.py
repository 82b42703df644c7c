"""Retry attempt domain entity."""

from dataclasses import dataclass
from enum import Enum


class RetryReason(str, Enum):
    """Condition that made an upstream attempt retryable."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class RetryAttempt:
    """One retry decision taken by the retry engine.

    Never persisted; logged and attached to terminal errors for triage.

    Attributes:
        attempt: Zero-based index of the attempt that failed
        delay_ms: Delay scheduled before the next attempt
        reason: Condition that triggered the retry
        elapsed_ms: Time since the first attempt started
        status: Upstream HTTP status, if any
        hinted: True when the delay came from a provider retry hint
    """

    attempt: int
    delay_ms: float
    reason: RetryReason
    elapsed_ms: float
    status: int | None = None
    hinted: bool = False

    def to_dict(self) -> dict:
        return {
            "attempt": self.attempt,
            "delay_ms": round(self.delay_ms, 1),
            "reason": self.reason.value,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "status": self.status,
            "hinted": self.hinted,
        }
