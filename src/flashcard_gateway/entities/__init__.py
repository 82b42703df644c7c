"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntryEntity
from .call_outcome import CallOutcome, CallSuccess, RetryableFailure, TerminalFailure, UpstreamPrompt
from .operation import OperationKind
from .rate_limit import RateLimitStatus
from .retry_attempt import RetryAttempt, RetryReason

__all__ = [
    "CacheEntryEntity",
    "CallOutcome",
    "CallSuccess",
    "OperationKind",
    "RateLimitStatus",
    "RetryAttempt",
    "RetryReason",
    "RetryableFailure",
    "TerminalFailure",
    "UpstreamPrompt",
]
