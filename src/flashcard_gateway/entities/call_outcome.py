"""Upstream call outcome entities.

A single upstream attempt resolves to exactly one of these values. The retry
engine consumes them in its loop instead of catching exceptions for expected
conditions such as 429 and 503 responses.
"""

from dataclasses import dataclass
from typing import Any, Union

from flashcard_gateway.entities.retry_attempt import RetryReason
from flashcard_gateway.errors import GatewayError


@dataclass(frozen=True)
class CallSuccess:
    """The attempt produced a value."""

    value: Any


@dataclass(frozen=True)
class RetryableFailure:
    """The attempt failed transiently and may be retried.

    Attributes:
        reason: Rate limited, server error or network error
        status: Upstream HTTP status (None for transport errors)
        retry_after_ms: Provider-supplied retry hint, if any
        detail: Diagnostic text for logs
    """

    reason: RetryReason
    status: int | None = None
    retry_after_ms: float | None = None
    detail: str = ""


@dataclass(frozen=True)
class TerminalFailure:
    """The attempt failed in a way retrying cannot fix."""

    error: GatewayError


CallOutcome = Union[CallSuccess, RetryableFailure, TerminalFailure]


@dataclass(frozen=True)
class UpstreamPrompt:
    """Prompt and sampling parameters for one completion request."""

    text: str
    temperature: float
    max_tokens: int
