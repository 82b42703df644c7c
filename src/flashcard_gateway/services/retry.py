"""Retry/backoff engine for upstream calls.

The call passed to ``RetryEngine.execute`` performs exactly one attempt and
returns a call outcome. The engine loops over outcomes instead of catching
exceptions: success returns, terminal failure raises its error, retryable
failure waits and tries again until attempts or time run out.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from flashcard_gateway.config import Settings
from flashcard_gateway.entities import (
    CallOutcome,
    CallSuccess,
    RetryableFailure,
    RetryAttempt,
    TerminalFailure,
)
from flashcard_gateway.errors import MaxRetriesExceededError, RetryTimeoutError
from flashcard_gateway.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounds for one retry loop.

    Attributes:
        max_retries: Retries after the first attempt (max_retries + 1 calls total)
        base_delay_ms: Backoff base for attempt 0
        max_delay_ms: Cap applied to every delay, hinted or computed
        deadline_seconds: Default overall time budget of the caller
        deadline_ratio: Share of the budget retries may consume
        attempt_timeout_seconds: Longest a single attempt may run
    """

    max_retries: int = 5
    base_delay_ms: float = 1000
    max_delay_ms: float = 30000
    deadline_seconds: float = 60
    deadline_ratio: float = 0.8
    attempt_timeout_seconds: float = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.retry_max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            deadline_seconds=settings.request_deadline_seconds,
            deadline_ratio=settings.retry_deadline_ratio,
            attempt_timeout_seconds=settings.upstream_timeout_seconds,
        )


def compute_delay(
    policy: RetryPolicy,
    attempt: int,
    retry_after_ms: float | None = None,
    rng: random.Random | None = None,
) -> float:
    """Delay in milliseconds before the attempt following ``attempt``.

    A provider retry hint is used as-is. Otherwise the delay is
    ``base * 2**attempt`` scaled by a jitter factor drawn from [0.5, 1.0].
    Both are capped at ``policy.max_delay_ms``.
    """
    if retry_after_ms is not None:
        return min(max(0.0, retry_after_ms), policy.max_delay_ms)

    rng = rng or random
    exponential = policy.base_delay_ms * (2**attempt)
    return min(exponential * rng.uniform(0.5, 1.0), policy.max_delay_ms)


class RetryEngine:
    """Runs an upstream call under a RetryPolicy.

    Example:
        ```python
        engine = RetryEngine(RetryPolicy(max_retries=3))
        text = await engine.execute(lambda: provider.complete(prompt))
        ```
    """

    def __init__(
        self,
        policy: RetryPolicy,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._policy = policy
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(
        self,
        call: Callable[[], Awaitable[CallOutcome]],
        budget_seconds: float | None = None,
    ) -> Any:
        """Call until success, terminal failure, or exhaustion.

        Args:
            call: Zero-argument coroutine factory performing one attempt
            budget_seconds: Caller's overall deadline (defaults to the policy's)

        Returns:
            The value carried by the first CallSuccess

        Raises:
            GatewayError: The error of a TerminalFailure, unchanged
            MaxRetriesExceededError: Every allowed attempt failed
            RetryTimeoutError: The next attempt would start past the retry deadline,
                could not finish within the budget, or ran out of budget in flight
        """
        policy = self._policy
        budget = budget_seconds if budget_seconds is not None else policy.deadline_seconds
        retry_deadline = budget * policy.deadline_ratio
        start = self._clock()
        history: list[RetryAttempt] = []

        for attempt in range(policy.max_retries + 1):
            outcome = await self._attempt(call, attempt, budget - (self._clock() - start), history)

            if isinstance(outcome, CallSuccess):
                if history:
                    logger.info("retry_recovered", attempts=attempt + 1)
                return outcome.value
            if isinstance(outcome, TerminalFailure):
                raise outcome.error
            if not isinstance(outcome, RetryableFailure):
                raise TypeError(f"Unexpected call outcome: {outcome!r}")

            elapsed = self._clock() - start
            detail = {
                "attempts": attempt + 1,
                "last_reason": outcome.reason.value,
                "last_status": outcome.status,
                "last_detail": outcome.detail[:200],
                "elapsed_ms": round(elapsed * 1000, 1),
                "history": [h.to_dict() for h in history],
            }

            if attempt >= policy.max_retries:
                logger.error("retry_exhausted", **detail)
                raise MaxRetriesExceededError(
                    f"Upstream failed after {attempt + 1} attempts",
                    detail=detail,
                )

            delay_ms = compute_delay(policy, attempt, outcome.retry_after_ms, self._rng)
            next_start = elapsed + delay_ms / 1000
            # The next attempt must start inside the retry window and be able to finish inside the budget.
            if next_start > retry_deadline or next_start + policy.attempt_timeout_seconds > budget:
                logger.error("retry_deadline_exceeded", next_delay_ms=round(delay_ms, 1), **detail)
                raise RetryTimeoutError(
                    f"Retry deadline of {retry_deadline:.1f}s reached",
                    detail=detail,
                )

            record = RetryAttempt(
                attempt=attempt,
                delay_ms=delay_ms,
                reason=outcome.reason,
                elapsed_ms=elapsed * 1000,
                status=outcome.status,
                hinted=outcome.retry_after_ms is not None,
            )
            history.append(record)
            logger.warning("retry_scheduled", **record.to_dict())
            await self._sleep(delay_ms / 1000)

        # range() always ends in a return or raise above
        raise MaxRetriesExceededError(detail={"attempts": policy.max_retries + 1})

    async def _attempt(
        self,
        call: Callable[[], Awaitable[CallOutcome]],
        attempt: int,
        remaining: float,
        history: list[RetryAttempt],
    ) -> CallOutcome:
        """Run one attempt, cut off at the attempt timeout or the remaining budget."""
        timeout = min(self._policy.attempt_timeout_seconds, remaining)
        detail = {"attempts": attempt + 1, "history": [h.to_dict() for h in history]}
        if timeout <= 0:
            logger.error("retry_budget_spent", **detail)
            raise RetryTimeoutError("Request budget spent before the next attempt", detail=detail)

        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("attempt_timed_out", timeout_seconds=round(timeout, 3), **detail)
            raise RetryTimeoutError(f"Upstream attempt exceeded {timeout:.1f}s", detail=detail) from e
