"""
Tests for the retry/backoff engine.
"""

import asyncio
import random

import pytest

from conftest import FakeClock
from flashcard_gateway.entities import CallSuccess, RetryableFailure, RetryReason, TerminalFailure
from flashcard_gateway.errors import MaxRetriesExceededError, RetryTimeoutError, UpstreamError
from flashcard_gateway.services import RetryEngine, RetryPolicy, compute_delay


class ScriptedCall:
    """Zero-argument async call returning scripted outcomes; the last one repeats."""

    def __init__(self, *outcomes, clock: FakeClock | None = None, latency: float = 0.0):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.clock = clock
        self.latency = latency

    async def __call__(self):
        self.calls += 1
        if self.clock is not None:
            self.clock.advance(self.latency)
        return self.outcomes[min(self.calls, len(self.outcomes)) - 1]


def make_engine(policy: RetryPolicy, clock: FakeClock, sleeps: list[float], seed: int = 7) -> RetryEngine:
    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    return RetryEngine(policy, clock=clock, sleep=sleep, rng=random.Random(seed))


SERVER_ERROR = RetryableFailure(reason=RetryReason.SERVER_ERROR, status=503)


def test_retry_hint_is_used_directly():
    policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=30000)
    assert compute_delay(policy, attempt=4, retry_after_ms=2500) == 2500


def test_retry_hint_is_capped():
    policy = RetryPolicy(max_delay_ms=30000)
    assert compute_delay(policy, attempt=0, retry_after_ms=120_000) == 30000


def test_backoff_jitter_range():
    policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=1_000_000)
    rng = random.Random(1)
    for attempt in range(5):
        expected = 1000 * 2**attempt
        for _ in range(50):
            delay = compute_delay(policy, attempt, rng=rng)
            assert 0.5 * expected <= delay <= expected


def test_backoff_never_exceeds_cap_and_grows_on_average():
    policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=30000)
    rng = random.Random(3)
    means = []
    for attempt in range(10):
        delays = [compute_delay(policy, attempt, rng=rng) for _ in range(200)]
        assert max(delays) <= 30000
        means.append(sum(delays) / len(delays))

    assert all(later >= earlier for earlier, later in zip(means, means[1:]))


@pytest.mark.asyncio
async def test_success_returns_value_without_sleeping(clock):
    sleeps: list[float] = []
    engine = make_engine(RetryPolicy(), clock, sleeps)
    call = ScriptedCall(CallSuccess("done"))

    assert await engine.execute(call) == "done"
    assert call.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_recovers_after_transient_failures(clock):
    sleeps: list[float] = []
    engine = make_engine(RetryPolicy(max_retries=5), clock, sleeps)
    call = ScriptedCall(
        SERVER_ERROR,
        RetryableFailure(reason=RetryReason.NETWORK_ERROR),
        CallSuccess({"ok": True}),
    )

    assert await engine.execute(call) == {"ok": True}
    assert call.calls == 3
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_always_failing_upstream_stops_after_max_retries(clock):
    sleeps: list[float] = []
    policy = RetryPolicy(max_retries=5, base_delay_ms=100, max_delay_ms=1000, deadline_seconds=600)
    engine = make_engine(policy, clock, sleeps)
    call = ScriptedCall(SERVER_ERROR)

    with pytest.raises(MaxRetriesExceededError) as exc_info:
        await engine.execute(call)

    assert call.calls == policy.max_retries + 1
    assert len(sleeps) == policy.max_retries
    assert exc_info.value.detail["last_status"] == 503
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_deadline_stops_retrying_before_attempts_run_out(clock):
    sleeps: list[float] = []
    policy = RetryPolicy(max_retries=10, deadline_seconds=10, deadline_ratio=0.8, attempt_timeout_seconds=1)
    engine = make_engine(policy, clock, sleeps)
    call = ScriptedCall(
        RetryableFailure(reason=RetryReason.RATE_LIMITED, status=429, retry_after_ms=3000),
    )

    with pytest.raises(RetryTimeoutError):
        await engine.execute(call)

    # 0s + 3s, 3s + 3s fit in the 8s retry budget; 6s + 3s does not.
    assert call.calls == 3
    assert sleeps == [3.0, 3.0]


@pytest.mark.asyncio
async def test_budget_argument_overrides_policy_deadline(clock):
    sleeps: list[float] = []
    policy = RetryPolicy(max_retries=10, deadline_seconds=600, attempt_timeout_seconds=0.5)
    engine = make_engine(policy, clock, sleeps)
    call = ScriptedCall(RetryableFailure(reason=RetryReason.RATE_LIMITED, retry_after_ms=1000))

    with pytest.raises(RetryTimeoutError):
        await engine.execute(call, budget_seconds=2.5)

    assert call.calls == 3


@pytest.mark.asyncio
async def test_slow_attempts_count_towards_deadline(clock):
    sleeps: list[float] = []
    policy = RetryPolicy(max_retries=10, base_delay_ms=10, max_delay_ms=10, deadline_seconds=100)
    engine = make_engine(policy, clock, sleeps)
    call = ScriptedCall(SERVER_ERROR, clock=clock, latency=30)

    with pytest.raises(RetryTimeoutError):
        await engine.execute(call)

    assert call.calls == 3
    assert clock.now - 1000.0 <= 100


@pytest.mark.asyncio
async def test_timed_out_attempts_never_run_past_the_budget(clock):
    sleeps: list[float] = []
    engine = make_engine(RetryPolicy(), clock, sleeps)
    call = ScriptedCall(RetryableFailure(reason=RetryReason.NETWORK_ERROR), clock=clock, latency=30)

    with pytest.raises(RetryTimeoutError):
        await engine.execute(call, budget_seconds=60)

    # A second 30s attempt after the backoff delay could not finish within 60s.
    assert call.calls == 1
    assert sleeps == []
    assert clock.now - 1000.0 <= 60


@pytest.mark.asyncio
async def test_attempt_is_cut_off_at_the_remaining_budget(clock):
    async def hang():
        await asyncio.sleep(5)
        return CallSuccess("late")

    engine = make_engine(RetryPolicy(attempt_timeout_seconds=30), clock, [])

    with pytest.raises(RetryTimeoutError) as exc_info:
        await engine.execute(hang, budget_seconds=0.05)

    assert exc_info.value.detail["attempts"] == 1


@pytest.mark.asyncio
async def test_attempt_timeout_applies_within_a_large_budget(clock):
    async def hang():
        await asyncio.sleep(5)
        return CallSuccess("late")

    engine = make_engine(RetryPolicy(attempt_timeout_seconds=0.05), clock, [])

    with pytest.raises(RetryTimeoutError):
        await engine.execute(hang, budget_seconds=600)


@pytest.mark.asyncio
async def test_terminal_failure_is_not_retried(clock):
    sleeps: list[float] = []
    engine = make_engine(RetryPolicy(), clock, sleeps)
    error = UpstreamError("Upstream returned HTTP 400")
    call = ScriptedCall(TerminalFailure(error))

    with pytest.raises(UpstreamError) as exc_info:
        await engine.execute(call)

    assert exc_info.value is error
    assert call.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_hinted_delays_are_honored(clock):
    sleeps: list[float] = []
    engine = make_engine(RetryPolicy(max_retries=3), clock, sleeps)
    call = ScriptedCall(
        RetryableFailure(reason=RetryReason.RATE_LIMITED, status=429, retry_after_ms=1500),
        RetryableFailure(reason=RetryReason.RATE_LIMITED, status=429, retry_after_ms=250),
        CallSuccess("ok"),
    )

    assert await engine.execute(call) == "ok"
    assert sleeps == [1.5, 0.25]


@pytest.mark.asyncio
async def test_zero_retries_makes_a_single_attempt(clock):
    sleeps: list[float] = []
    engine = make_engine(RetryPolicy(max_retries=0), clock, sleeps)
    call = ScriptedCall(SERVER_ERROR)

    with pytest.raises(MaxRetriesExceededError):
        await engine.execute(call)

    assert call.calls == 1
