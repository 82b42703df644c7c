"""
Shared fixtures for the flashcard gateway tests.
"""

import json
from collections.abc import Callable
from dataclasses import replace

import httpx
import pytest
from fastapi.testclient import TestClient

from flashcard_gateway.api.app import create_app
from flashcard_gateway.config import Settings
from flashcard_gateway.repositories import InMemoryResponseRepository, OpenAICompletionProvider

UPSTREAM_BASE_URL = "https://llm.test/v1"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_transcript(words: int, word: str = "cell") -> str:
    return " ".join(f"{word}{i % 7}" for i in range(words))


def completion(content: str, status_code: int = 200, headers: dict | None = None) -> httpx.Response:
    """Build an upstream chat-completions response."""
    return httpx.Response(
        status_code,
        json={
            "id": "chatcmpl-test",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5},
        },
        headers=headers,
    )


class MockUpstream:
    """Scripted upstream provider for httpx.MockTransport.

    Responses are served in order; the last one repeats once the script runs out.
    """

    def __init__(self, *responses: httpx.Response | Callable[[httpx.Request], httpx.Response]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if callable(response) and not isinstance(response, httpx.Response):
            return response(request)
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with a configured key, small limits and near-instant retries."""
    return replace(
        Settings(),
        openai_api_key="sk-test",
        openai_model="gpt-4o-mini",
        openai_base_url=UPSTREAM_BASE_URL,
        upstream_timeout_seconds=5,
        rate_limit_requests_per_minute=10,
        rate_limit_interval_ms=60000,
        rate_limit_max_tracked_ips=500,
        transcript_chunk_threshold=30000,
        min_word_count=500,
        max_word_count=50000,
        max_file_size_mb=100,
        retry_max_retries=2,
        retry_base_delay_ms=1,
        retry_max_delay_ms=5,
        request_deadline_seconds=30,
        retry_deadline_ratio=0.8,
        cache_backend="memory",
        cache_ttl_seconds=300,
        cache_max_entries=100,
        cache_sweep_interval_seconds=60,
        log_level="WARNING",
        log_json=False,
    )


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream(completion(json.dumps({"subject": "Biology", "outline": ["A", "B", "C"]})))


@pytest.fixture
def make_client(settings: Settings, upstream: MockUpstream):
    """Factory for TestClients running the full lifespan against the mocked upstream."""
    clients: list[TestClient] = []

    def _make(settings_override: Settings | None = None, api_key: str | None = "sk-test") -> TestClient:
        active = settings_override or settings
        provider = OpenAICompletionProvider(
            api_key=api_key,
            base_url=active.openai_base_url,
            model_name=active.openai_model,
            transport=upstream.transport(),
        )
        store = InMemoryResponseRepository.create(
            max_entries=active.cache_max_entries,
            ttl_seconds=active.cache_ttl_seconds,
        )
        client = TestClient(create_app(settings=active, provider=provider, response_store=store))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    """Create a test client."""
    return make_client()
