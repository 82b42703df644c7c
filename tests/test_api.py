"""
Tests for the flashcard gateway API.
"""

import json
from dataclasses import replace

import httpx

from conftest import MockUpstream, completion, make_transcript

ANALYSIS = {"subject": "Biology", "outline": ["A", "B", "C"]}


def analyze_body(words: int = 600, **overrides) -> dict:
    body = {"type": "analyze", "transcript": make_transcript(words), "language": "en"}
    body.update(overrides)
    return body


def batch_body(kind: str = "generate-batch", **overrides) -> dict:
    body = {
        "type": kind,
        "transcript": make_transcript(600),
        "language": "en",
        "courseData": {"subject": "Biology", "outline": ["Cells", "Genetics", "Evolution"]},
        "count": 5,
    }
    body.update(overrides)
    return body


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Flashcard Gateway API"
    assert data["endpoints"]["ai"] == "/api/ai"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache_backend"] == "memory"
    assert data["cache_connected"] is True


def test_verify_key_reports_configuration_without_the_key(client):
    response = client.get("/api/verify-key")
    assert response.status_code == 200
    assert response.json() == {"hasApiKey": True, "model": "gpt-4o-mini"}
    assert "sk-test" not in response.text


def test_verify_key_without_api_key(make_client):
    client = make_client(api_key=None)
    assert client.get("/api/verify-key").json()["hasApiKey"] is False


def test_analyze_returns_exact_upstream_payload(client, upstream):
    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 200
    assert response.json() == ANALYSIS
    assert response.headers["X-Cache"] == "MISS"
    assert "X-Transcript-Sampled" not in response.headers
    assert upstream.calls == 1

    sent = upstream.json_bodies()[0]
    assert sent["model"] == "gpt-4o-mini"
    assert sent["temperature"] == 0.5
    assert sent["max_tokens"] == 2048
    assert upstream.requests[0].headers["Authorization"] == "Bearer sk-test"
    assert str(upstream.requests[0].url) == "https://llm.test/v1/chat/completions"


def test_invalid_count_rejected_without_contacting_upstream(client, upstream):
    response = client.post("/api/ai", json=batch_body(count=75))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid count (must be between 1 and 50)"}
    assert upstream.calls == 0


def test_eleventh_request_is_rate_limited(client):
    headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}
    for _ in range(10):
        response = client.post("/api/ai", json={"type": "bogus"}, headers=headers)
        assert response.status_code == 400

    response = client.post("/api/ai", json={"type": "bogus"}, headers=headers)

    assert response.status_code == 429
    retry_after = response.headers["Retry-After"]
    assert retry_after.isdigit() and int(retry_after) > 0
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert int(response.headers["X-RateLimit-Reset"]) > 0
    body = response.json()
    assert body["error"] == "Too many requests. Please try again later."
    assert body["retryAfter"] == int(retry_after)


def test_rate_limit_is_per_client(client):
    for _ in range(11):
        client.post("/api/ai", json={"type": "bogus"}, headers={"X-Real-IP": "198.51.100.1"})

    response = client.post("/api/ai", json={"type": "bogus"}, headers={"X-Real-IP": "198.51.100.2"})
    assert response.status_code == 400


def test_identical_requests_served_from_cache(client, upstream):
    first = client.post("/api/ai", json=analyze_body())
    second = client.post("/api/ai", json=analyze_body())

    assert first.status_code == second.status_code == 200
    assert first.content == second.content
    assert second.headers["X-Cache"] == "HIT"
    assert upstream.calls == 1


def test_different_language_is_not_a_cache_hit(client, upstream):
    client.post("/api/ai", json=analyze_body())
    response = client.post("/api/ai", json=analyze_body(language="fr"))

    assert response.headers["X-Cache"] == "MISS"
    assert upstream.calls == 2


def test_flashcard_batch(make_client, upstream):
    cards = {"flashcards": [{"question": "What is a cell?", "answer": "The unit of life"}]}
    upstream.responses = [completion(json.dumps(cards))]
    client = make_client()

    response = client.post(
        "/api/ai",
        json=batch_body(existingQuestions=["What is DNA?"]),
    )

    assert response.status_code == 200
    assert response.json() == cards
    sent = upstream.json_bodies()[0]
    assert sent["temperature"] == 0.9
    assert sent["max_tokens"] == 4096
    assert "What is DNA?" in sent["messages"][0]["content"]


def test_mcq_batch_passes_questions_through(make_client, upstream):
    questions = {
        "questions": [
            {"question": "Q1", "A": "a", "B": "b", "C": "c", "D": "d", "correct": "B"},
            {"question": "Q2 missing options", "correct": "A"},
        ]
    }
    upstream.responses = [completion(json.dumps(questions))]
    client = make_client()

    response = client.post("/api/ai", json=batch_body("generate-mcq-batch"))

    assert response.status_code == 200
    assert response.json() == questions
    assert upstream.json_bodies()[0]["temperature"] == 0.7


def test_fenced_response_with_trailing_comma_is_repaired(make_client, upstream):
    upstream.responses = [completion('```json\n{"subject": "Biology", "outline": ["A", "B", "C",],}\n```')]
    client = make_client()

    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 200
    assert response.json() == ANALYSIS


def test_unparseable_response_is_500_and_not_cached(make_client, upstream):
    upstream.responses = [completion("I cannot help with that.")]
    client = make_client()

    first = client.post("/api/ai", json=analyze_body())
    second = client.post("/api/ai", json=analyze_body())

    assert first.status_code == 500
    assert first.json() == {"error": "Failed to parse AI response"}
    assert "cannot help" not in first.text
    assert second.status_code == 500
    assert upstream.calls == 2


def test_transient_upstream_failure_is_retried(make_client, upstream):
    upstream.responses = [
        httpx.Response(503, text="overloaded"),
        completion(json.dumps(ANALYSIS)),
    ]
    client = make_client()

    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 200
    assert response.json() == ANALYSIS
    assert upstream.calls == 2


def test_persistent_upstream_failure_stops_after_max_retries(make_client, upstream, settings):
    upstream.responses = [httpx.Response(503, text="internal stack trace here")]
    client = make_client()

    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 500
    assert "stack trace" not in response.text
    assert upstream.calls == settings.retry_max_retries + 1


def test_upstream_client_error_is_not_retried(make_client, upstream):
    upstream.responses = [httpx.Response(400, json={"error": {"message": "bad request"}})]
    client = make_client()

    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 500
    assert response.json() == {"error": "An unexpected error occurred"}
    assert upstream.calls == 1


def test_missing_api_key_is_configuration_error(make_client, upstream):
    client = make_client(api_key=None)

    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 500
    assert "OPENAI_API_KEY" in response.json()["error"]
    assert upstream.calls == 0


def test_rejected_api_key_is_configuration_error(make_client, upstream):
    upstream.responses = [httpx.Response(401, json={"error": "invalid key"})]
    client = make_client()

    response = client.post("/api/ai", json=analyze_body())

    assert response.status_code == 500
    assert "OPENAI_API_KEY" in response.json()["error"]
    assert upstream.calls == 1


def test_invalid_json_body(client):
    response = client.post(
        "/api/ai",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON body"}


def test_empty_body(client):
    response = client.post("/api/ai", content=b"")
    assert response.status_code == 400
    assert response.json() == {"error": "Missing request body"}


def test_transcript_too_short(client, upstream):
    response = client.post("/api/ai", json=analyze_body(words=20))

    assert response.status_code == 400
    assert response.json() == {
        "error": "Transcript too short. Minimum 500 words required, but got 20 words."
    }
    assert upstream.calls == 0


def test_transcript_too_long(make_client, settings):
    client = make_client(replace(settings, max_word_count=1000))

    response = client.post("/api/ai", json=analyze_body(words=1200))

    assert response.status_code == 413
    assert response.json() == {
        "error": "Transcript too long. Maximum 1000 words allowed, but got 1200 words."
    }


def test_request_body_too_large(make_client, settings):
    client = make_client(replace(settings, max_file_size_mb=1))

    response = client.post("/api/ai", json=analyze_body(transcript="x" * (1024 * 1024 + 10)))

    assert response.status_code == 413
    assert response.json() == {"error": "Request body too large. Maximum size is 1MB."}


def test_long_transcript_is_sampled(make_client, upstream, settings):
    client = make_client(replace(settings, transcript_chunk_threshold=1000))
    body = analyze_body(words=600)
    original = body["transcript"]

    response = client.post("/api/ai", json=body)

    assert response.status_code == 200
    assert response.headers["X-Transcript-Sampled"] == "true"
    prompt = upstream.json_bodies()[0]["messages"][0]["content"]
    assert original not in prompt
    assert "[...]" in prompt


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"

    generated = client.get("/")
    assert len(generated.headers["X-Request-ID"]) == 32


def test_malformed_forwarded_ip_still_served(client):
    response = client.post("/api/ai", json=analyze_body(), headers={"X-Forwarded-For": "not-an-ip"})
    assert response.status_code == 200
