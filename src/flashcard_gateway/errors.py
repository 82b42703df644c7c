"""Error taxonomy for the dispatch gateway.

Each error knows the HTTP status it maps to and the message a caller is
allowed to see. ``detail`` holds internal diagnostics (upstream status codes,
raw provider text, last failure reason); it is logged, never returned.
"""

from typing import Any


class GatewayError(Exception):
    """Base exception for all classified gateway failures."""

    code = "GATEWAY_ERROR"
    status_code = 500
    public_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, detail: dict[str, Any] | None = None) -> None:
        self.message = message or self.public_message
        self.detail = detail or {}
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        """Build the caller-facing JSON body."""
        return {"error": self.public_message}


class ValidationError(GatewayError):
    """Malformed or out-of-bounds caller input."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class PayloadTooLargeError(ValidationError):
    """Request body or transcript exceeds the configured size limits."""

    code = "PAYLOAD_TOO_LARGE"
    status_code = 413


class RateLimitExceeded(GatewayError):
    """Caller exceeded the allowed request rate."""

    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
    public_message = "Too many requests. Please try again later."

    def __init__(self, key: str, limit: int, retry_after: int, reset_at_ms: int) -> None:
        self.key = key
        self.limit = limit
        self.retry_after = retry_after
        self.reset_at_ms = reset_at_ms
        super().__init__(
            f"Client {key} exceeded rate limit of {limit} requests",
            detail={"limit": limit, "retry_after": retry_after},
        )

    def to_body(self) -> dict[str, Any]:
        return {"error": self.public_message, "retryAfter": self.retry_after}

    def headers(self) -> dict[str, str]:
        """Rate-limit response headers."""
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Reset": str(self.reset_at_ms),
        }


class ConfigurationError(GatewayError):
    """Required configuration is missing or rejected by the provider."""

    code = "CONFIGURATION_ERROR"
    public_message = (
        "Server configuration error: the AI provider API key is missing or invalid. "
        "Set OPENAI_API_KEY and restart the service."
    )


class ResponseParseError(GatewayError):
    """Provider text could not be coerced into the expected structure."""

    code = "RESPONSE_PARSE_ERROR"
    public_message = "Failed to parse AI response"


class RetryTimeoutError(GatewayError):
    """The retry loop ran out of its time budget."""

    code = "UPSTREAM_TIMEOUT"
    public_message = "The AI provider did not respond in time. Please try again."


class MaxRetriesExceededError(GatewayError):
    """The upstream kept failing for every allowed attempt."""

    code = "MAX_RETRIES_EXCEEDED"
    public_message = "The AI provider is temporarily unavailable. Please try again later."


class UpstreamError(GatewayError):
    """Non-retryable upstream failure (4xx other than 429, malformed envelope)."""

    code = "UPSTREAM_ERROR"
