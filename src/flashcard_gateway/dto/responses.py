"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class AnalysisResponse(BaseModel):
    """Result of an analyze operation."""

    subject: str = Field(..., description="Main subject of the course")
    outline: list[str] = Field(..., description="Key points, in order")


class Flashcard(BaseModel):
    question: str
    answer: str


class FlashcardBatchResponse(BaseModel):
    """Result of a generate-batch operation."""

    flashcards: list[Flashcard] = Field(..., description="Generated question/answer pairs")


class McqBatchResponse(BaseModel):
    """Result of a generate-mcq-batch operation.

    Only the top-level list is checked; individual questions are returned as
    the provider produced them.
    """

    questions: list[Any] = Field(..., description="Questions with options A-D and a correct label")


class ErrorResponse(BaseModel):
    """Error body for every non-2xx response."""

    error: str = Field(..., description="Human-readable error message")


class RateLimitErrorResponse(ErrorResponse):
    """Error body for 429 responses."""

    retry_after: int = Field(..., alias="retryAfter", description="Seconds until the window resets", ge=1)


class ConfigStatusResponse(BaseModel):
    """Whether the upstream provider is configured, without exposing the key."""

    has_api_key: bool = Field(..., alias="hasApiKey")
    model: str = Field(..., description="Model identifier sent upstream")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_backend: str = Field(..., description="Configured cache backend")
    cache_connected: bool = Field(..., description="Whether the cache backend is reachable")
    cache_entries: int = Field(..., ge=0, description="Entries currently stored")
    tracked_clients: int = Field(..., ge=0, description="Client keys tracked by the rate limiter")
