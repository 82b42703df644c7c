"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    AnalyzeRequest,
    CourseData,
    FlashcardBatchRequest,
    McqBatchRequest,
    OperationRequest,
    operation_request_adapter,
)
from .responses import (
    AnalysisResponse,
    ConfigStatusResponse,
    ErrorResponse,
    Flashcard,
    FlashcardBatchResponse,
    HealthCheckResponse,
    McqBatchResponse,
    RateLimitErrorResponse,
)

__all__ = [
    "AnalyzeRequest",
    "CourseData",
    "FlashcardBatchRequest",
    "McqBatchRequest",
    "OperationRequest",
    "operation_request_adapter",
    "AnalysisResponse",
    "Flashcard",
    "FlashcardBatchResponse",
    "McqBatchResponse",
    "ErrorResponse",
    "RateLimitErrorResponse",
    "ConfigStatusResponse",
    "HealthCheckResponse",
]
