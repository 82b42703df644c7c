"""Flashcard Gateway - resilient dispatch of study-aid generation to an LLM.

This package provides a layered architecture around one POST endpoint:

Layers:
    - protocols: Interface contracts (ResponseStore, CompletionProvider)
    - repositories: Data access implementations (memory/Redis cache, OpenAI API)
    - services: Business logic (rate limiter, retry engine, request cache,
      response repair, dispatch gateway)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)
    - utils: IP resolution, transcript sampling, TTL/LRU store

Usage:
    ```python
    from flashcard_gateway.services import DispatchService

    service = DispatchService.create(settings, provider, store)
    ```

For HTTP API:
    ```python
    from flashcard_gateway.api.app import app, create_app
    ```
"""

from flashcard_gateway.config import Settings, get_redis_client, get_settings
from flashcard_gateway.dto import AnalyzeRequest, FlashcardBatchRequest, McqBatchRequest, OperationRequest
from flashcard_gateway.entities import CacheEntryEntity, OperationKind, RetryAttempt
from flashcard_gateway.errors import (
    ConfigurationError,
    GatewayError,
    MaxRetriesExceededError,
    PayloadTooLargeError,
    RateLimitExceeded,
    ResponseParseError,
    RetryTimeoutError,
    UpstreamError,
    ValidationError,
)
from flashcard_gateway.handlers import AIHandler
from flashcard_gateway.protocols import CompletionProvider, ResponseStore
from flashcard_gateway.repositories import (
    InMemoryResponseRepository,
    OpenAICompletionProvider,
    RedisResponseRepository,
)
from flashcard_gateway.services import DispatchService, RateLimiter, RequestCache, RetryEngine, RetryPolicy

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CompletionProvider",
    "ResponseStore",
    # Services (business logic)
    "DispatchService",
    "RateLimiter",
    "RequestCache",
    "RetryEngine",
    "RetryPolicy",
    # Handlers (HTTP)
    "AIHandler",
    # Repositories (data access)
    "InMemoryResponseRepository",
    "RedisResponseRepository",
    "OpenAICompletionProvider",
    # Entities (domain models)
    "CacheEntryEntity",
    "OperationKind",
    "RetryAttempt",
    # DTOs (API contracts)
    "AnalyzeRequest",
    "FlashcardBatchRequest",
    "McqBatchRequest",
    "OperationRequest",
    # Errors
    "GatewayError",
    "ValidationError",
    "PayloadTooLargeError",
    "RateLimitExceeded",
    "ConfigurationError",
    "ResponseParseError",
    "RetryTimeoutError",
    "MaxRetriesExceededError",
    "UpstreamError",
]
