"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from flashcard_gateway.config import Settings, get_settings
from flashcard_gateway.handlers import AIHandler
from flashcard_gateway.logging import get_logger
from flashcard_gateway.protocols import CompletionProvider, ResponseStore
from flashcard_gateway.repositories import (
    InMemoryResponseRepository,
    OpenAICompletionProvider,
    RedisResponseRepository,
)
from flashcard_gateway.services import DispatchService

logger = get_logger(__name__)


def get_handler(request: Request) -> AIHandler:
    """Dependency injection for AIHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AIHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "ai_handler", None)
    if handler is None:
        raise RuntimeError("AIHandler not initialized. Check lifespan setup.")
    return handler


def build_response_store(settings: Settings) -> ResponseStore:
    """Create the cache backend selected by CACHE_BACKEND."""
    if settings.cache_backend == "redis":
        return RedisResponseRepository.create(settings)
    return InMemoryResponseRepository.create(
        max_entries=settings.cache_max_entries,
        ttl_seconds=settings.cache_ttl_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers once and stores them in app.state:
    1. Response store and completion provider (data access)
    2. DispatchService (business logic) - app.state.dispatch_service
    3. AIHandler (HTTP endpoints) - app.state.ai_handler

    Overrides placed on app.state by create_app (settings, provider,
    response_store) take precedence over the defaults.

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Stops the cache sweeper, closes the provider and removes all
        services from app.state on shutdown
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    provider: CompletionProvider | None = getattr(app.state, "provider_override", None)
    if provider is None:
        provider = OpenAICompletionProvider.create(settings)
    store: ResponseStore | None = getattr(app.state, "response_store_override", None)
    if store is None:
        store = build_response_store(settings)

    dispatch_service = DispatchService.create(settings=settings, provider=provider, store=store)
    ai_handler = AIHandler(dispatch_service=dispatch_service, settings=settings)

    app.state.dispatch_service = dispatch_service
    app.state.ai_handler = ai_handler

    await dispatch_service.request_cache.start()

    if not provider.is_configured:
        logger.warning("api_key_missing", remediation="Set OPENAI_API_KEY and restart the service")
    logger.info(
        "gateway_started",
        model=provider.model_name,
        cache_backend=settings.cache_backend,
        cache_healthy=store.health_check(),
        rate_limit=settings.rate_limit_requests_per_minute,
        rate_limit_interval_ms=settings.rate_limit_interval_ms,
    )

    yield

    await dispatch_service.request_cache.stop()
    await provider.close()

    del app.state.ai_handler
    del app.state.dispatch_service
    logger.info("gateway_stopped")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[AIHandler, Depends(get_handler)]
