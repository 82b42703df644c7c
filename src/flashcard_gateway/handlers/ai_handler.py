"""HTTP handlers for AI operations.

Handlers convert between HTTP requests and service calls. They own status
codes, response headers and the translation of gateway errors into the
minimal caller-facing body; internal detail only goes to the logs.
"""

import json
import time
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from flashcard_gateway.config import Settings
from flashcard_gateway.dto import ConfigStatusResponse, HealthCheckResponse
from flashcard_gateway.errors import GatewayError, PayloadTooLargeError, RateLimitExceeded, ValidationError
from flashcard_gateway.logging import get_logger, log_api_request
from flashcard_gateway.services import DispatchService
from flashcard_gateway.utils import resolve_client_ip

logger = get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class AIHandler:
    """HTTP handlers for the dispatch endpoint and its companions.

    Example:
        ```python
        handler = AIHandler(dispatch_service=service, settings=settings)

        @app.post("/api/ai")
        async def ai(request: Request):
            return await handler.handle(request)
        ```
    """

    def __init__(self, dispatch_service: DispatchService, settings: Settings) -> None:
        """Initialize the handler.

        Args:
            dispatch_service: The gateway service (required).
            settings: Application settings, for body size limits and status reporting.
        """
        self._service = dispatch_service
        self._settings = settings

    def _too_large(self) -> PayloadTooLargeError:
        return PayloadTooLargeError(f"Request body too large. Maximum size is {self._settings.max_file_size_mb}MB.")

    async def _read_body(self, request: Request) -> Any:
        limit = self._settings.max_file_size_bytes

        content_length = request.headers.get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                declared = 0
            if declared > limit:
                raise self._too_large()

        raw = await request.body()
        if len(raw) > limit:
            raise self._too_large()
        if not raw.strip():
            return None

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError("Invalid JSON body", detail={"error": str(e)}) from e

    async def handle(self, request: Request) -> JSONResponse:
        """Handle POST /api/ai requests.

        Args:
            request: The raw FastAPI request

        Returns:
            JSONResponse with the operation payload, or an error body with
            the matching status code
        """
        started = time.perf_counter()
        client_ip = resolve_client_ip(request.headers)
        operation = "unknown"

        try:
            self._service.admit(client_ip)

            body = await self._read_body(request)
            if isinstance(body, dict) and isinstance(body.get("type"), str):
                operation = body["type"]

            operation_request = self._service.parse_request(body)
            result = await self._service.dispatch(client_ip, operation_request)

        except GatewayError as e:
            headers = e.headers() if isinstance(e, RateLimitExceeded) else None
            log_api_request(
                operation,
                client_ip,
                e.status_code,
                error=e.code,
                message=e.message,
                detail=e.detail,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return JSONResponse(e.to_body(), status_code=e.status_code, headers=headers)

        except Exception as e:
            logger.exception("unhandled_dispatch_error", operation=operation, client_ip=client_ip)
            log_api_request(
                operation,
                client_ip,
                500,
                error="INTERNAL_ERROR",
                detail={"error": f"{type(e).__name__}: {e}"},
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return JSONResponse({"error": UNEXPECTED_ERROR_MESSAGE}, status_code=500)

        headers = {"X-Cache": "HIT" if result.cached else "MISS"}
        if result.partial:
            headers["X-Transcript-Sampled"] = "true"

        log_api_request(
            operation,
            client_ip,
            200,
            cache="hit" if result.cached else "miss",
            partial=result.partial,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return JSONResponse(result.payload, headers=headers)

    async def config_status(self) -> ConfigStatusResponse:
        """Handle GET /api/verify-key requests.

        Reports whether a key is configured without revealing it.
        """
        provider = self._service.provider
        return ConfigStatusResponse(hasApiKey=provider.is_configured, model=provider.model_name)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        cache = self._service.request_cache
        connected = cache.store.health_check()
        entries = cache.store.count_all() if connected else 0

        return HealthCheckResponse(
            status="healthy" if connected else "unhealthy",
            cache_backend=self._settings.cache_backend,
            cache_connected=connected,
            cache_entries=entries,
            tracked_clients=self._service.rate_limiter.tracked_keys,
        )
