from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flashcard_gateway.api.dependencies import HandlerDep, lifespan
from flashcard_gateway.config import Settings, get_settings
from flashcard_gateway.dto import ConfigStatusResponse, ErrorResponse, HealthCheckResponse, RateLimitErrorResponse
from flashcard_gateway.logging import clear_request_id, configure_logging, set_request_id
from flashcard_gateway.protocols import CompletionProvider, ResponseStore

API_VERSION = "0.1.0"


def create_app(
    settings: Settings | None = None,
    provider: CompletionProvider | None = None,
    response_store: ResponseStore | None = None,
) -> FastAPI:
    """Build the gateway application.

    Args:
        settings: Settings to use instead of the environment-derived ones
        provider: Completion provider to use instead of the OpenAI client
        response_store: Cache backend to use instead of the configured one

    Returns:
        The FastAPI application; services are created by its lifespan
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Flashcard Gateway API",
        description="Rate-limited, cached and retrying dispatch of flashcard/MCQ generation to an LLM provider",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider_override = provider
    app.state.response_store_override = response_store

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Reset",
            "X-Cache",
            "X-Transcript-Sampled",
            "X-Request-ID",
        ],
    )

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = set_request_id(request.headers.get("x-request-id"))
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Flashcard Gateway API",
            "version": API_VERSION,
            "description": "Resilient dispatch of transcript analysis, flashcard and MCQ generation",
            "endpoints": {
                "ai": "/api/ai",
                "verify_key": "/api/verify-key",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep):
        """Health check endpoint."""
        report = await handler.health_check()
        if not report.cache_connected:
            return JSONResponse(report.model_dump(), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        return report

    @app.get("/api/verify-key", response_model=ConfigStatusResponse)
    async def verify_key(handler: HandlerDep) -> ConfigStatusResponse:
        """Report whether the upstream API key is configured."""
        return await handler.config_status()

    @app.post(
        "/api/ai",
        responses={
            400: {"model": ErrorResponse},
            413: {"model": ErrorResponse},
            429: {"model": RateLimitErrorResponse},
            500: {"model": ErrorResponse},
        },
    )
    async def ai(request: Request, handler: HandlerDep) -> JSONResponse:
        """
        Dispatch one AI operation (analyze, generate-batch, generate-mcq-batch).

        The body is read and validated by the handler so that every failure
        is reported with the gateway's own error bodies.
        """
        return await handler.handle(request)

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn using API_HOST, API_PORT and API_RELOAD."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "flashcard_gateway.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
