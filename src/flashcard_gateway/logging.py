"""Structured logging configuration.

All records are rendered by structlog on top of the standard library logger,
so uvicorn and httpx output share the same sink. A request ID bound through
``set_request_id`` is merged into every record emitted while handling that
request.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ...)
        json_output: Render JSON lines when True, human-readable console output otherwise
    """
    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_correlation_context,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def add_correlation_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the current request ID to log events."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def set_request_id(request_id: str | None = None) -> str:
    """Set request ID in context, generating one if absent."""
    if not request_id:
        request_id = uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


def clear_request_id() -> None:
    request_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


_api_logger = get_logger("flashcard_gateway.api")


def log_api_request(
    operation: str,
    client_ip: str,
    status: int,
    error: str | None = None,
    **fields: Any,
) -> None:
    """Emit the standard record for one handled API request.

    Args:
        operation: Operation type (analyze, generate-batch, ...) or "unknown"
        client_ip: Validated client key used for rate limiting
        status: HTTP status returned to the caller
        error: Error code label, None on success
        **fields: Extra diagnostic fields (detail, cache status, duration)
    """
    log = _api_logger.error if status >= 500 else _api_logger.warning if status >= 400 else _api_logger.info
    log(
        "api_request",
        operation=operation,
        client_ip=client_ip,
        status=status,
        error=error,
        logged_at=time.time(),
        **fields,
    )
