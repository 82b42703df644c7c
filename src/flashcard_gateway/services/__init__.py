"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from flashcard_gateway.services import DispatchService

    service = DispatchService.create(settings, provider, store)
    ```
"""

from .dispatch_service import DispatchResult, DispatchService
from .prompts import build_prompt
from .rate_limiter import RateLimiter
from .request_cache import RequestCache, fingerprint
from .response_repair import (
    extract_structural_anchor,
    parse_response,
    repair_json,
    strip_code_fences,
    strip_trailing_commas,
)
from .retry import RetryEngine, RetryPolicy, compute_delay

__all__ = [
    "DispatchResult",
    "DispatchService",
    "RateLimiter",
    "RequestCache",
    "RetryEngine",
    "RetryPolicy",
    "build_prompt",
    "compute_delay",
    "extract_structural_anchor",
    "fingerprint",
    "parse_response",
    "repair_json",
    "strip_code_fences",
    "strip_trailing_commas",
]
