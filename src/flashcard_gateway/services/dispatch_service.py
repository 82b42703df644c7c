"""Dispatch gateway: the orchestration of one AI operation.

Pipeline for a request, strictly in this order:

    admit (rate limit) -> parse_request (validation, word bounds)
    -> sample transcript -> fingerprint -> cache lookup (hit returns)
    -> configuration check -> build prompt -> retry engine around the provider
    -> repair/validate response -> sanitize -> cache store -> result

The HTTP handler owns IP resolution and body decoding; this service owns
everything from the rate-limit gate onwards.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from flashcard_gateway.config import Settings
from flashcard_gateway.dto import (
    FlashcardBatchRequest,
    McqBatchRequest,
    OperationRequest,
    operation_request_adapter,
)
from flashcard_gateway.dto.requests import MAX_BATCH_COUNT, MIN_BATCH_COUNT
from flashcard_gateway.entities import OperationKind, RateLimitStatus
from flashcard_gateway.errors import ConfigurationError, PayloadTooLargeError, ValidationError
from flashcard_gateway.logging import get_logger
from flashcard_gateway.protocols import CompletionProvider, ResponseStore
from flashcard_gateway.services.prompts import build_prompt
from flashcard_gateway.services.rate_limiter import RateLimiter
from flashcard_gateway.services.request_cache import RequestCache, fingerprint
from flashcard_gateway.services.response_repair import parse_response
from flashcard_gateway.services.retry import RetryEngine, RetryPolicy
from flashcard_gateway.utils import count_words, sample_transcript, sanitize_payload

logger = get_logger(__name__)

_OPERATION_TYPES = {kind.value for kind in OperationKind}
_BATCH_TYPES = {OperationKind.FLASHCARDS.value, OperationKind.MCQS.value}


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a successful dispatch.

    Attributes:
        payload: Structured response body for the operation
        cached: True when served from the request cache
        partial: True when the transcript was sampled before forwarding
        fingerprint: Cache key of the request
        kind: Operation that was dispatched
    """

    payload: dict[str, Any]
    cached: bool
    partial: bool
    fingerprint: str
    kind: OperationKind


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _valid_count(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return MIN_BATCH_COUNT <= value <= MAX_BATCH_COUNT


def _describe_validation_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    # The first location element is the union tag.
    path = ".".join(str(part) for part in first["loc"][1:]) or "body"
    return f"Invalid field '{path}': {first['msg']}"


class DispatchService:
    """Gateway service wiring the rate limiter, cache, retry engine and provider.

    Example:
        ```python
        service = DispatchService.create(settings, provider, InMemoryResponseRepository.create(1000, 300))
        service.admit("203.0.113.7")
        request = service.parse_request({"type": "analyze", "transcript": text})
        result = await service.dispatch("203.0.113.7", request)
        ```
    """

    def __init__(
        self,
        settings: Settings,
        rate_limiter: RateLimiter,
        request_cache: RequestCache,
        retry_engine: RetryEngine,
        provider: CompletionProvider,
    ) -> None:
        self._settings = settings
        self._limiter = rate_limiter
        self._cache = request_cache
        self._retry = retry_engine
        self._provider = provider

    @classmethod
    def create(
        cls,
        settings: Settings,
        provider: CompletionProvider,
        store: ResponseStore,
    ) -> "DispatchService":
        """Factory method building every collaborator from settings.

        Args:
            settings: Application settings
            provider: Upstream completion provider
            store: Response cache backend

        Returns:
            Configured DispatchService
        """
        return cls(
            settings=settings,
            rate_limiter=RateLimiter(
                limit=settings.rate_limit_requests_per_minute,
                interval_seconds=settings.rate_limit_interval_seconds,
                max_tracked_keys=settings.rate_limit_max_tracked_ips,
            ),
            request_cache=RequestCache(
                store=store,
                ttl_seconds=settings.cache_ttl_seconds,
                sweep_interval_seconds=settings.cache_sweep_interval_seconds,
            ),
            retry_engine=RetryEngine(RetryPolicy.from_settings(settings)),
            provider=provider,
        )

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def request_cache(self) -> RequestCache:
        return self._cache

    @property
    def provider(self) -> CompletionProvider:
        return self._provider

    def admit(self, client_key: str) -> RateLimitStatus:
        """Apply the rate-limit gate for a client.

        Raises:
            RateLimitExceeded: The client is over its limit for the window
        """
        return self._limiter.check(self._settings.rate_limit_requests_per_minute, client_key)

    def parse_request(self, body: Any) -> OperationRequest:
        """Validate a decoded JSON body into an operation request.

        Checks run in a fixed order so the first problem found is the one
        reported: body, type, count, required fields, field types, then
        transcript word bounds.

        Raises:
            ValidationError: Malformed input (400)
            PayloadTooLargeError: Transcript over the maximum word count (413)
        """
        if not body or not isinstance(body, dict):
            raise ValidationError("Missing request body")

        op_type = body.get("type")
        if not isinstance(op_type, str) or op_type not in _OPERATION_TYPES:
            raise ValidationError("Invalid operation type")

        if op_type in _BATCH_TYPES and body.get("count") is not None and not _valid_count(body["count"]):
            raise ValidationError("Invalid count (must be between 1 and 50)")

        if op_type == OperationKind.ANALYZE.value:
            if _is_blank(body.get("transcript")):
                raise ValidationError("Missing transcript for analysis")
        else:
            if not body.get("courseData"):
                raise ValidationError("Missing course data")
            if _is_blank(body.get("transcript")):
                raise ValidationError("Missing transcript")

        existing = body.get("existingQuestions")
        if existing is not None and not isinstance(existing, list):
            raise ValidationError("existingQuestions must be an array if provided")

        data = {key: value for key, value in body.items() if value is not None}
        if not data.get("language"):
            data.pop("language", None)
        if op_type != OperationKind.FLASHCARDS.value:
            data.pop("existingQuestions", None)

        try:
            request = operation_request_adapter.validate_python(data)
        except PydanticValidationError as e:
            raise ValidationError(
                _describe_validation_error(e),
                detail={"errors": e.errors(include_url=False)},
            ) from e

        words = count_words(request.transcript)
        if words < self._settings.min_word_count:
            raise ValidationError(
                f"Transcript too short. Minimum {self._settings.min_word_count} words required, "
                f"but got {words} words."
            )
        if words > self._settings.max_word_count:
            raise PayloadTooLargeError(
                f"Transcript too long. Maximum {self._settings.max_word_count} words allowed, "
                f"but got {words} words."
            )
        return request

    def _fingerprint(self, request: OperationRequest, transcript: str) -> str:
        count = course_data = existing = None
        if isinstance(request, (FlashcardBatchRequest, McqBatchRequest)):
            count = request.count
            course_data = request.course_data.model_dump()
        if isinstance(request, FlashcardBatchRequest):
            existing = request.existing_questions
        return fingerprint(
            kind=request.type,
            language=request.language,
            transcript=transcript,
            count=count,
            course_data=course_data,
            existing_questions=existing,
        )

    async def dispatch(self, client_key: str, request: OperationRequest) -> DispatchResult:
        """Produce the structured result for a validated request.

        Args:
            client_key: Validated client identifier, for logs
            request: Request returned by parse_request

        Returns:
            DispatchResult with the payload and cache/sampling flags

        Raises:
            ConfigurationError: No API key is configured
            RetryTimeoutError: The retry deadline was reached
            MaxRetriesExceededError: Every attempt failed transiently
            ResponseParseError: The completion could not be repaired
            UpstreamError: The provider rejected the request
        """
        kind = OperationKind(request.type)
        sample = sample_transcript(request.transcript, self._settings.transcript_chunk_threshold)
        if sample.partial:
            logger.info(
                "transcript_sampled",
                operation=kind.value,
                original_length=sample.original_length,
                sampled_length=len(sample.text),
            )

        key = self._fingerprint(request, sample.text)
        cached = self._cache.get(key)
        if cached is not None:
            return DispatchResult(payload=cached, cached=True, partial=sample.partial, fingerprint=key, kind=kind)

        if not self._provider.is_configured:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        prompt = build_prompt(request, sample.text)
        text = await self._retry.execute(
            lambda: self._provider.complete(prompt),
            budget_seconds=self._settings.request_deadline_seconds,
        )

        payload = sanitize_payload(parse_response(kind, text))
        self._cache.put(key, payload, metadata={"operation": kind.value, "partial": sample.partial})

        logger.info(
            "operation_dispatched",
            operation=kind.value,
            client_ip=client_key,
            fingerprint=key,
            partial=sample.partial,
        )
        return DispatchResult(payload=payload, cached=False, partial=sample.partial, fingerprint=key, kind=kind)
