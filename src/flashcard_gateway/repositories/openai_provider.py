"""OpenAI-compatible completion provider.

Talks to any endpoint that implements the ``/chat/completions`` API (OpenAI,
Azure-style proxies, local gateways) over ``httpx``. Each call performs a
single attempt and classifies the result:

- 2xx with completion text -> CallSuccess
- 429 -> retryable (rate limited), honoring ``retry-after-ms``/``Retry-After``
- 5xx -> retryable (server error)
- transport errors (connect, read timeout, ...) -> retryable (network error)
- 401/403 -> terminal ConfigurationError
- any other 4xx or a malformed envelope -> terminal UpstreamError
"""

import httpx

from flashcard_gateway.config import Settings
from flashcard_gateway.entities import (
    CallOutcome,
    CallSuccess,
    RetryableFailure,
    RetryReason,
    TerminalFailure,
    UpstreamPrompt,
)
from flashcard_gateway.errors import ConfigurationError, UpstreamError
from flashcard_gateway.logging import get_logger

logger = get_logger(__name__)


def parse_retry_hint(headers: httpx.Headers) -> float | None:
    """Extract a retry delay in milliseconds from response headers.

    Args:
        headers: Upstream response headers

    Returns:
        Delay in milliseconds, or None if no usable numeric hint is present
    """
    retry_after_ms = headers.get("retry-after-ms")
    if retry_after_ms:
        try:
            value = float(retry_after_ms)
            if value >= 0:
                return value
        except ValueError:
            pass

    retry_after = headers.get("retry-after")
    if retry_after:
        try:
            value = float(retry_after)
            if value >= 0:
                return value * 1000
        except ValueError:
            # HTTP-date form is not used by LLM providers; fall back to backoff.
            return None
    return None


class OpenAICompletionProvider:
    """httpx-based implementation of the CompletionProvider protocol.

    This class satisfies the CompletionProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = OpenAICompletionProvider.create(settings)
        outcome = await provider.complete(UpstreamPrompt("Say hi", 0.5, 64))
        ```
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        model_name: str = "gpt-4o-mini",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: Bearer token for the upstream API (None when unconfigured)
            base_url: API base URL, without the trailing endpoint path
            model_name: Model identifier sent with every request
            timeout: Per-attempt request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model_name = model_name
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def create(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "OpenAICompletionProvider":
        """Factory method to create the provider from settings.

        Args:
            settings: Application settings
            transport: Optional httpx transport override

        Returns:
            Configured OpenAICompletionProvider
        """
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model_name=settings.openai_model,
            timeout=settings.upstream_timeout_seconds,
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _build_payload(self, prompt: UpstreamPrompt) -> dict:
        return {
            "model": self._model_name,
            "messages": [{"role": "user", "content": prompt.text}],
            "temperature": prompt.temperature,
            "max_tokens": prompt.max_tokens,
        }

    async def complete(self, prompt: UpstreamPrompt) -> CallOutcome:
        """Perform one completion attempt.

        Args:
            prompt: Prompt text and sampling parameters

        Returns:
            The classified outcome of the attempt
        """
        if not self._api_key:
            return TerminalFailure(ConfigurationError("OPENAI_API_KEY is not set"))

        url = f"{self._base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            response = await self.client.post(url, json=self._build_payload(prompt), headers=headers)
        except httpx.TransportError as e:
            return RetryableFailure(
                reason=RetryReason.NETWORK_ERROR,
                detail=f"{type(e).__name__}: {e}",
            )

        status = response.status_code
        if status == 429:
            return RetryableFailure(
                reason=RetryReason.RATE_LIMITED,
                status=status,
                retry_after_ms=parse_retry_hint(response.headers),
                detail=response.text[:500],
            )
        if status >= 500:
            return RetryableFailure(
                reason=RetryReason.SERVER_ERROR,
                status=status,
                retry_after_ms=parse_retry_hint(response.headers),
                detail=response.text[:500],
            )
        if status in (401, 403):
            return TerminalFailure(
                ConfigurationError(
                    "Upstream rejected the configured API key",
                    detail={"status": status, "body": response.text[:500]},
                )
            )
        if status >= 400:
            return TerminalFailure(
                UpstreamError(
                    f"Upstream returned HTTP {status}",
                    detail={"status": status, "body": response.text[:500]},
                )
            )

        try:
            data = response.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return TerminalFailure(
                UpstreamError(
                    "Upstream response envelope is malformed",
                    detail={"status": status, "error": str(e), "body": response.text[:500]},
                )
            )
        if not isinstance(text, str):
            return TerminalFailure(UpstreamError("Upstream completion has no text content"))

        usage = data.get("usage") or {}
        logger.debug(
            "upstream_completion",
            model=self._model_name,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
        return CallSuccess(text)

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
