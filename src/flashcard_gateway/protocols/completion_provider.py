"""Completion provider protocol.

Defines the interface for the upstream LLM completion service. A provider
performs exactly one attempt per call and reports the result as a call
outcome; retrying is the retry engine's job.
"""

from typing import Protocol, runtime_checkable

from flashcard_gateway.entities import CallOutcome, UpstreamPrompt


@runtime_checkable
class CompletionProvider(Protocol):
    """Protocol for upstream completion services.

    Example:
        ```python
        provider: CompletionProvider = OpenAICompletionProvider.create(settings)
        outcome = await provider.complete(UpstreamPrompt("...", 0.5, 2048))
        ```
    """

    @property
    def model_name(self) -> str:
        """Return the model identifier sent upstream."""
        ...

    @property
    def is_configured(self) -> bool:
        """Return True when credentials are present."""
        ...

    async def complete(self, prompt: UpstreamPrompt) -> CallOutcome:
        """Perform one completion attempt.

        Args:
            prompt: Prompt text and sampling parameters

        Returns:
            CallSuccess with the completion text, RetryableFailure or TerminalFailure
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
