"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the upstream LLM API)
behind protocol-based interfaces. This enables:
- Easy swapping of implementations (in-memory -> Redis, OpenAI -> compatible APIs)
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from flashcard_gateway.protocols import CompletionProvider, ResponseStore

from .memory_repository import InMemoryResponseRepository
from .openai_provider import OpenAICompletionProvider, parse_retry_hint
from .redis_repository import RedisResponseRepository

__all__ = [
    "CompletionProvider",
    "ResponseStore",
    "InMemoryResponseRepository",
    "OpenAICompletionProvider",
    "RedisResponseRepository",
    "parse_retry_hint",
]
