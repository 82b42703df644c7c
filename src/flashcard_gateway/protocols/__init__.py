"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (in-memory -> Redis, OpenAI -> any compatible API)
- Unit testing with fake implementations
- Clear separation of concerns
"""

from .completion_provider import CompletionProvider
from .response_store import ResponseStore

__all__ = [
    "CompletionProvider",
    "ResponseStore",
]
