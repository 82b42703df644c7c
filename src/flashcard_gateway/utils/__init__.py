"""Utility modules for the flashcard gateway."""

from .ip import LOOPBACK_SENTINEL, is_valid_ip, resolve_client_ip
from .sanitize import sanitize_payload
from .transcript import ELISION_MARKER, TranscriptSample, count_words, sample_transcript
from .ttl_store import TTLLRUStore

__all__ = [
    "ELISION_MARKER",
    "LOOPBACK_SENTINEL",
    "TTLLRUStore",
    "TranscriptSample",
    "count_words",
    "is_valid_ip",
    "resolve_client_ip",
    "sample_transcript",
    "sanitize_payload",
]
