"""Credential scrubbing for upstream-derived payloads."""

import copy
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = (
    "apikey",
    "api_key",
    "token",
    "secret",
    "password",
    "credential",
    "authorization",
    "access_token",
)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def _scrub(node: Any) -> None:
    if isinstance(node, dict):
        for key in list(node):
            if isinstance(key, str) and _is_sensitive(key):
                node[key] = REDACTED
            else:
                _scrub(node[key])
    elif isinstance(node, list):
        for item in node:
            _scrub(item)


def sanitize_payload(data: Any) -> Any:
    """Return a deep copy of data with credential-like keys redacted."""
    cleaned = copy.deepcopy(data)
    _scrub(cleaned)
    return cleaned
