"""Client address extraction from proxy headers."""

import ipaddress
from collections.abc import Mapping

from flashcard_gateway.logging import get_logger

LOOPBACK_SENTINEL = "127.0.0.1"

logger = get_logger(__name__)


def is_valid_ip(value: str) -> bool:
    """Check that value is a syntactically valid IPv4 or IPv6 address.

    Surrounding brackets (``[::1]``) are ignored. IPv6 accepts a single ``::``
    compression; IPv4 requires four octets in 0-255. Scoped IPv6 addresses
    (``fe80::1%eth0``) are rejected.
    """
    candidate = value.strip()
    if candidate.startswith("[") and candidate.endswith("]"):
        candidate = candidate[1:-1]
    if not candidate or "%" in candidate:
        return False
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return True


def extract_client_ip(headers: Mapping[str, str]) -> str:
    """Pick the best-effort client address from proxy headers, unvalidated."""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return LOOPBACK_SENTINEL


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """Return a validated client identifier for rate limiting.

    Malformed client metadata is logged and replaced by the loopback
    sentinel; this function never raises.

    Args:
        headers: Request headers (case-insensitive mapping or lowercase keys)

    Returns:
        A valid IP address string
    """
    candidate = extract_client_ip(headers)
    if is_valid_ip(candidate):
        return candidate

    logger.warning("invalid_client_ip", raw_value=candidate[:64], substituted=LOOPBACK_SENTINEL)
    return LOOPBACK_SENTINEL
