"""Coerce free-text provider completions into structured payloads.

Repair is an ordered pipeline of pure text transforms:

1. ``strip_code_fences``: drop Markdown fences and their language tags
2. ``strip_trailing_commas``: drop commas directly before ``}`` or ``]``
3. ``extract_structural_anchor``: cut the text down to the outermost object

If the repaired text still does not decode into the expected shape, one
fallback pass isolates the expected object with a kind-specific pattern and
runs the pipeline again. Anything else is a ResponseParseError; no partial or
guessed content is returned.
"""

import json
import re
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from flashcard_gateway.dto import AnalysisResponse, FlashcardBatchResponse, McqBatchResponse
from flashcard_gateway.entities import OperationKind
from flashcard_gateway.errors import ResponseParseError
from flashcard_gateway.logging import get_logger

logger = get_logger(__name__)

_FENCE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_CLOSERS = {"{": "}", "[": "]"}

FALLBACK_PATTERNS: dict[OperationKind, re.Pattern[str]] = {
    OperationKind.ANALYZE: re.compile(r'\{\s*"subject"\s*:.*\}', re.DOTALL),
    OperationKind.FLASHCARDS: re.compile(r'\{\s*"flashcards"\s*:\s*\[.*\]\s*\}', re.DOTALL),
    OperationKind.MCQS: re.compile(r'\{\s*"questions"\s*:\s*\[.*\]\s*\}', re.DOTALL),
}

RESPONSE_SCHEMAS: dict[OperationKind, type[BaseModel]] = {
    OperationKind.ANALYZE: AnalysisResponse,
    OperationKind.FLASHCARDS: FlashcardBatchResponse,
    OperationKind.MCQS: McqBatchResponse,
}


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences (```json ... ```) around or inside text."""
    return _FENCE.sub("", text).strip()


def strip_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing brace or bracket."""
    return _TRAILING_COMMA.sub(r"\1", text)


def extract_structural_anchor(text: str, opener: str = "{") -> str:
    """Cut text to the span from the first opener to the last matching closer.

    Text that already starts with the opener, or contains no complete span,
    is returned unchanged.
    """
    stripped = text.strip()
    if stripped.startswith(opener):
        return stripped

    closer = _CLOSERS[opener]
    start = stripped.find(opener)
    end = stripped.rfind(closer)
    if start == -1 or end <= start:
        return stripped
    return stripped[start : end + 1]


def repair_json(text: str, opener: str = "{") -> str:
    """Apply every repair step in order, unless the text already parses.

    Valid JSON is returned as-is so string values containing fences or
    ``,]`` sequences are never rewritten.
    """
    stripped = text.strip()
    try:
        json.loads(stripped)
    except json.JSONDecodeError:
        return extract_structural_anchor(strip_trailing_commas(strip_code_fences(text)), opener)
    return stripped


def _decode(candidate: str, schema: type[BaseModel]) -> dict[str, Any]:
    data = json.loads(candidate)
    return schema.model_validate(data).model_dump()


def parse_response(kind: OperationKind, text: str) -> dict[str, Any]:
    """Parse and shape-check a provider completion.

    Args:
        kind: Operation the completion answers
        text: Raw completion text (untrusted)

    Returns:
        The validated payload for kind

    Raises:
        ResponseParseError: Neither the repaired text nor the fallback
            extraction yields a well-formed payload
    """
    schema = RESPONSE_SCHEMAS[kind]
    errors: list[str] = []

    try:
        return _decode(repair_json(text), schema)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        errors.append(f"repair: {type(e).__name__}: {e}")

    match = FALLBACK_PATTERNS[kind].search(strip_code_fences(text))
    if match is not None:
        try:
            payload = _decode(repair_json(match.group(0)), schema)
            logger.info("response_repaired_by_fallback", operation=kind.value)
            return payload
        except (json.JSONDecodeError, PydanticValidationError) as e:
            errors.append(f"fallback: {type(e).__name__}: {e}")
    else:
        errors.append("fallback: no match")

    logger.error(
        "response_parse_failed",
        operation=kind.value,
        errors=[err[:300] for err in errors],
        raw_text=text[:4000],
    )
    raise ResponseParseError(
        f"Could not parse {kind.value} response",
        detail={"errors": errors},
    )
