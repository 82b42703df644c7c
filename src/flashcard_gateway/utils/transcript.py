"""Transcript helpers: word counting and bounded sampling of long documents."""

import re
from dataclasses import dataclass

ELISION_MARKER = "\n\n[...]\n\n"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class TranscriptSample:
    """Text forwarded upstream in place of the full transcript.

    Attributes:
        text: The transcript or its beginning/middle/end extract
        partial: True when the text is an extract of a longer original
        original_length: Character length of the original transcript
    """

    text: str
    partial: bool
    original_length: int


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    stripped = text.strip()
    if not stripped:
        return 0
    return len(_WHITESPACE.split(stripped))


def sample_transcript(text: str, threshold: int, marker: str = ELISION_MARKER) -> TranscriptSample:
    """Bound a transcript to at most ``threshold`` characters.

    Transcripts at or below the threshold are returned unchanged. Longer ones
    are replaced by three equal slices taken from the beginning, the middle
    and the end of the document, joined by ``marker``. The first and last
    slices are literal prefix and suffix of the original.

    Args:
        text: Full transcript
        threshold: Maximum characters forwarded upstream
        marker: Separator inserted between slices

    Returns:
        TranscriptSample with ``partial`` set when sampling happened
    """
    length = len(text)
    if length <= threshold:
        return TranscriptSample(text=text, partial=False, original_length=length)

    slice_size = (threshold - 2 * len(marker)) // 3
    if slice_size < 1:
        raise ValueError(f"threshold {threshold} is too small to sample with a {len(marker)}-char marker")

    head = text[:slice_size]
    middle_start = (length - slice_size) // 2
    middle = text[middle_start : middle_start + slice_size]
    tail = text[length - slice_size :]

    return TranscriptSample(
        text=marker.join((head, middle, tail)),
        partial=True,
        original_length=length,
    )
