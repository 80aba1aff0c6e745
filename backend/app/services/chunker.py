"""Chunker — splits document text into overlapping windows for embedding.

Pure function of the input text and the two window constants: identical input
always yields the identical chunk sequence.
"""
from __future__ import annotations

import re

CHUNK_SIZE = 500     # target window size (chars)
CHUNK_OVERLAP = 50   # chars shared by consecutive windows

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""
    return _WHITESPACE.sub(" ", text or "").strip()


def chunk_text(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> list[str]:
    """Split text into overlapping chunks that end on word boundaries.

    A window that would end inside a word is extended forward to the next
    space; if no space follows, the raw boundary is kept. The next window
    starts `overlap` chars before the previous window's end, and chunking
    stops once that start is at or past the end of the text. A window that
    reaches the end is therefore followed by one short overlap-only tail
    unless its end overshoots the text by at least `overlap`.

    Args:
        text: Raw document text (may be empty).
        chunk_size: Target size per chunk (chars).
        overlap: Overlap between consecutive chunks.

    Returns:
        List of text chunks, in document order.
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    normalized = normalize_whitespace(text)
    if not normalized:
        return []

    length = len(normalized)
    chunks: list[str] = []
    start = 0

    while start < length:
        end = start + chunk_size
        if end < length:
            next_space = normalized.find(" ", end)
            if next_space != -1:
                end = next_space + 1
        chunk = normalized[start:end].strip()
        if chunk:
            chunks.append(chunk)
        start = end - overlap

    return chunks
