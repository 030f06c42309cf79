"""Sentence-aware chunking with overlap.

Documents are split on sentence boundaries and packed greedily into
chunks whose estimated size stays within ``chunk_size`` tokens.  Every
chunk after the first starts with the trailing words of the previous one
so that context carried across a boundary is not lost.  Sizes are
estimated with :func:`~llmkit.utils.tokens.estimate_tokens`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from ..utils.tokens import estimate_tokens

# A sentence runs up to its terminal punctuation; an unterminated tail is kept
_SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+|[^.!?]+$")


@dataclass(frozen=True)
class DocumentChunk:
    """One unit of work for the extractor.

    Attributes:
        index: Position of the chunk in the document, from 0.
        text: Text sent to the model (overlap followed by body).
        overlap: Words repeated from the end of the previous chunk.
        body: Sentences that belong to this chunk only.
    """

    index: int
    text: str
    overlap: str = ""
    body: str = ""


def split_sentences(text: str) -> List[str]:
    """Split ``text`` into stripped, non-empty sentences."""
    sentences = []
    for match in _SENTENCE_PATTERN.finditer(text):
        sentence = match.group(0).strip()
        if sentence:
            sentences.append(sentence)
    return sentences


def overlap_tail(text: str, overlap: int) -> str:
    """Return the longest run of trailing words whose estimate fits ``overlap`` tokens."""
    if overlap <= 0:
        return ""
    words = text.split()
    tail: List[str] = []
    for word in reversed(words):
        candidate = " ".join([word] + tail)
        if estimate_tokens(candidate) > overlap:
            break
        tail.insert(0, word)
    return " ".join(tail)


def _make_chunk(index: int, overlap: str, sentences: List[str]) -> DocumentChunk:
    body = " ".join(sentences)
    text = f"{overlap} {body}".strip()
    return DocumentChunk(index=index, text=text, overlap=overlap, body=body)


def chunk_text(text: str, chunk_size: int = 4000, overlap: int = 200) -> List[DocumentChunk]:
    """Split ``text`` into overlapping chunks of at most ``chunk_size`` estimated tokens.

    A single sentence larger than the budget becomes a chunk of its own.
    Empty or whitespace-only text yields no chunks.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0:
        raise ValueError("overlap must not be negative")

    stripped = text.strip()
    if not stripped:
        return []
    if estimate_tokens(stripped) <= chunk_size:
        return [DocumentChunk(index=0, text=stripped, body=stripped)]

    chunks: List[DocumentChunk] = []
    current: List[str] = []
    carried = ""

    for sentence in split_sentences(stripped):
        candidate = " ".join(([carried] if carried else []) + current + [sentence])
        if current and estimate_tokens(candidate) > chunk_size:
            chunk = _make_chunk(len(chunks), carried, current)
            chunks.append(chunk)
            carried = overlap_tail(chunk.body, overlap)
            current = []
        current.append(sentence)

    if current:
        chunks.append(_make_chunk(len(chunks), carried, current))
    return chunks
