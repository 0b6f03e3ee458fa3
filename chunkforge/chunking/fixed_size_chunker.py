"""Fixed-size sliding-window chunking.

Windows are ``max_chunk_size`` tokens wide and advance by
``max_chunk_size - overlap_size`` tokens, so adjacent windows share exactly
``overlap_size`` tokens. Semantics are ignored entirely, which makes this
the fastest strategy and the fallback for spans other strategies cannot
split. Output is deterministic for identical input and options.
"""

from __future__ import annotations

from typing import Iterator

from chunkforge.chunking.base import (
    ChunkDraft,
    ChunkingContext,
    ChunkingStrategy,
    window_drafts,
)


class FixedSizeChunker(ChunkingStrategy):
    """Deterministic token windows with fixed overlap."""

    name = "FixedSize"
    description = "Sliding window of max_chunk_size tokens with overlap_size carry-over"

    def _iter_drafts(self, context: ChunkingContext) -> Iterator[ChunkDraft]:
        yield from window_drafts(context.text, 0, len(context.text), context.budget)
