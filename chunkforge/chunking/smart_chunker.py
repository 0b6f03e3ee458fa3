"""
Sentence-aware chunking with a flexible ceiling.

Builds on SemanticChunker's packing loop with three changes:

1. Flex: when the current chunk is still below ``min_chunk_size`` and the
   next sentence would overflow ``max_chunk_size``, the sentence is appended
   anyway as long as the chunk stays within ``flex_ratio * max_chunk_size``
   (1.25 by default). The chunk is flushed right after.
2. Paragraph flush: a chunk is closed early at a paragraph end once it
   holds at least ``paragraph_flush_ratio`` (0.8) of the ceiling.
3. Oversized sentences are never cut. A sentence above the flexible
   ceiling becomes its own chunk with an ``oversized_sentence`` warning and
   a quality penalty, and no overlap is carried after it.

This is the default choice of the Auto selector when the ranking is
inconclusive or the analysis fails.
"""

from __future__ import annotations

from typing import Iterator

from chunkforge.chunking.base import ChunkDraft, ChunkingContext
from chunkforge.chunking.segmenter import Sentence
from chunkforge.chunking.semantic_chunker import SemanticChunker

OVERSIZED_WARNING = "oversized_sentence"
OVERSIZED_PENALTY = 0.2
DEFAULT_PARAGRAPH_FLUSH_RATIO = 0.8


class SmartChunker(SemanticChunker):
    """Semantic packing with flex, paragraph flushes and whole oversized sentences."""

    name = "Smart"
    description = "Sentence-aware with a 1.25x flexible ceiling; never cuts a sentence"

    def _oversized(
        self, context: ChunkingContext, sentence: Sentence
    ) -> Iterator[ChunkDraft]:
        draft = ChunkDraft(start=sentence.start_char, end=sentence.end_char)
        draft.metadata["sentence_count"] = 1
        if sentence.token_count > context.budget.flex_max:
            draft.warnings.append(OVERSIZED_WARNING)
            draft.penalty = OVERSIZED_PENALTY
        else:
            draft.metadata["flexed"] = True
        yield draft

    def _absorb_on_flush(
        self, context: ChunkingContext, current_tokens: int, next_size: int
    ) -> bool:
        budget = context.budget
        return current_tokens < budget.min_tokens and budget.fits(
            current_tokens + next_size, flexible=True
        )

    def _flush_after(
        self, context: ChunkingContext, sentence: Sentence, current_tokens: int
    ) -> bool:
        if not sentence.is_paragraph_end:
            return False
        ratio = float(
            context.options.option("paragraph_flush_ratio", DEFAULT_PARAGRAPH_FLUSH_RATIO)
        )
        return current_tokens >= ratio * context.budget.max_tokens
