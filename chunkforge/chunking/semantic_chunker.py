"""
Sentence-accumulating chunking.

Sentences from the language profile are packed into chunks until the next
one would break the ``max_chunk_size`` ceiling. Cuts therefore always fall
on sentence boundaries. Overlap is expressed in whole sentences: the
trailing sentences of a chunk that fit in ``overlap_size`` tokens (or the
``overlap_sentences`` strategy option) are repeated at the head of the next
chunk.

    s1 s2 s3 | s4 s5        max reached after s3
          s3 s4 s5 s6 |     s3 carried over as overlap

A sentence that alone exceeds the ceiling has no usable boundary inside the
window, so that one sentence is cut into fixed-size token windows.

The packing loop exposes hooks (_oversized, _absorb_on_flush,
_flush_after) that SmartChunker overrides.
"""

from __future__ import annotations

import dataclasses
from typing import Iterator, List, Optional, Sequence

from chunkforge.chunking.base import (
    ChunkDraft,
    ChunkingContext,
    ChunkingStrategy,
    window_drafts,
)
from chunkforge.chunking.segmenter import Sentence, segment_sentences

OVERSIZED_SENTENCE_WARNING = "sentence_exceeds_max_chunk_size"


class SemanticChunker(ChunkingStrategy):
    """Chunk on sentence boundaries with sentence-level overlap."""

    name = "Semantic"
    description = "Accumulates sentences up to the ceiling; overlap in whole sentences"

    def _iter_drafts(self, context: ChunkingContext) -> Iterator[ChunkDraft]:
        sentences = segment_sentences(context.text, context.profile)
        yield from self._pack(context, sentences)

    def _pack(
        self, context: ChunkingContext, sentences: Sequence[Sentence]
    ) -> Iterator[ChunkDraft]:
        """Greedy sentence packing with lazy overlap."""
        budget = context.budget
        current: List[Sentence] = []
        current_tokens = 0
        previous: List[Sentence] = []

        for sentence in sentences:
            size = sentence.token_count

            if size > budget.max_tokens:
                if current:
                    yield self._draft(current)
                yield from self._oversized(context, sentence)
                current, current_tokens, previous = [], 0, []
                continue

            if not current and previous:
                current = self._overlap_tail(context, previous, size)
                current_tokens = sum(s.token_count for s in current)
                previous = []

            if current and current_tokens + size > budget.max_tokens:
                if self._absorb_on_flush(context, current_tokens, size):
                    current.append(sentence)
                    yield self._draft(current, flexed=True)
                    previous, current, current_tokens = current, [], 0
                    continue
                yield self._draft(current)
                previous = current
                current = self._overlap_tail(context, previous, size)
                current_tokens = sum(s.token_count for s in current)
                previous = []

            current.append(sentence)
            current_tokens += size

            if self._flush_after(context, sentence, current_tokens):
                yield self._draft(current)
                previous, current, current_tokens = current, [], 0

        if current:
            yield self._draft(current)

    def _draft(self, sentences: Sequence[Sentence], flexed: bool = False) -> ChunkDraft:
        draft = ChunkDraft(start=sentences[0].start_char, end=sentences[-1].end_char)
        draft.metadata["sentence_count"] = len(sentences)
        if flexed:
            draft.metadata["flexed"] = True
        return draft

    def _overlap_tail(
        self, context: ChunkingContext, previous: Sequence[Sentence], next_size: int
    ) -> List[Sentence]:
        """Trailing sentences of ``previous`` to repeat in the next chunk.

        Never the whole previous chunk, and never so much that the overlap
        plus the next sentence would break the ceiling.
        """
        budget = context.budget
        limit_sentences: Optional[int] = context.options.option("overlap_sentences")
        limit_tokens = budget.max_tokens if limit_sentences else budget.overlap_tokens

        tail: List[Sentence] = []
        tokens = 0
        for sentence in reversed(previous[1:]):
            if limit_sentences is not None and len(tail) >= int(limit_sentences):
                break
            size = sentence.token_count
            if tokens + size > limit_tokens or tokens + size + next_size > budget.max_tokens:
                break
            tail.insert(0, sentence)
            tokens += size
        return tail

    # Hooks overridden by SmartChunker

    def _oversized(
        self, context: ChunkingContext, sentence: Sentence
    ) -> Iterator[ChunkDraft]:
        """No boundary inside the window: cut this sentence into token windows."""
        yield from window_drafts(
            context.text,
            sentence.start_char,
            sentence.end_char,
            context.budget,
            warning=OVERSIZED_SENTENCE_WARNING,
            merge_short_tail=False,
        )

    def _absorb_on_flush(
        self, context: ChunkingContext, current_tokens: int, next_size: int
    ) -> bool:
        return False

    def _flush_after(
        self, context: ChunkingContext, sentence: Sentence, current_tokens: int
    ) -> bool:
        return False


_PACKER = SemanticChunker()


def pack_sentences(
    context: ChunkingContext, sentences: Sequence[Sentence], overlap: bool = True
) -> List[ChunkDraft]:
    """Pack sentences of one span into drafts (used by other strategies)."""
    if not overlap:
        context = dataclasses.replace(
            context, budget=dataclasses.replace(context.budget, overlap_tokens=0)
        )
    return list(_PACKER._pack(context, sentences))
