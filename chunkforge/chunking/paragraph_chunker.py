"""
Paragraph-boundary chunking.

Paragraphs (runs of text separated by blank lines) are accumulated into a
chunk while the total stays within ``max_chunk_size``. A paragraph that is
larger than the ceiling on its own is re-split on sentence boundaries; a
paragraph with no usable sentence boundary falls back to fixed-size windows
for that span only.

Strategy options:
    max_paragraphs_per_chunk: Close a chunk after this many paragraphs
"""

from __future__ import annotations

from functools import partial
from typing import Iterator, List, Optional

from chunkforge.chunking.base import ChunkDraft, ChunkingContext, ChunkingStrategy
from chunkforge.chunking.models import ChunkingOptions, RefinedContent, TextSpan
from chunkforge.chunking.budget import estimate_tokens
from chunkforge.chunking.segmenter import segment_sentences, split_paragraphs
from chunkforge.chunking.semantic_chunker import pack_sentences
from chunkforge.chunking.structure import is_heading
from chunkforge.core.exceptions import StrategyFailureError


class ParagraphChunker(ChunkingStrategy):
    """Accumulate whole paragraphs up to the ceiling."""

    name = "Paragraph"
    description = "Groups paragraphs up to max_chunk_size; splits oversized ones by sentence"

    def _iter_drafts(self, context: ChunkingContext) -> Iterator[ChunkDraft]:
        text = context.text
        budget = context.budget
        max_paragraphs: Optional[int] = context.options.option("max_paragraphs_per_chunk")

        start: Optional[int] = None
        end = 0
        tokens = 0
        count = 0

        for paragraph in split_paragraphs(text):
            size = context.tokens_in(paragraph.start, paragraph.end)

            if size > budget.max_tokens:
                if start is not None:
                    yield ChunkDraft(start=start, end=end)
                    start, tokens, count = None, 0, 0
                yield from self._split_or_fallback(
                    context,
                    paragraph.start,
                    paragraph.end,
                    partial(self._split_by_sentences, context),
                )
                continue

            starts_section = context.options.preserve_structure and is_heading(
                paragraph.slice(text).split("\n", 1)[0]
            )
            if start is not None and (
                tokens + size > budget.max_tokens
                or (max_paragraphs and count >= int(max_paragraphs))
                or starts_section
            ):
                yield ChunkDraft(start=start, end=end)
                start, tokens, count = None, 0, 0

            if start is None:
                start = paragraph.start
            end = paragraph.end
            tokens += size
            count += 1

        if start is not None:
            yield ChunkDraft(start=start, end=end)

    def _split_by_sentences(
        self, context: ChunkingContext, start: int, end: int
    ) -> List[ChunkDraft]:
        sentences = segment_sentences(context.text, context.profile, TextSpan(start, end))
        if len(sentences) < 2:
            raise StrategyFailureError(
                "Paragraph has no sentence boundary to split on",
                start_char=start,
                end_char=end,
            )
        return pack_sentences(context, sentences, overlap=False)

    def estimate_chunk_count(
        self, content: RefinedContent, options: ChunkingOptions
    ) -> int:
        if content.is_blank:
            return 0
        limit = options.max_chunk_size
        count = 0
        running = 0
        for paragraph in split_paragraphs(content.text):
            size = estimate_tokens(paragraph.slice(content.text))
            if size > limit:
                count += (1 if running else 0) + -(-size // limit)
                running = 0
            elif running + size > limit:
                count += 1
                running = size
            else:
                running += size
        return max(1, count + (1 if running else 0))
