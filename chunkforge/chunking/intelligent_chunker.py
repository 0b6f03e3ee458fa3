"""
Structure- and domain-aware chunking.

The document is parsed line by line into blocks:

    heading    "## Install", "2.1 Scope", "Chapter 3"
    code       fenced with ``` or ~~~ (the fence lines included)
    table      consecutive lines with two or more single pipes
    list       consecutive list items and their indented continuations
    text       everything else, split on blank lines

Code, table and list blocks are atomic. They are emitted whole even when
they exceed ``max_chunk_size``, up to ``atomic_split_multiple`` times the
ceiling (4 by default). Beyond that the block is hard-split into windows
annotated ``atomic_block_split``. Text blocks are packed like paragraphs
and split on sentences when they are larger than the ceiling.

Headings feed a breadcrumb stack; each chunk carries the breadcrumb as its
contextual header ("Guide > Install > Linux"). With ``preserve_structure``
a heading always opens a new chunk, so a heading is never separated from
the content that follows it.

Every chunk is stamped with the document domain and technical keywords.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Iterator, List, Optional, Tuple

from chunkforge.chunking.base import (
    ChunkDraft,
    ChunkingContext,
    ChunkingStrategy,
    section_path_at,
    window_drafts,
)
from chunkforge.chunking.models import StructuralRole, TextSpan
from chunkforge.chunking.segmenter import segment_sentences, trim_span
from chunkforge.chunking.semantic_chunker import pack_sentences
from chunkforge.chunking.structure import (
    heading_level,
    heading_title,
    is_code_fence,
    is_list_item,
    is_table_line,
)
from chunkforge.core.exceptions import StrategyFailureError

ATOMIC_SPLIT_WARNING = "atomic_block_split"
DEFAULT_ATOMIC_SPLIT_MULTIPLE = 4
HEADER_SEPARATOR = " > "


class BlockKind(str, Enum):
    HEADING = "heading"
    CODE = "code"
    TABLE = "table"
    LIST = "list"
    TEXT = "text"


_ATOMIC_ROLES = {
    BlockKind.CODE: StructuralRole.CODE_BLOCK,
    BlockKind.TABLE: StructuralRole.TABLE,
    BlockKind.LIST: StructuralRole.LIST,
}


@dataclass
class Block:
    """A structural block of the document."""

    kind: BlockKind
    start: int
    end: int
    level: int = 0
    title: str = ""

    @property
    def is_atomic(self) -> bool:
        return self.kind in _ATOMIC_ROLES

    @property
    def role(self) -> Optional[StructuralRole]:
        return _ATOMIC_ROLES.get(self.kind)


def _lines_with_offsets(text: str) -> Iterator[Tuple[int, int, str]]:
    position = 0
    for raw in text.splitlines(keepends=True):
        line = raw.rstrip("\r\n")
        yield position, position + len(line), line
        position += len(raw)


def parse_blocks(text: str) -> List[Block]:
    """Split ``text`` into structural blocks in document order."""
    blocks: List[Block] = []
    current: Optional[Block] = None
    fence: Optional[str] = None

    def close() -> None:
        nonlocal current
        if current is not None:
            span = trim_span(text, current.start, current.end)
            if span is not None:
                current.start, current.end = span.start, span.end
                blocks.append(current)
            current = None

    for start, end, line in _lines_with_offsets(text):
        stripped = line.strip()

        if fence is not None:
            assert current is not None
            current.end = end
            if stripped.startswith(fence):
                fence = None
                close()
            continue

        if not stripped:
            close()
            continue

        if is_code_fence(line):
            close()
            fence = stripped[:3]
            current = Block(BlockKind.CODE, start, end)
            continue

        level = heading_level(line)
        if level is not None:
            close()
            blocks.append(Block(BlockKind.HEADING, start, end, level, heading_title(line)))
            continue

        if is_table_line(line):
            kind = BlockKind.TABLE
        elif is_list_item(line):
            kind = BlockKind.LIST
        elif current is not None and current.kind is BlockKind.LIST and line[:1].isspace():
            kind = BlockKind.LIST
        else:
            kind = BlockKind.TEXT

        if current is not None and current.kind is kind:
            current.end = end
        else:
            close()
            current = Block(kind, start, end)

    # An unterminated fence runs to the end of the document
    close()
    return blocks


class _Accumulator:
    """Blocks collected for the chunk under construction."""

    def __init__(self) -> None:
        self.start: Optional[int] = None
        self.end = 0
        self.tokens = 0
        self.has_body = False
        self.kinds: List[BlockKind] = []

    @property
    def is_empty(self) -> bool:
        return self.start is None

    def add(self, block: Block, tokens: int) -> None:
        if self.start is None:
            self.start = block.start
        self.end = block.end
        self.tokens += tokens
        self.kinds.append(block.kind)
        if block.kind is not BlockKind.HEADING:
            self.has_body = True

    def draft(self, header: Optional[str]) -> ChunkDraft:
        assert self.start is not None
        role = None
        body = [kind for kind in self.kinds if kind is not BlockKind.HEADING]
        if len(self.kinds) == 1 and body and body[0] in _ATOMIC_ROLES:
            role = _ATOMIC_ROLES[body[0]]
        return ChunkDraft(start=self.start, end=self.end, role=role, contextual_header=header)


def _reserve_tokens(context: ChunkingContext, reserved: int) -> ChunkingContext:
    """Context whose budget leaves ``reserved`` tokens free in every draft."""
    if reserved <= 0:
        return context
    budget = context.budget
    max_tokens = budget.max_tokens - reserved
    narrowed = replace(
        budget,
        max_tokens=max_tokens,
        min_tokens=min(budget.min_tokens, max_tokens),
        overlap_tokens=min(budget.overlap_tokens, max_tokens - 1),
    )
    return replace(context, budget=narrowed)


class IntelligentChunker(ChunkingStrategy):
    """Keep code, tables and lists whole; carry heading breadcrumbs."""

    name = "Intelligent"
    description = "Structure-aware: atomic code/tables/lists, heading breadcrumbs, domain tags"
    classifies_domain = True

    def _iter_drafts(self, context: ChunkingContext) -> Iterator[ChunkDraft]:
        budget = context.budget
        preserve = context.options.preserve_structure
        multiple = float(
            context.options.option("atomic_split_multiple", DEFAULT_ATOMIC_SPLIT_MULTIPLE)
        )

        breadcrumb: List[Tuple[int, str]] = []
        acc = _Accumulator()

        def header_at(position: int) -> Optional[str]:
            if breadcrumb:
                return HEADER_SEPARATOR.join(title for _, title in breadcrumb)
            path = section_path_at(context.content.sections, position)
            return HEADER_SEPARATOR.join(path) if path else None

        for block in parse_blocks(context.text):
            size = context.tokens_in(block.start, block.end)

            if block.kind is BlockKind.HEADING:
                if not acc.is_empty and (
                    (preserve and acc.has_body) or acc.tokens + size > budget.max_tokens
                ):
                    yield acc.draft(header_at(acc.start))
                    acc = _Accumulator()
                while breadcrumb and breadcrumb[-1][0] >= block.level:
                    breadcrumb.pop()
                breadcrumb.append((block.level, block.title))
                acc.add(block, size)
                continue

            if size <= budget.max_tokens:
                if not acc.is_empty and acc.tokens + size > budget.max_tokens:
                    if acc.has_body:
                        yield acc.draft(header_at(acc.start))
                        acc = _Accumulator()
                    else:
                        # Headings alone would make a stub chunk; let them lead
                        yield from self._emit_oversized(context, block, acc, header_at, multiple)
                        acc = _Accumulator()
                        continue
                acc.add(block, size)
                continue

            if acc.has_body:
                yield acc.draft(header_at(acc.start))
                acc = _Accumulator()
            yield from self._emit_oversized(context, block, acc, header_at, multiple)
            acc = _Accumulator()

        if not acc.is_empty:
            yield acc.draft(header_at(acc.start))

    def _emit_oversized(
        self,
        context: ChunkingContext,
        block: Block,
        leading: _Accumulator,
        header_at,
        multiple: float,
    ) -> Iterator[ChunkDraft]:
        """Emit a block that does not fit next to the pending headings.

        ``leading`` holds at most headings; they are prepended to the first
        draft so the heading stays with its content. When the block has to be
        split, the split budget shrinks by the heading tokens so the first
        draft still fits the ceiling.
        """
        start = block.start if leading.is_empty else leading.start
        header = header_at(block.start)
        budget = context.budget
        size = context.tokens_in(block.start, block.end)

        if block.is_atomic and size <= multiple * budget.max_tokens:
            draft = ChunkDraft(
                start=start, end=block.end, role=block.role, contextual_header=header
            )
            draft.metadata["atomic"] = True
            yield draft
            return

        if not leading.is_empty and leading.tokens >= budget.max_tokens:
            # No room left beside the headings
            yield leading.draft(header_at(leading.start))
            start = block.start
            split_context = context
        else:
            split_context = _reserve_tokens(context, leading.tokens)

        if block.is_atomic:
            drafts = window_drafts(
                context.text,
                block.start,
                block.end,
                split_context.budget,
                overlap_tokens=0,
                warning=ATOMIC_SPLIT_WARNING,
                merge_short_tail=False,
            )
            for draft in drafts:
                draft.role = block.role
        else:
            drafts = self._split_or_fallback(
                split_context,
                block.start,
                block.end,
                partial(self._split_by_sentences, split_context),
            )

        for position, draft in enumerate(drafts):
            if position == 0:
                draft.start = start
            draft.contextual_header = header
            yield draft

    def _split_by_sentences(
        self, context: ChunkingContext, start: int, end: int
    ) -> List[ChunkDraft]:
        sentences = segment_sentences(context.text, context.profile, TextSpan(start, end))
        if len(sentences) < 2:
            raise StrategyFailureError(
                "Text block has no sentence boundary to split on",
                start_char=start,
                end_char=end,
            )
        return pack_sentences(context, sentences)
