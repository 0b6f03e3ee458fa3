"""
Strategy framework shared by every chunking strategy.

Architecture Context
--------------------
A strategy only decides *where* to cut. It yields ChunkDraft spans; the
base class turns each draft into an immutable DocumentChunk:

    RefinedContent + ChunkingOptions
           │  prepare_context()
           ▼
    ChunkingContext (profile, budget, document id)
           │  strategy._iter_drafts()
           ▼
    ChunkDraft* ──► merge_trailing() ──► _build_chunk() ──► DocumentChunk*
                     (soft floor)         (role, scores, location)

Cancellation is checked between emissions, so a long document can be
aborted at any chunk boundary.

Reentrancy
----------
Strategies keep no per-call state on the instance. Everything a call needs
lives in its ChunkingContext and in local generator state, so one instance
can serve concurrent callers without locking.

Span Fallback
-------------
When a strategy cannot split a span (for example a paragraph without usable
sentence boundaries), it raises StrategyFailureError. ``_split_or_fallback``
catches it and re-chunks that span with fixed-size windows, attaching a
warning to the resulting chunks. The error never reaches the caller.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)

from chunkforge.chunking.budget import (
    TokenBudget,
    estimate_tokens,
    estimate_window_count,
    tokenize_spans,
    window_ranges,
)
from chunkforge.chunking.language_profiles import LanguageProfile, resolve_profile
from chunkforge.chunking.models import (
    ChunkingOptions,
    ChunkLocation,
    DocumentChunk,
    DocumentDomain,
    RefinedContent,
    Section,
    StructuralRole,
    make_chunk_id,
)
from chunkforge.chunking.quality_scorer import ChunkScorer, default_scorer
from chunkforge.chunking.structure import (
    detect_document_domain,
    detect_structural_role,
    extract_technical_keywords,
)
from chunkforge.core.exceptions import ChunkingCancelledError, StrategyFailureError
from chunkforge.core.logging import get_logger

logger = get_logger(__name__)

FALLBACK_WARNING = "fallback_fixed_size"


class CancellationToken:
    """Cooperative cancellation signal shared between a caller and a run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ChunkingCancelledError("Chunking was cancelled")


@dataclass
class ChunkDraft:
    """A span chosen by a strategy, before scoring."""

    start: int
    end: int
    role: Optional[StructuralRole] = None
    warnings: List[str] = field(default_factory=list)
    penalty: float = 0.0
    contextual_header: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def merged_with(self, following: "ChunkDraft") -> "ChunkDraft":
        """Absorb a following draft (used for the trailing soft floor).

        An explicit role on this draft survives; otherwise the role is
        detected again from the merged text.
        """
        return ChunkDraft(
            start=self.start,
            end=max(self.end, following.end),
            role=self.role,
            warnings=self.warnings + [w for w in following.warnings if w not in self.warnings],
            penalty=max(self.penalty, following.penalty),
            contextual_header=self.contextual_header or following.contextual_header,
            metadata={**following.metadata, **self.metadata},
        )


@dataclass(frozen=True)
class ChunkingContext:
    """Everything one chunking call needs. Never shared between calls."""

    content: RefinedContent
    options: ChunkingOptions
    budget: TokenBudget
    profile: LanguageProfile
    document_id: str
    domain: DocumentDomain = DocumentDomain.GENERAL
    technical_keywords: Tuple[str, ...] = ()
    cancel_token: Optional[CancellationToken] = None

    @property
    def text(self) -> str:
        return self.content.text

    def tokens_in(self, start: int, end: int) -> int:
        return estimate_tokens(self.content.text[start:end])

    def check_cancelled(self) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()


def section_path_at(
    sections: Sequence[Section], position: int
) -> Optional[Tuple[str, ...]]:
    """Titles of the nested sections containing ``position``."""
    path: List[str] = []
    level: Sequence[Section] = sections
    while level:
        match = next((s for s in level if s.contains(position)), None)
        if match is None:
            break
        path.append(match.title)
        level = match.children
    return tuple(path) if path else None


def page_range(
    page_offsets: Sequence[int], start: int, end: int
) -> Tuple[Optional[int], Optional[int]]:
    """1-based pages for a span given the offsets where pages start."""
    if not page_offsets:
        return None, None
    start_page = max(1, bisect_right(page_offsets, start))
    end_page = max(start_page, bisect_right(page_offsets, max(start, end - 1)))
    return start_page, end_page


def window_drafts(
    text: str,
    start: int,
    end: int,
    budget: TokenBudget,
    overlap_tokens: Optional[int] = None,
    warning: Optional[str] = None,
    merge_short_tail: bool = True,
) -> List[ChunkDraft]:
    """Fixed-size token windows over ``text[start:end]`` as drafts.

    With ``merge_short_tail`` off, a short final window stays separate. Spans
    cut out of the middle of a document use that so no window outgrows the
    ceiling; the document-level trailing merge still applies.
    """
    tokens = tokenize_spans(text, start, end)
    overlap = budget.overlap_tokens if overlap_tokens is None else overlap_tokens
    min_tokens = budget.min_tokens if merge_short_tail else 0
    drafts: List[ChunkDraft] = []
    for first, last in window_ranges(len(tokens), budget.max_tokens, overlap, min_tokens):
        drafts.append(
            ChunkDraft(
                start=tokens[first].start,
                end=tokens[last - 1].end,
                warnings=[warning] if warning else [],
            )
        )
    return drafts


def merge_trailing(
    drafts: Iterable[ChunkDraft], context: ChunkingContext
) -> Iterator[ChunkDraft]:
    """Fold an under-sized final draft into its predecessor.

    Holds back two drafts so the merge can happen without buffering the
    whole document.
    """
    held: List[ChunkDraft] = []
    for draft in drafts:
        held.append(draft)
        if len(held) > 2:
            yield held.pop(0)

    if len(held) == 2:
        last = held[1]
        if context.tokens_in(last.start, last.end) < context.budget.min_tokens:
            yield held[0].merged_with(last)
            return
    yield from held


def prepare_context(
    content: RefinedContent,
    options: ChunkingOptions,
    cancel_token: Optional[CancellationToken] = None,
    classify_domain: bool = False,
) -> ChunkingContext:
    """Resolve profile, budget and (optionally) the document domain."""
    profile = resolve_profile(
        content.text,
        language=options.language,
        hint=content.hints.get("language"),
    )
    domain = DocumentDomain.GENERAL
    keywords: Tuple[str, ...] = ()
    if classify_domain:
        keywords = tuple(extract_technical_keywords(content.text))
        domain = detect_document_domain(content.text, keywords)

    return ChunkingContext(
        content=content,
        options=options,
        budget=TokenBudget.from_options(options),
        profile=profile,
        document_id=content.resolved_document_id,
        domain=domain,
        technical_keywords=keywords,
        cancel_token=cancel_token,
    )


class ChunkingStrategy(ABC):
    """
    Base class for chunking strategies.

    Subclasses implement ``_iter_drafts`` (where to cut) and may override
    ``estimate_chunk_count``.
    """

    name: str = ""
    description: str = ""
    # Stamp document_domain and technical_keywords on every chunk
    classifies_domain: bool = False

    def __init__(self, scorer: Optional[ChunkScorer] = None) -> None:
        self.scorer = scorer or default_scorer()

    def chunk(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[DocumentChunk]:
        """Chunk a whole document and return the chunks in order."""
        return list(self.iter_chunks(content, options, cancel_token))

    def iter_chunks(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[DocumentChunk]:
        """Yield chunks progressively in emission order.

        Raises:
            ChunkingCancelledError: If ``cancel_token`` is cancelled
        """
        if content.is_blank:
            return

        context = prepare_context(
            content, options, cancel_token, classify_domain=self.classifies_domain
        )
        context.check_cancelled()

        drafts = merge_trailing(self._iter_drafts(context), context)
        for index, draft in enumerate(drafts):
            context.check_cancelled()
            yield self._build_chunk(context, draft, index)

    def estimate_chunk_count(
        self, content: RefinedContent, options: ChunkingOptions
    ) -> int:
        """Approximate number of chunks, for pre-allocation and progress UI."""
        if content.is_blank:
            return 0
        return estimate_window_count(
            estimate_tokens(content.text), options.max_chunk_size, options.overlap_size
        )

    @abstractmethod
    def _iter_drafts(self, context: ChunkingContext) -> Iterator[ChunkDraft]:
        """Yield the spans to emit, in document order."""

    def _split_or_fallback(
        self,
        context: ChunkingContext,
        start: int,
        end: int,
        splitter: Callable[[int, int], List[ChunkDraft]],
    ) -> List[ChunkDraft]:
        """Run ``splitter`` on a span, recovering with fixed-size windows."""
        try:
            return splitter(start, end)
        except StrategyFailureError as exc:
            logger.warning(
                "Strategy could not split span, using fixed-size windows",
                strategy=self.name,
                start_char=start,
                end_char=end,
                error=str(exc),
            )
            return window_drafts(
                context.text,
                start,
                end,
                context.budget,
                warning=FALLBACK_WARNING,
                merge_short_tail=False,
            )

    def _build_chunk(
        self, context: ChunkingContext, draft: ChunkDraft, index: int
    ) -> DocumentChunk:
        """Score a draft and freeze it into a DocumentChunk."""
        text = context.text[draft.start : draft.end]
        role = draft.role or detect_structural_role(text)
        scores = self.scorer.score(
            text, context.profile, role, draft.warnings, draft.penalty
        )
        start_page, end_page = page_range(
            context.content.hints.get("page_offsets") or (), draft.start, draft.end
        )

        domain = DocumentDomain.GENERAL
        keywords: Tuple[str, ...] = ()
        if self.classifies_domain:
            domain = context.domain
            keywords = tuple(extract_technical_keywords(text)) or context.technical_keywords

        metadata: Dict[str, Any] = {
            "strategy": self.name,
            "language": context.profile.language_code,
            "completeness": round(scores.completeness, 3),
            "quality_grade": self.scorer.quality_grade(scores.quality),
        }
        metadata.update(draft.metadata)

        return DocumentChunk(
            id=make_chunk_id(context.document_id, index, text),
            index=index,
            content=text,
            location=ChunkLocation(
                start_char=draft.start,
                end_char=draft.end,
                start_page=start_page,
                end_page=end_page,
                section_path=section_path_at(context.content.sections, draft.start),
            ),
            quality=scores.quality,
            importance=scores.importance,
            density=scores.density,
            strategy_used=self.name,
            estimated_tokens=estimate_tokens(text),
            structural_role=role,
            document_domain=domain,
            contextual_header=draft.contextual_header,
            technical_keywords=keywords,
            warnings=tuple(draft.warnings),
            metadata=metadata,
        )
