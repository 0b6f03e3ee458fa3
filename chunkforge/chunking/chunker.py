"""
Chunking facade.

Single entry point for callers:

    from chunkforge import RefinedContent, ChunkingOptions, chunk

    chunks = chunk(RefinedContent.from_text(text), ChunkingOptions(strategy="Smart"))

Responsibilities
----------------
- validate options before any processing (InvalidOptionsError),
- resolve the strategy by name; unknown names fall back to Auto unless
  ``allow_auto_fallback`` is False,
- apply ``importance_threshold`` without ever returning zero chunks for
  non-empty input (the best rejected chunk is kept),
- log the run with ChunkingRunLogger.

Chunk indexes are the strategy's emission indexes; filtering can leave
gaps but never reorders.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Union

from chunkforge.chunking.auto_chunker import AutoChunker
from chunkforge.chunking.base import CancellationToken, ChunkingStrategy
from chunkforge.chunking.models import (
    ChunkingOptions,
    DocumentChunk,
    RefinedContent,
    StrategyName,
)
from chunkforge.chunking.registry import StrategyRegistry, default_registry
from chunkforge.core.exceptions import ChunkingCancelledError, InvalidOptionsError
from chunkforge.core.logging import ChunkingRunLogger, get_logger
from chunkforge.llm.base import CompletionService

logger = get_logger(__name__)

ContentInput = Union[RefinedContent, str]


def _as_content(content: ContentInput) -> RefinedContent:
    if isinstance(content, RefinedContent):
        return content
    return RefinedContent.from_text(content)


def filter_by_importance(
    chunks: Iterable[DocumentChunk], threshold: float
) -> Iterator[DocumentChunk]:
    """Drop chunks below ``threshold``; keep the best one if all fall below."""
    if threshold <= 0.0:
        yield from chunks
        return

    emitted = False
    best: Optional[DocumentChunk] = None
    for item in chunks:
        if item.importance >= threshold:
            emitted = True
            yield item
        elif best is None or item.importance > best.importance:
            best = item

    if not emitted and best is not None:
        logger.debug(
            "No chunk met the importance threshold, keeping the best one",
            threshold=threshold,
            importance=best.importance,
        )
        yield best


class Chunker:
    """
    Chunking service bundling a strategy registry and an optional
    completion service for the Auto strategy.

    Thread-safe: strategies are stateless and the registry is locked
    internally, so one Chunker can serve concurrent callers.
    """

    def __init__(
        self,
        registry: Optional[StrategyRegistry] = None,
        completion_service: Optional[CompletionService] = None,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.completion_service = completion_service
        self.auto = AutoChunker(self.registry, completion_service)

    def resolve_strategy(
        self, options: ChunkingOptions
    ) -> Union[ChunkingStrategy, AutoChunker]:
        """
        Strategy implementation for ``options.strategy``.

        Raises:
            InvalidOptionsError: Unknown name and ``allow_auto_fallback`` is False
        """
        if options.strategy is StrategyName.AUTO:
            return self.auto

        name = options.strategy_name
        strategy = self.registry.get_strategy(name)
        if strategy is not None:
            return strategy

        if not options.option("allow_auto_fallback", True):
            raise InvalidOptionsError(
                f"Unknown chunking strategy '{name}'", field="strategy", value=name
            )
        logger.warning("Unknown strategy, falling back to Auto", strategy=name)
        return self.auto

    def iter_chunks(
        self,
        content: ContentInput,
        options: Optional[ChunkingOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[DocumentChunk]:
        """
        Stream chunks in order.

        Options are validated and the strategy resolved before the
        generator is returned, so invalid options fail immediately.

        Raises:
            InvalidOptionsError: On invalid options
        """
        options = options or ChunkingOptions()
        options.validate()
        strategy = self.resolve_strategy(options)
        return self._run(_as_content(content), options, strategy, cancel_token)

    def chunk(
        self,
        content: ContentInput,
        options: Optional[ChunkingOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[DocumentChunk]:
        """
        Chunk a document.

        Returns:
            Chunks in document order; empty for blank input

        Raises:
            InvalidOptionsError: On invalid options
            ChunkingCancelledError: If ``cancel_token`` is cancelled
        """
        return list(self.iter_chunks(content, options, cancel_token))

    def estimate_chunk_count(
        self, content: ContentInput, options: Optional[ChunkingOptions] = None
    ) -> int:
        options = options or ChunkingOptions()
        options.validate()
        return self.resolve_strategy(options).estimate_chunk_count(
            _as_content(content), options
        )

    def _run(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        strategy: Union[ChunkingStrategy, AutoChunker],
        cancel_token: Optional[CancellationToken],
    ) -> Iterator[DocumentChunk]:
        if content.is_blank:
            return

        run = ChunkingRunLogger(content.resolved_document_id)
        count = 0
        try:
            if isinstance(strategy, AutoChunker):
                chunks = strategy.iter_chunks(content, options, cancel_token, run=run)
            else:
                run.start_stage("chunk")
                chunks = strategy.iter_chunks(content, options, cancel_token)
            for item in filter_by_importance(chunks, options.importance_threshold):
                count += 1
                yield item
        except ChunkingCancelledError as e:
            run.finish(success=False, chunks=count, error=str(e))
            raise
        run.finish(success=True, chunks=count)


_DEFAULT_CHUNKER: Optional[Chunker] = None


def _default_chunker() -> Chunker:
    global _DEFAULT_CHUNKER
    if _DEFAULT_CHUNKER is None:
        _DEFAULT_CHUNKER = Chunker()
    return _DEFAULT_CHUNKER


def chunk(
    content: ContentInput,
    options: Optional[ChunkingOptions] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> List[DocumentChunk]:
    """Chunk a document with the default registry and no completion service."""
    return _default_chunker().chunk(content, options, cancel_token)


def iter_chunks(
    content: ContentInput,
    options: Optional[ChunkingOptions] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Iterator[DocumentChunk]:
    """Streaming variant of :func:`chunk`."""
    return _default_chunker().iter_chunks(content, options, cancel_token)


def estimate_chunk_count(
    content: ContentInput, options: Optional[ChunkingOptions] = None
) -> int:
    return _default_chunker().estimate_chunk_count(content, options)
