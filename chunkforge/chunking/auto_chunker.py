"""
Auto strategy: select, then delegate.

    AutoChunker.iter_chunks(content, options)
        │ StrategySelector.select()      (rules, optional completion call)
        ▼
    StrategySelection(strategy, confidence, reasoning, source)
        │ registry.get_strategy(name)    (Smart when missing)
        ▼
    delegate.iter_chunks(content, tuned_options)
        │ stamp selection outcome
        ▼
    DocumentChunk(strategy_used="Auto(<name>)", metadata{auto_selected_strategy, ...})

When ``use_auto_parameters`` is on (default) and the caller left the size
options at their defaults, the detected domain's size preset replaces them.
A fallback selection keeps the caller's options untouched, so Auto output
after a failed selection is exactly Smart output.
"""

from __future__ import annotations

import dataclasses
from typing import Iterator, List, Optional

from chunkforge.chunking.base import CancellationToken, ChunkingStrategy
from chunkforge.chunking.models import (
    ChunkingOptions,
    DocumentChunk,
    RefinedContent,
    StrategyName,
)
from chunkforge.chunking.registry import StrategyRegistry
from chunkforge.chunking.selector import SOURCE_FALLBACK, StrategySelection, StrategySelector
from chunkforge.chunking.smart_chunker import SmartChunker
from chunkforge.chunking.structure import domain_size_preset
from chunkforge.core.logging import ChunkingRunLogger, get_logger
from chunkforge.llm.base import CompletionService

logger = get_logger(__name__)


class AutoChunker:
    """Meta-strategy that picks a registered strategy per document."""

    name = StrategyName.AUTO.value
    description = "Analyzes the document and delegates to the best-ranked strategy"

    def __init__(
        self,
        registry: StrategyRegistry,
        completion_service: Optional[CompletionService] = None,
    ):
        self.registry = registry
        self.selector = StrategySelector(registry, completion_service)
        self._rules_only = StrategySelector(registry)

    def chunk(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[DocumentChunk]:
        return list(self.iter_chunks(content, options, cancel_token))

    def iter_chunks(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken] = None,
        run: Optional[ChunkingRunLogger] = None,
    ) -> Iterator[DocumentChunk]:
        """Select a strategy, then stream its chunks.

        ``run`` records the select and chunk stages when given.
        """
        if content.is_blank:
            return

        if run is not None:
            run.start_stage("select")
        selection = self.selector.select(content, options, cancel_token)
        delegate = self._delegate(selection.strategy)
        tuned = self._tune_options(options, selection)
        logger.info(
            "Auto selected strategy",
            strategy=selection.strategy,
            confidence=f"{selection.confidence:.2f}",
            source=selection.source,
        )

        stamp = selection.to_metadata()
        label = f"Auto({selection.strategy})"
        if run is not None:
            run.start_stage("chunk")
        for chunk in delegate.iter_chunks(content, tuned, cancel_token):
            yield dataclasses.replace(
                chunk, strategy_used=label, metadata={**chunk.metadata, **stamp}
            )

    def estimate_chunk_count(
        self, content: RefinedContent, options: ChunkingOptions
    ) -> int:
        """Estimate with the rule-based pick; never calls the completion service."""
        if content.is_blank:
            return 0
        selection = self._rules_only.select(content, options)
        delegate = self._delegate(selection.strategy)
        return delegate.estimate_chunk_count(content, self._tune_options(options, selection))

    def _delegate(self, name: str) -> ChunkingStrategy:
        strategy = self.registry.get_strategy(name)
        if strategy is None:
            logger.warning("Selected strategy is not registered, using Smart", strategy=name)
            strategy = self.registry.get_strategy(StrategyName.SMART.value) or SmartChunker()
        return strategy

    @staticmethod
    def _tune_options(
        options: ChunkingOptions, selection: StrategySelection
    ) -> ChunkingOptions:
        tuned = options.with_changes(strategy=selection.strategy)
        if (
            selection.source == SOURCE_FALLBACK
            or selection.features is None
            or not options.option("use_auto_parameters", True)
            or not options.uses_default_sizes
        ):
            return tuned

        max_size, overlap = domain_size_preset(selection.features.domain)
        return tuned.with_changes(max_chunk_size=max_size, overlap_size=overlap)
