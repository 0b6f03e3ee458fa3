"""
Strategy Registry.

Holds one entry per strategy name: descriptive metadata used by the Auto
selector for ranking, plus the strategy instance that does the work.

    registry = StrategyRegistry.with_builtins()
    registry.register(StrategyMetadata(name="Legal", ...), LegalChunker())
    registry.get_strategy("Legal").chunk(content, options)

Registration is last-wins, so a caller can replace a built-in strategy's
metadata or implementation. The lock is held only while copying or
updating the table; the selector ranks over a snapshot and never holds the
lock across a completion call.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from chunkforge.chunking.base import ChunkingStrategy
from chunkforge.chunking.models import StrategyName
from chunkforge.core.logging import get_logger

logger = get_logger(__name__)

MAX_STRATEGIES = 128
MAX_RATING = 5


@dataclass(frozen=True)
class StrategyMetadata:
    """
    Selection-relevant description of a strategy.

    Attributes:
        name: Registry key, also used in ``ChunkingOptions.strategy``
        description: One-line summary for listings
        optimal_for_document_types: Document tags the strategy suits
            (technical, markdown, narrative, general, structured, code,
            tables, requirements, academic, business, math)
        strengths: Capabilities matched against what a document needs
        priority_score: Base ranking score (higher wins)
        speed_rating: 1 (slow) to 5 (fast)
        quality_rating: 1 (rough) to 5 (best boundaries)
    """

    name: str
    description: str = ""
    optimal_for_document_types: Tuple[str, ...] = ()
    strengths: Tuple[str, ...] = ()
    priority_score: int = 50
    speed_rating: int = 3
    quality_rating: int = 3

    def __post_init__(self) -> None:
        assert self.name, "strategy name must not be empty"
        assert 1 <= self.speed_rating <= MAX_RATING, "speed_rating must be 1-5"
        assert 1 <= self.quality_rating <= MAX_RATING, "quality_rating must be 1-5"


@dataclass
class _Entry:
    metadata: StrategyMetadata
    strategy: Optional[ChunkingStrategy] = None


BUILTIN_METADATA: Tuple[StrategyMetadata, ...] = (
    StrategyMetadata(
        name=StrategyName.SMART.value,
        description="Sentence-aware with flexible ceiling; never cuts a sentence",
        optimal_for_document_types=("narrative", "general", "markdown", "academic"),
        strengths=("sentence_integrity", "completeness", "paragraph_coherence"),
        priority_score=90,
        speed_rating=3,
        quality_rating=5,
    ),
    StrategyMetadata(
        name=StrategyName.INTELLIGENT.value,
        description="Structure-aware: keeps code, tables and lists whole",
        optimal_for_document_types=(
            "technical",
            "markdown",
            "structured",
            "code",
            "tables",
            "requirements",
        ),
        strengths=("structure_preservation", "context_preservation", "code_awareness"),
        priority_score=85,
        speed_rating=2,
        quality_rating=5,
    ),
    StrategyMetadata(
        name=StrategyName.SEMANTIC.value,
        description="Sentence accumulation with sentence-level overlap",
        optimal_for_document_types=("narrative", "academic", "general", "math"),
        strengths=("sentence_integrity", "semantic_coherence"),
        priority_score=75,
        speed_rating=3,
        quality_rating=4,
    ),
    StrategyMetadata(
        name=StrategyName.PARAGRAPH.value,
        description="Groups whole paragraphs up to the ceiling",
        optimal_for_document_types=("narrative", "general", "business"),
        strengths=("paragraph_coherence", "speed"),
        priority_score=60,
        speed_rating=4,
        quality_rating=3,
    ),
    StrategyMetadata(
        name=StrategyName.FIXED_SIZE.value,
        description="Fixed token windows with overlap",
        optimal_for_document_types=("general",),
        strengths=("speed", "predictability"),
        priority_score=40,
        speed_rating=5,
        quality_rating=1,
    ),
)


def _builtin_strategy(name: str) -> Optional[ChunkingStrategy]:
    from chunkforge.chunking.fixed_size_chunker import FixedSizeChunker
    from chunkforge.chunking.intelligent_chunker import IntelligentChunker
    from chunkforge.chunking.paragraph_chunker import ParagraphChunker
    from chunkforge.chunking.semantic_chunker import SemanticChunker
    from chunkforge.chunking.smart_chunker import SmartChunker

    classes = {
        StrategyName.FIXED_SIZE.value: FixedSizeChunker,
        StrategyName.PARAGRAPH.value: ParagraphChunker,
        StrategyName.SEMANTIC.value: SemanticChunker,
        StrategyName.SMART.value: SmartChunker,
        StrategyName.INTELLIGENT.value: IntelligentChunker,
    }
    cls = classes.get(name)
    return cls() if cls else None


class StrategyRegistry:
    """Thread-safe table of strategy metadata and implementations."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: Dict[str, _Entry] = {}

    @classmethod
    def with_builtins(cls) -> "StrategyRegistry":
        """Registry pre-populated with the five built-in strategies."""
        registry = cls()
        for metadata in BUILTIN_METADATA:
            registry.register(metadata, _builtin_strategy(metadata.name))
        return registry

    def register(
        self, metadata: StrategyMetadata, strategy: Optional[ChunkingStrategy] = None
    ) -> None:
        """
        Register or replace a strategy (last registration wins).

        Metadata registered without a strategy keeps the implementation
        already registered under that name, if any.
        """
        with self._lock:
            existing = self._entries.get(metadata.name)
            if existing is None and len(self._entries) >= MAX_STRATEGIES:
                raise RuntimeError(f"Registry limit reached: {MAX_STRATEGIES} strategies")
            if strategy is None and existing is not None:
                strategy = existing.strategy
            self._entries[metadata.name] = _Entry(metadata, strategy)

        logger.debug(
            "Registered strategy",
            strategy=metadata.name,
            priority=metadata.priority_score,
            replaced=existing is not None,
        )

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._entries.pop(name, None) is not None

    def snapshot(self) -> List[StrategyMetadata]:
        """Copy of all metadata, highest priority first."""
        with self._lock:
            items = [entry.metadata for entry in self._entries.values()]
        return sorted(items, key=lambda m: (-m.priority_score, m.name))

    def get_metadata(self, name: str) -> Optional[StrategyMetadata]:
        with self._lock:
            entry = self._entries.get(name)
        return entry.metadata if entry else None

    def get_strategy(self, name: str) -> Optional[ChunkingStrategy]:
        """Implementation registered under ``name`` (exact match first, then case-insensitive)."""
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                lowered = name.lower()
                entry = next(
                    (e for key, e in self._entries.items() if key.lower() == lowered), None
                )
        return entry.strategy if entry else None

    def names(self) -> List[str]:
        return [metadata.name for metadata in self.snapshot()]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_DEFAULT_REGISTRY: Optional[StrategyRegistry] = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> StrategyRegistry:
    """Process-wide registry with the built-in strategies."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        with _DEFAULT_LOCK:
            if _DEFAULT_REGISTRY is None:
                _DEFAULT_REGISTRY = StrategyRegistry.with_builtins()
    return _DEFAULT_REGISTRY
