"""
Chunking Core.

Splits refined document text into retrieval-ready chunks.

Architecture Position
---------------------
    CLI (outermost)
      └── **Chunking** (you are here)
            └── Core (logging, errors, config)

    ┌─────────────────┐     ┌─────────────────┐     ┌─────────────────┐
    │ RefinedContent  │────→│    Strategy     │────→│ DocumentChunk*  │
    │ (text + hints)  │     │ (manual / Auto) │     │ (scored, typed) │
    └─────────────────┘     └─────────────────┘     └─────────────────┘

Chunking Strategies
-------------------
**FixedSize**     token windows with fixed overlap, deterministic
**Paragraph**     whole paragraphs up to the ceiling
**Semantic**      whole sentences, overlap in sentences
**Smart**         sentence-complete with a 25% flexible ceiling
**Intelligent**   atomic code/tables/lists, heading breadcrumbs, domain tags
**Auto**          ranks the above per document (optionally asks a
                  completion service) and delegates

Supporting Components
---------------------
**LanguageProfile**   sentence/section boundary rules for 11 languages
**TokenBudget**       heuristic token counting shared by every strategy
**ChunkScorer**       quality, importance and density per chunk
**StrategyRegistry**  metadata and implementations, last registration wins
"""

from chunkforge.chunking.auto_chunker import AutoChunker
from chunkforge.chunking.base import CancellationToken, ChunkingStrategy
from chunkforge.chunking.chunker import (
    Chunker,
    chunk,
    estimate_chunk_count,
    iter_chunks,
)
from chunkforge.chunking.fixed_size_chunker import FixedSizeChunker
from chunkforge.chunking.intelligent_chunker import IntelligentChunker
from chunkforge.chunking.language_profiles import (
    LanguageProfile,
    detect_and_get_profile,
    get_profile,
    list_profiles,
    supported_languages,
)
from chunkforge.chunking.models import (
    ChunkingOptions,
    ChunkLocation,
    DocumentChunk,
    DocumentDomain,
    RefinedContent,
    Section,
    StrategyName,
    StructuralRole,
)
from chunkforge.chunking.paragraph_chunker import ParagraphChunker
from chunkforge.chunking.registry import (
    StrategyMetadata,
    StrategyRegistry,
    default_registry,
)
from chunkforge.chunking.segmenter import segment_sentences, split_sentences
from chunkforge.chunking.selector import (
    DocumentFeatures,
    StrategySelection,
    StrategySelector,
    analyze_features,
)
from chunkforge.chunking.semantic_chunker import SemanticChunker
from chunkforge.chunking.smart_chunker import SmartChunker
from chunkforge.chunking.structure import (
    detect_document_domain,
    detect_structural_role,
)

__all__ = [
    "AutoChunker",
    "CancellationToken",
    "Chunker",
    "ChunkingOptions",
    "ChunkingStrategy",
    "ChunkLocation",
    "DocumentChunk",
    "DocumentDomain",
    "DocumentFeatures",
    "FixedSizeChunker",
    "IntelligentChunker",
    "LanguageProfile",
    "ParagraphChunker",
    "RefinedContent",
    "Section",
    "SemanticChunker",
    "SmartChunker",
    "StrategyMetadata",
    "StrategyName",
    "StrategyRegistry",
    "StrategySelection",
    "StrategySelector",
    "StructuralRole",
    "analyze_features",
    "chunk",
    "default_registry",
    "detect_and_get_profile",
    "detect_document_domain",
    "detect_structural_role",
    "estimate_chunk_count",
    "get_profile",
    "iter_chunks",
    "list_profiles",
    "segment_sentences",
    "split_sentences",
    "supported_languages",
]
