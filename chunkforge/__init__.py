"""ChunkForge - Multilingual, structure-aware chunking for RAG pipelines.

This package splits refined document text into scored, retrieval-ready
chunks and ships a command-line interface around it.
"""

__version__ = "1.0.0"

from chunkforge.chunking import (  # noqa: E402
    CancellationToken,
    Chunker,
    ChunkingOptions,
    DocumentChunk,
    RefinedContent,
    StrategyName,
    chunk,
    estimate_chunk_count,
    iter_chunks,
)

__all__ = [
    "__version__",
    "CancellationToken",
    "Chunker",
    "ChunkingOptions",
    "DocumentChunk",
    "RefinedContent",
    "StrategyName",
    "chunk",
    "estimate_chunk_count",
    "iter_chunks",
]
