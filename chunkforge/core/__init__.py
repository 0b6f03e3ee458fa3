"""
Core Infrastructure for ChunkForge.

The innermost layer: configuration, structured logging, the exception
hierarchy and retry helpers. Core never imports from the chunking, llm or
cli packages at module level.

    CLI (outermost)
      └── chunking / llm
            └── **Core** (you are here)

Components
----------
**Configuration (config/, config_loaders.py)**
    Nested dataclasses mapped to chunkforge.yaml with ${VAR} expansion and
    CHUNKFORGE_* overrides.

**Logging (logging.py)**
    StructuredLogger with key=value fields and ChunkingRunLogger for stage
    timing.

**Exceptions (exceptions.py)**
    ChunkForgeError hierarchy with error codes and fix suggestions.

**Retry (retry.py)**
    Exponential backoff decorator for completion service calls.
"""

from chunkforge.core.exceptions import ChunkForgeError
from chunkforge.core.logging import get_logger

__all__ = ["ChunkForgeError", "get_logger"]
