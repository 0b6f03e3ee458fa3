"""Chunk serialization for the ``chunk`` command.

Formats
-------
md     One section per chunk: a heading with index, strategy and token
       count, the contextual header when present, then the chunk text.
json   ``{"document": ..., "chunks": [...]}`` with DocumentChunk.to_dict().
jsonl  One DocumentChunk.to_dict() object per line.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from chunkforge.chunking.models import DocumentChunk


class OutputFormat(str, Enum):
    MARKDOWN = "md"
    JSON = "json"
    JSONL = "jsonl"


def _markdown_section(chunk: DocumentChunk) -> str:
    lines = [
        f"## Chunk {chunk.index} ({chunk.strategy_used}, "
        f"{chunk.estimated_tokens} tokens, quality {chunk.quality:.2f})",
        "",
    ]
    if chunk.contextual_header:
        lines.extend([f"> {chunk.contextual_header}", ""])
    if chunk.warnings:
        lines.extend([f"_warnings: {', '.join(chunk.warnings)}_", ""])
    lines.append(chunk.content)
    return "\n".join(lines)


def format_chunks(
    chunks: Iterable[DocumentChunk],
    output_format: OutputFormat,
    document: Optional[str] = None,
) -> str:
    """Render chunks in ``output_format``."""
    items: List[DocumentChunk] = list(chunks)

    if output_format is OutputFormat.JSON:
        payload = {
            "document": document,
            "chunk_count": len(items),
            "chunks": [item.to_dict() for item in items],
        }
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    if output_format is OutputFormat.JSONL:
        return "".join(
            json.dumps(item.to_dict(), ensure_ascii=False) + "\n" for item in items
        )

    header = f"# Chunks: {document}\n\n" if document else ""
    return header + "\n\n".join(_markdown_section(item) for item in items) + "\n"


def write_output(text: str, output_path: Path) -> Path:
    """Write ``text`` to ``output_path``, creating parent directories."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    return output_path
