"""Chunk command - Split a document into retrieval chunks.

    chunkforge chunk notes.md
        │ load chunkforge.yaml (+ CHUNKFORGE_* env, + CLI flags)
        ▼
    ChunkingOptions ──► Chunker(completion_service).chunk(RefinedContent)
        │
        ▼
    md / json / jsonl  ──► stdout or --output file
        │
        ▼
    summary table on stderr (strategy, chunk count, tokens, mean quality)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from chunkforge.chunking.chunker import Chunker
from chunkforge.chunking.models import ChunkingOptions, DocumentChunk, RefinedContent
from chunkforge.cli.commands.base import ChunkForgeCommand
from chunkforge.cli.console import get_stderr_console, tip
from chunkforge.cli.output import OutputFormat, format_chunks, write_output
from chunkforge.core.config import Config
from chunkforge.core.logging import get_logger
from chunkforge.llm.factory import create_completion_service

logger = get_logger(__name__)


class ChunkCommand(ChunkForgeCommand):
    """Chunk one document and print or save the result."""

    def __init__(
        self,
        console: Optional[Console] = None,
        summary_console: Optional[Console] = None,
    ) -> None:
        super().__init__(console)
        # Summary goes to stderr so stdout carries only chunk data
        self.summary_console = summary_console or get_stderr_console()

    def execute(
        self,
        file_path: Path,
        strategy: Optional[str] = None,
        max_size: Optional[int] = None,
        min_size: Optional[int] = None,
        overlap: Optional[int] = None,
        language: Optional[str] = None,
        importance_threshold: Optional[float] = None,
        prefer_speed: bool = False,
        prefer_quality: bool = False,
        output_format: OutputFormat = OutputFormat.MARKDOWN,
        output: Optional[Path] = None,
        config_path: Optional[Path] = None,
        quiet: bool = False,
    ) -> int:
        """Execute chunking.

        Returns:
            0 on success, 1 on error
        """
        try:
            config = self.load_config(config_path)
            options = self.build_options(
                config,
                strategy=strategy,
                max_chunk_size=max_size,
                min_chunk_size=min_size,
                overlap_size=overlap,
                language=language,
                importance_threshold=importance_threshold,
                prefer_speed=True if prefer_speed else None,
                prefer_quality=True if prefer_quality else None,
            )
            text = self.read_document(file_path)

            chunker = Chunker(completion_service=create_completion_service(config))
            content = RefinedContent(
                text=text,
                hints={"file_name": file_path.name},
                document_id=file_path.stem,
            )
            chunks = chunker.chunk(content, options)
            logger.debug("Chunked document", path=str(file_path), chunks=len(chunks))

            rendered = format_chunks(chunks, output_format, document=file_path.name)
            if output is not None:
                write_output(rendered, output)
            else:
                # Data goes to stdout unstyled so it can be piped
                self.console.print(
                    rendered,
                    markup=False,
                    highlight=False,
                    emoji=False,
                    soft_wrap=True,
                    end="",
                )

            if not quiet:
                self._display_summary(chunks, options, output)
            return 0

        except Exception as e:
            return self.handle_error(e, context=f"While chunking {file_path}")

    @staticmethod
    def build_options(config: Config, **overrides: Any) -> ChunkingOptions:
        """Merge config file values with CLI overrides (None = not given).

        A --max-size at or below the configured overlap, with no --overlap
        given, scales the overlap down to an eighth of the new ceiling.
        """
        max_size = overrides.get("max_chunk_size")
        if (
            max_size is not None
            and overrides.get("overlap_size") is None
            and config.chunking.overlap_size >= max_size
        ):
            overrides["overlap_size"] = max_size // 8
        return config.chunking.to_options(config.selection, **overrides)

    def _display_summary(
        self,
        chunks: List[DocumentChunk],
        options: ChunkingOptions,
        output: Optional[Path],
    ) -> None:
        summary = summarize_chunks(chunks)

        table = Table(title="Chunking Summary", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Requested strategy", options.strategy_name)
        table.add_row("Strategy used", summary["strategy_used"] or "-")
        table.add_row("Chunks", str(summary["chunk_count"]))
        table.add_row("Total tokens", str(summary["total_tokens"]))
        table.add_row("Mean quality", f"{summary['mean_quality']:.2f}")
        if summary["warnings"]:
            table.add_row("Warnings", ", ".join(summary["warnings"]))
        if output is not None:
            table.add_row("Written to", str(output))

        self.summary_console.print()
        self.summary_console.print(table)
        if summary["warnings"]:
            tip(
                "Raise --max-size or try --strategy Smart to avoid split blocks",
                self.summary_console,
            )


def summarize_chunks(chunks: List[DocumentChunk]) -> Dict[str, Any]:
    """Aggregate figures for the summary table."""
    warnings: List[str] = []
    for item in chunks:
        for warning in item.warnings:
            if warning not in warnings:
                warnings.append(warning)

    return {
        "strategy_used": chunks[0].strategy_used if chunks else None,
        "chunk_count": len(chunks),
        "total_tokens": sum(item.estimated_tokens for item in chunks),
        "mean_quality": (
            sum(item.quality for item in chunks) / len(chunks) if chunks else 0.0
        ),
        "warnings": warnings,
    }


# Typer command wrapper
def command(
    file_path: Path = typer.Argument(..., help="Text or markdown document to chunk"),
    strategy: Optional[str] = typer.Option(
        None,
        "--strategy",
        "-s",
        help="Strategy name (Auto, Smart, Intelligent, Semantic, Paragraph, FixedSize)",
    ),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", "-m", help="Maximum chunk size in tokens"
    ),
    min_size: Optional[int] = typer.Option(
        None, "--min-size", help="Minimum chunk size in tokens"
    ),
    overlap: Optional[int] = typer.Option(
        None, "--overlap", help="Overlap between chunks in tokens"
    ),
    language: Optional[str] = typer.Option(
        None, "--language", "-l", help="Language code, or 'auto' to detect"
    ),
    importance_threshold: Optional[float] = typer.Option(
        None,
        "--importance-threshold",
        help="Drop chunks with importance below this value (0.0-1.0)",
    ),
    prefer_speed: bool = typer.Option(
        False, "--prefer-speed", help="Auto: favour fast strategies"
    ),
    prefer_quality: bool = typer.Option(
        False, "--prefer-quality", help="Auto: favour high-quality strategies"
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.MARKDOWN, "--format", "-f", help="Output format"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write chunks to this file instead of stdout"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ./chunkforge.yaml)"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Skip the summary table"),
) -> None:
    """Split a document into retrieval chunks.

    Examples:
        # Let Auto pick the strategy
        chunkforge chunk notes.md

        # Structure-aware chunking as JSON lines
        chunkforge chunk api.md -s Intelligent -f jsonl -o api.jsonl

        # Smaller chunks for a German document
        chunkforge chunk bericht.txt -m 256 --overlap 32 -l de
    """
    cmd = ChunkCommand()
    exit_code = cmd.execute(
        file_path,
        strategy=strategy,
        max_size=max_size,
        min_size=min_size,
        overlap=overlap,
        language=language,
        importance_threshold=importance_threshold,
        prefer_speed=prefer_speed,
        prefer_quality=prefer_quality,
        output_format=output_format,
        output=output,
        config_path=config_path,
        quiet=quiet,
    )
    if exit_code != 0:
        raise typer.Exit(code=exit_code)
