"""ChunkForge CLI - Main application entry point.

Registers the commands and the global options:

    chunkforge [--version] [--verbose] COMMAND ...

    Core:    chunk, analyze
    Info:    strategies, languages
"""

from __future__ import annotations

from typing import Optional

import typer

from chunkforge.cli.commands import (
    analyze_command,
    chunk_command,
    languages_command,
    strategies_command,
)
from chunkforge.cli.console import set_verbose_mode
from chunkforge.core.logging import configure_logging

app = typer.Typer(
    name="chunkforge",
    help="Language-aware document chunking for retrieval-augmented generation",
    add_completion=True,
    pretty_exceptions_enable=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from chunkforge import __version__

        typer.echo(f"ChunkForge version {__version__}")
        raise typer.Exit()


def verbose_callback(value: bool) -> None:
    """Enable debug logging and tracebacks in error panels."""
    if value:
        configure_logging(level="DEBUG")
        set_verbose_mode(True)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        callback=verbose_callback,
        is_eager=True,
        help="Enable debug logging and full tracebacks",
    ),
) -> None:
    """ChunkForge - split documents into retrieval-ready chunks.

    Examples:
        # Chunk with automatic strategy selection
        chunkforge chunk notes.md

        # See why Auto picks a strategy
        chunkforge analyze notes.md

        # List strategies and languages
        chunkforge strategies
        chunkforge languages

    For help on a specific command:
        chunkforge <command> --help
    """
    set_verbose_mode(verbose)
    if not verbose:
        configure_logging(level="WARNING")

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


app.command("chunk", rich_help_panel="Core")(chunk_command)
app.command("analyze", rich_help_panel="Core")(analyze_command)
app.command("strategies", rich_help_panel="Info")(strategies_command)
app.command("languages", rich_help_panel="Info")(languages_command)


def cli_main() -> None:
    """Entry point for console_scripts."""
    app()


if __name__ == "__main__":
    cli_main()
