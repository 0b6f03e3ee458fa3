"""Console output helpers.

Provides consistent formatting for CLI output messages, including the
ErrorRenderer that turns exceptions into "Why" / "How to fix" panels.
"""

from __future__ import annotations

import traceback
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

# Shared console instances
_console: Console | None = None
_stderr_console: Console | None = None

# Set by the CLI --verbose flag
_verbose_mode: bool = False


def get_console() -> Console:
    """Get shared console instance (lazy-loaded).

    Returns:
        Rich Console instance
    """
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_stderr_console() -> Console:
    """Console for status output that must stay out of piped data.

    Returns:
        Rich Console instance writing to stderr
    """
    global _stderr_console
    if _stderr_console is None:
        _stderr_console = Console(stderr=True)
    return _stderr_console


def set_verbose_mode(enabled: bool) -> None:
    """Enable or disable verbose mode for error display.

    When verbose mode is enabled, full tracebacks are shown.
    """
    global _verbose_mode
    _verbose_mode = enabled


def is_verbose_mode() -> bool:
    return _verbose_mode


def tip(message: str, console: Optional[Console] = None) -> None:
    """Display a tip message in dim styling.

    Example:
        tip("Use --strategy Intelligent for code-heavy documents")
        # Output: "  Tip: Use --strategy Intelligent for code-heavy documents"
    """
    (console or get_console()).print(f"  [dim]Tip: {message}[/dim]")


# ============================================================================
# ErrorRenderer
# ============================================================================


class ErrorRenderer:
    """Renders exceptions as panels with "Why" and "How to fix" sections.

    Example
    -------
        try:
            chunker.chunk(content, options)
        except ChunkForgeError as e:
            ErrorRenderer.render(e, context="While chunking notes.md")
            raise SystemExit(1)

        # +--------------------------------+
        # |  Error: CF-CHUNK-001           |
        # +--------------------------------+
        # | max_chunk_size must be > 0     |
        # |                                |
        # | Why it happened:               |
        # | The chunking options ...       |
        # |                                |
        # | How to fix:                    |
        # | - Use a positive --max-size    |
        # +--------------------------------+
    """

    @staticmethod
    def render(
        exc: BaseException,
        context: str = "",
        show_traceback: Optional[bool] = None,
        console: Optional[Console] = None,
    ) -> None:
        """Render an exception as an error panel.

        Args:
            exc: Exception to render
            context: Optional context message (e.g., "While chunking notes.md")
            show_traceback: Override for verbose mode (None = use global setting)
            console: Console to print to (defaults to the shared console)
        """
        from chunkforge.core.exceptions import get_error_info, get_root_cause

        console = console or get_console()

        error_info = get_error_info(exc)
        error_code = error_info.get("error_code", "CF-ERR-999")
        why = error_info.get("why_it_happened", "An unexpected error occurred")
        how_to_fix = error_info.get("how_to_fix", ["Check the error message"])

        root_cause = get_root_cause(exc)
        root_message = str(root_cause) if root_cause is not exc else None

        content = ErrorRenderer._build_error_content(
            message=str(exc),
            context=context,
            why=why,
            how_to_fix=how_to_fix,
            root_message=root_message,
        )
        console.print(
            Panel(
                content,
                title=f"[bold red]Error: {error_code}[/bold red]",
                border_style="red",
                padding=(1, 2),
            )
        )

        should_show_traceback = (
            show_traceback if show_traceback is not None else is_verbose_mode()
        )
        if should_show_traceback:
            ErrorRenderer._render_traceback(exc, console)

    @staticmethod
    def _build_error_content(
        message: str,
        context: str,
        why: str,
        how_to_fix: List[str],
        root_message: Optional[str],
    ) -> Text:
        text = Text()

        if context:
            text.append(f"{context}\n", style="dim")
            text.append("\n")

        text.append(message, style="bold red")
        text.append("\n\n")

        if root_message and root_message != message:
            text.append("Root cause: ", style="bold yellow")
            text.append(root_message, style="yellow")
            text.append("\n\n")

        text.append("Why it happened:\n", style="bold cyan")
        text.append(f"  {why}\n", style="cyan")
        text.append("\n")

        text.append("How to fix:\n", style="bold green")
        for fix in how_to_fix:
            text.append(f"  - {fix}\n", style="green")

        return text

    @staticmethod
    def _render_traceback(exc: BaseException, console: Console) -> None:
        console.print()
        console.print("[dim]--- Traceback (--verbose mode) ---[/dim]")
        tb_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        console.print(Text(tb_text, style="dim"))
