"""Base class for all CLI commands.

Each command is a class with an ``execute`` method returning an exit code;
a thin typer wrapper function parses the options and raises typer.Exit on
failure. Commands take an optional console so tests can capture output.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from chunkforge.cli.console import ErrorRenderer, get_console, is_verbose_mode
from chunkforge.core.config import Config
from chunkforge.core.config_loaders import load_config
from chunkforge.core.logging import configure_logging, get_logger

logger = get_logger(__name__)

MAX_DOCUMENT_BYTES = 50 * 1024 * 1024


class ChunkForgeCommand(ABC):
    """Abstract base class for ChunkForge CLI commands.

    Example:
        class MyCommand(ChunkForgeCommand):
            def execute(self, file_path: Path) -> int:
                text = self.read_document(file_path)
                ...
                return 0
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or get_console()

    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> int:
        """Run the command.

        Returns:
            Exit code (0 = success, non-zero = error)
        """

    def read_document(self, file_path: Path) -> str:
        """Read a UTF-8 text document.

        Raises:
            FileNotFoundError: If the path does not exist or is a directory
            ValueError: If the file is larger than MAX_DOCUMENT_BYTES
            UnicodeDecodeError: If the file is not UTF-8 text
        """
        if not file_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")
        size = file_path.stat().st_size
        if size > MAX_DOCUMENT_BYTES:
            raise ValueError(
                f"File too large: {size} bytes (limit {MAX_DOCUMENT_BYTES})"
            )
        return file_path.read_text(encoding="utf-8")

    def load_config(self, config_path: Optional[Path] = None) -> Config:
        """Load chunkforge.yaml (or the given file) with env overrides.

        A configured log file is attached to all loggers.
        """
        if config_path is not None and not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        config = load_config(config_path)
        if config.logging.file:
            configure_logging(
                level="DEBUG" if is_verbose_mode() else config.logging.level,
                log_file=config.log_file_path,
            )
        return config

    def handle_error(self, error: Exception, context: str = "") -> int:
        """Render ``error`` as a panel and return exit code 1."""
        logger.debug("Command failed", error=type(error).__name__, context=context)
        ErrorRenderer.render(error, context=context, console=self.console)
        return 1
