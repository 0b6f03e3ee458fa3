"""
Structured Logging for ChunkForge.

Every module obtains its logger from here rather than from the logging
module directly:

    from chunkforge.core.logging import get_logger
    logger = get_logger(__name__)

    logger.info("Chunked document", chunks=12, strategy="Smart")
    # -> "Chunked document | chunks=12 | strategy=Smart"

Logger Types
------------
**StructuredLogger**
    Renders keyword arguments as ``key=value`` fields after the message and
    supports binding context that repeats on every later call.

**ChunkingRunLogger**
    Tracks the stages of a single chunking run with durations: ``select``
    (Auto only) and ``chunk``, which includes scoring each chunk as it is
    built:

        run = ChunkingRunLogger(document_id)
        run.start_stage("select")
        run.start_stage("chunk")
        run.finish(success=True, chunks=42)

Console output goes through rich's RichHandler on stderr; a plain
FileHandler is added when a log file is configured.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler

# Log records go to stderr so stdout stays clean for chunk output
_LOG_CONSOLE = Console(stderr=True)


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_path: Optional[Path] = None
    console: bool = True


class StructuredLogger:
    """
    Structured logger with context support.

    Provides consistent logging across the application with
    support for structured fields and context tracking.
    """

    def __init__(self, name: str, config: Optional[LogConfig] = None) -> None:
        self.logger = logging.getLogger(name)
        self.config = config or LogConfig()
        self._context: dict[str, Any] = {}
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Configure handlers and level from the config."""
        level = getattr(logging, self.config.level.upper(), logging.INFO)
        self.logger.setLevel(level)
        self.logger.handlers.clear()

        if self.config.console:
            console_handler = RichHandler(
                console=_LOG_CONSOLE,
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
            console_handler.setLevel(level)
            self.logger.addHandler(console_handler)

        if self.config.file_path:
            self.config.file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.config.file_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter(
                    self.config.format, datefmt=self.config.date_format
                )
            )
            self.logger.addHandler(file_handler)

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """Attach fields that are repeated on every subsequent message."""
        self._context.update(kwargs)
        return self

    def unbind(self, *keys: str) -> "StructuredLogger":
        """Remove previously bound fields."""
        for key in keys:
            self._context.pop(key, None)
        return self

    def _format_message(self, message: str, **kwargs: Any) -> str:
        """Format message with context and extra fields."""
        fields = {**self._context, **kwargs}
        if fields:
            field_str = " | ".join(f"{k}={v}" for k, v in fields.items())
            return f"{message} | {field_str}"
        return message

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self.logger.error(self._format_message(message, **kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self.logger.exception(self._format_message(message, **kwargs))


class _ConfigHolder:
    """Holds the default logging configuration."""

    _config: LogConfig = LogConfig()

    @classmethod
    def get_config(cls) -> LogConfig:
        """Get the default config."""
        return cls._config

    @classmethod
    def set_config(cls, config: LogConfig) -> None:
        """Set the default config."""
        cls._config = config


# Module-level logger factory
_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str, config: Optional[LogConfig] = None) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name (typically __name__).
        config: Optional logging configuration; the global default is used
            when omitted.

    Returns:
        Configured StructuredLogger instance.
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, config or _ConfigHolder.get_config())
    return _loggers[name]


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console: bool = True,
) -> None:
    """
    Configure global logging settings.

    Loggers that already exist are reconfigured so a CLI --verbose flag takes
    effect for modules imported before the flag was parsed.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file path for log output.
        console: Whether to log to console.
    """
    config = LogConfig(level=level, file_path=log_file, console=console)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    _ConfigHolder.set_config(config)

    for structured in _loggers.values():
        structured.config = config
        structured._setup_logger()


class ChunkingRunLogger:
    """
    Logger for a single chunking run.

    Tracks run stages and provides timing information.
    """

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        self.logger = get_logger("chunkforge.run")
        self._stage_start: Optional[datetime] = None
        self._current_stage: Optional[str] = None

    @property
    def current_stage(self) -> Optional[str]:
        return self._current_stage

    def start_stage(self, stage: str) -> None:
        """Mark the start of a run stage."""
        self._finish_current_stage()
        self._current_stage = stage
        self._stage_start = datetime.now()
        self.logger.debug(
            "Starting stage",
            document_id=self.document_id,
            stage=stage,
        )

    def _finish_current_stage(self) -> None:
        """Log completion of current stage if any."""
        if self._current_stage and self._stage_start:
            duration = (datetime.now() - self._stage_start).total_seconds()
            self.logger.debug(
                "Completed stage",
                document_id=self.document_id,
                stage=self._current_stage,
                duration_sec=f"{duration:.2f}",
            )
        self._current_stage = None
        self._stage_start = None

    def finish(
        self, success: bool, chunks: int = 0, error: Optional[str] = None
    ) -> None:
        """Mark run completion."""
        self._finish_current_stage()
        if success:
            self.logger.info(
                "Chunking completed",
                document_id=self.document_id,
                chunks_created=chunks,
            )
        else:
            self.logger.error(
                "Chunking failed",
                document_id=self.document_id,
                error=error,
            )

    def log_progress(self, message: str, **kwargs: Any) -> None:
        """Log progress within a stage."""
        self.logger.debug(
            message,
            document_id=self.document_id,
            stage=self._current_stage,
            **kwargs,
        )
