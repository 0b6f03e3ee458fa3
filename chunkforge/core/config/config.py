"""
Main configuration class for ChunkForge.

Config aggregates the section dataclasses and handles validation and
dictionary conversion. It maps one-to-one onto chunkforge.yaml:

    chunking:
      strategy: Smart
      max_chunk_size: 384
      overlap_size: 48
    selection:
      prefer_quality: true
    llm:
      provider: ollama
      model: ${CHUNKFORGE_MODEL:qwen2.5:14b}
    logging:
      level: INFO

Configuration Hierarchy
-----------------------
    Config
    ├── ChunkingConfig     # strategy, sizes, threshold, language
    ├── SelectionConfig    # Auto selector tuning
    ├── CompletionConfig   # optional completion service
    └── LoggingConfig      # level, log file
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from chunkforge.core.config.base import LoggingConfig
from chunkforge.core.config.chunking import ChunkingConfig, SelectionConfig
from chunkforge.core.config.llm import CompletionConfig
from chunkforge.core.exceptions import ConfigValidationError

VALID_PROVIDERS = ("none", "ollama")


@dataclass
class Config:
    """Main ChunkForge configuration."""

    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    llm: CompletionConfig = field(default_factory=CompletionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Runtime paths (set after loading)
    _base_path: Path = field(default_factory=Path.cwd, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        assert isinstance(self.chunking, ChunkingConfig), "chunking must be ChunkingConfig"
        assert isinstance(self.selection, SelectionConfig), "selection must be SelectionConfig"
        assert isinstance(self.llm, CompletionConfig), "llm must be CompletionConfig"
        self._validate_chunking()
        self._validate_selection()

        if self.llm.provider not in VALID_PROVIDERS:
            raise ConfigValidationError(
                f"llm.provider must be one of {', '.join(VALID_PROVIDERS)}",
                field="llm.provider",
                value=self.llm.provider,
            )

    def _validate_chunking(self) -> None:
        chunking = self.chunking
        if chunking.max_chunk_size <= 0:
            raise ConfigValidationError(
                "chunking.max_chunk_size must be positive",
                field="chunking.max_chunk_size",
                value=chunking.max_chunk_size,
            )
        if chunking.min_chunk_size is not None and (
            chunking.min_chunk_size > chunking.max_chunk_size
        ):
            raise ConfigValidationError(
                "chunking.min_chunk_size must not exceed chunking.max_chunk_size",
                field="chunking.min_chunk_size",
                value=chunking.min_chunk_size,
            )
        if not 0 <= chunking.overlap_size < chunking.max_chunk_size:
            raise ConfigValidationError(
                "chunking.overlap_size must be in [0, max_chunk_size)",
                field="chunking.overlap_size",
                value=chunking.overlap_size,
            )
        if not 0.0 <= chunking.importance_threshold <= 1.0:
            raise ConfigValidationError(
                "chunking.importance_threshold must be between 0.0 and 1.0",
                field="chunking.importance_threshold",
                value=chunking.importance_threshold,
            )

    def _validate_selection(self) -> None:
        if self.selection.max_analysis_time_seconds < 0:
            raise ConfigValidationError(
                "selection.max_analysis_time_seconds must not be negative",
                field="selection.max_analysis_time_seconds",
                value=self.selection.max_analysis_time_seconds,
            )
        if not 0.0 <= self.selection.min_confidence <= 1.0:
            raise ConfigValidationError(
                "selection.min_confidence must be between 0.0 and 1.0",
                field="selection.min_confidence",
                value=self.selection.min_confidence,
            )

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def log_file_path(self) -> Optional[Path]:
        """Absolute log file path, or None for console-only logging."""
        if not self.logging.file:
            return None
        path = Path(self.logging.file)
        return path if path.is_absolute() else self._base_path / path

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result: dict[str, Any] = {}
        for key, value in asdict(self).items():
            if key.startswith("_"):
                continue
            result[key] = value
        return result

    @staticmethod
    def _filter_fields(cls_type: Any, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Filter dict to only keys that match dataclass fields, handling None."""
        if not data:
            return {}
        valid_keys = {f.name for f in fields(cls_type)}
        return {k: v for k, v in data.items() if k in valid_keys}

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_path: Optional[Path] = None
    ) -> "Config":
        """Create Config from dictionary."""
        # Import here to avoid circular dependency
        from chunkforge.core.config_loaders import expand_env_vars

        data = expand_env_vars(data or {})

        config = cls(
            chunking=ChunkingConfig(
                **cls._filter_fields(ChunkingConfig, data.get("chunking"))
            ),
            selection=SelectionConfig(
                **cls._filter_fields(SelectionConfig, data.get("selection"))
            ),
            llm=CompletionConfig(
                **cls._filter_fields(CompletionConfig, data.get("llm"))
            ),
            logging=LoggingConfig(
                **cls._filter_fields(LoggingConfig, data.get("logging"))
            ),
        )

        if base_path:
            config._base_path = base_path

        return config
