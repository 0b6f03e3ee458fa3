"""
Chunking and strategy-selection configuration.

ChunkingConfig holds the defaults for a chunking run; SelectionConfig tunes
the Auto strategy selector. Both are converted into ChunkingOptions by
ChunkingConfig.to_options() so the chunking core never reads config files.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from chunkforge.chunking.models import ChunkingOptions


@dataclass
class SelectionConfig:
    """Auto strategy selection configuration."""

    prefer_speed: bool = False
    prefer_quality: bool = False
    max_analysis_time_seconds: float = 5.0
    min_confidence: float = 0.6
    use_auto_parameters: bool = True  # apply domain size presets
    sample_tokens: int = 2000


@dataclass
class ChunkingConfig:
    """Chunking configuration (sizes are token counts)."""

    strategy: str = "Auto"  # FixedSize, Paragraph, Semantic, Smart, Intelligent, Auto
    max_chunk_size: int = 512
    min_chunk_size: Optional[int] = None  # None -> max_chunk_size // 4
    overlap_size: int = 64
    preserve_structure: bool = True
    importance_threshold: float = 0.0
    language: str = "auto"  # ISO code or "auto" for script detection

    def to_options(
        self,
        selection: Optional[SelectionConfig] = None,
        **overrides: Any,
    ) -> "ChunkingOptions":
        """Build ChunkingOptions from this config.

        Args:
            selection: Auto selector settings copied into strategy_options
            **overrides: Field overrides (e.g. from CLI flags); None values
                are ignored. "language" sets the profile code; keys
                that are not ChunkingOptions fields go to strategy_options

        Returns:
            ChunkingOptions ready for validation
        """
        from chunkforge.chunking.models import ChunkingOptions

        selection = selection or SelectionConfig()
        strategy_options: Dict[str, Any] = {
            "prefer_speed": selection.prefer_speed,
            "prefer_quality": selection.prefer_quality,
            "max_analysis_time_seconds": selection.max_analysis_time_seconds,
            "min_confidence": selection.min_confidence,
            "use_auto_parameters": selection.use_auto_parameters,
            "sample_tokens": selection.sample_tokens,
        }
        values: Dict[str, Any] = {
            "strategy": self.strategy,
            "max_chunk_size": self.max_chunk_size,
            "min_chunk_size": self.min_chunk_size,
            "overlap_size": self.overlap_size,
            "preserve_structure": self.preserve_structure,
            "importance_threshold": self.importance_threshold,
        }
        language = overrides.pop("language", None) or self.language
        for key, value in overrides.items():
            if value is None:
                continue
            if key in values:
                values[key] = value
            else:
                strategy_options[key] = value

        return ChunkingOptions.create(
            **values,
            strategy_options=strategy_options,
            language_options={"language": language},
        )
