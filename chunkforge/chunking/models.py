"""
Data model for the chunking core.

Input, options and output records shared by every strategy:

    RefinedContent ──► ChunkingOptions ──► strategy ──► DocumentChunk*

All records are frozen dataclasses. Mapping fields are wrapped in
MappingProxyType so a chunk cannot be changed after a strategy emits it;
downstream enrichment should build a wrapping record instead.
"""

from __future__ import annotations

import dataclasses
import hashlib
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from chunkforge.core.exceptions import InvalidOptionsError

DEFAULT_MAX_CHUNK_SIZE = 512
DEFAULT_OVERLAP_SIZE = 64


class StrategyName(str, Enum):
    """Built-in chunking strategies.

    Custom strategies registered at runtime are referenced by plain strings.
    """

    FIXED_SIZE = "FixedSize"
    PARAGRAPH = "Paragraph"
    SEMANTIC = "Semantic"
    SMART = "Smart"
    INTELLIGENT = "Intelligent"
    AUTO = "Auto"

    @classmethod
    def parse(cls, value: Union["StrategyName", str]) -> Optional["StrategyName"]:
        """Resolve a user-supplied name ("smart", "fixed_size", "FixedSize").

        Returns None for names that are not built-in.
        """
        if isinstance(value, StrategyName):
            return value
        key = str(value).replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return None


class StructuralRole(str, Enum):
    """Structural role of a span."""

    HEADER = "header"
    TABLE = "table"
    CODE_BLOCK = "code_block"
    LIST = "list"
    CONTENT = "content"


class DocumentDomain(str, Enum):
    """Coarse subject-matter classification."""

    TECHNICAL = "Technical"
    BUSINESS = "Business"
    ACADEMIC = "Academic"
    GENERAL = "General"


@dataclass(frozen=True)
class TextSpan:
    """Half-open character range ``[start, end)`` into a source text."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def slice(self, text: str) -> str:
        return text[self.start : self.end]


@dataclass(frozen=True)
class Section:
    """A document section produced by the refiner."""

    id: str
    title: str
    type: str = "section"
    level: int = 1
    start_char: int = 0
    end_char: int = 0
    children: Tuple["Section", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))

    def contains(self, position: int) -> bool:
        return self.start_char <= position < self.end_char


@dataclass(frozen=True)
class RefinedContent:
    """Cleaned document text plus structural hints.

    Recognised hints:
        language: ISO language code (overridden by language_options)
        page_offsets: sorted character offsets where each page starts
        has_headers: refiner found headings
    """

    text: str
    hints: Mapping[str, Any] = field(default_factory=dict)
    sections: Tuple[Section, ...] = ()
    document_id: Optional[str] = None

    def __post_init__(self) -> None:
        assert self.text is not None, "text cannot be None"
        object.__setattr__(self, "hints", MappingProxyType(dict(self.hints)))
        object.__setattr__(self, "sections", tuple(self.sections))

    @classmethod
    def from_text(cls, text: str, **hints: Any) -> "RefinedContent":
        return cls(text=text, hints=hints)

    @property
    def resolved_document_id(self) -> str:
        """Caller-supplied id, or a stable hash of the text."""
        if self.document_id:
            return self.document_id
        return hashlib.md5(self.text.encode("utf-8")).hexdigest()[:12]

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class ChunkingOptions:
    """Options for one chunking call. Sizes are token counts."""

    strategy: Union[StrategyName, str] = StrategyName.AUTO
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    min_chunk_size: Optional[int] = None
    overlap_size: int = DEFAULT_OVERLAP_SIZE
    preserve_structure: bool = True
    importance_threshold: float = 0.0
    strategy_options: Mapping[str, Any] = field(default_factory=dict)
    language_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        parsed = StrategyName.parse(self.strategy)
        if parsed is not None:
            object.__setattr__(self, "strategy", parsed)
        object.__setattr__(
            self, "strategy_options", MappingProxyType(dict(self.strategy_options))
        )
        object.__setattr__(
            self, "language_options", MappingProxyType(dict(self.language_options))
        )

    @classmethod
    def create(cls, **kwargs: Any) -> "ChunkingOptions":
        """Construct and validate in one step."""
        options = cls(**kwargs)
        options.validate()
        return options

    @property
    def strategy_name(self) -> str:
        if isinstance(self.strategy, StrategyName):
            return self.strategy.value
        return str(self.strategy)

    @property
    def effective_min_chunk_size(self) -> int:
        if self.min_chunk_size is not None:
            return self.min_chunk_size
        return max(1, self.max_chunk_size // 4)

    @property
    def uses_default_sizes(self) -> bool:
        """True when the caller left the size settings at their defaults."""
        return (
            self.max_chunk_size == DEFAULT_MAX_CHUNK_SIZE
            and self.overlap_size == DEFAULT_OVERLAP_SIZE
            and self.min_chunk_size is None
        )

    @property
    def language(self) -> Optional[str]:
        code = self.language_options.get("language")
        if not code or str(code).lower() == "auto":
            return None
        return str(code)

    def option(self, key: str, default: Any = None) -> Any:
        return self.strategy_options.get(key, default)

    def with_changes(self, **changes: Any) -> "ChunkingOptions":
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        """Reject inconsistent options before any processing.

        Raises:
            InvalidOptionsError: On the first violated constraint
        """
        if not isinstance(self.max_chunk_size, int) or self.max_chunk_size <= 0:
            raise InvalidOptionsError(
                f"max_chunk_size must be a positive integer, got {self.max_chunk_size!r}",
                field="max_chunk_size",
                value=self.max_chunk_size,
            )
        if self.min_chunk_size is not None and (
            self.min_chunk_size < 0 or self.min_chunk_size > self.max_chunk_size
        ):
            raise InvalidOptionsError(
                f"min_chunk_size ({self.min_chunk_size}) must be between 0 and "
                f"max_chunk_size ({self.max_chunk_size})",
                field="min_chunk_size",
                value=self.min_chunk_size,
            )
        if not 0 <= self.overlap_size < self.max_chunk_size:
            raise InvalidOptionsError(
                f"overlap_size ({self.overlap_size}) must be >= 0 and below "
                f"max_chunk_size ({self.max_chunk_size})",
                field="overlap_size",
                value=self.overlap_size,
            )
        if not 0.0 <= self.importance_threshold <= 1.0:
            raise InvalidOptionsError(
                "importance_threshold must be between 0.0 and 1.0",
                field="importance_threshold",
                value=self.importance_threshold,
            )
        if not self.strategy_name.strip():
            raise InvalidOptionsError(
                "strategy name cannot be empty", field="strategy", value=self.strategy
            )
        self._validate_strategy_options()

    def _validate_strategy_options(self) -> None:
        """Numeric strategy options that size buffers or windows."""
        minimums = (
            ("sample_tokens", 1),
            ("flex_ratio", 1.0),
            ("atomic_split_multiple", 1),
            ("max_analysis_time_seconds", 0),
        )
        for key, lower in minimums:
            if key not in self.strategy_options:
                continue
            value = self.strategy_options[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidOptionsError(
                    f"strategy option {key} must be a number, got {value!r}",
                    field=key,
                    value=value,
                )
            if value < lower:
                raise InvalidOptionsError(
                    f"strategy option {key} must be >= {lower}, got {value!r}",
                    field=key,
                    value=value,
                )


@dataclass(frozen=True)
class ChunkLocation:
    """Where a chunk sits in the source text."""

    start_char: int
    end_char: int
    start_page: Optional[int] = None
    end_page: Optional[int] = None
    section_path: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class DocumentChunk:
    """A chunk emitted by a strategy.

    ``content`` is always the exact source slice ``text[start_char:end_char]``.
    """

    id: str
    index: int
    content: str
    location: ChunkLocation
    quality: float
    importance: float
    density: float
    strategy_used: str
    estimated_tokens: int
    structural_role: StructuralRole = StructuralRole.CONTENT
    document_domain: DocumentDomain = DocumentDomain.GENERAL
    contextual_header: Optional[str] = None
    technical_keywords: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "technical_keywords", tuple(self.technical_keywords))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def start_char(self) -> int:
        return self.location.start_char

    @property
    def end_char(self) -> int:
        return self.location.end_char

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for JSON output."""
        return {
            "id": self.id,
            "index": self.index,
            "content": self.content,
            "location": {
                "start_char": self.location.start_char,
                "end_char": self.location.end_char,
                "start_page": self.location.start_page,
                "end_page": self.location.end_page,
                "section_path": (
                    list(self.location.section_path)
                    if self.location.section_path
                    else None
                ),
            },
            "quality": round(self.quality, 4),
            "importance": round(self.importance, 4),
            "density": round(self.density, 4),
            "strategy_used": self.strategy_used,
            "estimated_tokens": self.estimated_tokens,
            "structural_role": self.structural_role.value,
            "document_domain": self.document_domain.value,
            "contextual_header": self.contextual_header,
            "technical_keywords": list(self.technical_keywords),
            "warnings": list(self.warnings),
            "metadata": dict(self.metadata),
        }


def make_chunk_id(document_id: str, index: int, content: str) -> str:
    """Stable chunk id from document id, position and leading content."""
    id_source = f"{document_id}_{index}_{content[:50]}"
    return hashlib.md5(id_source.encode("utf-8")).hexdigest()[:16]
