"""
Automatic Strategy Selection.

Picks a chunking strategy for a document in four steps:

    1. sample      first ~2000 tokens of the document
    2. features    structural markers, content type, language, domain,
                   sentence and paragraph statistics, complexity 0-10
    3. ranking     registry snapshot scored against the features
    4. completion  optional: the ranking is sent to a completion service
                   for a final pick with a confidence and reasoning

Decision Table
--------------
    force_strategy set and registered        -> forced pick
    no completion service                    -> rule ranking
    service answer below min_confidence      -> rule ranking
    service error, bad JSON or timeout       -> Smart (source "fallback")
    ranking margin below INCONCLUSIVE_MARGIN -> Smart

Ranking
-------
    score = priority_score
          + 20 per document tag in optimal_for_document_types
          + 15 per needed capability in strengths
          + 60 when prefer_speed and speed_rating >= 4
          + 60 when prefer_quality and quality_rating >= 5

Concurrency
-----------
The completion call runs on a shared ThreadPoolExecutor. The caller waits
in short slices so that both the analysis budget and the cancellation token
are honored; the registry lock is never held while waiting.
"""

from __future__ import annotations

import json
import re
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chunkforge.chunking.base import CancellationToken
from chunkforge.chunking.budget import estimate_tokens, sample_text
from chunkforge.chunking.language_profiles import resolve_profile
from chunkforge.chunking.models import (
    ChunkingOptions,
    DocumentDomain,
    RefinedContent,
    StrategyName,
)
from chunkforge.chunking.registry import StrategyMetadata, StrategyRegistry
from chunkforge.chunking.segmenter import split_paragraphs, split_sentences
from chunkforge.chunking.structure import (
    detect_document_domain,
    extract_technical_keywords,
    is_table_line,
)
from chunkforge.core.exceptions import SelectionFailureError
from chunkforge.core.logging import get_logger
from chunkforge.llm.base import CompletionOptions, CompletionService

logger = get_logger(__name__)

DEFAULT_SAMPLE_TOKENS = 2000
DEFAULT_MIN_CONFIDENCE = 0.6
DEFAULT_MAX_ANALYSIS_SECONDS = 5.0
WAIT_SLICE_SECONDS = 0.05
INCONCLUSIVE_MARGIN = 3
MAX_COMPLEXITY = 10
MAX_SELECTOR_WORKERS = 4

DOCUMENT_TYPE_WEIGHT = 20
STRENGTH_WEIGHT = 15
PREFERENCE_BONUS = 60
SPEED_PREFERENCE_MIN_RATING = 4
QUALITY_PREFERENCE_MIN_RATING = 5

REQUIREMENT_SCORE_THRESHOLD = 12

SOURCE_FORCED = "forced"
SOURCE_RULES = "rules"
SOURCE_COMPLETION = "completion"
SOURCE_FALLBACK = "fallback"

# ============================================================================
# Feature extraction
# ============================================================================

_LIST_MARKERS = ("\n- ", "\n* ", "\n1. ", "\n1)")
_MATH_MARKERS = ("$$", "\\[", "\\begin{equation}")
_NUMBERED_LINE = re.compile(
    r"^(?:\d+[.)]|[IVX]+[.)]|[a-zA-Z][.)]|[가-힣][.)]|\(\d+\))\s+\w"
)
_HIERARCHICAL_LINE = re.compile(r"^\d+\.\d+[.)]*\s+\w")
_WORD = re.compile(r"\w+")

_REQUIREMENT_KEYWORDS = (
    "요구사항", "변경사항", "항목", "명세", "기능",
    "requirement", "change", "item", "specification", "feature",
    "function", "criteria", "policy", "rule", "standard", "guideline",
    "procedure",
)
_DOCUMENT_STRUCTURE_KEYWORDS = (
    "section", "chapter", "objective", "scope", "overview",
    "목적", "목표", "범위", "개요",
)
_PROCESS_KEYWORDS = (
    "status", "state", "process", "workflow", "step", "phase",
    "상태", "과정", "단계", "절차", "흐름", "처리",
)
_CHECKBOX_MARKERS = ("□", "▣", "☐", "☑", "✓", "✗")


def detect_numbered_sections(text: str) -> bool:
    """Numbered outline lines (1., 1.1, II., a), 가., (1)) are common."""
    lines = text.split("\n")
    numbered = 0
    hierarchical = 0
    for line in lines:
        stripped = line.strip()
        if _HIERARCHICAL_LINE.match(stripped):
            hierarchical += 1
            numbered += 1
        elif _NUMBERED_LINE.match(stripped):
            numbered += 1

    weight = 1.5 if hierarchical else 1.0
    threshold = max(2.0, len(lines) * 0.08)
    return numbered * weight >= threshold or hierarchical >= 3


def requirement_score(text: str) -> int:
    """Keyword and marker score for requirement/specification documents."""
    lowered = text.lower()
    score = 2 * sum(1 for keyword in _REQUIREMENT_KEYWORDS if keyword in lowered)
    score += sum(1 for keyword in _DOCUMENT_STRUCTURE_KEYWORDS if keyword in lowered)
    score += sum(1 for keyword in _PROCESS_KEYWORDS if keyword in lowered)

    if any(marker in text for marker in _CHECKBOX_MARKERS):
        score += 3
    if "No." in text or "Item" in text or "항목" in text:
        score += 2
    if " | " in text and "---" in text:
        score += 2

    lines = [line for line in text.split("\n") if line.strip()]
    bullets = sum(1 for line in lines if line.strip().startswith(("- ", "* ", "• ")))
    if bullets > 3:
        score += 1
    if len(lines) > 10 and len(text) / len(lines) < 50:
        score += 2
    return score


@dataclass(frozen=True)
class DocumentFeatures:
    """Characteristics of a document sample used for ranking."""

    has_headers: bool = False
    has_code: bool = False
    has_tables: bool = False
    has_lists: bool = False
    has_math: bool = False
    has_numbered_sections: bool = False
    has_structured_requirements: bool = False
    content_type: str = "General"  # Technical, Markdown, Narrative, General
    language: str = "en"
    domain: DocumentDomain = DocumentDomain.GENERAL
    average_sentence_length: float = 0.0  # words
    paragraph_count: int = 0
    complexity: int = 0
    sample_tokens: int = 0

    @property
    def document_tags(self) -> FrozenSet[str]:
        """Tags matched against ``StrategyMetadata.optimal_for_document_types``."""
        tags = {self.content_type.lower(), self.domain.value.lower()}
        if self.has_headers or self.has_numbered_sections:
            tags.add("structured")
        if self.has_code:
            tags.add("code")
        if self.has_tables:
            tags.add("tables")
        if self.has_structured_requirements:
            tags.add("requirements")
        if self.has_math:
            tags.add("math")
        return frozenset(tags)

    @property
    def needed_strengths(self) -> FrozenSet[str]:
        """Capabilities matched against ``StrategyMetadata.strengths``."""
        needed = set()
        if self.has_headers or self.has_tables or self.has_lists:
            needed.add("structure_preservation")
        if self.has_code:
            needed.add("code_awareness")
        if self.complexity >= 5:
            needed.add("context_preservation")
        if self.content_type == "Narrative" or self.average_sentence_length > 20:
            needed.add("sentence_integrity")
        if self.paragraph_count > 3:
            needed.add("paragraph_coherence")
        if self.has_math:
            needed.add("semantic_coherence")
        return frozenset(needed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_headers": self.has_headers,
            "has_code": self.has_code,
            "has_tables": self.has_tables,
            "has_lists": self.has_lists,
            "has_math": self.has_math,
            "has_numbered_sections": self.has_numbered_sections,
            "has_structured_requirements": self.has_structured_requirements,
            "content_type": self.content_type,
            "language": self.language,
            "domain": self.domain.value,
            "average_sentence_length": round(self.average_sentence_length, 1),
            "paragraph_count": self.paragraph_count,
            "complexity": self.complexity,
            "sample_tokens": self.sample_tokens,
        }


def _complexity(features: Dict[str, Any], paragraph_count: int) -> int:
    score = 0
    score += 2 if features["has_headers"] else 0
    score += 2 if features["has_code"] else 0
    score += 2 if features["has_tables"] else 0
    score += 1 if features["has_lists"] else 0
    score += 2 if features["has_math"] else 0
    score += 3 if features["has_numbered_sections"] else 0
    score += 3 if features["has_structured_requirements"] else 0
    score += 1 if paragraph_count > 10 else 0
    return min(MAX_COMPLEXITY, score)


def analyze_features(
    sample: str,
    file_name: Optional[str] = None,
    language: Optional[str] = None,
) -> DocumentFeatures:
    """
    Extract ranking features from a document sample.

    Args:
        sample: Leading part of the document (see ``sample_text``)
        file_name: Source file name; ``.md`` marks Markdown content
        language: Explicit language code, detected from the sample if None

    Returns:
        DocumentFeatures
    """
    if not sample.strip():
        return DocumentFeatures()

    markers: Dict[str, Any] = {
        "has_headers": sample.startswith("#") or "\n#" in sample,
        "has_code": "```" in sample or "~~~" in sample,
        "has_tables": any(is_table_line(line) for line in sample.splitlines()),
        "has_lists": sample.startswith(("- ", "* ", "1. "))
        or any(marker in sample for marker in _LIST_MARKERS),
        "has_math": any(marker in sample for marker in _MATH_MARKERS),
        "has_numbered_sections": detect_numbered_sections(sample),
        "has_structured_requirements": requirement_score(sample) >= REQUIREMENT_SCORE_THRESHOLD,
    }

    profile = resolve_profile(sample, language=language)
    paragraph_count = len(split_paragraphs(sample))
    sentences = split_sentences(sample, profile)
    words = len(_WORD.findall(sample))
    average_sentence_length = words / len(sentences) if sentences else 0.0

    if markers["has_code"]:
        content_type = "Technical"
    elif file_name and file_name.lower().endswith((".md", ".markdown")):
        content_type = "Markdown"
    elif len(sample) > 1000 and paragraph_count > 3:
        content_type = "Narrative"
    else:
        content_type = "General"

    return DocumentFeatures(
        content_type=content_type,
        language=profile.language_code,
        domain=detect_document_domain(sample, extract_technical_keywords(sample)),
        average_sentence_length=average_sentence_length,
        paragraph_count=paragraph_count,
        complexity=_complexity(markers, paragraph_count),
        sample_tokens=estimate_tokens(sample),
        **markers,
    )


# ============================================================================
# Ranking
# ============================================================================


@dataclass(frozen=True)
class RankedStrategy:
    metadata: StrategyMetadata
    score: float
    matched_types: Tuple[str, ...] = ()
    matched_strengths: Tuple[str, ...] = ()


def rank_strategies(
    features: DocumentFeatures,
    candidates: Sequence[StrategyMetadata],
    prefer_speed: bool = False,
    prefer_quality: bool = False,
) -> List[RankedStrategy]:
    """Score candidates against the features, best first (ties by name)."""
    tags = features.document_tags
    needed = features.needed_strengths

    ranked: List[RankedStrategy] = []
    for metadata in candidates:
        types = tuple(t for t in metadata.optimal_for_document_types if t in tags)
        strengths = tuple(s for s in metadata.strengths if s in needed)
        score = float(metadata.priority_score)
        score += DOCUMENT_TYPE_WEIGHT * len(types)
        score += STRENGTH_WEIGHT * len(strengths)
        if prefer_speed and metadata.speed_rating >= SPEED_PREFERENCE_MIN_RATING:
            score += PREFERENCE_BONUS
        if prefer_quality and metadata.quality_rating >= QUALITY_PREFERENCE_MIN_RATING:
            score += PREFERENCE_BONUS
        ranked.append(RankedStrategy(metadata, score, types, strengths))

    return sorted(ranked, key=lambda r: (-r.score, r.metadata.name))


# ============================================================================
# Selection outcome and completion reply
# ============================================================================


@dataclass(frozen=True)
class StrategySelection:
    """Outcome of automatic strategy selection."""

    strategy: str
    confidence: float
    reasoning: str
    source: str  # forced, rules, completion, fallback
    alternatives: Tuple[str, ...] = ()
    features: Optional[DocumentFeatures] = field(default=None, compare=False)

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "auto_selected_strategy": self.strategy,
            "selection_confidence": round(self.confidence, 3),
            "selection_reasoning": self.reasoning,
            "selection_source": self.source,
        }


class StrategyRecommendation(BaseModel):
    """JSON answer expected from the completion service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    primary_strategy: str = Field(alias="primaryStrategy", min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    alternatives: List[str] = Field(default_factory=list)
    key_factors: List[str] = Field(default_factory=list, alias="keyFactors")

    @field_validator("confidence", mode="before")
    @classmethod
    def _percent_to_ratio(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and 1.0 < value <= 100.0:
            return value / 100.0
        return value

    @field_validator("alternatives", mode="before")
    @classmethod
    def _alternative_names(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        names = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("strategy") or item.get("name") or item.get("strategyName")
            if item:
                names.append(str(item))
        return names


def parse_recommendation(reply: str) -> StrategyRecommendation:
    """
    Parse the completion reply into a StrategyRecommendation.

    The JSON object may be wrapped in prose or code fences.

    Raises:
        SelectionFailureError: If no valid JSON object is found
    """
    start = reply.find("{")
    end = reply.rfind("}")
    if start == -1 or end <= start:
        raise SelectionFailureError("Completion reply contains no JSON object")

    try:
        data = json.loads(reply[start : end + 1])
        return StrategyRecommendation.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise SelectionFailureError(f"Completion reply is not a valid recommendation: {e}") from e


def build_selection_prompt(
    features: DocumentFeatures, ranking: Sequence[RankedStrategy]
) -> str:
    """Prompt asking the service to pick among the ranked candidates."""
    candidates = "\n".join(
        f"- {r.metadata.name} (score {r.score:.0f}): {r.metadata.description}"
        for r in ranking
    )
    return (
        "You choose the text chunking strategy for a retrieval system.\n\n"
        f"Document features:\n{json.dumps(features.to_dict(), indent=2, ensure_ascii=False)}\n\n"
        f"Candidate strategies, ranked by rules:\n{candidates}\n\n"
        "Answer with a JSON object only:\n"
        '{"primaryStrategy": "<name>", "confidence": <0.0-1.0>, '
        '"reasoning": "<one sentence>", "alternatives": ["<name>"], '
        '"keyFactors": ["<factor>"]}'
    )


# ============================================================================
# Selector
# ============================================================================

_EXECUTOR: Optional[ThreadPoolExecutor] = None
_EXECUTOR_LOCK = threading.Lock()


def _executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    if _EXECUTOR is None:
        with _EXECUTOR_LOCK:
            if _EXECUTOR is None:
                _EXECUTOR = ThreadPoolExecutor(
                    max_workers=MAX_SELECTOR_WORKERS, thread_name_prefix="chunkforge-select"
                )
    return _EXECUTOR


def _clamp_confidence(value: float) -> float:
    return min(0.95, max(0.5, value))


class StrategySelector:
    """
    Rule-based strategy ranking with an optional completion-service pick.

    Stateless between calls; one instance can serve many documents.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        completion_service: Optional[CompletionService] = None,
    ):
        self.registry = registry
        self.completion_service = completion_service

    def select(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> StrategySelection:
        """
        Choose a strategy for ``content``.

        Never fails for selection reasons: any SelectionFailureError is
        logged and answered with Smart.

        Raises:
            ChunkingCancelledError: If ``cancel_token`` is cancelled
        """
        try:
            return self._select(content, options, cancel_token)
        except SelectionFailureError as e:
            logger.warning("Strategy selection failed, using Smart", error=str(e))
            return StrategySelection(
                strategy=StrategyName.SMART.value,
                confidence=0.5,
                reasoning=f"Selection failed ({e}); defaulting to Smart",
                source=SOURCE_FALLBACK,
            )

    def _select(
        self,
        content: RefinedContent,
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken],
    ) -> StrategySelection:
        forced = self._forced_selection(options)
        if forced is not None:
            return forced

        sample_tokens = int(options.option("sample_tokens", DEFAULT_SAMPLE_TOKENS))
        features = analyze_features(
            sample_text(content.text, sample_tokens),
            file_name=content.hints.get("file_name"),
            language=options.language or content.hints.get("language"),
        )

        candidates = [
            m for m in self.registry.snapshot() if m.name != StrategyName.AUTO.value
        ]
        if not candidates:
            raise SelectionFailureError("No strategies are registered")

        ranking = rank_strategies(
            features,
            candidates,
            prefer_speed=bool(options.option("prefer_speed", False)),
            prefer_quality=bool(options.option("prefer_quality", False)),
        )
        rule_selection = self._rule_selection(ranking, features)

        if self.completion_service is None:
            return rule_selection

        recommendation = self._ask_service(features, ranking, options, cancel_token)
        min_confidence = float(options.option("min_confidence", DEFAULT_MIN_CONFIDENCE))
        chosen = self._resolve_name(recommendation.primary_strategy, candidates)

        if chosen is None or recommendation.confidence < min_confidence:
            logger.info(
                "Completion pick not accepted, using rule ranking",
                suggested=recommendation.primary_strategy,
                confidence=recommendation.confidence,
                min_confidence=min_confidence,
            )
            return rule_selection

        return StrategySelection(
            strategy=chosen,
            confidence=recommendation.confidence,
            reasoning=recommendation.reasoning or "Selected by completion service",
            source=SOURCE_COMPLETION,
            alternatives=tuple(recommendation.alternatives),
            features=features,
        )

    def _forced_selection(self, options: ChunkingOptions) -> Optional[StrategySelection]:
        forced = options.option("force_strategy")
        if not forced:
            return None
        parsed = StrategyName.parse(forced)
        name = parsed.value if parsed else str(forced)
        if parsed is StrategyName.AUTO or self.registry.get_strategy(name) is None:
            logger.warning("Ignoring force_strategy", strategy=name)
            return None
        return StrategySelection(
            strategy=name,
            confidence=1.0,
            reasoning="Strategy forced by caller",
            source=SOURCE_FORCED,
        )

    @staticmethod
    def _resolve_name(name: str, candidates: Sequence[StrategyMetadata]) -> Optional[str]:
        wanted = name.replace("_", "").replace("-", "").lower()
        for metadata in candidates:
            if metadata.name.replace("_", "").lower() == wanted:
                return metadata.name
        return None

    def _rule_selection(
        self, ranking: Sequence[RankedStrategy], features: DocumentFeatures
    ) -> StrategySelection:
        best = ranking[0]
        margin = best.score - ranking[1].score if len(ranking) > 1 else float(best.score)
        alternatives = tuple(r.metadata.name for r in ranking[1:3])
        smart = StrategyName.SMART.value

        if margin < INCONCLUSIVE_MARGIN and any(r.metadata.name == smart for r in ranking):
            return StrategySelection(
                strategy=smart,
                confidence=0.5,
                reasoning=(
                    f"Ranking inconclusive ({best.metadata.name} leads by "
                    f"{margin:.0f}); defaulting to Smart"
                ),
                source=SOURCE_RULES,
                alternatives=alternatives,
                features=features,
            )

        reasons = []
        if best.matched_types:
            reasons.append("suits " + ", ".join(best.matched_types))
        if best.matched_strengths:
            reasons.append("provides " + ", ".join(best.matched_strengths))
        reasoning = f"{best.metadata.name} ranked first (score {best.score:.0f})"
        if reasons:
            reasoning += ": " + "; ".join(reasons)

        return StrategySelection(
            strategy=best.metadata.name,
            confidence=_clamp_confidence(0.5 + margin / 100.0),
            reasoning=reasoning,
            source=SOURCE_RULES,
            alternatives=alternatives,
            features=features,
        )

    def _ask_service(
        self,
        features: DocumentFeatures,
        ranking: Sequence[RankedStrategy],
        options: ChunkingOptions,
        cancel_token: Optional[CancellationToken],
    ) -> StrategyRecommendation:
        """
        Run the completion call within the analysis budget.

        Raises:
            SelectionFailureError: On service error, bad reply or timeout
            ChunkingCancelledError: If cancelled while waiting
        """
        assert self.completion_service is not None
        budget = float(
            options.option("max_analysis_time_seconds", DEFAULT_MAX_ANALYSIS_SECONDS)
        )
        completion_options = CompletionOptions(
            max_tokens=400, temperature=0.1, timeout_seconds=budget, json_mode=True
        )
        prompt = build_selection_prompt(features, ranking)
        future: Future = _executor().submit(
            self.completion_service.complete, prompt, completion_options
        )

        deadline = time.monotonic() + budget
        while True:
            if cancel_token is not None and cancel_token.is_cancelled:
                future.cancel()
                cancel_token.raise_if_cancelled()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                raise SelectionFailureError(
                    f"Completion service did not answer within {budget:.1f}s"
                )
            done, _ = wait(
                [future],
                timeout=min(WAIT_SLICE_SECONDS, remaining),
                return_when=FIRST_COMPLETED,
            )
            if done:
                break

        try:
            reply = future.result()
        except Exception as e:
            raise SelectionFailureError(f"Completion service failed: {e}") from e
        return parse_recommendation(reply)


def select(
    content_sample: str,
    registry: StrategyRegistry,
    options: ChunkingOptions,
    completion_service: Optional[CompletionService] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> StrategySelection:
    """Select a strategy for a text sample (functional form of StrategySelector)."""
    selector = StrategySelector(registry, completion_service)
    return selector.select(RefinedContent.from_text(content_sample), options, cancel_token)
