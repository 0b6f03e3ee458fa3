"""
Chunk quality, importance and density scoring.

Applied uniformly to every chunk after a strategy has chosen its span:

    quality    = 0.4 * completeness + 0.3 * structure + 0.3 * consistency
                 - warning penalties
    importance = 0.5 base, +0.2 header, +0.2 keyword density,
                 +0.1 long chunk (capped at 1.0)
    density    = unique content-token ratio scaled by chunk length

Completeness is the share of the chunk's characters that belong to whole
sentences. Structure confidence rewards chunks that start and end on
natural boundaries. Consistency checks capitalization and terminal
punctuation of the chunk's sentences.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from chunkforge.chunking.budget import TOKEN_PATTERN
from chunkforge.chunking.language_profiles import LanguageProfile
from chunkforge.chunking.models import StructuralRole
from chunkforge.chunking.segmenter import split_sentences

BASE_IMPORTANCE = 0.5
HEADER_BOOST = 0.2
KEYWORD_BOOST = 0.2
LENGTH_BOOST = 0.1
LONG_CHUNK_CHARS = 100
KEYWORD_DENSITY_THRESHOLD = 0.02
WARNING_PENALTY = 0.1
DENSITY_FULL_LENGTH = 50  # tokens

_TERMINAL_CHARS = frozenset(".!?。！？；;।॥؟\"'”’»」』)")
_STRUCTURED_ROLES = (
    StructuralRole.TABLE,
    StructuralRole.CODE_BLOCK,
    StructuralRole.LIST,
)

IMPORTANT_KEYWORDS = re.compile(
    r"\b(?:important|key|summary|conclusion|note|warning|attention|critical|"
    r"must|required)\b|중요|핵심|요약|결론|참고|주의|경고|重要|注意|要点|总结|まとめ",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ChunkScores:
    """Scores for one chunk."""

    quality: float
    importance: float
    density: float
    completeness: float
    structure_confidence: float
    consistency: float


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


class ChunkScorer:
    """
    Score chunks for quality, importance and information density.

    Stateless apart from its configuration, so one instance can be shared
    by every strategy and thread.
    """

    def __init__(
        self,
        completeness_weight: float = 0.4,
        structure_weight: float = 0.3,
        consistency_weight: float = 0.3,
    ):
        self.completeness_weight = completeness_weight
        self.structure_weight = structure_weight
        self.consistency_weight = consistency_weight

        # Common stop words for density calculation
        self.stop_words = frozenset(
            """
            the a an is are was were be been being have has had do does did
            will would could should may might must shall can to of in for on
            with at by from as into through during before after and or but if
            than that this these those it its they them their we us our you
            your he him his she her which what who whom when where why how
            not no
            """.split()
        )

    def score(
        self,
        content: str,
        profile: LanguageProfile,
        role: StructuralRole = StructuralRole.CONTENT,
        warnings: Sequence[str] = (),
        penalty: float = 0.0,
    ) -> ChunkScores:
        """
        Score a single chunk.

        Args:
            content: Chunk text
            profile: Profile used to find sentence boundaries
            role: Structural role of the chunk
            warnings: Warning annotations attached to the chunk
            penalty: Extra quality penalty chosen by the strategy

        Returns:
            ChunkScores
        """
        sentences = [span.slice(content) for span in split_sentences(content, profile)]

        completeness = self._score_completeness(content, sentences, role)
        structure = self._score_structure(content, role)
        consistency = self._score_consistency(sentences, role)

        quality = (
            self.completeness_weight * completeness
            + self.structure_weight * structure
            + self.consistency_weight * consistency
        )
        quality -= WARNING_PENALTY * len(warnings) + penalty

        return ChunkScores(
            quality=_clamp(quality),
            importance=self.score_importance(content, role),
            density=self.score_density(content),
            completeness=completeness,
            structure_confidence=structure,
            consistency=consistency,
        )

    def _score_completeness(
        self, content: str, sentences: List[str], role: StructuralRole
    ) -> float:
        """Share of characters that belong to terminated sentences."""
        if not content.strip():
            return 0.0
        if role in _STRUCTURED_ROLES:
            return 1.0

        total = sum(len(s) for s in sentences)
        if total == 0:
            return 0.0
        complete = sum(len(s) for s in sentences if s.rstrip()[-1:] in _TERMINAL_CHARS)
        return complete / total

    def _score_structure(self, content: str, role: StructuralRole) -> float:
        """Does the chunk start and end on a natural boundary?"""
        stripped = content.strip()
        if not stripped:
            return 0.0
        if role in _STRUCTURED_ROLES or role is StructuralRole.HEADER:
            return 1.0

        score = 1.0
        first = stripped[0]
        if first.isalpha() and first.islower():
            score -= 0.3
        if stripped[-1] not in _TERMINAL_CHARS:
            score -= 0.3
        return _clamp(score)

    def _score_consistency(self, sentences: List[str], role: StructuralRole) -> float:
        """Capitalization and punctuation consistency of the sentences."""
        if role in _STRUCTURED_ROLES:
            return 1.0
        if not sentences:
            return 0.0

        caps_correct = sum(
            1 for s in sentences if not (s[:1].isalpha() and s[:1].islower())
        )
        punct_correct = sum(1 for s in sentences if s.rstrip()[-1:] in _TERMINAL_CHARS)

        # Leave room for one unterminated heading line
        allowance = 1 if len(sentences) > 1 else 0
        score = (caps_correct / len(sentences)) * min(
            1.0, (punct_correct + allowance) / len(sentences)
        )
        return _clamp(score)

    def score_importance(self, content: str, role: StructuralRole) -> float:
        """Importance for retrieval ranking."""
        importance = BASE_IMPORTANCE
        if role is StructuralRole.HEADER:
            importance += HEADER_BOOST

        tokens = TOKEN_PATTERN.findall(content)
        if tokens:
            keyword_hits = len(IMPORTANT_KEYWORDS.findall(content))
            if keyword_hits and keyword_hits / len(tokens) >= KEYWORD_DENSITY_THRESHOLD:
                importance += KEYWORD_BOOST

        if len(content) > LONG_CHUNK_CHARS:
            importance += LENGTH_BOOST
        return _clamp(importance)

    def score_density(self, content: str) -> float:
        """Unique content-token ratio, scaled down for very short chunks."""
        words = [w.lower() for w in re.findall(r"\w+", content)]
        if not words:
            return 0.0

        content_words = [w for w in words if w not in self.stop_words]
        if not content_words:
            return 0.0

        unique_ratio = len(set(content_words)) / len(words)
        length_factor = min(1.0, len(words) / DENSITY_FULL_LENGTH)
        return _clamp(unique_ratio * (0.5 + 0.5 * length_factor))

    @staticmethod
    def quality_grade(quality: float) -> str:
        """Letter grade for a quality score."""
        if quality >= 0.9:
            return "A"
        if quality >= 0.8:
            return "B"
        if quality >= 0.7:
            return "C"
        if quality >= 0.6:
            return "D"
        return "F"


_DEFAULT_SCORER: Optional[ChunkScorer] = None


def default_scorer() -> ChunkScorer:
    global _DEFAULT_SCORER
    if _DEFAULT_SCORER is None:
        _DEFAULT_SCORER = ChunkScorer()
    return _DEFAULT_SCORER
