"""
Tests for ChunkScorer.
"""

import pytest

from chunkforge.chunking.language_profiles import get_profile
from chunkforge.chunking.models import StructuralRole
from chunkforge.chunking.quality_scorer import ChunkScorer, default_scorer

EN = get_profile("en")


@pytest.fixture
def scorer() -> ChunkScorer:
    return ChunkScorer()


class TestQuality:
    """Tests for the quality score."""

    def test_clean_sentences_score_high(self, scorer):
        scores = scorer.score("The river rose. The village waited.", EN)

        assert scores.completeness == 1.0
        assert scores.quality == pytest.approx(1.0)

    def test_cut_sentence_scores_lower(self, scorer):
        clean = scorer.score("The river rose. The village waited.", EN)
        cut = scorer.score("river rose. The village waited and", EN)

        assert cut.quality < clean.quality
        assert cut.completeness < 1.0

    def test_structured_roles_are_complete(self, scorer):
        scores = scorer.score("```\nx = 1\n```", EN, StructuralRole.CODE_BLOCK)

        assert scores.completeness == 1.0
        assert scores.structure_confidence == 1.0

    def test_warnings_and_penalty_reduce_quality(self, scorer):
        text = "The river rose. The village waited."
        base = scorer.score(text, EN).quality
        warned = scorer.score(text, EN, warnings=["oversized_sentence"], penalty=0.2).quality

        assert warned == pytest.approx(base - 0.3)

    def test_quality_is_clamped(self, scorer):
        scores = scorer.score("broken", EN, warnings=["a", "b", "c"], penalty=1.0)
        assert scores.quality == 0.0


class TestImportance:
    def test_base_importance(self, scorer):
        assert scorer.score_importance("Short text.", StructuralRole.CONTENT) == 0.5

    def test_header_boost(self, scorer):
        assert scorer.score_importance("# Title", StructuralRole.HEADER) == pytest.approx(0.7)

    def test_keyword_boost(self, scorer):
        importance = scorer.score_importance("Important: back up first.", StructuralRole.CONTENT)
        assert importance == pytest.approx(0.7)

    def test_length_boost(self, scorer):
        text = "word " * 30
        assert scorer.score_importance(text, StructuralRole.CONTENT) == pytest.approx(0.6)


class TestDensity:
    def test_stop_words_only(self, scorer):
        assert scorer.score_density("the and of") == 0.0

    def test_empty(self, scorer):
        assert scorer.score_density("") == 0.0

    def test_varied_text_is_denser_than_repetition(self, scorer):
        varied = scorer.score_density("Rivers carry silt toward wide deltas every spring.")
        repeated = scorer.score_density("river river river river river river river river.")
        assert varied > repeated


class TestQualityGrade:
    @pytest.mark.parametrize(
        "quality,grade",
        [(0.95, "A"), (0.9, "A"), (0.85, "B"), (0.75, "C"), (0.65, "D"), (0.2, "F")],
    )
    def test_grades(self, quality, grade):
        assert ChunkScorer.quality_grade(quality) == grade


def test_default_scorer_is_shared():
    assert default_scorer() is default_scorer()
