"""
Tests for SmartChunker: flex ceiling, paragraph flushes, whole oversized sentences.
"""

from conftest import numbered_words

from chunkforge.chunking.models import ChunkingOptions, RefinedContent
from chunkforge.chunking.semantic_chunker import SemanticChunker
from chunkforge.chunking.smart_chunker import OVERSIZED_WARNING, SmartChunker


def sentence(prefix: str, tokens: int) -> str:
    return " ".join(f"{prefix}{i}" for i in range(tokens)) + "."


def options(**overrides):
    values = {"strategy": "Smart", "max_chunk_size": 20, "overlap_size": 0}
    values.update(overrides)
    return ChunkingOptions(**values)


class TestSentenceIntegrity:
    """Smart never cuts inside a sentence."""

    def test_narrative_chunks_end_on_sentences(self, narrative_text):
        chunks = SmartChunker().chunk(
            RefinedContent.from_text(narrative_text), options(max_chunk_size=40, overlap_size=8)
        )

        assert len(chunks) > 1
        for item in chunks:
            assert item.content[-1] == "."
            assert item.content[0].isupper()
            assert item.content == narrative_text[item.start_char : item.end_char]

    def test_oversized_sentence_kept_whole(self):
        text = numbered_words(100) + "."

        chunks = SmartChunker().chunk(RefinedContent.from_text(text), options())

        assert len(chunks) == 1
        assert chunks[0].content == text
        assert chunks[0].estimated_tokens == 100
        assert OVERSIZED_WARNING in chunks[0].warnings

    def test_oversized_sentence_is_penalized(self):
        text = numbered_words(100) + "."
        whole = SmartChunker().chunk(RefinedContent.from_text(text), options())
        relaxed = SmartChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=200)
        )

        assert whole[0].quality < relaxed[0].quality

    def test_sentence_within_flex_is_not_warned(self):
        text = sentence("x", 22)

        chunks = SmartChunker().chunk(RefinedContent.from_text(text), options())

        assert len(chunks) == 1
        assert chunks[0].warnings == ()
        assert chunks[0].metadata["flexed"] is True


class TestFlexCeiling:
    def test_small_chunk_absorbs_next_sentence(self):
        text = sentence("a", 8) + " " + sentence("b", 15)

        smart = SmartChunker().chunk(
            RefinedContent.from_text(text), options(min_chunk_size=10)
        )
        semantic = SemanticChunker().chunk(
            RefinedContent.from_text(text), options(strategy="Semantic", min_chunk_size=10)
        )

        assert len(smart) == 1
        assert smart[0].estimated_tokens == 23
        assert smart[0].metadata["flexed"] is True
        assert len(semantic) == 2

    def test_flex_limit_respected(self):
        text = sentence("a", 8) + " " + sentence("b", 18)

        chunks = SmartChunker().chunk(
            RefinedContent.from_text(text), options(min_chunk_size=10)
        )

        assert [c.estimated_tokens for c in chunks] == [8, 18]


class TestParagraphFlush:
    def test_flush_at_paragraph_end_near_ceiling(self):
        first = "Alpha one two three four five six end. Beta one two three four five six end."
        text = first + "\n\nGamma is short."

        smart = SmartChunker().chunk(
            RefinedContent.from_text(text), options(min_chunk_size=1)
        )
        semantic = SemanticChunker().chunk(
            RefinedContent.from_text(text), options(strategy="Semantic", min_chunk_size=1)
        )

        assert [c.content for c in smart] == [first, "Gamma is short."]
        assert len(semantic) == 1

    def test_flush_ratio_option(self):
        first = "Alpha one two three four five six end. Beta one two three four five six end."
        text = first + "\n\nGamma is short."

        chunks = SmartChunker().chunk(
            RefinedContent.from_text(text),
            options(min_chunk_size=1, strategy_options={"paragraph_flush_ratio": 0.95}),
        )

        assert len(chunks) == 1
