"""
Tests for ParagraphChunker.
"""

from conftest import numbered_words

from chunkforge.chunking.base import FALLBACK_WARNING
from chunkforge.chunking.models import ChunkingOptions, RefinedContent
from chunkforge.chunking.paragraph_chunker import ParagraphChunker


def paragraph(prefix: str, tokens: int) -> str:
    """A one-sentence paragraph of exactly ``tokens`` tokens."""
    return " ".join(f"{prefix}{i}" for i in range(tokens)) + "."


def options(**overrides):
    values = {
        "strategy": "Paragraph",
        "max_chunk_size": 25,
        "min_chunk_size": 1,
        "overlap_size": 0,
    }
    values.update(overrides)
    return ChunkingOptions(**values)


class TestParagraphPacking:
    """Whole paragraphs are accumulated up to the ceiling."""

    def test_paragraphs_grouped_under_ceiling(self):
        p1, p2, p3 = paragraph("a", 10), paragraph("b", 10), paragraph("c", 10)
        text = "\n\n".join([p1, p2, p3])

        chunks = ParagraphChunker().chunk(RefinedContent.from_text(text), options())

        assert len(chunks) == 2
        assert chunks[0].content == p1 + "\n\n" + p2
        assert chunks[1].content == p3

    def test_max_paragraphs_per_chunk(self):
        text = "\n\n".join(paragraph(p, 5) for p in "abc")

        chunks = ParagraphChunker().chunk(
            RefinedContent.from_text(text),
            options(strategy_options={"max_paragraphs_per_chunk": 1}),
        )

        assert len(chunks) == 3

    def test_heading_opens_new_chunk(self):
        text = "Some text here.\n\n# Next\nMore text."

        preserved = ParagraphChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=512)
        )
        flat = ParagraphChunker().chunk(
            RefinedContent.from_text(text),
            options(max_chunk_size=512, preserve_structure=False),
        )

        assert [c.content for c in preserved] == ["Some text here.", "# Next\nMore text."]
        assert len(flat) == 1


class TestOversizedParagraphs:
    def test_split_on_sentences(self):
        sentences = [paragraph(p, 8) for p in "xyz"]
        text = " ".join(sentences)

        chunks = ParagraphChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=20)
        )

        assert [c.content for c in chunks] == [sentences[0] + " " + sentences[1], sentences[2]]
        assert all(not c.warnings for c in chunks)

    def test_no_sentence_boundary_falls_back_to_windows(self):
        text = numbered_words(45)

        chunks = ParagraphChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=20)
        )

        assert [c.estimated_tokens for c in chunks] == [20, 20, 5]
        assert all(FALLBACK_WARNING in c.warnings for c in chunks)

    def test_oversized_paragraph_flushes_pending_chunk(self):
        small = paragraph("s", 5)
        big = numbered_words(30)
        text = small + "\n\n" + big

        chunks = ParagraphChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=20)
        )

        assert chunks[0].content == small
        assert chunks[0].warnings == ()


def test_estimate_chunk_count():
    text = "\n\n".join(paragraph(p, 10) for p in "abcd")
    estimate = ParagraphChunker().estimate_chunk_count(RefinedContent.from_text(text), options())
    assert estimate == 2
