"""
Tests for IntelligentChunker and the block parser behind it.
"""

from chunkforge.chunking.intelligent_chunker import (
    ATOMIC_SPLIT_WARNING,
    BlockKind,
    IntelligentChunker,
    parse_blocks,
)
from chunkforge.chunking.models import (
    ChunkingOptions,
    DocumentDomain,
    RefinedContent,
    Section,
    StructuralRole,
)


def code_document(lines: int) -> str:
    body = "\n".join(["x = 1"] * lines)
    return f"Intro sentence here.\n\n```python\n{body}\n```\n\nAfter text."


def options(**overrides):
    values = {"strategy": "Intelligent", "max_chunk_size": 100, "min_chunk_size": 1}
    values.update(overrides)
    return ChunkingOptions(**values)


class TestParseBlocks:
    """Tests for line-based block parsing."""

    def test_block_kinds(self):
        text = "# T\n\npara one\npara two\n\n- a\n- b\n  cont\n\n```\ncode\n```"

        blocks = parse_blocks(text)

        assert [b.kind for b in blocks] == [
            BlockKind.HEADING,
            BlockKind.TEXT,
            BlockKind.LIST,
            BlockKind.CODE,
        ]
        assert text[blocks[1].start : blocks[1].end] == "para one\npara two"
        assert text[blocks[2].start : blocks[2].end] == "- a\n- b\n  cont"

    def test_heading_level_and_title(self):
        blocks = parse_blocks("## Install ##\nbody")

        assert blocks[0].level == 2
        assert blocks[0].title == "Install"

    def test_blank_lines_inside_fence_are_kept(self):
        text = "```\na\n\nb\n```"
        blocks = parse_blocks(text)

        assert len(blocks) == 1
        assert text[blocks[0].start : blocks[0].end] == text

    def test_unterminated_fence_runs_to_end(self):
        text = "before\n\n```\ncode\nmore"
        blocks = parse_blocks(text)

        assert blocks[-1].kind is BlockKind.CODE
        assert blocks[-1].end == len(text)


class TestAtomicBlocks:
    """Code, tables and lists are kept whole."""

    def test_large_code_block_kept_whole(self):
        text = code_document(100)

        chunks = IntelligentChunker().chunk(RefinedContent.from_text(text), options())

        code = [c for c in chunks if c.structural_role is StructuralRole.CODE_BLOCK]
        assert len(code) == 1
        assert code[0].content.startswith("```python")
        assert code[0].content.endswith("```")
        assert code[0].estimated_tokens == 302
        assert code[0].metadata["atomic"] is True
        assert code[0].warnings == ()
        assert [c.content for c in chunks][0] == "Intro sentence here."
        assert [c.content for c in chunks][-1] == "After text."

    def test_block_beyond_multiple_is_split(self):
        text = "```\n" + "\n".join(["x = 1"] * 150) + "\n```"

        chunks = IntelligentChunker().chunk(RefinedContent.from_text(text), options())

        assert len(chunks) == 5
        assert all(ATOMIC_SPLIT_WARNING in c.warnings for c in chunks)
        assert all(c.structural_role is StructuralRole.CODE_BLOCK for c in chunks)

    def test_split_multiple_option(self):
        text = code_document(100)

        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(text),
            options(strategy_options={"atomic_split_multiple": 2}),
        )

        assert any(ATOMIC_SPLIT_WARNING in c.warnings for c in chunks)

    def test_table_kept_whole(self, markdown_text):
        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(markdown_text), options(max_chunk_size=512)
        )

        table_chunks = [c for c in chunks if "| PORT |" in c.content]
        assert len(table_chunks) == 1
        assert "| DB_URL |" in table_chunks[0].content


class TestBreadcrumbs:
    """Headings become contextual headers."""

    def test_section_headers(self, markdown_text):
        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(markdown_text), options(max_chunk_size=512)
        )

        assert [c.contextual_header for c in chunks] == [
            "Deployment Guide",
            "Deployment Guide > Requirements",
            "Deployment Guide > Configuration",
            "Deployment Guide > Running",
        ]
        for item in chunks[1:]:
            assert item.content.startswith("## ")

    def test_heading_never_ends_a_chunk(self, markdown_text):
        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(markdown_text), options(max_chunk_size=512)
        )

        for item in chunks:
            last_line = item.content.rstrip().splitlines()[-1]
            assert not last_line.startswith("#")

    def test_refiner_sections_used_without_headings(self):
        text = "Plain opening text. More words follow here."
        content = RefinedContent(
            text=text,
            sections=(Section(id="s1", title="Intro", start_char=0, end_char=len(text)),),
        )

        chunks = IntelligentChunker().chunk(content, options())

        assert chunks[0].contextual_header == "Intro"
        assert chunks[0].location.section_path == ("Intro",)


class TestDomainTags:
    def test_technical_document(self, markdown_text):
        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(markdown_text), options(max_chunk_size=512)
        )

        assert all(c.document_domain is DocumentDomain.TECHNICAL for c in chunks)
        assert all(c.technical_keywords for c in chunks)


class TestHeadingBeforeSplitBlock:
    """Headings that lead a split block share the first chunk's budget."""

    HEADING = "# A Fairly Long Heading Title Here"

    def long_paragraph(self, sentences: int) -> str:
        return " ".join(
            f"Sentence {i} keeps the flood story moving along." for i in range(sentences)
        )

    def test_first_split_chunk_within_ceiling(self):
        text = self.HEADING + "\n\n" + self.long_paragraph(40)

        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=50, overlap_size=5)
        )

        assert len(chunks) > 2
        assert chunks[0].content.startswith(self.HEADING)
        assert all(c.estimated_tokens <= 50 for c in chunks[:-1])

    def test_split_code_block_within_ceiling(self):
        code = "```\n" + "\n".join(["x = 1"] * 150) + "\n```"
        text = self.HEADING + "\n\n" + code

        chunks = IntelligentChunker().chunk(RefinedContent.from_text(text), options())

        assert chunks[0].content.startswith(self.HEADING)
        assert all(c.estimated_tokens <= 100 for c in chunks[:-1])
        assert all(c.structural_role is StructuralRole.CODE_BLOCK for c in chunks)

    def test_headings_filling_the_budget_stand_alone(self):
        text = self.HEADING + "\n\n" + self.long_paragraph(10)

        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(text), options(max_chunk_size=7, overlap_size=0)
        )

        assert chunks[0].content == self.HEADING
        assert all(c.estimated_tokens <= 7 for c in chunks[:-1])


class TestTrailingMerge:
    def test_code_block_keeps_role_after_trailing_merge(self):
        body = "\n".join(["x = 1"] * 75)
        text = f"# Usage\n\n```python\n{body}\n```\n\nThanks."

        chunks = IntelligentChunker().chunk(
            RefinedContent.from_text(text), options(min_chunk_size=None)
        )

        assert len(chunks) == 1
        assert chunks[0].content.endswith("Thanks.")
        assert chunks[0].structural_role is StructuralRole.CODE_BLOCK
        assert chunks[0].metadata["atomic"] is True
