"""
Tests for structural role detection, headings and domain heuristics.
"""

import pytest

from chunkforge.chunking.models import DocumentDomain, StructuralRole
from chunkforge.chunking.structure import (
    detect_document_domain,
    detect_structural_role,
    domain_size_preset,
    extract_technical_keywords,
    heading_level,
    heading_title,
    is_table_line,
)


class TestStructuralRole:
    """Tests for detect_structural_role."""

    @pytest.mark.parametrize(
        "span,role",
        [
            ("# Title\nbody", StructuralRole.HEADER),
            ("| a | b |\n| 1 | 2 |", StructuralRole.TABLE),
            ("```\ncode\n```", StructuralRole.CODE_BLOCK),
            ("- one\n- two", StructuralRole.LIST),
            ("Plain sentence.", StructuralRole.CONTENT),
            ("", StructuralRole.CONTENT),
        ],
    )
    def test_roles(self, span, role):
        assert detect_structural_role(span) is role

    def test_heading_outranks_table(self):
        assert detect_structural_role("# Pricing\n| a | b |") is StructuralRole.HEADER

    def test_table_outranks_code(self):
        assert detect_structural_role("| a | b |\n```") is StructuralRole.TABLE

    def test_mostly_list_lines(self):
        span = "Steps to follow:\n- first\n- second"
        assert detect_structural_role(span) is StructuralRole.LIST

    def test_logical_or_is_not_a_table(self):
        assert not is_table_line("a || b || c")
        assert detect_structural_role("a || b || c") is StructuralRole.CONTENT


class TestHeadings:
    def test_markdown_levels(self):
        assert heading_level("# Guide") == 1
        assert heading_level("## Install") == 2

    def test_numbered_heading_depth(self):
        assert heading_level("2.3.1 Scope") == 3
        assert heading_level("2.1 Scope") == 2

    def test_list_item_is_not_a_heading(self):
        assert heading_level("1. Item") is None

    def test_named_and_cjk_headings(self):
        assert heading_level("Chapter 3") == 1
        assert heading_level("제 3 장 개요") == 1
        assert heading_level("第二章 方法") == 1

    def test_plain_text(self):
        assert heading_level("Just a sentence.") is None

    def test_title_strips_markers(self):
        assert heading_title("## Install ##") == "Install"
        assert heading_title("  2.1 Scope ") == "2.1 Scope"


class TestDocumentDomain:
    """Tests for domain classification."""

    def test_technical(self):
        text = "The API endpoint returns JSON from the database."
        assert detect_document_domain(text) is DocumentDomain.TECHNICAL

    def test_business(self):
        text = "Our business strategy targets revenue growth this quarter."
        assert detect_document_domain(text) is DocumentDomain.BUSINESS

    def test_academic(self):
        text = "This research study presents experimental findings."
        assert detect_document_domain(text) is DocumentDomain.ACADEMIC

    def test_general(self):
        assert detect_document_domain("The cat sat on the mat.") is DocumentDomain.GENERAL
        assert detect_document_domain("") is DocumentDomain.GENERAL

    def test_tie_goes_to_business(self):
        assert detect_document_domain("The research budget") is DocumentDomain.BUSINESS

    def test_korean_technical_terms(self):
        assert detect_document_domain("서버 아키텍처와 데이터베이스") is DocumentDomain.TECHNICAL

    def test_keywords_count_as_hits(self):
        text = "The cat sat on the mat."
        assert detect_document_domain(text, ["API", "Database"]) is DocumentDomain.TECHNICAL

    def test_single_technical_word_is_not_technical(self):
        text = "We had lunch and then checked the database before going home."

        keywords = extract_technical_keywords(text)

        assert keywords == ["Database"]
        assert detect_document_domain(text, keywords) is DocumentDomain.GENERAL

    @pytest.mark.parametrize("word", ["api", "server", "react", "docker"])
    def test_keyword_backed_by_term_counts_once(self, word):
        text = f"Someone mentioned the {word} at the picnic."

        domain = detect_document_domain(text, extract_technical_keywords(text))

        assert domain is DocumentDomain.GENERAL

    def test_two_distinct_terms_are_technical(self):
        text = "We checked the database and restarted the server."

        domain = detect_document_domain(text, extract_technical_keywords(text))

        assert domain is DocumentDomain.TECHNICAL


class TestTechnicalKeywords:
    def test_category_labels_in_order(self):
        text = "Deploy with Docker and query the database"
        assert extract_technical_keywords(text) == ["Database", "DevOps"]

    def test_whole_words_only(self):
        assert extract_technical_keywords("The rain in Spain") == []

    def test_limit(self):
        text = "api database react server docker embedding"
        assert len(extract_technical_keywords(text)) == 5
        assert extract_technical_keywords(text, limit=2) == ["API", "Database"]


class TestDomainPresets:
    def test_presets(self):
        assert domain_size_preset(DocumentDomain.TECHNICAL) == (384, 96)
        assert domain_size_preset(DocumentDomain.ACADEMIC) == (448, 80)
        assert domain_size_preset(DocumentDomain.GENERAL) == (512, 64)
