"""
Structural-role and document-domain heuristics.

Pure functions over a text span, usable on their own:

    detect_structural_role("| a | b |")                  -> StructuralRole.TABLE
    detect_document_domain("API endpoint design", [])    -> DocumentDomain.TECHNICAL
    extract_technical_keywords("Deploy with Docker")     -> ["DevOps"]

Role Priority
-------------
Checks run in a fixed order and the first hit wins:

    header > table > code_block > list > content

so "# Pricing | Plans | FAQ" is a header even though it has pipes.
Leading tabs and spaces never prevent a match.

Domain Scoring
--------------
Keyword frequency over the whole span. Two or more technical hits
(technical terms, architecture terms counted double, plus caller-supplied
keyword labels not already backed by a term hit) mean Technical. A word is
never counted twice, so one stray "database" is not enough. Otherwise
business and academic vocabulary compete; a tie goes to Business. No hits
at all means General.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from chunkforge.chunking.models import DocumentDomain, StructuralRole

MAX_TECHNICAL_KEYWORDS = 5
TECHNICAL_HIT_THRESHOLD = 2

# ============================================================================
# Structural patterns
# ============================================================================

_MARKDOWN_HEADING = re.compile(r"^\s*(#{1,6})\s+(\S.*?)\s*#*\s*$")
_NUMBERED_HEADING = re.compile(r"^\s*(\d+(?:\.\d+)+)\.?\s+(\S.*)$")
_NAMED_HEADING = re.compile(
    r"^\s*(?:Chapter|Section|Part|Appendix)\s+[\dIVXLC]+\b.*$", re.IGNORECASE
)
_CJK_HEADING = re.compile(
    r"^\s*(?:제\s*\d+\s*[장절조항편]|第[一二三四五六七八九十百千\d]+[章节節条款部篇編])"
)
_SINGLE_PIPE = re.compile(r"(?<!\|)\|(?!\|)")
_CODE_FENCE = re.compile(r"```|~~~")
_LIST_ITEM = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+\S")

# Domain vocabularies

_TECHNICAL_TERMS = re.compile(
    r"\b(?:api|apis|endpoints?|database|databases|schema|react|components?|"
    r"function|functions|class|classes|method|methods|sql|json|http|https|"
    r"server|backend|frontend|docker|kubernetes|algorithm|algorithms|"
    r"interface|compiler|runtime)\b",
    re.IGNORECASE,
)
_ARCHITECTURE_TERMS = re.compile(
    r"\b(?:architecture|microservices?|infrastructure)\b", re.IGNORECASE
)
_KOREAN_TECHNICAL_TERMS = ("아키텍처", "데이터베이스", "서버", "알고리즘", "인터페이스")

_BUSINESS_TERMS = re.compile(
    r"\b(?:business|stakeholders?|strategy|strategies|strategic|planning|"
    r"timeline|milestones?|objectives?|revenue|budget|roi|kpis?|quarterly|"
    r"market|marketing)\b",
    re.IGNORECASE,
)
_REQUIREMENT = re.compile(r"\brequirements?\b", re.IGNORECASE)
_REQUIREMENT_CONTEXT = re.compile(r"\b(?:business|project|stakeholders?)\b", re.IGNORECASE)
_KOREAN_BUSINESS_TERMS = ("사업", "전략", "요구사항", "일정", "예산")

_ACADEMIC_TERMS = re.compile(
    r"\b(?:research|study|studies|abstract|methodology|literature|theoretical|"
    r"hypothesis|hypotheses|experiments?|experimental|findings|thesis|"
    r"dissertation|peer-reviewed)\b",
    re.IGNORECASE,
)
_ANALYSIS = re.compile(r"\banalysis\b", re.IGNORECASE)
_ANALYSIS_ACADEMIC_CONTEXT = re.compile(r"\b(?:research|data)\b", re.IGNORECASE)
_KOREAN_ACADEMIC_TERMS = ("논문", "연구", "초록", "가설", "실험")

# Category label -> whole-word terms
TECHNICAL_KEYWORD_CATEGORIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("API", ("api", "endpoint", "rest", "graphql")),
    ("Database", ("database", "sql", "nosql", "query")),
    ("Frontend", ("ui", "frontend", "react", "vue", "angular")),
    ("Backend", ("server", "backend", "service", "microservice")),
    ("DevOps", ("docker", "kubernetes", "deployment", "pipeline")),
    ("AI/ML", ("ai", "ml", "model", "embedding", "vector")),
)
_CATEGORY_PATTERNS = tuple(
    (label, re.compile(r"\b(?:" + "|".join(terms) + r")s?\b", re.IGNORECASE))
    for label, terms in TECHNICAL_KEYWORD_CATEGORIES
)
_CATEGORY_LOOKUP = dict(_CATEGORY_PATTERNS)

# Domain -> (max_chunk_size, overlap_size) in tokens
DOMAIN_SIZE_PRESETS = {
    DocumentDomain.TECHNICAL: (384, 96),
    DocumentDomain.ACADEMIC: (448, 80),
    DocumentDomain.BUSINESS: (512, 64),
    DocumentDomain.GENERAL: (512, 64),
}


# ============================================================================
# Headings
# ============================================================================


def _first_line(span: str) -> str:
    for line in span.splitlines():
        if line.strip():
            return line
    return ""


def heading_level(line: str) -> Optional[int]:
    """Heading level of a single line, or None if it is not a heading.

    Markdown ``#`` count gives the level directly; ``2.3.1 Title`` is level
    3; named and CJK chapter headings are level 1.
    """
    markdown = _MARKDOWN_HEADING.match(line)
    if markdown:
        return len(markdown.group(1))

    numbered = _NUMBERED_HEADING.match(line)
    if numbered:
        return min(6, numbered.group(1).count(".") + 1)

    if _NAMED_HEADING.match(line) or _CJK_HEADING.match(line):
        return 1
    return None


def heading_title(line: str) -> str:
    """Heading text without markdown markers."""
    markdown = _MARKDOWN_HEADING.match(line)
    if markdown:
        return markdown.group(2).strip()
    return line.strip()


def is_heading(line: str) -> bool:
    return heading_level(line) is not None


def is_table_line(line: str) -> bool:
    return len(_SINGLE_PIPE.findall(line)) >= 2


def is_list_item(line: str) -> bool:
    return bool(_LIST_ITEM.match(line))


def is_code_fence(line: str) -> bool:
    return line.lstrip().startswith(("```", "~~~"))


# ============================================================================
# Role detection
# ============================================================================


def detect_structural_role(span: str) -> StructuralRole:
    """Classify a text span as header, table, code_block, list or content."""
    if not span or not span.strip():
        return StructuralRole.CONTENT

    first = _first_line(span)
    if is_heading(first):
        return StructuralRole.HEADER

    lines = [line for line in span.splitlines() if line.strip()]
    if any(is_table_line(line) for line in lines):
        return StructuralRole.TABLE

    if _CODE_FENCE.search(span):
        return StructuralRole.CODE_BLOCK

    if is_list_item(first):
        return StructuralRole.LIST
    list_lines = sum(1 for line in lines if is_list_item(line))
    if list_lines * 2 >= len(lines):
        return StructuralRole.LIST

    return StructuralRole.CONTENT


# ============================================================================
# Domain detection
# ============================================================================


def _count_substrings(text: str, terms: Sequence[str]) -> int:
    return sum(text.count(term) for term in terms)


def _counted_by_terms(label: str, text: str) -> bool:
    """True when a word behind ``label`` is already a technical term hit."""
    pattern = _CATEGORY_LOOKUP.get(label)
    if pattern is None:
        return False
    return any(
        _TECHNICAL_TERMS.fullmatch(word) or _ARCHITECTURE_TERMS.fullmatch(word)
        for word in pattern.findall(text)
    )


def _technical_hits(text: str, technical_keywords: Sequence[str]) -> int:
    hits = sum(1 for label in technical_keywords if not _counted_by_terms(label, text))
    hits += len(_TECHNICAL_TERMS.findall(text))
    hits += 2 * len(_ARCHITECTURE_TERMS.findall(text))
    hits += _count_substrings(text, _KOREAN_TECHNICAL_TERMS)
    return hits


def _business_hits(text: str) -> int:
    hits = len(_BUSINESS_TERMS.findall(text))
    requirements = len(_REQUIREMENT.findall(text))
    if requirements and _REQUIREMENT_CONTEXT.search(text):
        hits += requirements
    if requirements and _ANALYSIS.search(text):
        hits += 1
    hits += _count_substrings(text, _KOREAN_BUSINESS_TERMS)
    return hits


def _academic_hits(text: str) -> int:
    hits = len(_ACADEMIC_TERMS.findall(text))
    if _ANALYSIS.search(text) and _ANALYSIS_ACADEMIC_CONTEXT.search(text):
        hits += 1
    hits += _count_substrings(text, _KOREAN_ACADEMIC_TERMS)
    return hits


def detect_document_domain(
    text: str, technical_keywords: Optional[Sequence[str]] = None
) -> DocumentDomain:
    """Classify the subject matter of ``text``.

    Args:
        text: Span to classify
        technical_keywords: Keywords already extracted for the document;
            each counts as one technical hit unless a technical term in
            ``text`` already accounts for it

    Returns:
        The detected DocumentDomain
    """
    if not text or not text.strip():
        return DocumentDomain.GENERAL

    if _technical_hits(text, technical_keywords or ()) >= TECHNICAL_HIT_THRESHOLD:
        return DocumentDomain.TECHNICAL

    business = _business_hits(text)
    academic = _academic_hits(text)
    if business == 0 and academic == 0:
        return DocumentDomain.GENERAL
    if academic > business:
        return DocumentDomain.ACADEMIC
    return DocumentDomain.BUSINESS


def extract_technical_keywords(
    text: str, limit: int = MAX_TECHNICAL_KEYWORDS
) -> List[str]:
    """Technical category labels whose terms appear in ``text``."""
    found: List[str] = []
    for label, pattern in _CATEGORY_PATTERNS:
        if pattern.search(text):
            found.append(label)
            if len(found) >= limit:
                break
    return found


def domain_size_preset(domain: DocumentDomain) -> Tuple[int, int]:
    """Default (max_chunk_size, overlap_size) for a domain."""
    return DOMAIN_SIZE_PRESETS[domain]
