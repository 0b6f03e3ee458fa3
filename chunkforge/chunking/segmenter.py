"""Profile-driven sentence and paragraph segmentation.

Sentence boundaries come from the LanguageProfile's sentence-end pattern.
Every candidate boundary is vetted against the profile's abbreviation and
prefix lists before it is accepted:

    "Dr. Smith went home. He arrived at 5pm."
         ^ suppressed (prepositive "Dr")
                        ^ split           ^ split

Spans are half-open character ranges into the original text with
surrounding whitespace trimmed, so ``text[span.start:span.end]`` is always
the exact sentence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from chunkforge.chunking.budget import estimate_tokens
from chunkforge.chunking.language_profiles import AbbreviationType, LanguageProfile
from chunkforge.chunking.models import TextSpan

_PARAGRAPH_BREAK = re.compile(r"\n[ \t\r\f\v]*\n")
_CLOSING_CHARS = frozenset("\"'”’»」』）)]}>")
_OPENING_CHARS = "\"'“‘«「『（([{<"


@dataclass(frozen=True)
class Sentence:
    """A sentence with position metadata."""

    text: str
    start_char: int
    end_char: int
    index: int
    is_paragraph_end: bool = False

    @property
    def char_count(self) -> int:
        return len(self.text)

    @property
    def token_count(self) -> int:
        return estimate_tokens(self.text)

    @property
    def span(self) -> TextSpan:
        return TextSpan(self.start_char, self.end_char)


def trim_span(text: str, start: int, end: int) -> Optional[TextSpan]:
    """Shrink ``[start, end)`` to exclude surrounding whitespace.

    Returns None when the range holds only whitespace.
    """
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return TextSpan(start, end)


def split_paragraphs(text: str) -> List[TextSpan]:
    """Blank-line-delimited paragraphs; empty paragraphs are skipped."""
    spans: List[TextSpan] = []
    position = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        span = trim_span(text, position, match.start())
        if span:
            spans.append(span)
        position = match.end()

    span = trim_span(text, position, len(text))
    if span:
        spans.append(span)
    return spans


def _next_visible_char(text: str, position: int) -> Optional[str]:
    for char in text[position : position + 64]:
        if not char.isspace():
            return char
    return None


def _is_suppressed(
    text: str, segment_start: int, match: "re.Match[str]", profile: LanguageProfile
) -> bool:
    """True when the token before a candidate boundary forbids the split."""
    preceding = text[segment_start : match.start()]
    parts = preceding.rsplit(None, 1)
    if not parts or preceding[-1:].isspace():
        return False

    token = parts[-1].lstrip(_OPENING_CHARS)
    if not token:
        return False

    following = _next_visible_char(text, match.end())

    if profile.is_non_breaking_prefix(token):
        return True
    if profile.is_numeric_only_prefix(token):
        return following is not None and following.isdigit()

    abbreviation = profile.find_abbreviation(token)
    if abbreviation is None:
        return False
    if abbreviation.kind is AbbreviationType.POSTPOSITIVE:
        return following is not None and (following.islower() or following.isdigit())
    return True


def _boundary_end(text: str, match: "re.Match[str]") -> int:
    """Extend a boundary over closing quotes and brackets."""
    end = match.end()
    if match.group(0)[-1:].isspace():
        return end
    while end < len(text) and text[end] in _CLOSING_CHARS:
        end += 1
    return end


def _append_sentence(spans: List[TextSpan], text: str, span: TextSpan) -> None:
    """Append a span, folding punctuation-only fragments into the previous one."""
    fragment = span.slice(text)
    if spans and not any(char.isalnum() for char in fragment):
        previous = spans.pop()
        spans.append(TextSpan(previous.start, span.end))
        return
    spans.append(span)


def split_sentences(
    text: str,
    profile: LanguageProfile,
    start: int = 0,
    end: Optional[int] = None,
) -> List[TextSpan]:
    """Split ``text[start:end]`` into sentence spans.

    Text after the last accepted boundary is returned as a final span, so
    unterminated input never raises.

    Args:
        text: Source text
        profile: Language profile supplying the boundary rules
        start: First character to consider
        end: One past the last character to consider

    Returns:
        Sentence spans in document order (absolute offsets)
    """
    assert text is not None, "text cannot be None"
    end = len(text) if end is None else end

    spans: List[TextSpan] = []
    segment_start = start
    for match in profile.sentence_end_regex.finditer(text, start, end):
        if match.start() < segment_start:
            continue
        if _is_suppressed(text, segment_start, match, profile):
            continue

        boundary = min(_boundary_end(text, match), end)
        span = trim_span(text, segment_start, boundary)
        if span:
            _append_sentence(spans, text, span)
        segment_start = boundary

    tail = trim_span(text, segment_start, end)
    if tail:
        _append_sentence(spans, text, tail)
    return spans


def segment_sentences(
    text: str, profile: LanguageProfile, span: Optional[TextSpan] = None
) -> List[Sentence]:
    """Paragraph-aware sentence segmentation.

    A blank line always ends a sentence, and the last sentence of each
    paragraph is flagged with ``is_paragraph_end``.
    """
    region_start = span.start if span else 0
    region_end = span.end if span else len(text)

    sentences: List[Sentence] = []
    for paragraph in split_paragraphs(text[region_start:region_end]):
        para_start = region_start + paragraph.start
        para_end = region_start + paragraph.end
        sentence_spans = split_sentences(text, profile, para_start, para_end)
        for position, sentence_span in enumerate(sentence_spans):
            sentences.append(
                Sentence(
                    text=sentence_span.slice(text),
                    start_char=sentence_span.start,
                    end_char=sentence_span.end,
                    index=len(sentences),
                    is_paragraph_end=position == len(sentence_spans) - 1,
                )
            )
    return sentences
