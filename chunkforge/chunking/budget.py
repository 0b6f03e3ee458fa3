"""
Token and overlap budgeting shared by all strategies.

Token counts are heuristic: there is no canonical tokenizer. A token is

- one Han or Kana character (CJK text has no spaces and roughly one
  subword per character), or
- one run of other non-whitespace characters (Latin words, Hangul
  eojeol, numbers, punctuation clusters).

The same rule is used for budgeting and for ``DocumentChunk.estimated_tokens``
so strategies and the ceiling check always agree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from chunkforge.chunking.models import ChunkingOptions, TextSpan

_CJK_CHARS = "\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff"
TOKEN_PATTERN = re.compile(rf"[{_CJK_CHARS}]|[^\s{_CJK_CHARS}]+")

# Smart may exceed the ceiling by this ratio to keep a sentence whole
DEFAULT_FLEX_RATIO = 1.25


def estimate_tokens(text: str) -> int:
    """Heuristic token count of ``text``."""
    if not text:
        return 0
    return sum(1 for _ in TOKEN_PATTERN.finditer(text))


def tokenize_spans(text: str, start: int = 0, end: Optional[int] = None) -> List[TextSpan]:
    """Positions of every token in ``text[start:end]`` (absolute offsets)."""
    end = len(text) if end is None else end
    return [TextSpan(m.start(), m.end()) for m in TOKEN_PATTERN.finditer(text, start, end)]


def sample_text(text: str, max_tokens: int) -> str:
    """Prefix of ``text`` holding at most ``max_tokens`` tokens."""
    assert max_tokens > 0, "max_tokens must be positive"
    for count, match in enumerate(TOKEN_PATTERN.finditer(text), start=1):
        if count == max_tokens:
            return text[: match.end()]
    return text


@dataclass(frozen=True)
class TokenBudget:
    """Resolved size limits for one chunking call."""

    max_tokens: int
    min_tokens: int
    overlap_tokens: int
    flex_ratio: float = DEFAULT_FLEX_RATIO

    @classmethod
    def from_options(cls, options: ChunkingOptions) -> "TokenBudget":
        return cls(
            max_tokens=options.max_chunk_size,
            min_tokens=options.effective_min_chunk_size,
            overlap_tokens=options.overlap_size,
            flex_ratio=float(options.option("flex_ratio", DEFAULT_FLEX_RATIO)),
        )

    @property
    def stride(self) -> int:
        return max(1, self.max_tokens - self.overlap_tokens)

    @property
    def flex_max(self) -> int:
        return int(self.max_tokens * self.flex_ratio)

    def fits(self, tokens: int, flexible: bool = False) -> bool:
        return tokens <= (self.flex_max if flexible else self.max_tokens)


def window_ranges(
    token_count: int, max_tokens: int, overlap_tokens: int, min_tokens: int
) -> List[Tuple[int, int]]:
    """Sliding windows over ``token_count`` tokens as index ranges.

    Windows are ``max_tokens`` wide and advance by ``max_tokens -
    overlap_tokens``. A final window shorter than ``min_tokens`` is merged
    into its predecessor.
    """
    assert max_tokens > 0, "max_tokens must be positive"
    assert 0 <= overlap_tokens < max_tokens, "overlap must be below max_tokens"
    if token_count <= 0:
        return []

    stride = max_tokens - overlap_tokens
    windows: List[Tuple[int, int]] = []
    start = 0
    while True:
        end = min(start + max_tokens, token_count)
        windows.append((start, end))
        if end >= token_count:
            break
        start += stride

    if len(windows) > 1 and windows[-1][1] - windows[-1][0] < min_tokens:
        _, last_end = windows.pop()
        prev_start, _ = windows.pop()
        windows.append((prev_start, last_end))
    return windows


def estimate_window_count(token_count: int, max_tokens: int, overlap_tokens: int) -> int:
    """Number of windows ``window_ranges`` yields, ignoring the final merge."""
    if token_count <= 0:
        return 0
    if token_count <= max_tokens:
        return 1
    stride = max(1, max_tokens - overlap_tokens)
    return 1 + -(-(token_count - max_tokens) // stride)
