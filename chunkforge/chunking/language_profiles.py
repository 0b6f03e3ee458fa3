"""
Language profiles for script-aware boundary detection.

Terminal punctuation is not universal: Korean formal speech ends sentences
with verb endings (습니다, 입니다), Chinese and Japanese use full-width
stops, Hindi uses the danda (।), and French puts a space before ``!`` and
``?``. Each LanguageProfile bundles the rules for one language:

    LanguageProfile
    ├── sentence_end_pattern     where a sentence may end
    ├── section_marker_pattern   lines that open a section
    ├── abbreviations            Dr. / Inc. / z.B. (suppress false splits)
    ├── non_breaking_prefixes    initials and similar tokens
    ├── quotation_marks
    └── number_format

Registry
--------
Profiles are built once, on first use, and never mutated afterwards, so
they can be shared freely between threads:

    profile = get_profile("zh-CN")          # -> zh (base-code fallback)
    profile = detect_and_get_profile(text)  # script-ratio detection
"""

from __future__ import annotations

import re
import string
import threading
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from chunkforge.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "en"
DETECTION_SAMPLE_CHARS = 1000

# Script ratio thresholds for detection (share of letters in the sample)
HANGUL_THRESHOLD = 0.3
KANA_THRESHOLD = 0.1
CJK_THRESHOLD = 0.3
ARABIC_THRESHOLD = 0.3
DEVANAGARI_THRESHOLD = 0.3
CYRILLIC_THRESHOLD = 0.3


class WritingDirection(str, Enum):
    LTR = "LTR"
    RTL = "RTL"


class AbbreviationType(str, Enum):
    """Where an abbreviation sits relative to the word it modifies.

    PREPOSITIVE abbreviations (Dr., Mr.) precede a name and never end a
    sentence. POSTPOSITIVE ones (Inc., Ltd.) follow a word and often do, so
    they only suppress a split when lowercase or numeric text follows.
    GENERAL ones (e.g., i.e.) never end a sentence.
    """

    PREPOSITIVE = "prepositive"
    POSTPOSITIVE = "postpositive"
    GENERAL = "general"


@dataclass(frozen=True)
class Abbreviation:
    text: str
    kind: AbbreviationType = AbbreviationType.GENERAL


@dataclass(frozen=True)
class QuotationMarks:
    primary_open: str
    primary_close: str
    secondary_open: str
    secondary_close: str


@dataclass(frozen=True)
class NumberFormat:
    decimal_separator: str
    group_separator: str


@dataclass(frozen=True)
class LanguageProfile:
    """Boundary rules for one language."""

    language_code: str
    name: str
    script_code: str
    writing_direction: WritingDirection
    sentence_end_pattern: str
    section_marker_pattern: str
    abbreviations: Tuple[Abbreviation, ...] = ()
    non_breaking_prefixes: Tuple[str, ...] = ()
    numeric_only_prefixes: Tuple[str, ...] = ()
    quotation_marks: QuotationMarks = QuotationMarks("“", "”", "‘", "’")
    number_format: NumberFormat = NumberFormat(".", ",")

    _sentence_end_re: "re.Pattern[str]" = field(init=False, repr=False, compare=False)
    _section_marker_re: "re.Pattern[str]" = field(init=False, repr=False, compare=False)
    _abbreviation_index: Mapping[str, Abbreviation] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_sentence_end_re", re.compile(self.sentence_end_pattern))
        object.__setattr__(
            self, "_section_marker_re", re.compile(self.section_marker_pattern, re.MULTILINE)
        )
        index = {abbr.text.lower(): abbr for abbr in self.abbreviations}
        object.__setattr__(self, "_abbreviation_index", MappingProxyType(index))

    @property
    def sentence_end_regex(self) -> "re.Pattern[str]":
        return self._sentence_end_re

    @property
    def section_marker_regex(self) -> "re.Pattern[str]":
        return self._section_marker_re

    @property
    def is_rtl(self) -> bool:
        return self.writing_direction is WritingDirection.RTL

    def find_abbreviation(self, token: str) -> Optional[Abbreviation]:
        """Case-insensitive abbreviation lookup (token without final period)."""
        return self._abbreviation_index.get(token.lower())

    def is_non_breaking_prefix(self, token: str) -> bool:
        return token in self.non_breaking_prefixes

    def is_numeric_only_prefix(self, token: str) -> bool:
        return token in self.numeric_only_prefixes

    def is_section_marker(self, line: str) -> bool:
        return bool(self._section_marker_re.match(line))


# ============================================================================
# Pattern building blocks
# ============================================================================

_MARKDOWN_HEADING = r"^\s*#{1,6}\s+\S"
_NUMBERED_SECTION = r"^\s*\d+(?:\.\d+)*\.?\s+\S"
_LATIN_LETTER_SECTION = r"^\s*[A-Z]\.\s+\S"
_CLOSERS = "\"'\\)\\]}>"


def _section_pattern(*extra: str) -> str:
    return "|".join((_MARKDOWN_HEADING, _NUMBERED_SECTION) + extra)


def _named_sections(*names: str) -> str:
    return r"^\s*(?:" + "|".join(names) + r")\s+\S"


def _abbrs(kind: AbbreviationType, *texts: str) -> Tuple[Abbreviation, ...]:
    return tuple(Abbreviation(text, kind) for text in texts)


_PRE = AbbreviationType.PREPOSITIVE
_POST = AbbreviationType.POSTPOSITIVE
_GEN = AbbreviationType.GENERAL

_LATIN_INITIALS = tuple(string.ascii_uppercase)
_CYRILLIC_INITIALS = tuple("АБВГДЕЖЗИКЛМНОПРСТУФХЦЧШЩЭЮЯ")

_LATIN_SENTENCE_END = rf"[.!?]+(?=\s|$)|[.!?]+(?=[{_CLOSERS}])"


def _build_profiles() -> List[LanguageProfile]:
    """Construct the built-in profiles. Called once by the registry."""
    return [
        LanguageProfile(
            language_code="en",
            name="English",
            script_code="Latn",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=_LATIN_SENTENCE_END,
            section_marker_pattern=_section_pattern(
                _LATIN_LETTER_SECTION,
                _named_sections("Chapter", "Section", "Part", "Appendix"),
            ),
            abbreviations=(
                _abbrs(_PRE, "Dr", "Mr", "Mrs", "Ms", "Prof", "St", "Gen", "Col",
                       "Capt", "Lt", "Rev", "Hon", "Gov", "Sen", "Rep", "Fig", "Vol")
                + _abbrs(_POST, "Inc", "Ltd", "Corp", "Co", "Jr", "Sr", "Bros",
                         "LLC", "etc", "U.S", "U.K", "a.m", "p.m")
                + _abbrs(_GEN, "e.g", "i.e", "vs", "cf", "approx", "viz")
            ),
            non_breaking_prefixes=_LATIN_INITIALS,
            numeric_only_prefixes=("No", "Nos", "Art", "pp", "p"),
        ),
        LanguageProfile(
            language_code="ko",
            name="Korean",
            script_code="Kore",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=(
                r"(?:있습니다|했습니다|됐습니다|겠습니다|습니다|입니다|됩니다|합니다"
                r"|습니까|입니까|됩니까|합니까|하세요|되세요|주세요|세요)[.!?。！？]*(?=\s|$)"
                r"|(?<=[가-힣])(?:다|음|됨|함|임|것|요|죠|네)[.!?。！？]*(?=\s|$)"
                r"|[.!?。！？]+(?=\s|$)"
            ),
            section_marker_pattern=_section_pattern(
                r"^\s*제\s*\d+\s*[장절조항편]",
                r"^\s*[가나다라마바사아자차카타파하]\.\s+\S",
                r"^\s*[□■◇◆○●◎▶▷►★☆ㅇ]\s*\S",
            ),
            abbreviations=_abbrs(_PRE, "Dr", "Mr", "Mrs", "Prof"),
            quotation_marks=QuotationMarks("“", "”", "‘", "’"),
        ),
        LanguageProfile(
            language_code="zh",
            name="Chinese",
            script_code="Hans",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=r"[。！？；]+[”’」』）]*|[.!?;]+(?=\s|$)",
            section_marker_pattern=_section_pattern(
                r"^\s*第[一二三四五六七八九十百千\d]+[章节条款部篇]",
                r"^\s*[一二三四五六七八九十]+[、.．]\s*\S",
                r"^\s*[（(]\d+[)）]\s*\S",
                r"^\s*[■●◆▶]\s*\S",
            ),
            number_format=NumberFormat(".", ","),
        ),
        LanguageProfile(
            language_code="ja",
            name="Japanese",
            script_code="Jpan",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=(
                r"[。！？]+[」』）]*|[.!?]+(?=\s|$)"
                r"|(?:でした|ました|です|ます)(?=\s|$)"
            ),
            section_marker_pattern=_section_pattern(
                r"^\s*第[一二三四五六七八九十百千\d]+[章節条款部編]",
                r"^\s*[一二三四五六七八九十]+[、.．]\s*\S",
                r"^\s*[（(]\d+[)）]\s*\S",
                r"^\s*[■●◆▶]\s*\S",
            ),
            quotation_marks=QuotationMarks("「", "」", "『", "』"),
        ),
        LanguageProfile(
            language_code="es",
            name="Spanish",
            script_code="Latn",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=rf"[.!?]+(?=\s|$)|[.!?]+(?=[{_CLOSERS}»”])",
            section_marker_pattern=_section_pattern(
                _LATIN_LETTER_SECTION,
                _named_sections("Capítulo", "Sección", "Parte", "Apéndice"),
            ),
            abbreviations=(
                _abbrs(_PRE, "Sr", "Sra", "Srta", "Dr", "Dra", "Lic", "Ing", "Prof", "Ud", "Uds")
                + _abbrs(_POST, "etc", "S.A", "Cía")
                + _abbrs(_GEN, "p.ej", "pág", "aprox")
            ),
            non_breaking_prefixes=_LATIN_INITIALS,
            numeric_only_prefixes=("No", "Núm", "art"),
            quotation_marks=QuotationMarks("«", "»", "“", "”"),
            number_format=NumberFormat(",", "."),
        ),
        LanguageProfile(
            language_code="fr",
            name="French",
            script_code="Latn",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=(
                rf"\.+(?=\s|$)|\s?[!?]+(?=\s|$)|[.!?]+(?=[{_CLOSERS}«»])"
            ),
            section_marker_pattern=_section_pattern(
                _LATIN_LETTER_SECTION,
                _named_sections("Chapitre", "Section", "Partie", "Annexe"),
            ),
            abbreviations=(
                _abbrs(_PRE, "M", "Mme", "Mlle", "Dr", "Pr", "Me", "St", "Ste")
                + _abbrs(_POST, "etc", "S.A")
                + _abbrs(_GEN, "p.ex", "cf", "env", "c.-à-d")
            ),
            non_breaking_prefixes=_LATIN_INITIALS,
            numeric_only_prefixes=("n", "No", "art", "p"),
            quotation_marks=QuotationMarks("«", "»", "“", "”"),
            number_format=NumberFormat(",", " "),
        ),
        LanguageProfile(
            language_code="de",
            name="German",
            script_code="Latn",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=rf"[.!?]+(?=\s|$)|[.!?]+(?=[{_CLOSERS}„“])",
            section_marker_pattern=_section_pattern(
                _LATIN_LETTER_SECTION,
                _named_sections("Kapitel", "Abschnitt", "Teil", "Anhang"),
            ),
            abbreviations=(
                _abbrs(_PRE, "Dr", "Prof", "Hr", "Fr", "Str")
                + _abbrs(_POST, "usw", "GmbH", "Co", "etc")
                + _abbrs(_GEN, "z.B", "d.h", "bzw", "u.a", "ca", "evtl", "ggf", "vgl", "s.o", "s.u")
            ),
            non_breaking_prefixes=_LATIN_INITIALS,
            numeric_only_prefixes=("Nr", "Abs", "Art", "S"),
            quotation_marks=QuotationMarks("„", "“", "‚", "‘"),
            number_format=NumberFormat(",", "."),
        ),
        LanguageProfile(
            language_code="ar",
            name="Arabic",
            script_code="Arab",
            writing_direction=WritingDirection.RTL,
            sentence_end_pattern=r"[.!?؟۔。！？]+(?=\s|$)",
            section_marker_pattern=_section_pattern(
                r"^\s*[٠-٩]+[.\-)]\s*\S",
                r"^\s*[•●■▪]\s*\S",
                _named_sections("الفصل", "الباب", "القسم"),
            ),
            quotation_marks=QuotationMarks("«", "»", "“", "”"),
            number_format=NumberFormat("٫", "٬"),
        ),
        LanguageProfile(
            language_code="hi",
            name="Hindi",
            script_code="Deva",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=r"[।॥]+|[.!?]+(?=\s|$)",
            section_marker_pattern=_section_pattern(
                r"^\s*[०-९]+[.)]\s*\S",
                r"^\s*[क-ह]\.\s+\S",
                r"^\s*[•●■]\s*\S",
                _named_sections("अध्याय", "भाग", "खंड"),
            ),
            abbreviations=_abbrs(_PRE, "डॉ", "Dr", "Mr"),
        ),
        LanguageProfile(
            language_code="pt",
            name="Portuguese",
            script_code="Latn",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=_LATIN_SENTENCE_END,
            section_marker_pattern=_section_pattern(
                _LATIN_LETTER_SECTION,
                _named_sections("Capítulo", "Seção", "Secção", "Parte", "Apêndice"),
            ),
            abbreviations=(
                _abbrs(_PRE, "Sr", "Sra", "Dr", "Dra", "Prof", "Profa", "Exmo", "Exma")
                + _abbrs(_POST, "etc", "Ltda", "S.A")
                + _abbrs(_GEN, "p.ex", "pág", "aprox")
            ),
            non_breaking_prefixes=_LATIN_INITIALS,
            numeric_only_prefixes=("No", "Nº", "art"),
            quotation_marks=QuotationMarks("“", "”", "‘", "’"),
            number_format=NumberFormat(",", "."),
        ),
        LanguageProfile(
            language_code="ru",
            name="Russian",
            script_code="Cyrl",
            writing_direction=WritingDirection.LTR,
            sentence_end_pattern=rf"[.!?]+(?=\s|$)|[.!?]+(?=[{_CLOSERS}«»])",
            section_marker_pattern=_section_pattern(
                r"^\s*[А-Я]\.\s+\S",
                _named_sections("Глава", "Раздел", "Часть", "Приложение"),
            ),
            abbreviations=(
                _abbrs(_PRE, "г-н", "г-жа", "ул", "им", "проф", "акад")
                + _abbrs(_POST, "г", "гг", "т.д", "т.п", "др")
                + _abbrs(_GEN, "т.е", "т.к", "см", "стр", "напр")
            ),
            non_breaking_prefixes=_CYRILLIC_INITIALS,
            numeric_only_prefixes=("№", "д", "с"),
            quotation_marks=QuotationMarks("«", "»", "„", "“"),
            number_format=NumberFormat(",", " "),
        ),
    ]


# ============================================================================
# Registry
# ============================================================================

_PROFILES: Optional[Mapping[str, LanguageProfile]] = None
_PROFILES_LOCK = threading.Lock()


def _registry() -> Mapping[str, LanguageProfile]:
    global _PROFILES
    if _PROFILES is None:
        with _PROFILES_LOCK:
            if _PROFILES is None:
                built: Dict[str, LanguageProfile] = {
                    profile.language_code: profile for profile in _build_profiles()
                }
                _PROFILES = MappingProxyType(built)
    return _PROFILES


def get_profile(code: Optional[str]) -> LanguageProfile:
    """Look up a profile by ISO code.

    Tries the exact code, then the base code before the first dash
    (``zh-CN`` -> ``zh``), then falls back to English.
    """
    profiles = _registry()
    if not code:
        return profiles[DEFAULT_LANGUAGE]

    normalized = code.strip().lower().replace("_", "-")
    if normalized in profiles:
        return profiles[normalized]

    base = normalized.split("-", 1)[0]
    if base in profiles:
        return profiles[base]

    logger.debug("No profile for language, using default", language=code)
    return profiles[DEFAULT_LANGUAGE]


def list_profiles() -> List[LanguageProfile]:
    return list(_registry().values())


def supported_languages() -> List[str]:
    return list(_registry().keys())


def _script_of(char: str) -> Optional[str]:
    cp = ord(char)
    if 0xAC00 <= cp <= 0xD7AF or 0x1100 <= cp <= 0x11FF or 0x3130 <= cp <= 0x318F:
        return "hangul"
    if 0x3040 <= cp <= 0x30FF:
        return "kana"
    if 0x4E00 <= cp <= 0x9FFF or 0x3400 <= cp <= 0x4DBF:
        return "cjk"
    if 0x0600 <= cp <= 0x06FF or 0x0750 <= cp <= 0x077F:
        return "arabic"
    if 0x0900 <= cp <= 0x097F:
        return "devanagari"
    if 0x0400 <= cp <= 0x04FF:
        return "cyrillic"
    return None


def script_ratios(text: str) -> Dict[str, float]:
    """Share of each non-Latin script among the letters of the sample."""
    counts: Dict[str, int] = {}
    letters = 0
    for char in text[:DETECTION_SAMPLE_CHARS]:
        if not char.isalpha():
            continue
        letters += 1
        script = _script_of(char)
        if script:
            counts[script] = counts.get(script, 0) + 1

    if letters == 0:
        return {}
    return {script: count / letters for script, count in counts.items()}


def detect_language(text: str) -> str:
    """Pick a language code from the dominant script of the text sample."""
    ratios = script_ratios(text)
    if ratios.get("hangul", 0.0) > HANGUL_THRESHOLD:
        return "ko"
    if ratios.get("kana", 0.0) > KANA_THRESHOLD:
        return "ja"
    if ratios.get("cjk", 0.0) > CJK_THRESHOLD:
        return "zh"
    if ratios.get("arabic", 0.0) > ARABIC_THRESHOLD:
        return "ar"
    if ratios.get("devanagari", 0.0) > DEVANAGARI_THRESHOLD:
        return "hi"
    if ratios.get("cyrillic", 0.0) > CYRILLIC_THRESHOLD:
        return "ru"
    return DEFAULT_LANGUAGE


def detect_and_get_profile(text: str) -> LanguageProfile:
    return get_profile(detect_language(text))


def resolve_profile(
    text: str, language: Optional[str] = None, hint: Optional[str] = None
) -> LanguageProfile:
    """Explicit language first, then the refiner's hint, then detection."""
    for code in (language, hint):
        if code and str(code).lower() != "auto":
            return get_profile(str(code))
    return detect_and_get_profile(text)
