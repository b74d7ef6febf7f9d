"""
Text utilities for header matching and record comparison.

Handles accents, mis-decoded UTF-8 exports and the string similarity score
shared by the field mapper and the duplicate detector.
"""

import re
import unicodedata
from datetime import date, datetime
from typing import Optional

import pandas as pd
from rapidfuzz import fuzz

_NON_ALNUM = re.compile(r"[^0-9a-z]+")
_WHITESPACE = re.compile(r"\s+")

# Characters that show up when UTF-8 bytes were decoded as Latin-1/cp1252
_MOJIBAKE_MARKERS = ("Ã", "Ä", "Å", "Â")

# Dropped before comparing company names ("Acme Inc." == "ACME")
_COMPANY_SUFFIXES = {
    "inc", "incorporated", "llc", "ltd", "limited", "corp", "corporation",
    "co", "company", "gmbh", "ag", "sa", "plc", "ab", "bv", "as",
}

_DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%d.%m.%Y", "%Y/%m/%d"]
_RELATIVE_DATE_WORDS = {"today", "now", "yesterday", "tomorrow", "ago", "next", "last"}
_MONTH_NAME = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\b"
)


def repair_mojibake(text: str) -> str:
    """
    Undo the common UTF-8-read-as-Latin-1 corruption.

    "Åžirket AdÄ±" -> "Şirket Adı". Text without the telltale markers, or
    text that does not round-trip, is returned unchanged.
    """
    if not any(marker in text for marker in _MOJIBAKE_MARKERS):
        return text
    for encoding in ("cp1252", "latin-1"):
        try:
            return text.encode(encoding).decode("utf-8")
        except (UnicodeEncodeError, UnicodeDecodeError):
            continue
    return text


def fold_accents(text: str) -> str:
    """
    Strip accent marks so "Şirket Adı" compares equal to "Sirket Adi".

    NFD splits base characters from combining marks (category 'Mn'), which
    are then dropped. Dotless i has no decomposition and is mapped by hand.
    """
    normalized = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in normalized if unicodedata.category(c) != "Mn")
    return stripped.replace("ı", "i").replace("İ", "I")


def normalize_header(header: Optional[str]) -> str:
    """
    Normalize a header for case-insensitive equality checks.

    "  Applied   Date " -> "applied date"
    "Åžirket AdÄ±"     -> "sirket adi"
    """
    if not header:
        return ""
    text = repair_mojibake(str(header))
    text = fold_accents(text).lower().strip()
    return _WHITESPACE.sub(" ", text)


def normalize_text(value: Optional[str]) -> str:
    """
    Normalize free text for fuzzy comparison.

    Lowercase, accent-folded, punctuation and underscores turned into single
    spaces: "Software-Engineer (II)" -> "software engineer ii".
    """
    if not value:
        return ""
    text = normalize_header(value)
    return _NON_ALNUM.sub(" ", text).strip()


def normalize_company(name: Optional[str]) -> str:
    """Normalize a company name and drop trailing legal suffixes."""
    tokens = normalize_text(name).split()
    while len(tokens) > 1 and tokens[-1] in _COMPANY_SUFFIXES:
        tokens.pop()
    return " ".join(tokens)


def is_blank(value) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    return not str(value).strip()


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Score how alike two strings are, in [0, 1].

    Both sides are normalized first. Empty input scores 0.0 and equal input
    scores 1.0; otherwise the better of the plain edit ratio and the
    token-sorted ratio is used, so reordered words ("Date Applied" /
    "Applied Date") still score high.
    """
    left = normalize_text(a)
    right = normalize_text(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    score = max(fuzz.ratio(left, right), fuzz.token_sort_ratio(left, right))
    return min(max(score / 100.0, 0.0), 1.0)


def parse_date(value) -> Optional[date]:
    """Parse various date formats to a date object, None when unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value_str = str(value).strip()
    if not value_str:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value_str, fmt).date()
        except ValueError:
            continue

    # Pandas fallback (ISO timestamps, "Jan 5 2024", ...) only for absolute
    # dates: relative words and missing parts would be filled from the run date
    if not _is_absolute_date(value_str):
        return None
    try:
        parsed = pd.to_datetime(value_str, dayfirst=False)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _is_absolute_date(value: str) -> bool:
    """A four-digit year plus a month and a day, no relative keywords."""
    lowered = value.lower()
    if any(word in _RELATIVE_DATE_WORDS for word in re.findall(r"[a-z]+", lowered)):
        return False
    numbers = re.findall(r"\d+", lowered)
    if not any(len(n) == 4 for n in numbers):
        return False
    if len(numbers) >= 3:
        return True
    has_month_name = _MONTH_NAME.search(lowered) is not None
    return has_month_name and any(len(n) <= 2 for n in numbers)
