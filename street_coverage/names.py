"""Street name normalisation and fuzzy comparison."""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple

_ROAD_REF = re.compile(r"\s*\([A-Z]\d+[A-Za-z]?\d*\)\s*")
_LEADING_THE = re.compile(r"^the\s+", re.IGNORECASE)

_REPLACEMENTS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\bst\.\s"), "saint "),
    (re.compile(r"\bst\.$"), "saint"),
    (re.compile(r"\bst\s"), "saint "),
    (re.compile(r"\brd\.?\b"), "road"),
    (re.compile(r"\bave\.?\b"), "avenue"),
    (re.compile(r"\bln\.?\b"), "lane"),
    (re.compile(r"\bdr\.?\b"), "drive"),
    (re.compile(r"\bct\.?\b"), "court"),
    (re.compile(r"\bblvd\.?\b"), "boulevard"),
    (re.compile(r"\bhwy\.?\b"), "highway"),
    (re.compile(r"\bpl\.?\b"), "place"),
    (re.compile(r"\bsq\.?\b"), "square"),
    (re.compile(r"(?:^|\s)n\.\s"), " north "),
    (re.compile(r"(?:^|\s)n\s"), " north "),
    (re.compile(r"(?:^|\s)s\.\s"), " south "),
    (re.compile(r"(?:^|\s)s\s"), " south "),
    (re.compile(r"\be\.?\s"), "east "),
    (re.compile(r"\bw\.?\s"), "west "),
    (re.compile(r"[\"'`‘’]"), ""),
    (re.compile(r"\."), ""),
    (re.compile(r"-"), " "),
    (re.compile(r"\s+"), " "),
]

_UNNAMED = {"", "unnamed", "unnamed road"}

DEFAULT_SIMILARITY_THRESHOLD = 0.8


def normalize_street_name(name: str) -> str:
    """Canonical lowercase form used to compare street names.

    Road references such as ``(A3)`` and a leading "The" are dropped, common
    abbreviations are expanded and punctuation is removed.

    >>> normalize_street_name("The High St. (A3)")
    'high saint'
    """

    if not name:
        return ""
    text = _ROAD_REF.sub("", name)
    text = _LEADING_THE.sub("", text)
    text = text.lower()
    for pattern, replacement in _REPLACEMENTS:
        text = pattern.sub(replacement, text)
    return text.strip()


def is_unnamed_street(name: str) -> bool:
    return (name or "").strip().lower() in _UNNAMED


def name_similarity(first: str, second: str) -> float:
    """Share of distinct words two normalised names have in common."""

    if first == second:
        return 1.0
    words_a = [w for w in first.split(" ") if w]
    words_b = [w for w in second.split(" ") if w]
    if not words_a or not words_b:
        return 0.0
    matching = sum(1 for word in words_a if word in words_b)
    return matching / len(set(words_a) | set(words_b))


def street_names_match(
    first: str, second: str, threshold: float = DEFAULT_SIMILARITY_THRESHOLD
) -> bool:
    """Return True when two raw street names refer to the same street."""

    a = normalize_street_name(first)
    b = normalize_street_name(second)
    if a == b:
        return True
    return name_similarity(a, b) >= threshold


__all__ = [
    "is_unnamed_street",
    "name_similarity",
    "normalize_street_name",
    "street_names_match",
]
