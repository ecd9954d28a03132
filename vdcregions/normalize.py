"""Text normalization for free-text region and location names."""
from __future__ import annotations

import re
from typing import List, Optional

_WHITESPACE_RE = re.compile(r"\s+")

# Applied in order; every replacement is shorter than what it replaces.
_SYNONYMS = [
    (re.compile(r"\bnorth europe\b"), "eu north"),
    (re.compile(r"\bsouth europe\b"), "eu south"),
    (re.compile(r"\beuropean\b"), "eu"),
    (re.compile(r"\bunited states\b"), "us"),
    (re.compile(r"\bamerica\b"), "us"),
    (re.compile(r"\bmiddle east\b"), "me"),
]


def _rewrite_synonyms(s: str) -> str:
    for pattern, replacement in _SYNONYMS:
        s = pattern.sub(replacement, s)
    return s


def normalize(text: Optional[str], collapse_spaces: bool = False) -> str:
    """
    Canonicalize a region/location string for comparison.

    Examples:
        'North Europe' -> 'eu north'
        '  Central   America ' -> 'central us'
        normalize('North Virginia', collapse_spaces=True) -> 'northvirginia'

    Idempotent: synonym rewrites are repeated until nothing changes.
    """
    if not text:
        return ""
    s = _WHITESPACE_RE.sub(" ", text.lower()).strip()
    while True:
        out = _WHITESPACE_RE.sub(" ", _rewrite_synonyms(s)).strip()
        if collapse_spaces:
            out = _WHITESPACE_RE.sub("", out)
        if out == s:
            return out
        s = out


def strip_parenthetical(name: Optional[str]) -> str:
    """'US East 1 (N. Virginia)' -> 'US East 1'"""
    return (name or "").split("(", 1)[0].strip()


def normalize_region_code(code: Optional[str]) -> str:
    """'US_EAST_1' -> 'us-east-1', 'East US (Virginia)' -> 'eastusvirginia'"""
    if not code:
        return ""
    s = _WHITESPACE_RE.sub("", code.lower())
    return s.replace("_", "-").replace("(", "").replace(")", "")


def words(text: Optional[str]) -> List[str]:
    return normalize(text).split()
