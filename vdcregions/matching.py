"""
Match scraped region names against the canonical catalog.

Rules are tried in a fixed order, safest first. For each rule every
candidate is tested in catalog order and the first hit wins, so looser
rules only apply when no candidate satisfies a stricter one.
"""
from __future__ import annotations

from collections import Counter
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from vdcregions.catalog import CanonicalRegion
from vdcregions.facts import AvailabilityFact
from vdcregions.normalize import normalize, strip_parenthetical, words

MatchRule = Callable[[str, CanonicalRegion], bool]


def _stripped(region: CanonicalRegion) -> str:
    return normalize(strip_parenthetical(region.name))


def is_ordered_subsequence(needle: Sequence[str], haystack: Sequence[str]) -> bool:
    """True if every word of needle appears in haystack in the same relative order."""
    it = iter(haystack)
    return all(word in it for word in needle)


def _stripped_exact(name: str, region: CanonicalRegion) -> bool:
    return name == _stripped(region)


def _full_exact(name: str, region: CanonicalRegion) -> bool:
    return name == normalize(region.name)


def _ordered_words(name: str, region: CanonicalRegion) -> bool:
    # Equal word count keeps "West US" from matching "West US 2".
    fact_words = words(name)
    region_words = words(strip_parenthetical(region.name))
    return len(fact_words) == len(region_words) and is_ordered_subsequence(fact_words, region_words)


def _same_words(name: str, region: CanonicalRegion) -> bool:
    # "India Central" vs "Central India"
    return Counter(words(name)) == Counter(words(strip_parenthetical(region.name)))


def _contains(name: str, region: CanonicalRegion) -> bool:
    return name in normalize(region.name)


def _collapsed_exact(name: str, region: CanonicalRegion) -> bool:
    return normalize(name, collapse_spaces=True) == normalize(strip_parenthetical(region.name), collapse_spaces=True)


def _alias_exact(name: str, region: CanonicalRegion) -> bool:
    return any(name == normalize(alias) for alias in region.aliases)


MATCH_RULES: List[Tuple[str, MatchRule]] = [
    ("stripped_exact", _stripped_exact),
    ("full_exact", _full_exact),
    ("ordered_words", _ordered_words),
    ("same_words", _same_words),
    ("contains", _contains),
    ("collapsed_exact", _collapsed_exact),
    ("alias_exact", _alias_exact),
]


def candidate_regions(fact: AvailabilityFact, catalog: Iterable[CanonicalRegion]) -> List[CanonicalRegion]:
    if not fact.provider:
        return list(catalog)
    return [r for r in catalog if r.provider == fact.provider]


def find_match_with_rule(
    fact: AvailabilityFact,
    catalog: Iterable[CanonicalRegion],
    *,
    rules: Sequence[Tuple[str, MatchRule]] = MATCH_RULES,
) -> Tuple[Optional[CanonicalRegion], Optional[str]]:
    """Return (region, rule_name) for the first rule any candidate satisfies."""
    name = normalize(fact.region_name)
    if not name:
        return None, None
    candidates = candidate_regions(fact, catalog)
    for rule_name, rule in rules:
        for region in candidates:
            if rule(name, region):
                return region, rule_name
    return None, None


def find_match(fact: AvailabilityFact, catalog: Iterable[CanonicalRegion]) -> Optional[CanonicalRegion]:
    region, _ = find_match_with_rule(fact, catalog)
    return region
