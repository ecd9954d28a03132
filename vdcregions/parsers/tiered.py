"""
Parser for the VDC Vault region page.

The page is prose with nested bullet lists grouped by provider, then by
pricing tier ("Core Regions" / "Non-Core Regions"). The two providers
encode editions differently:

- AWS splits each tier into a "Foundation" list and an "Advanced" list;
  a region's editions are the union of the lists it appears in.
- Azure has a single list per tier; a trailing "*" on a Non-Core bullet
  means the Advanced edition is not offered there.

Labels are found either on ancestor <li> items (nested lists) or on the
nearest preceding heading-like blocks (flat lists under headings).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, Tag

from vdcregions.facts import (
    EDITION_ADVANCED,
    EDITION_FOUNDATION,
    EDITIONS,
    PROVIDER_AWS,
    PROVIDER_AZURE,
    TIER_CORE,
    TIER_NON_CORE,
    AvailabilityFact,
)

SERVICE_KEY = "vdc_vault"
ADVANCED_UNAVAILABLE_MARKER = "*"

WS_RE = re.compile(r"\s+")
NON_CORE_RE = re.compile(r"\bnon[-\s]?core\s+regions?\b", re.IGNORECASE)
CORE_RE = re.compile(r"\bcore\s+regions?\b", re.IGNORECASE)
EDITION_RE = re.compile(r"^(foundation|advanced)(\s+edition)?(\s+regions?)?\s*:?$", re.IGNORECASE)
AZURE_RE = re.compile(r"\b(microsoft\s+)?azure\b", re.IGNORECASE)
AWS_RE = re.compile(r"\b(aws|amazon\s+web\s+services)\b", re.IGNORECASE)
# "US East (N. Virginia) (us-east-1)" / "US East (N. Virginia) - us-east-1"
REGION_CODE_RE = re.compile(r"\s*(?:\(\s*|[-–—:]\s*)?\b([a-z]{2}(?:-gov)?-[a-z]+-\d)\b\s*\)?\s*$")

LABEL_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "strong", "b"]
HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
MAX_LABEL_CHARS = 80
MAX_LOOKBEHIND = 200


@dataclass
class _Context:
    provider: Optional[str] = None
    tier: Optional[str] = None
    edition: Optional[str] = None

    def merge(self, text: str) -> bool:
        """Fill unset fields from a label. Returns True if the text was a label."""
        if not text or len(text) > MAX_LABEL_CHARS:
            return False
        provider, tier, edition = _classify_label(text)
        if self.provider is None and provider:
            self.provider = provider
        if self.tier is None and tier:
            self.tier = tier
        if self.edition is None and edition:
            self.edition = edition
        return bool(provider or tier or edition)


def _clean_text(s: str) -> str:
    return WS_RE.sub(" ", s or "").strip()


def _classify_label(text: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    is_azure = bool(AZURE_RE.search(text))
    is_aws = bool(AWS_RE.search(text))
    provider = None
    if is_azure != is_aws:
        provider = PROVIDER_AZURE if is_azure else PROVIDER_AWS

    tier = None
    if NON_CORE_RE.search(text):
        tier = TIER_NON_CORE
    elif CORE_RE.search(text):
        tier = TIER_CORE

    edition = None
    m = EDITION_RE.match(text)
    if m:
        edition = EDITION_FOUNDATION if m.group(1).lower() == "foundation" else EDITION_ADVANCED

    return provider, tier, edition


def _own_text(li: Tag) -> str:
    """Text of a list item excluding any nested lists."""
    parts: List[str] = []
    for s in li.find_all(string=True):
        if isinstance(s, Comment):
            continue
        if s.find_parent(["ul", "ol"]) is li.parent:
            parts.append(str(s))
    return _clean_text(" ".join(parts))


def _item_context(li: Tag) -> _Context:
    ctx = _Context()
    for parent_li in li.find_parents("li"):
        ctx.merge(_own_text(parent_li))
    if ctx.provider is not None:
        return ctx

    lists = li.find_parents(["ul", "ol"])
    anchor = lists[-1] if lists else li
    for block in anchor.find_all_previous(LABEL_TAGS, limit=MAX_LOOKBEHIND):
        if block.find_parent("li") is not None:
            continue
        is_label = ctx.merge(_clean_text(block.get_text(" ", strip=True)))
        if ctx.provider is not None:
            break
        # An unrelated heading closes the availability section.
        if block.name in HEADING_TAGS and not is_label:
            break
    return ctx


def _split_region_code(text: str) -> Tuple[str, Optional[str]]:
    m = REGION_CODE_RE.search(text)
    if not m or m.start() == 0:
        return text, None
    return text[: m.start()].strip(), m.group(1)


def _ordered_editions(editions) -> Tuple[str, ...]:
    return tuple(e for e in EDITIONS if e in editions)


@dataclass
class _Entry:
    provider: str
    tier: str
    edition: Optional[str]
    name: str
    region_code: Optional[str]
    marked: bool


def _collect_entries(soup: BeautifulSoup) -> List[_Entry]:
    entries: List[_Entry] = []
    for li in soup.find_all("li"):
        if li.find(["ul", "ol"]) is not None:
            continue
        raw = _clean_text(li.get_text(" ", strip=True))
        if not raw:
            continue
        ctx = _item_context(li)
        if ctx.provider is None or ctx.tier is None:
            continue

        marked = raw.endswith(ADVANCED_UNAVAILABLE_MARKER)
        name = raw.rstrip(ADVANCED_UNAVAILABLE_MARKER).strip()
        name, code = _split_region_code(name)
        if not name:
            continue
        entries.append(_Entry(ctx.provider, ctx.tier, ctx.edition, name, code, marked))
    return entries


def parse_tiered_availability(markup: str) -> List[AvailabilityFact]:
    """
    Extract edition x tier facts for the Vault service.

    Foundation lists seed facts; Advanced lists then upgrade an existing
    fact for the same provider/tier/name or create an Advanced-only one.
    Unlabeled lists (Azure) imply both editions unless the bullet carries the
    marker. Restructured markup yields an empty list rather than an error.
    """
    soup = BeautifulSoup(markup or "", "lxml")
    entries = _collect_entries(soup)

    facts: Dict[Tuple[str, str, str], AvailabilityFact] = {}

    def _add(entry: _Entry, editions: Tuple[str, ...]) -> None:
        key = (entry.provider, entry.tier, entry.name.lower())
        existing = facts.get(key)
        if existing is None:
            facts[key] = AvailabilityFact(
                provider=entry.provider,
                region_name=entry.name,
                region_code=entry.region_code,
                service_key=SERVICE_KEY,
                edition=_ordered_editions(editions),
                tier=entry.tier,
            )
            return
        facts[key] = replace(
            existing,
            edition=_ordered_editions(set(existing.edition) | set(editions)),
            region_code=existing.region_code or entry.region_code,
        )

    for entry in entries:
        if entry.edition is None:
            if entry.marked:
                _add(entry, (EDITION_FOUNDATION,))
            else:
                _add(entry, (EDITION_FOUNDATION, EDITION_ADVANCED))
        elif entry.edition == EDITION_FOUNDATION:
            _add(entry, (EDITION_FOUNDATION,))

    for entry in entries:
        if entry.edition == EDITION_ADVANCED:
            _add(entry, (EDITION_ADVANCED,))

    return list(facts.values())
