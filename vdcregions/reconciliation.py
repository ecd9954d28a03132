"""
Reconciliation: compare scraped availability facts with the canonical catalog.

Every fact is resolved to a catalog region and classified:
  - no region found                       -> MissingRegion
  - region found, service absent          -> MissingService
  - region found, edition x tier absent   -> MissingService (one per edition)
Separately, services the catalog declares for a region but that no scraped
fact corroborates are reported as ExtraService candidates for human review.

The engine never mutates the catalog and keeps no state between runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Set, Union

from vdcregions.catalog import CanonicalRegion
from vdcregions.facts import AvailabilityFact
from vdcregions.matching import find_match
from vdcregions.normalize import normalize_region_code
from vdcregions.sources import SOURCES, Source, source_url

EXTRA_SERVICE_NOTE = (
    "Listed in the catalog but not found in the latest scrape of the documentation - "
    "may have been removed or missed by the parser"
)


def _drop_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class MissingRegion:
    """Documented region with no counterpart in the catalog."""
    kind: ClassVar[str] = "missing_region"

    provider: str
    region_name: str
    region_code: Optional[str]
    service: str
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "regionName": self.region_name,
            "regionCode": self.region_code,
            "service": self.service,
            "source": self.source,
        }


@dataclass(frozen=True)
class MissingService:
    """Known region whose catalog entry lacks a documented service (or edition x tier)."""
    kind: ClassVar[str] = "missing_service"

    region_id: str
    region_name: str
    provider: str
    service: str
    source: Optional[str] = None
    edition: Optional[List[str]] = None
    tier: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "regionId": self.region_id,
                "regionName": self.region_name,
                "provider": self.provider,
                "service": self.service,
                "edition": self.edition,
                "tier": self.tier,
                "source": self.source,
                "note": self.note,
            }
        )


@dataclass(frozen=True)
class ExtraService:
    """Catalog service not corroborated by the latest scrape."""
    kind: ClassVar[str] = "extra_service"

    region_id: str
    region_name: str
    provider: str
    service: str
    note: str = EXTRA_SERVICE_NOTE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "regionId": self.region_id,
            "regionName": self.region_name,
            "provider": self.provider,
            "service": self.service,
            "note": self.note,
        }


Discrepancy = Union[MissingRegion, MissingService, ExtraService]


@dataclass
class Discrepancies:
    missing_regions: List[MissingRegion] = field(default_factory=list)
    missing_services: List[MissingService] = field(default_factory=list)
    extra_services: List[ExtraService] = field(default_factory=list)

    def add(self, d: Discrepancy) -> None:
        if isinstance(d, MissingRegion):
            self.missing_regions.append(d)
        elif isinstance(d, MissingService):
            self.missing_services.append(d)
        elif isinstance(d, ExtraService):
            self.extra_services.append(d)
        else:
            raise TypeError(f"Unknown discrepancy type: {type(d).__name__}")

    def __iter__(self):
        yield from self.missing_regions
        yield from self.missing_services
        yield from self.extra_services

    @property
    def total(self) -> int:
        return len(self.missing_regions) + len(self.missing_services) + len(self.extra_services)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "missingRegions": [d.to_dict() for d in self.missing_regions],
            "missingServices": [d.to_dict() for d in self.missing_services],
            "extraServices": [d.to_dict() for d in self.extra_services],
        }


def classify_fact(
    fact: AvailabilityFact,
    region: Optional[CanonicalRegion],
    *,
    source: Optional[str] = None,
) -> List[Discrepancy]:
    """Discrepancies raised by a single fact given its matched region (or None)."""
    if region is None:
        return [
            MissingRegion(
                provider=fact.provider or "Unknown",
                region_name=fact.region_name,
                region_code=fact.region_code,
                service=fact.service_key,
                source=source,
            )
        ]

    if not region.has_service(fact.service_key):
        return [
            MissingService(
                region_id=region.id,
                region_name=region.name,
                provider=region.provider,
                service=fact.service_key,
                source=source,
                edition=list(fact.edition) if fact.edition else None,
                tier=fact.tier,
            )
        ]

    if not fact.is_tiered:
        return []

    recorded = region.tier_combinations(fact.service_key)
    out: List[Discrepancy] = []
    for edition in fact.edition:
        if (edition, fact.tier) in recorded:
            continue
        out.append(
            MissingService(
                region_id=region.id,
                region_name=region.name,
                provider=region.provider,
                service=fact.service_key,
                source=source,
                edition=[edition],
                tier=fact.tier,
                note=f"Edition {edition} not recorded for tier {fact.tier}",
            )
        )
    return out


@dataclass
class ServiceLookup:
    """
    Service keys seen in this run, per region.

    by_code holds keys taken from a scraped region code; a code corroborates
    any region whose normalized id contains it ("us-east-1" -> "aws-us-east-1").
    by_region_id holds keys taken from the matched region when the fact had
    no code; those only corroborate that exact region, so "azure-eastus"
    never vouches for "azure-eastus2".
    """
    by_code: Dict[str, Set[str]] = field(default_factory=dict)
    by_region_id: Dict[str, Set[str]] = field(default_factory=dict)

    def corroborates(self, region: CanonicalRegion, service_key: str) -> bool:
        region_key = normalize_region_code(region.id)
        if service_key in self.by_region_id.get(region_key, set()):
            return True
        return any(code in region_key and service_key in services for code, services in self.by_code.items())


def build_service_lookup(
    facts: Sequence[AvailabilityFact],
    matches: Sequence[Optional[CanonicalRegion]],
    sources: Dict[str, Source],
) -> ServiceLookup:
    """Index scraped services by region code, falling back to the matched region id."""
    lookup = ServiceLookup()
    for fact, region in zip(facts, matches):
        if fact.service_key not in sources:
            continue
        code = normalize_region_code(fact.region_code)
        if code:
            lookup.by_code.setdefault(code, set()).add(fact.service_key)
        elif region is not None:
            region_key = normalize_region_code(region.id)
            if region_key:
                lookup.by_region_id.setdefault(region_key, set()).add(fact.service_key)
    return lookup


def find_extra_services(
    catalog: Iterable[CanonicalRegion],
    lookup: ServiceLookup,
    seen_services: Set[str],
    sources: Dict[str, Source],
) -> List[ExtraService]:
    """
    Catalog services that no scraped fact corroborates.

    Services with no facts at all this run (failed or empty source) are not
    flagged; otherwise every region would be.
    """
    out: List[ExtraService] = []
    for region in catalog:
        for service_key in region.services:
            if service_key not in sources or service_key not in seen_services:
                continue
            if not region.has_service(service_key):
                continue
            if not lookup.corroborates(region, service_key):
                out.append(
                    ExtraService(
                        region_id=region.id,
                        region_name=region.name,
                        provider=region.provider,
                        service=service_key,
                    )
                )
    return out


def reconcile(
    facts: Sequence[AvailabilityFact],
    catalog: Sequence[CanonicalRegion],
    *,
    sources: Optional[Dict[str, Source]] = None,
) -> Discrepancies:
    """
    Classify every fact against the catalog and collect extra-service candidates.

    Args:
        facts: Availability facts from all sources that were scraped this run
        catalog: Canonical regions, in a stable order (matcher ties go to the first)
        sources: Service registry; defaults to SOURCES

    Returns:
        Discrepancies with missing regions, missing services and extra services
    """
    sources = SOURCES if sources is None else sources
    result = Discrepancies()

    matches: List[Optional[CanonicalRegion]] = []
    for fact in facts:
        region = find_match(fact, catalog)
        matches.append(region)
        for d in classify_fact(fact, region, source=source_url(fact.service_key, sources)):
            result.add(d)

    lookup = build_service_lookup(facts, matches, sources)
    seen_services = {f.service_key for f in facts if f.service_key in sources}
    for d in find_extra_services(catalog, lookup, seen_services, sources):
        result.add(d)

    return result
