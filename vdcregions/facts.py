from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

PROVIDER_AWS = "AWS"
PROVIDER_AZURE = "Azure"
PROVIDERS = (PROVIDER_AWS, PROVIDER_AZURE)

EDITION_FOUNDATION = "Foundation"
EDITION_ADVANCED = "Advanced"
EDITIONS = (EDITION_FOUNDATION, EDITION_ADVANCED)

TIER_CORE = "Core"
TIER_NON_CORE = "Non-Core"
TIERS = (TIER_CORE, TIER_NON_CORE)


@dataclass(frozen=True)
class AvailabilityFact:
    """One scraped assertion that a service is offered in a named region."""
    provider: str
    region_name: str
    region_code: Optional[str]
    service_key: str
    edition: Tuple[str, ...] = ()    # tiered services only; may hold both editions
    tier: Optional[str] = None       # "Core" | "Non-Core"

    @property
    def is_tiered(self) -> bool:
        return self.tier is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "provider": self.provider,
            "regionName": self.region_name,
            "regionCode": self.region_code,
            "serviceKey": self.service_key,
        }
        if self.edition:
            out["edition"] = list(self.edition)
        if self.tier:
            out["tier"] = self.tier
        return out
