from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import requests

from vdcregions.facts import PROVIDER_AZURE, AvailabilityFact
from vdcregions.parsers import parse_availability_table, parse_tiered_availability

HELPCENTER_BASE = "https://helpcenter.veeam.com/docs/vdc/userguide"

PARSER_TABLE = "table"
PARSER_TIERED = "tiered"

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_S = 1.0
DEFAULT_TIMEOUT_S = 30

_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class SourceFetchError(RuntimeError):
    pass


@dataclass(frozen=True)
class FetchError:
    """A source that could not be fetched after all retries."""
    service_key: str
    url: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"serviceKey": self.service_key, "url": self.url, "error": self.error}


@dataclass(frozen=True)
class Source:
    """One tracked service: where its availability page lives and how to read it."""
    service_key: str
    url: str
    parser: str
    provider: Optional[str] = None   # fixed provider for single-provider pages

    def parse(self, markup: str) -> List[AvailabilityFact]:
        if self.parser == PARSER_TIERED:
            return parse_tiered_availability(markup)
        return parse_availability_table(markup, self.service_key, provider=self.provider or PROVIDER_AZURE)


SOURCES: Dict[str, Source] = {
    s.service_key: s
    for s in [
        Source("vdc_m365", f"{HELPCENTER_BASE}/m365_region_availability.html", PARSER_TABLE, PROVIDER_AZURE),
        Source("vdc_azure_backup", f"{HELPCENTER_BASE}/azure_regions.html", PARSER_TABLE, PROVIDER_AZURE),
        Source("vdc_entra_id", f"{HELPCENTER_BASE}/entra_id_regions.html", PARSER_TABLE, PROVIDER_AZURE),
        Source("vdc_salesforce", f"{HELPCENTER_BASE}/sf_regions.html", PARSER_TABLE, PROVIDER_AZURE),
        Source("vdc_vault", f"{HELPCENTER_BASE}/vault_regions.html", PARSER_TIERED),
    ]
}


def source_url(service_key: str, sources: Optional[Dict[str, Source]] = None) -> Optional[str]:
    src = (sources if sources is not None else SOURCES).get(service_key)
    return src.url if src else None


def _user_agent() -> str:
    return os.getenv("VDC_SCRAPER_USER_AGENT") or _BROWSER_USER_AGENT


def _session() -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": _user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
    )
    return s


def backoff_delay(attempt: int, backoff_s: float = DEFAULT_BACKOFF_S) -> float:
    """Delay after a failed attempt (1-based): backoff_s, 2*backoff_s, 4*backoff_s, ..."""
    return backoff_s * (2 ** (attempt - 1))


def fetch_with_retry(
    url: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_s: float = DEFAULT_BACKOFF_S,
    timeout_s: int = DEFAULT_TIMEOUT_S,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Fetch the text of url, retrying with exponential backoff.

    Raises SourceFetchError once max_retries attempts have failed.
    """
    s = session or _session()
    last_err: Optional[str] = None
    for attempt in range(1, max_retries + 1):
        try:
            r = s.get(url, timeout=timeout_s)
            if r.status_code != 200:
                raise SourceFetchError(f"HTTP {r.status_code}: {r.reason}")
            return r.text
        except (requests.RequestException, SourceFetchError) as e:
            last_err = str(e)
            print(f"  Attempt {attempt}/{max_retries} failed for {url}: {e}", file=sys.stderr, flush=True)
            if attempt < max_retries:
                sleep(backoff_delay(attempt, backoff_s))

    raise SourceFetchError(last_err or f"Failed to fetch {url}")
