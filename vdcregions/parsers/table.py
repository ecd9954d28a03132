"""
Parser for the rowspan-grouped availability tables on the VDC help center.

Observed table structure:

  | Global Region | Azure Region |
  | AMER (rowspan=3) | East US    |
  |                  | West US    |
  |                  | Central US |

Because of the rowspan, continuation rows only carry the region cell. The
pages list display names only, no machine region codes, so matching
downstream is name-based.

Dependencies:
  pip install beautifulsoup4 lxml
"""
from __future__ import annotations

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from vdcregions.facts import PROVIDER_AZURE, AvailabilityFact

WS_RE = re.compile(r"\s+")
GROUPING_TOKEN_RE = re.compile(r"^(AMER|APJ|EMEA)$", re.IGNORECASE)
HEADER_LABEL_RE = re.compile(
    r"^(global region|azure region|aws region|cloud provider|region name|region)$",
    re.IGNORECASE,
)


def _clean_text(s: str) -> str:
    return WS_RE.sub(" ", s or "").strip()


def is_grouping_token(text: str) -> bool:
    return bool(GROUPING_TOKEN_RE.match(text or ""))


def _region_cell(cells: List[str]) -> Optional[str]:
    for cell in reversed(cells):
        if cell and not is_grouping_token(cell):
            return cell
    return None


def parse_availability_table(
    markup: str,
    service_key: str,
    *,
    provider: str = PROVIDER_AZURE,
) -> List[AvailabilityFact]:
    """
    Extract one fact per region row from every table in the page.

    Header rows and rows holding only a grouping token (AMER/APJ/EMEA) are
    skipped. Markup without tables yields an empty list.
    """
    soup = BeautifulSoup(markup or "", "lxml")
    facts: List[AvailabilityFact] = []

    for tr in soup.find_all("tr"):
        cells = [_clean_text(c.get_text(" ", strip=True)) for c in tr.find_all(["td", "th"])]
        if not any(cells):
            continue
        if any(HEADER_LABEL_RE.match(c) for c in cells):
            continue

        name = _region_cell(cells)
        if not name:
            continue

        facts.append(
            AvailabilityFact(
                provider=provider,
                region_name=name,
                region_code=None,
                service_key=service_key,
            )
        )

    return facts
