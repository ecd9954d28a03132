"""
Region availability reconciliation run.

For every tracked service: fetch its help-center page, parse it into
availability facts. Services are fetched concurrently and joined before
reconciliation; a failed fetch is recorded and the remaining services are
still processed. The report is written only after every service has been
attempted.

Usage:
  python -m vdcregions.pipeline                        # writes region-discrepancies.json
  python -m vdcregions.pipeline out/discrepancies.json --data-dir data/regions

Exit code is 1 when any discrepancy or fetch error was found, so the run can
gate an automated workflow.
"""
from __future__ import annotations

import json
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from vdcregions.catalog import DEFAULT_DATA_DIR, CatalogLoadError, load_catalog
from vdcregions.facts import AvailabilityFact
from vdcregions.reconciliation import Discrepancies, reconcile
from vdcregions.sources import (
    DEFAULT_MAX_RETRIES,
    SOURCES,
    FetchError,
    Source,
    SourceFetchError,
    fetch_with_retry,
)

DEFAULT_OUTPUT_PATH = Path("region-discrepancies.json")
DEFAULT_MAX_WORKERS = 5

Fetcher = Callable[[str], str]


@dataclass
class DiscrepancyReport:
    timestamp: str
    scraped_count: int
    current_count: int
    discrepancies: Discrepancies
    errors: List[FetchError] = field(default_factory=list)
    catalog_errors: List[CatalogLoadError] = field(default_factory=list)  # logged, not serialized

    @property
    def has_issues(self) -> bool:
        return self.discrepancies.total > 0 or bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "scrapedCount": self.scraped_count,
            "currentCount": self.current_count,
            "discrepancies": self.discrepancies.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
        }


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _scrape_one(source: Source, fetch: Fetcher) -> List[AvailabilityFact]:
    print(f"[{source.service_key}] Fetching {source.url}...", flush=True)
    markup = fetch(source.url)
    facts = source.parse(markup)
    print(f"[{source.service_key}] Found {len(facts)} regions", flush=True)
    return facts


def scrape_sources(
    sources: Optional[Dict[str, Source]] = None,
    *,
    fetch: Optional[Fetcher] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Tuple[List[AvailabilityFact], List[FetchError]]:
    """
    Fetch and parse every source concurrently.

    Facts are returned in registry order regardless of completion order.
    Fetch failures become FetchError entries; any other exception propagates.

    Returns: (facts, fetch_errors)
    """
    sources = SOURCES if sources is None else sources
    fetch = fetch or fetch_with_retry

    facts: List[AvailabilityFact] = []
    errors: List[FetchError] = []
    if not sources:
        return facts, errors

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(sources)))) as executor:
        futures = [(src, executor.submit(_scrape_one, src, fetch)) for src in sources.values()]

        for src, future in futures:
            try:
                facts.extend(future.result())
            except SourceFetchError as e:
                print(f"[{src.service_key}] ERROR: Failed to scrape: {e}", file=sys.stderr, flush=True)
                errors.append(FetchError(service_key=src.service_key, url=src.url, error=str(e)))

    return facts, errors


def run_reconciliation(
    *,
    data_dir: Optional[Path] = None,
    sources: Optional[Dict[str, Source]] = None,
    fetch: Optional[Fetcher] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> DiscrepancyReport:
    sources = SOURCES if sources is None else sources
    facts, errors = scrape_sources(sources, fetch=fetch, max_workers=max_workers)
    print(f"\nTotal regions scraped: {len(facts)}", flush=True)

    data_dir = data_dir or DEFAULT_DATA_DIR
    print(f"Loading current region data from {data_dir}...", flush=True)
    catalog, catalog_errors = load_catalog(data_dir)
    print(f"  Loaded {len(catalog)} region files ({len(catalog_errors)} skipped)", flush=True)

    print("Comparing scraped data with current data...", flush=True)
    discrepancies = reconcile(facts, catalog, sources=sources)

    return DiscrepancyReport(
        timestamp=_utc_now_iso(),
        scraped_count=len(facts),
        current_count=len(catalog),
        discrepancies=discrepancies,
        errors=errors,
        catalog_errors=catalog_errors,
    )


def write_report(report: DiscrepancyReport, out_path: Path) -> Path:
    out_path = out_path.expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    return out_path


def exit_code_for(report: DiscrepancyReport) -> int:
    return 1 if report.has_issues else 0


def print_summary(report: DiscrepancyReport) -> None:
    d = report.discrepancies
    print(f"\n{'='*60}", flush=True)
    print("REGION RECONCILIATION SUMMARY", flush=True)
    print(f"{'='*60}", flush=True)
    print(f"  Missing Regions:  {len(d.missing_regions)}", flush=True)
    print(f"  Missing Services: {len(d.missing_services)}", flush=True)
    print(f"  Extra Services:   {len(d.extra_services)}", flush=True)
    if report.errors:
        print(f"  Scraping Errors:  {len(report.errors)}", flush=True)
    if report.catalog_errors:
        print(f"  Catalog Errors:   {len(report.catalog_errors)}", flush=True)
        for err in report.catalog_errors:
            print(f"    - {err.path}: {err.message}", flush=True)


def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Reconcile VDC region availability against the region catalog")
    parser.add_argument(
        "output",
        nargs="?",
        default=str(DEFAULT_OUTPUT_PATH),
        help="Discrepancy report path (default: %(default)s)",
    )
    parser.add_argument("--data-dir", default=str(DEFAULT_DATA_DIR), help="Region catalog directory")
    parser.add_argument("--max-workers", type=int, default=DEFAULT_MAX_WORKERS, help="Concurrent source fetches")
    parser.add_argument("--max-retries", type=int, default=DEFAULT_MAX_RETRIES, help="Fetch attempts per source")

    args = parser.parse_args(argv)

    def fetch(url: str) -> str:
        return fetch_with_retry(url, max_retries=args.max_retries)

    report = run_reconciliation(
        data_dir=Path(args.data_dir),
        fetch=fetch,
        max_workers=args.max_workers,
    )
    print_summary(report)

    out_path = write_report(report, Path(args.output))
    print(f"\nResults saved to {out_path}", flush=True)

    code = exit_code_for(report)
    if code:
        print("\nDiscrepancies or errors found. Review the output file.", flush=True)
    else:
        print("\nNo discrepancies found. Data is up to date!", flush=True)
    return code


if __name__ == "__main__":
    sys.exit(main())
