"""End-to-end tests for the reconciliation run and CLI, with fetching faked."""
import json

import pytest

from vdcregions import pipeline
from vdcregions.reconciliation import Discrepancies
from vdcregions.sources import PARSER_TABLE, PARSER_TIERED, FetchError, Source, SourceFetchError


M365_PAGE = """
<table>
  <tr><th>Global Region</th><th>Azure Region</th></tr>
  <tr><td rowspan="2">AMER</td><td>East US</td></tr>
  <tr><td>Brand New Region</td></tr>
</table>
"""

VAULT_PAGE = """
<h2>Microsoft Azure</h2>
<p>Core Regions</p>
<ul><li>East US</li></ul>
"""

EASTUS_YAML = """
id: azure-eastus
name: East US (Virginia)
provider: Azure
coords: [37.37, -79.82]
services:
  vdc_m365: true
  vdc_vault:
    - {edition: Foundation, tier: Core}
    - {edition: Advanced, tier: Core}
"""

SOURCES = {
    "vdc_m365": Source("vdc_m365", "https://example.test/m365", PARSER_TABLE, "Azure"),
    "vdc_entra_id": Source("vdc_entra_id", "https://example.test/entra", PARSER_TABLE, "Azure"),
    "vdc_vault": Source("vdc_vault", "https://example.test/vault", PARSER_TIERED),
}

PAGES = {
    "https://example.test/m365": M365_PAGE,
    "https://example.test/vault": VAULT_PAGE,
}


def fake_fetch(url, **kwargs):
    if url not in PAGES:
        raise SourceFetchError("HTTP 500: Internal Server Error")
    return PAGES[url]


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "regions" / "azure"
    d.mkdir(parents=True)
    (d / "azure_eastus.yaml").write_text(EASTUS_YAML, encoding="utf-8")
    return tmp_path / "regions"


class TestScrapeSources:
    def test_partial_failure_is_isolated(self):
        facts, errors = pipeline.scrape_sources(SOURCES, fetch=fake_fetch, max_workers=3)

        assert [f.service_key for f in facts] == ["vdc_m365", "vdc_m365", "vdc_vault"]
        assert errors == [
            FetchError("vdc_entra_id", "https://example.test/entra", "HTTP 500: Internal Server Error")
        ]

    def test_non_fetch_errors_propagate(self):
        def broken(url, **kwargs):
            raise ValueError("boom")

        with pytest.raises(ValueError):
            pipeline.scrape_sources(SOURCES, fetch=broken)

    def test_no_sources(self):
        assert pipeline.scrape_sources({}, fetch=fake_fetch) == ([], [])


class TestRunReconciliation:
    def test_report_contents(self, data_dir):
        report = pipeline.run_reconciliation(data_dir=data_dir, sources=SOURCES, fetch=fake_fetch)

        assert report.scraped_count == 3
        assert report.current_count == 1
        d = report.discrepancies
        assert [m.region_name for m in d.missing_regions] == ["Brand New Region"]
        assert d.missing_services == []
        assert d.extra_services == []
        assert len(report.errors) == 1
        assert pipeline.exit_code_for(report) == 1

    def test_zero_facts_zero_regions_exits_clean(self, tmp_path):
        report = pipeline.run_reconciliation(data_dir=tmp_path, sources={}, fetch=fake_fetch)

        assert report.scraped_count == 0
        assert report.current_count == 0
        assert report.discrepancies.total == 0
        assert pipeline.exit_code_for(report) == 0

    def test_report_shape(self, tmp_path):
        report = pipeline.DiscrepancyReport(
            timestamp="2026-01-01T00:00:00Z",
            scraped_count=0,
            current_count=0,
            discrepancies=Discrepancies(),
        )
        out = pipeline.write_report(report, tmp_path / "nested" / "report.json")
        data = json.loads(out.read_text(encoding="utf-8"))
        assert set(data) == {"timestamp", "scrapedCount", "currentCount", "discrepancies", "errors"}
        assert data["discrepancies"] == {"missingRegions": [], "missingServices": [], "extraServices": []}


class TestMain:
    def test_writes_report_to_positional_path(self, data_dir, tmp_path, monkeypatch):
        monkeypatch.setattr(pipeline, "SOURCES", {"vdc_m365": SOURCES["vdc_m365"]})
        monkeypatch.setattr(pipeline, "fetch_with_retry", fake_fetch)
        out = tmp_path / "out" / "report.json"

        code = pipeline.main([str(out), "--data-dir", str(data_dir)])

        assert code == 1
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["scrapedCount"] == 2
        assert data["currentCount"] == 1
        assert data["errors"] == []
        assert data["discrepancies"]["missingRegions"][0]["regionName"] == "Brand New Region"
        assert data["discrepancies"]["missingRegions"][0]["source"] == "https://example.test/m365"

    def test_clean_run_exits_zero(self, tmp_path, monkeypatch):
        monkeypatch.setattr(pipeline, "SOURCES", {})
        out = tmp_path / "report.json"
        empty = tmp_path / "regions"
        empty.mkdir()

        assert pipeline.main([str(out), "--data-dir", str(empty)]) == 0
        assert out.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
