"""Tests for the help-center page parsers (rowspan tables and Vault tier lists)."""
import pytest

from vdcregions.facts import PROVIDER_AWS, PROVIDER_AZURE
from vdcregions.parsers import is_grouping_token, parse_availability_table, parse_tiered_availability


ROWSPAN_TABLE = """
<table class="Blue_Table">
  <tr>
    <th><p><span>Global Region</span></p></th>
    <th><p><span>Azure Region</span></p></th>
  </tr>
  <tr>
    <td rowspan="3"><p><span>AMER</span></p></td>
    <td><p><span>East US</span></p></td>
  </tr>
  <tr><td><p><span>West US</span></p></td></tr>
  <tr><td><p><span>Central US</span></p></td></tr>
  <tr>
    <td rowspan="2"><p><span>EMEA</span></p></td>
    <td><p><span>North   Europe</span></p></td>
  </tr>
  <tr><td><p><span>UK South</span></p></td></tr>
</table>
"""

GROUPING_ROW_TABLE = """
<table>
  <tr><td>APJ</td></tr>
  <tr><td>Australia East</td></tr>
  <tr><td>Japan East</td></tr>
  <tr><td>Central India</td></tr>
</table>
"""


class TestTableParser:
    def test_rowspan_grouped_rows(self):
        facts = parse_availability_table(ROWSPAN_TABLE, "vdc_m365")
        assert [f.region_name for f in facts] == [
            "East US",
            "West US",
            "Central US",
            "North Europe",
            "UK South",
        ]

    def test_grouping_row_then_continuation_rows(self):
        """1 grouping row + 3 continuation rows -> exactly 3 facts."""
        facts = parse_availability_table(GROUPING_ROW_TABLE, "vdc_entra_id")
        assert len(facts) == 3
        assert all(f.service_key == "vdc_entra_id" for f in facts)
        assert all(f.provider == PROVIDER_AZURE for f in facts)
        assert all(f.region_code is None for f in facts)

    def test_provider_is_fixed_per_source(self):
        facts = parse_availability_table(GROUPING_ROW_TABLE, "vdc_salesforce", provider=PROVIDER_AWS)
        assert {f.provider for f in facts} == {PROVIDER_AWS}

    @pytest.mark.parametrize("label", ["Region Name", "Region", "AWS Region", "Cloud Provider"])
    def test_header_labels_are_skipped(self, label):
        html = f"<table><tr><th>{label}</th></tr><tr><td>Brazil South</td></tr></table>"
        facts = parse_availability_table(html, "vdc_m365")
        assert [f.region_name for f in facts] == ["Brazil South"]

    @pytest.mark.parametrize("markup", ["", "<div>This page has moved.</div>", "<table><tr></tr></table>"])
    def test_restructured_page_yields_no_facts(self, markup):
        assert parse_availability_table(markup, "vdc_m365") == []

    def test_grouping_tokens(self):
        assert is_grouping_token("AMER")
        assert is_grouping_token("emea")
        assert not is_grouping_token("East US")


FLAT_VAULT_PAGE = """
<h1>Vault Regions</h1>
<p>Veeam Data Cloud Vault is available in the following regions.</p>
<h2>Microsoft Azure</h2>
<p><strong>Core Regions</strong></p>
<ul><li>East US</li><li>West Europe</li></ul>
<p><strong>Non-Core Regions</strong></p>
<ul><li>Central India*</li><li>Brazil South</li></ul>
<p>* Advanced edition is not available in these regions.</p>
<h2>Amazon Web Services</h2>
<h3>Core Regions</h3>
<p>Foundation edition:</p>
<ul>
  <li>US East (N. Virginia) (us-east-1)</li>
  <li>Europe (Frankfurt) (eu-central-1)</li>
</ul>
<p>Advanced edition:</p>
<ul>
  <li>US East (N. Virginia) (us-east-1)</li>
  <li>US West (Oregon) (us-west-2)</li>
</ul>
<h3>Non-Core Regions</h3>
<p>Foundation edition:</p>
<ul><li>Asia Pacific (Mumbai) (ap-south-1)</li></ul>
"""

NESTED_VAULT_PAGE = """
<ul>
  <li>Microsoft Azure
    <ul>
      <li>Core Regions<ul><li>East US</li></ul></li>
      <li>Non-Core Regions<ul><li>Central India*</li></ul></li>
    </ul>
  </li>
  <li>AWS
    <ul>
      <li>Core Regions
        <ul>
          <li>Foundation<ul><li>US East (N. Virginia)</li></ul></li>
          <li>Advanced<ul><li>US East (N. Virginia)</li><li>US West (Oregon)</li></ul></li>
        </ul>
      </li>
    </ul>
  </li>
</ul>
"""


def _by_key(facts):
    return {(f.provider, f.tier, f.region_name): f for f in facts}


class TestTieredParser:
    def test_flat_page_fact_count_and_service(self):
        facts = parse_tiered_availability(FLAT_VAULT_PAGE)
        assert len(facts) == 8
        assert all(f.service_key == "vdc_vault" for f in facts)

    def test_azure_unmarked_bullets_get_both_editions(self):
        facts = _by_key(parse_tiered_availability(FLAT_VAULT_PAGE))
        assert facts[(PROVIDER_AZURE, "Core", "East US")].edition == ("Foundation", "Advanced")
        assert facts[(PROVIDER_AZURE, "Non-Core", "Brazil South")].edition == ("Foundation", "Advanced")

    def test_azure_marker_means_foundation_only(self):
        facts = _by_key(parse_tiered_availability(FLAT_VAULT_PAGE))
        fact = facts[(PROVIDER_AZURE, "Non-Core", "Central India")]
        assert fact.edition == ("Foundation",)

    def test_aws_advanced_list_upgrades_foundation_fact(self):
        facts = _by_key(parse_tiered_availability(FLAT_VAULT_PAGE))
        fact = facts[(PROVIDER_AWS, "Core", "US East (N. Virginia)")]
        assert fact.edition == ("Foundation", "Advanced")
        assert fact.region_code == "us-east-1"

    def test_advanced_list_fills_missing_region_code(self):
        html = """
        <h2>AWS</h2>
        <h3>Core Regions</h3>
        <p>Foundation edition:</p>
        <ul><li>Europe (Frankfurt)</li></ul>
        <p>Advanced edition:</p>
        <ul><li>Europe (Frankfurt) (eu-central-1)</li></ul>
        """
        facts = parse_tiered_availability(html)
        assert len(facts) == 1
        fact = facts[0]
        assert fact.region_name == "Europe (Frankfurt)"
        assert fact.region_code == "eu-central-1"
        assert fact.edition == ("Foundation", "Advanced")
        assert (fact.provider, fact.tier, fact.service_key) == (PROVIDER_AWS, "Core", "vdc_vault")

    def test_aws_advanced_only_region(self):
        facts = _by_key(parse_tiered_availability(FLAT_VAULT_PAGE))
        assert facts[(PROVIDER_AWS, "Core", "US West (Oregon)")].edition == ("Advanced",)

    def test_aws_foundation_only_region(self):
        facts = _by_key(parse_tiered_availability(FLAT_VAULT_PAGE))
        assert facts[(PROVIDER_AWS, "Core", "Europe (Frankfurt)")].edition == ("Foundation",)
        assert facts[(PROVIDER_AWS, "Non-Core", "Asia Pacific (Mumbai)")].region_code == "ap-south-1"

    def test_nested_lists(self):
        facts = _by_key(parse_tiered_availability(NESTED_VAULT_PAGE))
        assert len(facts) == 4
        assert facts[(PROVIDER_AZURE, "Core", "East US")].edition == ("Foundation", "Advanced")
        assert facts[(PROVIDER_AZURE, "Non-Core", "Central India")].edition == ("Foundation",)
        assert facts[(PROVIDER_AWS, "Core", "US East (N. Virginia)")].edition == ("Foundation", "Advanced")
        assert facts[(PROVIDER_AWS, "Core", "US West (Oregon)")].edition == ("Advanced",)

    def test_unlabeled_lists_are_ignored(self):
        html = "<ul><li>Home</li><li>Documentation</li></ul><p>No regions listed.</p>"
        assert parse_tiered_availability(html) == []

    @pytest.mark.parametrize("markup", ["", "<p>Vault regions have moved.</p>"])
    def test_restructured_page_yields_no_facts(self, markup):
        assert parse_tiered_availability(markup) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
