"""Tests for the export modules."""

from __future__ import annotations

import json
from dataclasses import replace

from storm_threat.exporters.json_export import export_json
from storm_threat.exporters.markdown_export import export_markdown, render_markdown


class TestJSONExport:
    def test_exports_report_dict(self, sample_report, tmp_path):
        output = tmp_path / "report.json"
        export_json(sample_report, output)

        with open(output, encoding="utf-8") as f:
            data = json.load(f)

        assert data["threat_level"] == "HIGH"
        assert data["forward_score"]["level"] == "MODERATE"
        assert data["forward_score"]["score"] == 35
        assert data["location"] == {"latitude": 35.2226, "longitude": -97.4395}
        assert data["fetched_at"] == "2025-04-15T20:00:00+00:00"

    def test_nested_records_serialized(self, sample_report, tmp_path):
        output = tmp_path / "report.json"
        export_json(sample_report, output)
        data = json.loads(output.read_text(encoding="utf-8"))

        assert data["alerts"]["count"] == 1
        assert data["alerts"]["tornado"][0]["event"] == "Tornado Watch"
        assert data["alerts"]["tornado"][0]["expires"] == "2025-04-16T02:00:00+00:00"
        assert data["storm_reports"]["tornado"] == 2
        assert data["storm_reports"]["nearby"]["tornado"][1]["magnitude"] == "EF1"
        assert data["shelters"]["nearby"][0]["capacity_available"] == 150
        assert data["outlook_risk"] == "ENH"
        assert data["mcd_watch_probability"] == 80

    def test_partial_failures_use_source_names(self, sample_report, tmp_path):
        output = tmp_path / "report.json"
        export_json(sample_report, output)
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["partial_failures"] == ["spc_outlook"]
        assert data["degraded"] is False

    def test_returns_output_path(self, sample_report, tmp_path):
        output = tmp_path / "report.json"
        assert export_json(sample_report, output) == output


class TestMarkdownExport:
    def test_contains_summary_table(self, sample_report):
        md = render_markdown(sample_report)
        assert "# Storm Threat Report" in md
        assert "| Immediate threat | HIGH |" in md
        assert "| 16-day forward score | 35 (MODERATE) |" in md
        assert "| MCD watch probability | 80% |" in md
        assert "**Recommendation**: Some tornado potential - Stay weather aware" in md

    def test_lists_reasons(self, sample_report):
        md = render_markdown(sample_report)
        assert "- Tornado Watch in effect" in md
        assert "- UNSTABLE: LI -4°C" in md

    def test_alert_and_report_tables(self, sample_report):
        md = render_markdown(sample_report)
        assert "| Tornado Watch | Severe | Expected |" in md
        assert "| Tornado | 2 | 1.9 |" in md
        assert "| Hail | 0 | - |" in md

    def test_shelter_table(self, sample_report):
        md = render_markdown(sample_report)
        assert "| Norman High School | Norman | 1.2 | 150 | Yes | Yes |" in md

    def test_unavailable_sources(self, sample_report):
        md = render_markdown(sample_report)
        assert "## Unavailable Sources" in md
        assert "- spc_outlook" in md

    def test_empty_sections(self, sample_report):
        bare = replace(sample_report, alerts=[], nearby_shelters=[], partial_failures=[])
        md = render_markdown(bare)
        assert "No active alerts for this location." in md
        assert "No open shelters within range." in md
        assert "Unavailable Sources" not in md

    def test_degraded_warning(self, sample_report):
        degraded = replace(
            sample_report, partial_failures=list(sample_report.attempted_sources)
        )
        assert "every data source failed" in render_markdown(degraded)

    def test_writes_file(self, sample_report, tmp_path):
        output = tmp_path / "report.md"
        result = export_markdown(sample_report, output)
        assert result == output
        assert output.read_text(encoding="utf-8").startswith("# Storm Threat Report")
