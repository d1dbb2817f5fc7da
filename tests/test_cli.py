"""Tests for the Typer CLI."""

from __future__ import annotations

import json
from unittest.mock import patch

import responses
from typer.testing import CliRunner

from conftest import ALERTS_URL, NORMAN_LAT, NORMAN_LON
from storm_threat import __version__
from storm_threat.cli import app
from storm_threat.models import TornadoDanger

runner = CliRunner()

# Longitudes are negative; "--" stops Click reading them as options.
COORDS = ["--", str(NORMAN_LAT), str(NORMAN_LON)]


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestAssessCommand:
    def test_prints_summary(self, sample_report):
        with patch("storm_threat.cli.ThreatAggregator.assess", return_value=sample_report):
            result = runner.invoke(app, ["assess", *COORDS])
        assert result.exit_code == 0
        assert "HIGH" in result.output
        assert "Tornado Watch in effect" in result.output
        assert "spc_outlook" in result.output

    def test_writes_json_output(self, sample_report, tmp_path):
        output = tmp_path / "report.json"
        with patch("storm_threat.cli.ThreatAggregator.assess", return_value=sample_report):
            result = runner.invoke(
                app,
                ["assess", "--output", str(output), *COORDS],
            )
        assert result.exit_code == 0
        assert json.loads(output.read_text(encoding="utf-8"))["threat_level"] == "HIGH"

    def test_writes_markdown_output(self, sample_report, tmp_path):
        output = tmp_path / "report.md"
        with patch("storm_threat.cli.ThreatAggregator.assess", return_value=sample_report):
            result = runner.invoke(
                app,
                ["assess", "-o", str(output), "--format", "markdown", *COORDS],
            )
        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").startswith("# Storm Threat Report")

    def test_options_forwarded(self, sample_report):
        with patch(
            "storm_threat.cli.ThreatAggregator.assess", return_value=sample_report
        ) as mock_assess:
            runner.invoke(
                app,
                ["assess", "--radius", "25", "--state", "KS", "--state-alerts", *COORDS],
            )
        args, kwargs = mock_assess.call_args
        assert args == (NORMAN_LAT, NORMAN_LON, 25.0, "KS")
        assert kwargs["include_state_alerts"] is True

    def test_invalid_latitude_exits_1(self):
        result = runner.invoke(app, ["assess", "--", "95", "-97"])
        assert result.exit_code == 1
        assert "Invalid input" in result.output

    def test_invalid_cascade_rejected(self):
        result = runner.invoke(
            app, ["assess", "--cascade", "vibes", *COORDS]
        )
        assert result.exit_code != 0

    def test_full_run_against_mocked_sources(self, mock_all_sources):
        result = runner.invoke(app, ["assess", *COORDS])
        assert result.exit_code == 0
        assert "EXTREME" in result.output


class TestCheckCommand:
    def test_danger(self, mock_all_sources):
        result = runner.invoke(app, ["check", *COORDS])
        assert result.exit_code == 0
        assert "TORNADO DANGER" in result.output

    def test_all_clear(self):
        danger = TornadoDanger(has_danger=False)
        with patch(
            "storm_threat.cli.ThreatAggregator.check_tornado_danger", return_value=danger
        ):
            result = runner.invoke(app, ["check", *COORDS])
        assert result.exit_code == 0
        assert "No tornado alerts" in result.output

    @responses.activate
    def test_fetch_error_exits_2(self):
        responses.add(responses.GET, ALERTS_URL, status=503)
        result = runner.invoke(app, ["check", *COORDS])
        assert result.exit_code == 2
        assert "Alert check failed" in result.output


class TestServeCommand:
    def test_runs_uvicorn_with_options(self):
        with patch("uvicorn.run") as run:
            result = runner.invoke(app, ["serve", "--host", "0.0.0.0", "--port", "9000"])
        assert result.exit_code == 0
        run.assert_called_once_with(
            "storm_threat.api:app", host="0.0.0.0", port=9000, log_level="info"
        )
