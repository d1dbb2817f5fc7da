"""JSON exporter for threat reports."""

from __future__ import annotations

import json
from pathlib import Path

from storm_threat.models import ThreatReport


def export_json(
    report: ThreatReport,
    output_path: Path,
    indent: int = 2,
) -> Path:
    """Export a threat report to a JSON file."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=indent, ensure_ascii=False)
    return output_path
