"""Exporters for threat reports."""

from storm_threat.exporters.json_export import export_json
from storm_threat.exporters.markdown_export import export_markdown, render_markdown

__all__ = ["export_json", "export_markdown", "render_markdown"]
