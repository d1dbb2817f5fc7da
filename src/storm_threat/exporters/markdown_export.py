"""Markdown exporter for threat reports."""

from __future__ import annotations

from pathlib import Path

from storm_threat.models import ThreatReport


def _cell(value: object) -> str:
    if value is None or value == "":
        return "-"
    return str(value).replace("|", "/")


def render_markdown(report: ThreatReport) -> str:
    """Render a threat report as a Markdown document."""
    fs = report.forward_score
    timestamp = report.fetched_at.strftime("%Y-%m-%d %H:%M UTC")
    lines: list[str] = [
        "# Storm Threat Report",
        f"Location: {report.latitude:.4f}, {report.longitude:.4f}",
        f"Generated: {timestamp} ({report.fetch_duration_ms} ms)",
        "",
    ]

    if report.degraded:
        lines.extend([
            "> **Warning**: every data source failed. The threat level below"
            " is unknown, not all clear.",
            "",
        ])

    # -- Threat Summary --
    lines.extend([
        "## Threat Summary",
        "",
        "| Measure | Value |",
        "|:--------|:------|",
        f"| Immediate threat | {report.threat_level.name} |",
        f"| 16-day forward score | {fs.score} ({fs.level.name}) |",
        f"| SPC outlook | {report.outlook_risk.name} |",
        f"| MCD watch probability | {_cell(report.mcd_watch_probability)}"
        f"{'%' if report.mcd_watch_probability is not None else ''} |",
        "",
        f"**Recommendation**: {fs.recommendation}",
        "",
    ])

    if report.threat_reasons:
        lines.extend(["### Immediate threat reasons", ""])
        lines.extend(f"- {reason}" for reason in report.threat_reasons)
        lines.append("")
    if fs.reasons:
        lines.extend(["### Forward score factors", ""])
        lines.extend(f"- {reason}" for reason in fs.reasons)
        lines.append("")

    # -- Active Alerts --
    lines.extend(["## Active Alerts", ""])
    if report.alerts:
        lines.extend([
            "| Event | Severity | Urgency | Expires | Area |",
            "|:------|:---------|:--------|:--------|:-----|",
        ])
        for alert in report.alerts:
            expires = alert.expires.strftime("%Y-%m-%d %H:%M") if alert.expires else None
            lines.append(
                f"| {_cell(alert.event)} | {_cell(alert.severity)}"
                f" | {_cell(alert.urgency)} | {_cell(expires)}"
                f" | {_cell(alert.area_description)} |"
            )
    else:
        lines.append("No active alerts for this location.")
    if report.state_alerts:
        lines.extend(["", f"State-wide alerts: {len(report.state_alerts)}"])
    lines.append("")

    # -- Storm Reports --
    lines.extend([
        "## Storm Reports Today (nearby)",
        "",
        "| Type | Count | Closest (mi) |",
        "|:-----|------:|-------------:|",
    ])
    for label, reports in (
        ("Tornado", report.tornado_reports),
        ("Wind", report.wind_reports),
        ("Hail", report.hail_reports),
    ):
        closest = reports[0].distance_miles if reports else None
        lines.append(f"| {label} | {len(reports)} | {_cell(closest)} |")
    lines.append("")

    # -- Shelters --
    lines.extend(["## Open Shelters", ""])
    if report.nearby_shelters:
        lines.extend([
            "| Shelter | City | Distance (mi) | Available | Pets | ADA |",
            "|:--------|:-----|--------------:|----------:|:-----|:----|",
        ])
        for shelter in report.nearby_shelters:
            lines.append(
                f"| {_cell(shelter.name)} | {_cell(shelter.city)}"
                f" | {_cell(shelter.distance_miles)}"
                f" | {_cell(shelter.capacity_available)}"
                f" | {'Yes' if shelter.accepts_pets else 'No'}"
                f" | {'Yes' if shelter.ada_accessible else 'No'} |"
            )
    else:
        lines.append("No open shelters within range.")
    lines.append("")

    if report.partial_failures:
        lines.extend(["## Unavailable Sources", ""])
        lines.extend(f"- {source.value}" for source in report.partial_failures)
        lines.append("")

    return "\n".join(lines)


def export_markdown(report: ThreatReport, output_path: Path) -> Path:
    """Export a threat report as Markdown."""
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(render_markdown(report))
    return output_path
