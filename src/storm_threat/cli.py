"""CLI interface using Typer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from storm_threat import __version__
from storm_threat.config import CascadeMethod, OutputFormat, ThreatConfig
from storm_threat.errors import InvalidQueryError
from storm_threat.exporters import export_json, export_markdown
from storm_threat.models import ThreatLevel, ThreatReport
from storm_threat.pipeline import ThreatAggregator

Exporter = Callable[[ThreatReport, Path], Path]

EXPORTERS: dict[str, Exporter] = {
    "json": export_json,
    "markdown": export_markdown,
}

LEVEL_STYLES: dict[ThreatLevel, str] = {
    ThreatLevel.EXTREME: "bold red",
    ThreatLevel.HIGH: "red",
    ThreatLevel.ELEVATED: "dark_orange",
    ThreatLevel.MODERATE: "yellow",
    ThreatLevel.LOW: "green",
    ThreatLevel.NONE: "dim",
}

app = typer.Typer(
    name="storm-threat",
    help="Real-time tornado and severe-weather threat assessment for a location.",
    add_completion=False,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"storm-threat {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Storm Threat: tornado threat level, 16-day outlook, and nearby shelters."""


def _print_report(report: ThreatReport) -> None:
    style = LEVEL_STYLES[report.threat_level]
    fs = report.forward_score

    console.print()
    table = Table(title=f"Storm Threat at {report.latitude:.4f}, {report.longitude:.4f}")
    table.add_column("Measure", style="bold")
    table.add_column("Value")
    table.add_row("Threat level", f"[{style}]{report.threat_level.name}[/{style}]")
    table.add_row("Forward score", f"{fs.score} ({fs.level.name})")
    table.add_row("SPC outlook", report.outlook_risk.name)
    table.add_row(
        "MCD watch probability",
        f"{report.mcd_watch_probability}%" if report.mcd_watch_probability is not None else "-",
    )
    table.add_row("Active alerts", str(len(report.alerts)))
    table.add_row(
        "Reports today (T/W/H)",
        f"{len(report.tornado_reports)}/{len(report.wind_reports)}/{len(report.hail_reports)}",
    )
    table.add_row("Open shelters nearby", str(len(report.nearby_shelters)))
    console.print(table)

    for reason in report.threat_reasons:
        console.print(f"  - {reason}")
    console.print(f"\n{fs.recommendation}")

    if report.degraded:
        console.print("[red]All sources failed; threat level is unknown.[/red]")
    elif report.partial_failures:
        names = ", ".join(source.value for source in report.partial_failures)
        console.print(f"[yellow]Unavailable sources:[/yellow] {names}")


@app.command()
def assess(
    latitude: Annotated[float, typer.Argument(help="Latitude in decimal degrees.")],
    longitude: Annotated[float, typer.Argument(help="Longitude in decimal degrees.")],
    radius: Annotated[
        float | None,
        typer.Option("--radius", "-r", help="Storm report radius in miles."),
    ] = None,
    shelter_radius: Annotated[
        float | None,
        typer.Option("--shelter-radius", help="Shelter search radius in miles."),
    ] = None,
    state: Annotated[
        str | None,
        typer.Option("--state", "-s", help="Two-letter state code for discussions."),
    ] = None,
    state_alerts: Annotated[
        bool,
        typer.Option("--state-alerts", help="Also fetch state-wide alerts."),
    ] = False,
    cascade: Annotated[
        CascadeMethod,
        typer.Option(
            "--cascade",
            help="Immediate-level rules: 'alerts' (default) or 'predictive'.",
        ),
    ] = "alerts",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the report to this file."),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format: json, markdown."),
    ] = "json",
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Assess the current storm threat for a location."""
    _configure_logging(verbose)

    aggregator = ThreatAggregator(ThreatConfig(cascade=cascade))
    try:
        report = aggregator.assess(
            latitude,
            longitude,
            radius,
            state,
            shelter_radius_miles=shelter_radius,
            include_state_alerts=state_alerts,
        )
    except InvalidQueryError as exc:
        console.print(f"[red]Invalid input:[/red] {exc}")
        raise typer.Exit(code=1) from None

    _print_report(report)

    if output is not None:
        EXPORTERS[output_format](report, output)
        console.print(f"\n{output_format.upper()} written to [bold]{output}[/bold]")


@app.command()
def check(
    latitude: Annotated[float, typer.Argument(help="Latitude in decimal degrees.")],
    longitude: Annotated[float, typer.Argument(help="Longitude in decimal degrees.")],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Quick poll: is a tornado alert active at this location?"""
    _configure_logging(verbose)

    try:
        danger = ThreatAggregator().check_tornado_danger(latitude, longitude)
    except InvalidQueryError as exc:
        console.print(f"[red]Invalid input:[/red] {exc}")
        raise typer.Exit(code=1) from None

    if danger.error is not None:
        console.print(f"[yellow]Alert check failed:[/yellow] {danger.error}")
        raise typer.Exit(code=2)
    if danger.has_danger and danger.most_urgent is not None:
        console.print(f"[bold red]TORNADO DANGER:[/bold red] {danger.most_urgent.event}")
        if danger.most_urgent.headline:
            console.print(danger.most_urgent.headline)
    else:
        console.print("[green]No tornado alerts in effect.[/green]")


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on.")] = 8000,
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    console.print(f"Serving storm-threat API on [bold]http://{host}:{port}[/bold]")
    uvicorn.run("storm_threat.api:app", host=host, port=port, log_level="info")
