"""SPC "today" storm report CSV fetcher."""

from __future__ import annotations

import logging

import pandas as pd
from requests import Session

from storm_threat.errors import MalformedPayloadError
from storm_threat.http import create_session
from storm_threat.models import Source, StormReport

logger = logging.getLogger(__name__)

SPC_REPORTS_URL = "https://www.spc.noaa.gov/climo/reports"

REPORT_FILES: dict[str, str] = {
    "tornado": "today_torn.csv",
    "wind": "today_wind.csv",
    "hail": "today_hail.csv",
}

REPORT_SOURCES: dict[str, Source] = {
    "tornado": Source.TORNADO_REPORTS,
    "wind": Source.WIND_REPORTS,
    "hail": Source.HAIL_REPORTS,
}

# Time,F_Scale|Speed|Size,Location,County,State,Lat,Lon,Comments
_COLUMNS = ["time", "magnitude", "location", "county", "state", "lat", "lon", "comments"]

KNOTS_TO_MPH = 1.151


def _split_row(line: str) -> list[str]:
    """Split a CSV line into exactly eight fields.

    Comments are free text and may contain unquoted commas, so everything
    past the seventh separator belongs to the comment.
    """
    fields = [f.strip() for f in line.split(",", len(_COLUMNS) - 1)]
    return fields + [""] * (len(_COLUMNS) - len(fields))


def _to_int(value: str) -> int | None:
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return None


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def parse_storm_reports(csv_text: str, report_type: str) -> list[StormReport]:
    """Parse one SPC report CSV into StormReports.

    Rows with missing or non-numeric coordinates are dropped. Magnitude is
    the F/EF rating for tornadoes ("UNK" when blank), knots for wind, and
    the size as published for hail.
    """
    if report_type not in REPORT_FILES:
        raise ValueError(f"Invalid report type {report_type!r}. Use: {', '.join(REPORT_FILES)}")
    if not csv_text.strip():
        return []
    if csv_text.lstrip().startswith("<"):
        raise MalformedPayloadError(REPORT_SOURCES[report_type].value, "expected CSV, got HTML")

    rows = [
        _split_row(line)
        for line in csv_text.strip().splitlines()
        if line.strip() and not line.startswith("Time")
    ]
    if not rows:
        return []
    df = pd.DataFrame.from_records(rows, columns=_COLUMNS)
    df["lat"] = pd.to_numeric(df["lat"], errors="coerce")
    df["lon"] = pd.to_numeric(df["lon"], errors="coerce")
    df = df.dropna(subset=["lat", "lon"])

    reports: list[StormReport] = []
    for _, row in df.iterrows():
        raw_mag = str(row["magnitude"]).strip()
        magnitude: str | int | float | None
        speed_mph: int | None = None
        if report_type == "tornado":
            magnitude = raw_mag or "UNK"
        elif report_type == "wind":
            magnitude = _to_int(raw_mag)
            speed_mph = round(magnitude * KNOTS_TO_MPH) if magnitude else None
        else:
            magnitude = _to_float(raw_mag)
        reports.append(
            StormReport(
                report_type=report_type,
                time=str(row["time"]).strip(),
                latitude=float(row["lat"]),
                longitude=float(row["lon"]),
                location=str(row["location"]).strip(),
                county=str(row["county"]).strip(),
                state=str(row["state"]).strip(),
                comments=str(row["comments"]).strip(),
                magnitude=magnitude,
                speed_mph=speed_mph,
            )
        )
    return reports


def fetch_todays_reports(
    report_type: str = "tornado",
    timeout: int = 15,
    session: Session | None = None,
) -> list[StormReport]:
    """Download today's SPC reports of one type (tornado, wind or hail)."""
    if report_type not in REPORT_FILES:
        raise ValueError(f"Invalid report type {report_type!r}. Use: {', '.join(REPORT_FILES)}")
    if session is None:
        session = create_session()

    resp = session.get(f"{SPC_REPORTS_URL}/{REPORT_FILES[report_type]}", timeout=timeout)
    resp.raise_for_status()
    reports = parse_storm_reports(resp.text, report_type)
    logger.debug("SPC: %d %s report(s) today", len(reports), report_type)
    return reports
