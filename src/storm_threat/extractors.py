"""Reduce normalized upstream records to the facts the threat engine reads."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

import numpy as np

from storm_threat.geo import point_in_rings
from storm_threat.models import (
    Alert,
    AlertFacts,
    DailyCape,
    DiscussionFacts,
    InstabilityFacts,
    InstabilityForecast,
    MesoscaleDiscussion,
    OutlookFacts,
    OutlookRisk,
    OutlookZone,
    ReportFacts,
    Source,
    StormReport,
)

HIGH_RISK_CAPE = 1000.0  # J/kg
WINDOW_HOURS = 24
SHORT_RANGE_DAYS = 7

STATE_NAMES: dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island",
    "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas",
    "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}


def _event_contains(alerts: Iterable[Alert], needle: str) -> bool:
    return any(needle in a.event.lower() for a in alerts)


def extract_alert_facts(alerts: Sequence[Alert], fetched_at: datetime) -> AlertFacts:
    """Flag warnings and watches by case-insensitive substring match on the event."""
    return AlertFacts(
        source=Source.ALERTS,
        fetched_at=fetched_at,
        has_tornado_warning=_event_contains(alerts, "tornado warning"),
        has_tornado_watch=_event_contains(alerts, "tornado watch"),
        has_severe_thunderstorm_warning=_event_contains(alerts, "severe thunderstorm warning"),
        has_any_watch=_event_contains(alerts, "watch"),
        has_any_alert=len(alerts) > 0,
    )


def extract_report_facts(
    nearby: dict[Source, Sequence[StormReport] | None],
    fetched_at: datetime,
) -> ReportFacts | None:
    """Count nearby reports per type; a type whose source failed counts as zero.

    Returns None when every report source failed.
    """
    available = tuple(src for src, reports in nearby.items() if reports is not None)
    if not available:
        return None

    def count(src: Source) -> int:
        return len(nearby.get(src) or ())

    return ReportFacts(
        sources=available,
        fetched_at=fetched_at,
        nearby_tornado_count=count(Source.TORNADO_REPORTS),
        nearby_wind_count=count(Source.WIND_REPORTS),
        nearby_hail_count=count(Source.HAIL_REPORTS),
    )


def discussion_affects(mcd: MesoscaleDiscussion, state_code: str) -> bool:
    """A discussion affects a state if it lists the abbreviation or names the state."""
    code = state_code.upper()
    if code in mcd.states:
        return True
    name = STATE_NAMES.get(code)
    return bool(name and mcd.raw_text and name.lower() in mcd.raw_text.lower())


def extract_discussion_facts(
    discussions: Sequence[MesoscaleDiscussion],
    state_code: str,
    fetched_at: datetime,
) -> DiscussionFacts:
    """Highest watch probability among discussions affecting ``state_code``."""
    affecting = [mcd for mcd in discussions if discussion_affects(mcd, state_code)]
    probabilities = [m.watch_probability for m in affecting if m.watch_probability is not None]
    return DiscussionFacts(
        source=Source.DISCUSSIONS,
        fetched_at=fetched_at,
        mcd_watch_probability=max(probabilities) if probabilities else None,
        affecting_count=len(affecting),
    )


def extract_outlook_facts(
    zones: Sequence[OutlookZone],
    latitude: float,
    longitude: float,
    fetched_at: datetime,
) -> OutlookFacts:
    """Highest categorical risk among zones whose polygon covers the point."""
    risk = OutlookRisk.NONE
    for zone in zones:
        if zone.risk > risk and zone.rings and point_in_rings(latitude, longitude, zone.rings):
            risk = zone.risk
    return OutlookFacts(source=Source.OUTLOOK, fetched_at=fetched_at, spc_outlook_risk=risk)


def _as_array(values: Sequence[float | None]) -> np.ndarray:
    return np.array([np.nan if v is None else v for v in values], dtype=float)


def _nanmax(values: Sequence[float | None]) -> float | None:
    arr = _as_array(values)
    if arr.size == 0 or np.all(np.isnan(arr)):
        return None
    return float(np.nanmax(arr))


def _nanmin(values: Sequence[float | None]) -> float | None:
    arr = _as_array(values)
    if arr.size == 0 or np.all(np.isnan(arr)):
        return None
    return float(np.nanmin(arr))


def _value_at(values: Sequence[float | None], index: int) -> float | None:
    if 0 <= index < len(values) and values[index] is not None:
        return float(values[index])
    return None


def current_hour_index(forecast: InstabilityForecast, now: datetime) -> int:
    """Index of the current local hour in the hourly arrays.

    Prefers an exact match on the forecast's local timestamps (which also
    covers a cached forecast read after local midnight); otherwise falls back
    to the local wall-clock hour, the index when arrays start at midnight.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(timezone.utc) + timedelta(seconds=forecast.utc_offset_seconds)
    stamp = local.strftime("%Y-%m-%dT%H:00")
    try:
        return forecast.hourly.time.index(stamp)
    except ValueError:
        return local.hour


def extract_instability_facts(
    forecast: InstabilityForecast,
    fetched_at: datetime,
    now: datetime | None = None,
) -> InstabilityFacts:
    """Current-hour and peak instability metrics from a 16-day forecast.

    Current-hour values are None when the hour index falls outside the
    hourly arrays; they are never defaulted to zero.
    """
    if now is None:
        now = datetime.now(tz=timezone.utc)
    hourly = forecast.hourly
    idx = current_hour_index(forecast, now)
    window = slice(idx, idx + WINDOW_HOURS)

    daily_cape = [day.cape_max for day in forecast.daily]
    high_risk: tuple[DailyCape, ...] = tuple(
        day for day in forecast.daily if day.cape_max >= HIGH_RISK_CAPE
    )

    return InstabilityFacts(
        source=Source.INSTABILITY,
        fetched_at=fetched_at,
        cape_current=_value_at(hourly.cape, idx),
        cape_max_24hr=_nanmax(hourly.cape[window]),
        cape_max_7day=_nanmax(daily_cape[:SHORT_RANGE_DAYS]),
        cape_max_16day=_nanmax(daily_cape),
        lifted_index_min=_nanmin(hourly.lifted_index[window]),
        cin_current=_value_at(hourly.cin, idx),
        dewpoint_max_f=_nanmax(hourly.dewpoint_f[window]),
        max_wind_gust_16day=_nanmax([day.wind_gust_max for day in forecast.daily]),
        high_risk_day_count=len(high_risk),
        high_risk_days=high_risk,
    )
