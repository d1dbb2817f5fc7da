"""Open-Meteo convective instability forecast fetcher."""

from __future__ import annotations

import logging

from requests import Session

from storm_threat.http import create_session
from storm_threat.models import DailyCape, HourlyInstability, InstabilityForecast
from storm_threat.schemas import OpenMeteoForecast
from storm_threat.scoring import daily_tornado_risk

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

FORECAST_DAYS = 16

HOURLY_PARAMS = [
    "cape",
    "lifted_index",
    "convective_inhibition",
    "dewpoint_2m",
    "wind_gusts_10m",
]
DAILY_PARAMS = ["cape_max", "cape_min", "cape_mean", "wind_gusts_10m_max"]


def _at(values: list[float | None], i: int) -> float:
    """Daily value at ``i``; gaps read as 0 like the upstream dashboards."""
    if i < len(values) and values[i] is not None:
        return float(values[i])
    return 0.0


def parse_forecast(payload: dict) -> InstabilityForecast:
    """Validate an Open-Meteo response and reshape it into an InstabilityForecast."""
    data = OpenMeteoForecast.model_validate(payload)
    hourly = HourlyInstability(
        time=list(data.hourly.time),
        cape=list(data.hourly.cape),
        lifted_index=list(data.hourly.lifted_index),
        cin=list(data.hourly.convective_inhibition),
        dewpoint_f=list(data.hourly.dewpoint_2m),
        wind_gust_mph=list(data.hourly.wind_gusts_10m),
    )

    daily: list[DailyCape] = []
    if data.daily is not None:
        d = data.daily
        for i, date in enumerate(d.time):
            cape_max = _at(d.cape_max, i)
            daily.append(
                DailyCape(
                    date=date,
                    cape_max=cape_max,
                    cape_min=_at(d.cape_min, i),
                    cape_mean=_at(d.cape_mean, i),
                    wind_gust_max=_at(d.wind_gusts_10m_max, i),
                    tornado_risk=daily_tornado_risk(cape_max),
                )
            )

    return InstabilityForecast(
        hourly=hourly,
        daily=daily,
        utc_offset_seconds=data.utc_offset_seconds,
        timezone=data.timezone,
    )


def fetch_instability_forecast(
    latitude: float,
    longitude: float,
    timeout: int = 15,
    session: Session | None = None,
) -> InstabilityForecast:
    """Fetch hourly CAPE/LI/CIN and daily CAPE summaries for 16 days.

    Times are local to the point (``timezone=auto``) so that hourly arrays
    start at local midnight of the issuance day.
    """
    if session is None:
        session = create_session()

    params: dict[str, str | float | int] = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(HOURLY_PARAMS),
        "daily": ",".join(DAILY_PARAMS),
        "temperature_unit": "fahrenheit",
        "wind_speed_unit": "mph",
        "timezone": "auto",
        "forecast_days": FORECAST_DAYS,
    }
    resp = session.get(OPEN_METEO_URL, params=params, timeout=timeout)
    resp.raise_for_status()
    forecast = parse_forecast(resp.json())
    logger.debug(
        "Open-Meteo: %d hourly step(s), %d day(s) for %.2f,%.2f",
        len(forecast.hourly.time),
        len(forecast.daily),
        latitude,
        longitude,
    )
    return forecast
