"""Shared fixtures for storm_threat tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import responses

from storm_threat.cache import TTLCache
from storm_threat.config import ThreatConfig
from storm_threat.fetchers.fema import FEMA_SHELTERS_URL
from storm_threat.fetchers.nws import NWS_BASE_URL
from storm_threat.fetchers.open_meteo import OPEN_METEO_URL
from storm_threat.fetchers.spc_discussions import SPC_MCD_URL
from storm_threat.fetchers.spc_outlook import DAY1_CATEGORICAL_LAYER, SPC_OUTLOOK_URL
from storm_threat.fetchers.spc_reports import REPORT_FILES, SPC_REPORTS_URL
from storm_threat.models import (
    Alert,
    FactSet,
    ForwardLevel,
    ForwardScore,
    OutlookRisk,
    Shelter,
    Source,
    StormReport,
    ThreatLevel,
    ThreatReport,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Norman, OK
NORMAN_LAT = 35.2226
NORMAN_LON = -97.4395

# 20:00 UTC is 15:00 CDT; the sample forecast starts at local midnight.
FIXED_NOW = datetime(2025, 4, 15, 20, 0, tzinfo=timezone.utc)
CDT_OFFSET = -5 * 3600

ALERTS_URL = f"{NWS_BASE_URL}/alerts/active"
OUTLOOK_QUERY_URL = f"{SPC_OUTLOOK_URL}/{DAY1_CATEGORICAL_LAYER}/query"
MD_INDEX_URL = f"{SPC_MCD_URL}/"

# Every source the aggregator attempts by default.
DEFAULT_SOURCES = {
    Source.ALERTS,
    Source.TORNADO_REPORTS,
    Source.WIND_REPORTS,
    Source.HAIL_REPORTS,
    Source.SHELTERS,
    Source.INSTABILITY,
    Source.OUTLOOK,
    Source.DISCUSSIONS,
}


def open_meteo_payload(
    daily_cape: list[float] | None = None,
    hourly_cape: float = 500.0,
    lifted_index: float = 2.0,
    cin: float | None = 150.0,
    dewpoint_f: float = 55.0,
    daily_gust: float = 20.0,
    start: str = "2025-04-15",
    days: int = 16,
) -> dict:
    """Build an Open-Meteo response with flat hourly values.

    ``daily_cape`` fills the first days of ``cape_max``; the rest are 0.
    """
    day0 = datetime.fromisoformat(start)
    hours = days * 24
    times = [(day0 + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M") for h in range(hours)]
    dates = [(day0 + timedelta(days=d)).strftime("%Y-%m-%d") for d in range(days)]
    cape_max = list(daily_cape or []) + [0.0] * (days - len(daily_cape or []))
    return {
        "latitude": NORMAN_LAT,
        "longitude": NORMAN_LON,
        "utc_offset_seconds": CDT_OFFSET,
        "timezone": "America/Chicago",
        "hourly_units": {"cape": "J/kg", "dewpoint_2m": "°F", "wind_gusts_10m": "mp/h"},
        "hourly": {
            "time": times,
            "cape": [hourly_cape] * hours,
            "lifted_index": [lifted_index] * hours,
            "convective_inhibition": [cin] * hours,
            "dewpoint_2m": [dewpoint_f] * hours,
            "wind_gusts_10m": [daily_gust] * hours,
        },
        "daily": {
            "time": dates,
            "cape_max": cape_max,
            "cape_min": [0.0] * days,
            "cape_mean": [c / 2 for c in cape_max],
            "wind_gusts_10m_max": [daily_gust] * days,
        },
    }


def register_all_sources(
    rsps: responses.RequestsMock,
    alerts: dict,
    torn_csv: str,
    wind_csv: str,
    hail_csv: str,
    shelters: dict,
    forecast: dict,
    outlook: dict,
    md_index: str,
    md_pages: dict[str, str],
) -> None:
    """Register mocked HTTP responses for every default source on ``rsps``."""
    rsps.add(responses.GET, ALERTS_URL, json=alerts, status=200)
    for report_type, csv_text in (("tornado", torn_csv), ("wind", wind_csv), ("hail", hail_csv)):
        rsps.add(
            responses.GET,
            f"{SPC_REPORTS_URL}/{REPORT_FILES[report_type]}",
            body=csv_text,
            status=200,
            content_type="text/csv",
        )
    rsps.add(responses.GET, FEMA_SHELTERS_URL, json=shelters, status=200)
    rsps.add(responses.GET, OPEN_METEO_URL, json=forecast, status=200)
    rsps.add(responses.GET, OUTLOOK_QUERY_URL, json=outlook, status=200)
    rsps.add(
        responses.GET, MD_INDEX_URL, body=md_index, status=200, content_type="text/html"
    )
    for md_id, html in md_pages.items():
        rsps.add(
            responses.GET,
            f"{SPC_MCD_URL}/{md_id}.html",
            body=html,
            status=200,
            content_type="text/html",
        )


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_alerts_response() -> dict:
    return json.loads((FIXTURES_DIR / "nws_alerts_sample.json").read_text())


@pytest.fixture
def sample_torn_csv() -> str:
    return (FIXTURES_DIR / "spc_torn_sample.csv").read_text()


@pytest.fixture
def sample_wind_csv() -> str:
    return (FIXTURES_DIR / "spc_wind_sample.csv").read_text()


@pytest.fixture
def sample_hail_csv() -> str:
    return (FIXTURES_DIR / "spc_hail_sample.csv").read_text()


@pytest.fixture
def sample_shelters_response() -> dict:
    return json.loads((FIXTURES_DIR / "fema_shelters_sample.json").read_text())


@pytest.fixture
def sample_outlook_response() -> dict:
    return json.loads((FIXTURES_DIR / "spc_outlook_sample.json").read_text())


@pytest.fixture
def sample_md_index() -> str:
    return (FIXTURES_DIR / "spc_md_index_sample.html").read_text()


@pytest.fixture
def sample_md_pages() -> dict[str, str]:
    return {
        "md0412": (FIXTURES_DIR / "spc_md0412_sample.html").read_text(),
        "md0411": (FIXTURES_DIR / "spc_md0411_sample.html").read_text(),
    }


@pytest.fixture
def sample_forecast_response() -> dict:
    """A forecast scoring 20 (CAPE) + 15 (LI) = 35, i.e. MODERATE."""
    return open_meteo_payload(daily_cape=[1500.0, 800.0, 400.0], lifted_index=-4.0)


@pytest.fixture
def mock_all_sources(
    sample_alerts_response: dict,
    sample_torn_csv: str,
    sample_wind_csv: str,
    sample_hail_csv: str,
    sample_shelters_response: dict,
    sample_forecast_response: dict,
    sample_outlook_response: dict,
    sample_md_index: str,
    sample_md_pages: dict[str, str],
):
    """Activate ``responses`` with every default source answering."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        register_all_sources(
            rsps,
            sample_alerts_response,
            sample_torn_csv,
            sample_wind_csv,
            sample_hail_csv,
            sample_shelters_response,
            sample_forecast_response,
            sample_outlook_response,
            sample_md_index,
            sample_md_pages,
        )
        yield rsps


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def default_config() -> ThreatConfig:
    return ThreatConfig(state_code="OK")


@pytest.fixture
def cache(fake_clock: FakeClock) -> TTLCache:
    return TTLCache(clock=fake_clock)


@pytest.fixture
def sample_report() -> ThreatReport:
    """Pre-built ThreatReport for exporter and CLI tests."""
    return ThreatReport(
        latitude=NORMAN_LAT,
        longitude=NORMAN_LON,
        fetched_at=FIXED_NOW,
        fetch_duration_ms=842,
        threat_level=ThreatLevel.HIGH,
        threat_reasons=["Tornado Watch in effect", "2 tornado report(s) nearby today"],
        forward_score=ForwardScore(
            score=35,
            level=ForwardLevel.MODERATE,
            reasons=["MODERATE CAPE: 1500 J/kg (7-day max)", "UNSTABLE: LI -4°C"],
            recommendation="Some tornado potential - Stay weather aware",
        ),
        alerts=[
            Alert(
                id="urn:oid:watch",
                event="Tornado Watch",
                headline="Tornado Watch 112 in effect until 9 PM CDT",
                severity="Severe",
                urgency="Expected",
                expires=datetime(2025, 4, 16, 2, 0, tzinfo=timezone.utc),
                area_description="Cleveland, OK; McClain, OK",
            )
        ],
        tornado_reports=[
            StormReport(
                report_type="tornado",
                time="1830",
                latitude=35.25,
                longitude=-97.44,
                location="2 N Norman",
                county="Cleveland",
                state="OK",
                magnitude="UNK",
                distance_miles=1.9,
            ),
            StormReport(
                report_type="tornado",
                time="1915",
                latitude=35.34,
                longitude=-97.49,
                location="Moore",
                county="Cleveland",
                state="OK",
                magnitude="EF1",
                distance_miles=8.6,
            ),
        ],
        nearby_shelters=[
            Shelter(
                id=101,
                name="Norman High School",
                latitude=35.219,
                longitude=-97.4601,
                city="Norman",
                state="OK",
                capacity_total=200,
                capacity_current=50,
                capacity_available=150,
                status="OPEN",
                is_open=True,
                accepts_pets=True,
                ada_accessible=True,
                last_updated=datetime(2025, 4, 15, 18, 0, tzinfo=timezone.utc),
                distance_miles=1.2,
            )
        ],
        outlook_risk=OutlookRisk.ENH,
        mcd_watch_probability=80,
        facts=FactSet(),
        attempted_sources=sorted(DEFAULT_SOURCES, key=lambda s: s.value),
        partial_failures=[Source.OUTLOOK],
    )
