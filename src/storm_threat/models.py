"""Data models for the storm threat aggregator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ThreatLevel(IntEnum):
    """Immediate threat level, ordered by severity."""

    NONE = 0
    LOW = 1
    MODERATE = 2
    ELEVATED = 3
    HIGH = 4
    EXTREME = 5


class ForwardLevel(IntEnum):
    """Label for the 16-day forward-looking score."""

    MINIMAL = 0
    LOW = 1
    MODERATE = 2
    HIGH = 3
    EXTREME = 4


class OutlookRisk(IntEnum):
    """SPC categorical outlook code, NONE lowest."""

    NONE = 0
    TSTM = 1
    MRGL = 2
    SLGT = 3
    ENH = 4
    MDT = 5
    HIGH = 6


class Source(str, Enum):
    """Upstream data sources, named as they appear in partial_failures."""

    ALERTS = "nws_alerts"
    STATE_ALERTS = "nws_state_alerts"
    TORNADO_REPORTS = "spc_tornado_reports"
    WIND_REPORTS = "spc_wind_reports"
    HAIL_REPORTS = "spc_hail_reports"
    SHELTERS = "fema_shelters"
    STATE_SHELTERS = "fema_state_shelters"
    INSTABILITY = "open_meteo_instability"
    OUTLOOK = "spc_outlook"
    DISCUSSIONS = "spc_discussions"


# -- Normalized upstream records ------------------------------------------


@dataclass(frozen=True)
class Alert:
    """A single active NWS alert."""

    id: str
    event: str
    headline: str | None = None
    description: str | None = None
    instruction: str | None = None
    severity: str = "Unknown"
    certainty: str | None = None
    urgency: str | None = None
    onset: datetime | None = None
    expires: datetime | None = None
    sender_name: str | None = None
    area_description: str = ""

    @property
    def is_tornado(self) -> bool:
        return "tornado" in self.event.lower()

    @property
    def is_severe_thunderstorm(self) -> bool:
        return "severe thunderstorm" in self.event.lower()


@dataclass(frozen=True)
class StormReport:
    """One row from today's SPC storm report CSVs."""

    report_type: str  # tornado | wind | hail
    time: str
    latitude: float
    longitude: float
    location: str = ""
    county: str = ""
    state: str = ""
    comments: str = ""
    magnitude: str | float | int | None = None  # F-scale, knots, or inches
    speed_mph: int | None = None
    distance_miles: float | None = None


@dataclass(frozen=True)
class Shelter:
    """An emergency shelter from the FEMA National Shelter System."""

    id: int | None
    name: str
    latitude: float | None
    longitude: float | None
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    county: str = ""
    capacity_total: int | None = None
    capacity_current: int | None = None
    capacity_available: int | None = None
    status: str = ""
    is_open: bool = False
    accepts_pets: bool = False
    ada_accessible: bool = False
    organization: str = ""
    last_updated: datetime | None = None
    distance_miles: float | None = None


@dataclass(frozen=True)
class HourlyInstability:
    """Hourly forecast arrays; entries may be None where the model has no value."""

    time: list[str] = field(default_factory=list)
    cape: list[float | None] = field(default_factory=list)
    lifted_index: list[float | None] = field(default_factory=list)
    cin: list[float | None] = field(default_factory=list)
    dewpoint_f: list[float | None] = field(default_factory=list)
    wind_gust_mph: list[float | None] = field(default_factory=list)


@dataclass(frozen=True)
class DailyCape:
    """One forecast day's CAPE summary."""

    date: str
    cape_max: float
    cape_min: float = 0.0
    cape_mean: float = 0.0
    wind_gust_max: float = 0.0
    tornado_risk: ForwardLevel = ForwardLevel.MINIMAL


@dataclass(frozen=True)
class InstabilityForecast:
    """Parsed Open-Meteo forecast covering up to 16 days."""

    hourly: HourlyInstability
    daily: list[DailyCape]
    utc_offset_seconds: int = 0
    timezone: str = "GMT"


@dataclass(frozen=True)
class OutlookZone:
    """A categorical outlook polygon."""

    risk: OutlookRisk
    label: str
    rings: list[list[list[float]]] = field(default_factory=list)
    valid: str | None = None
    expire: str | None = None
    issue: str | None = None


@dataclass(frozen=True)
class MesoscaleDiscussion:
    """Fields scraped from an SPC mesoscale discussion page."""

    number: str
    concerning: str | None = None
    affected_areas: str | None = None
    states: list[str] = field(default_factory=list)
    watch_probability: int | None = None
    mentions_tornado: bool = False
    raw_text: str | None = None


# -- Facts -----------------------------------------------------------------


@dataclass(frozen=True)
class AlertFacts:
    source: Source
    fetched_at: datetime
    has_tornado_warning: bool = False
    has_tornado_watch: bool = False
    has_severe_thunderstorm_warning: bool = False
    has_any_watch: bool = False
    has_any_alert: bool = False


@dataclass(frozen=True)
class ReportFacts:
    """Nearby report counts, merged from the per-type report sources that answered."""

    sources: tuple[Source, ...]
    fetched_at: datetime
    nearby_tornado_count: int = 0
    nearby_wind_count: int = 0
    nearby_hail_count: int = 0


@dataclass(frozen=True)
class DiscussionFacts:
    source: Source
    fetched_at: datetime
    mcd_watch_probability: int | None = None
    affecting_count: int = 0


@dataclass(frozen=True)
class OutlookFacts:
    source: Source
    fetched_at: datetime
    spc_outlook_risk: OutlookRisk = OutlookRisk.NONE


@dataclass(frozen=True)
class InstabilityFacts:
    source: Source
    fetched_at: datetime
    cape_current: float | None = None
    cape_max_24hr: float | None = None
    cape_max_7day: float | None = None
    cape_max_16day: float | None = None
    lifted_index_min: float | None = None
    cin_current: float | None = None
    dewpoint_max_f: float | None = None
    max_wind_gust_16day: float | None = None
    high_risk_day_count: int = 0
    high_risk_days: tuple[DailyCape, ...] = ()


@dataclass(frozen=True)
class FactSet:
    """Merged facts for one request. A member is None when its source failed."""

    alerts: AlertFacts | None = None
    reports: ReportFacts | None = None
    discussions: DiscussionFacts | None = None
    outlook: OutlookFacts | None = None
    instability: InstabilityFacts | None = None


# -- Cache / results -------------------------------------------------------


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclass(frozen=True)
class SourceResult(Generic[T]):
    """Outcome of one source fetch: either a value or the error that replaced it."""

    source: Source
    value: T | None = None
    error: Exception | None = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ThreatAssessment:
    level: ThreatLevel
    score: int
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ForwardScore:
    score: int
    level: ForwardLevel
    reasons: list[str] = field(default_factory=list)
    recommendation: str = ""


@dataclass
class TornadoDanger:
    """Result of the lightweight tornado-only poll."""

    has_danger: bool
    alerts: list[Alert] = field(default_factory=list)
    most_urgent: Alert | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_json_dict)


@dataclass
class ThreatReport:
    """Composed result of one aggregator call."""

    latitude: float
    longitude: float
    fetched_at: datetime
    fetch_duration_ms: int
    threat_level: ThreatLevel
    threat_reasons: list[str]
    forward_score: ForwardScore
    alerts: list[Alert] = field(default_factory=list)
    state_alerts: list[Alert] = field(default_factory=list)
    tornado_reports: list[StormReport] = field(default_factory=list)
    wind_reports: list[StormReport] = field(default_factory=list)
    hail_reports: list[StormReport] = field(default_factory=list)
    nearby_shelters: list[Shelter] = field(default_factory=list)
    state_shelters: list[Shelter] = field(default_factory=list)
    outlook_risk: OutlookRisk = OutlookRisk.NONE
    mcd_watch_probability: int | None = None
    facts: FactSet = field(default_factory=FactSet)
    attempted_sources: list[Source] = field(default_factory=list)
    partial_failures: list[Source] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when no attempted source succeeded: "unknown", not "all clear"."""
        return bool(self.attempted_sources) and len(self.partial_failures) == len(
            self.attempted_sources
        )

    @property
    def tornado_alerts(self) -> list[Alert]:
        return [a for a in self.alerts if a.is_tornado]

    @property
    def severe_thunderstorm_alerts(self) -> list[Alert]:
        return [a for a in self.alerts if a.is_severe_thunderstorm]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the outbound JSON-safe shape."""
        fs = self.forward_score
        data = {
            "location": {"latitude": self.latitude, "longitude": self.longitude},
            "fetched_at": self.fetched_at,
            "fetch_duration_ms": self.fetch_duration_ms,
            "threat_level": self.threat_level,
            "threat_reasons": list(self.threat_reasons),
            "forward_score": {
                "score": fs.score,
                "level": fs.level,
                "reasons": list(fs.reasons),
                "recommendation": fs.recommendation,
            },
            "alerts": {
                "all": [asdict(a) for a in self.alerts],
                "tornado": [asdict(a) for a in self.tornado_alerts],
                "severe_thunderstorm": [asdict(a) for a in self.severe_thunderstorm_alerts],
                "state": [asdict(a) for a in self.state_alerts],
                "count": len(self.alerts),
            },
            "storm_reports": {
                "tornado": len(self.tornado_reports),
                "wind": len(self.wind_reports),
                "hail": len(self.hail_reports),
                "nearby": {
                    "tornado": [asdict(r) for r in self.tornado_reports],
                    "wind": [asdict(r) for r in self.wind_reports],
                    "hail": [asdict(r) for r in self.hail_reports],
                },
            },
            "shelters": {
                "nearby": [asdict(s) for s in self.nearby_shelters],
                "state": [asdict(s) for s in self.state_shelters],
                "count": len(self.nearby_shelters),
            },
            "outlook_risk": self.outlook_risk,
            "mcd_watch_probability": self.mcd_watch_probability,
            "partial_failures": list(self.partial_failures),
            "degraded": self.degraded,
        }
        return _jsonable(data)


def _jsonable(value: Any) -> Any:
    """Recursively convert enums and datetimes into JSON-friendly values."""
    if isinstance(value, Source):
        return value.value
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _json_dict(items: list[tuple[str, Any]]) -> dict[str, Any]:
    return {k: _jsonable(v) for k, v in items}
