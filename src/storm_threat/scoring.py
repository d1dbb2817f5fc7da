"""Threat assessment: immediate-level cascade and 16-day forward score."""

from __future__ import annotations

from dataclasses import dataclass

from storm_threat.config import CascadeMethod
from storm_threat.models import (
    FactSet,
    ForwardLevel,
    ForwardScore,
    InstabilityFacts,
    OutlookRisk,
    ThreatAssessment,
    ThreatLevel,
)

MCD_HIGH_PROBABILITY = 80
CAPE_HIGH = 2500.0
CAPE_ELEVATED = 1000.0

FORWARD_RECOMMENDATIONS: dict[ForwardLevel, str] = {
    ForwardLevel.EXTREME: "DANGEROUS CONDITIONS EXPECTED - Be ready to shelter immediately",
    ForwardLevel.HIGH: "Elevated tornado risk - Have shelter plan ready",
    ForwardLevel.MODERATE: "Some tornado potential - Stay weather aware",
    ForwardLevel.LOW: "Low tornado risk - Monitor conditions",
    ForwardLevel.MINIMAL: "No significant tornado threat",
}


@dataclass(frozen=True)
class _Signals:
    """FactSet flattened with missing sources read as false / zero / absent."""

    tornado_warning: bool
    tornado_watch: bool
    severe_tstorm_warning: bool
    any_watch: bool
    any_alert: bool
    tornado_reports: int
    mcd_probability: int | None
    outlook: OutlookRisk
    cape_7day: float | None

    @classmethod
    def from_facts(cls, facts: FactSet) -> _Signals:
        a, r, d, o, i = (
            facts.alerts,
            facts.reports,
            facts.discussions,
            facts.outlook,
            facts.instability,
        )
        return cls(
            tornado_warning=bool(a and a.has_tornado_warning),
            tornado_watch=bool(a and a.has_tornado_watch),
            severe_tstorm_warning=bool(a and a.has_severe_thunderstorm_warning),
            any_watch=bool(a and a.has_any_watch),
            any_alert=bool(a and a.has_any_alert),
            tornado_reports=r.nearby_tornado_count if r else 0,
            mcd_probability=d.mcd_watch_probability if d else None,
            outlook=o.spc_outlook_risk if o else OutlookRisk.NONE,
            cape_7day=i.cape_max_7day if i else None,
        )


def _result(level: ThreatLevel, reasons: list[str]) -> ThreatAssessment:
    return ThreatAssessment(level=level, score=int(level), reasons=reasons)


def _report_reason(count: int) -> str:
    return f"{count} tornado report(s) nearby today"


def _tornado_rules(s: _Signals) -> ThreatAssessment | None:
    """Rules 1-2: tornado warning, then tornado watch with confirming reports."""
    if s.tornado_warning:
        return _result(ThreatLevel.EXTREME, ["Tornado Warning in effect"])
    if s.tornado_watch and s.tornado_reports > 0:
        return _result(
            ThreatLevel.HIGH,
            ["Tornado Watch in effect", _report_reason(s.tornado_reports)],
        )
    return None


def _watch_or_report_rules(s: _Signals) -> ThreatAssessment | None:
    """Tornado watch or reports alone, then severe thunderstorm warning."""
    if s.tornado_watch or s.tornado_reports > 0:
        reasons = []
        if s.tornado_watch:
            reasons.append("Tornado Watch in effect")
        if s.tornado_reports > 0:
            reasons.append(_report_reason(s.tornado_reports))
        return _result(ThreatLevel.ELEVATED, reasons)
    if s.severe_tstorm_warning:
        return _result(ThreatLevel.ELEVATED, ["Severe Thunderstorm Warning in effect"])
    return None


def _remaining_alert_rules(s: _Signals) -> ThreatAssessment:
    if s.any_watch:
        return _result(ThreatLevel.MODERATE, ["Weather watch in effect"])
    if s.any_alert:
        return _result(ThreatLevel.LOW, ["Weather advisory or alert in effect"])
    return _result(ThreatLevel.NONE, [])


def _predictive_high(s: _Signals) -> ThreatAssessment | None:
    if s.mcd_probability is not None and s.mcd_probability >= MCD_HIGH_PROBABILITY:
        return _result(
            ThreatLevel.HIGH,
            [f"Mesoscale discussion: {s.mcd_probability}% chance of watch issuance"],
        )
    reasons = []
    if s.outlook >= OutlookRisk.MDT:
        reasons.append(f"SPC {s.outlook.name} risk outlook")
    if s.cape_7day is not None and s.cape_7day >= CAPE_HIGH:
        reasons.append(f"7-day max CAPE {s.cape_7day:.0f} J/kg")
    return _result(ThreatLevel.HIGH, reasons) if reasons else None


def _predictive_elevated(s: _Signals) -> ThreatAssessment | None:
    reasons = []
    if s.outlook == OutlookRisk.ENH:
        reasons.append("SPC ENH risk outlook")
    if s.cape_7day is not None and s.cape_7day >= CAPE_ELEVATED:
        reasons.append(f"7-day max CAPE {s.cape_7day:.0f} J/kg")
    return _result(ThreatLevel.ELEVATED, reasons) if reasons else None


def assess_immediate(facts: FactSet, method: CascadeMethod = "alerts") -> ThreatAssessment:
    """Compute the immediate threat level. The first matching rule wins.

    ``alerts`` (default):
        tornado warning > tornado watch + reports > tornado watch or reports
        > severe thunderstorm warning > any watch > any alert > none.

    ``predictive`` adds, after rules 1-2 (tornado warning, tornado watch +
    reports) and ahead of the plain-watch rule:
        MCD watch probability >= 80 -> HIGH
        outlook MDT/HIGH or 7-day CAPE >= 2500 -> HIGH
        (tornado watch or reports, severe thunderstorm warning -> ELEVATED)
        outlook ENH or 7-day CAPE >= 1000 -> ELEVATED

    Missing facts read as false or zero; this function never raises on
    absent data.
    """
    s = _Signals.from_facts(facts)
    if method == "alerts":
        return (
            _tornado_rules(s)
            or _watch_or_report_rules(s)
            or _remaining_alert_rules(s)
        )
    if method == "predictive":
        return (
            _tornado_rules(s)
            or _predictive_high(s)
            or _watch_or_report_rules(s)
            or _predictive_elevated(s)
            or _remaining_alert_rules(s)
        )
    raise ValueError(f"Unknown cascade method: {method}")


# -- Forward score -----------------------------------------------------------


def daily_tornado_risk(cape_max: float) -> ForwardLevel:
    """Band a single day's maximum CAPE."""
    if cape_max >= 4000:
        return ForwardLevel.EXTREME
    if cape_max >= 2500:
        return ForwardLevel.HIGH
    if cape_max >= 1000:
        return ForwardLevel.MODERATE
    if cape_max >= 300:
        return ForwardLevel.LOW
    return ForwardLevel.MINIMAL


def cape_points(cape: float | None) -> tuple[int, str | None]:
    """Points for the 7-day max CAPE. Bands are exclusive; highest wins."""
    if cape is None:
        return 0, None
    if cape >= 4000:
        return 40, f"EXTREME CAPE: {cape:.0f} J/kg (7-day max)"
    if cape >= 2500:
        return 30, f"HIGH CAPE: {cape:.0f} J/kg (7-day max)"
    if cape >= 1000:
        return 20, f"MODERATE CAPE: {cape:.0f} J/kg (7-day max)"
    if cape >= 300:
        return 10, f"LOW CAPE: {cape:.0f} J/kg (7-day max)"
    return 0, None


def lifted_index_points(li: float | None) -> tuple[int, str | None]:
    if li is None:
        return 0, None
    if li <= -6:
        return 25, f"VERY UNSTABLE: LI {li:g}°C"
    if li <= -3:
        return 15, f"UNSTABLE: LI {li:g}°C"
    if li < 0:
        return 5, f"MARGINAL INSTABILITY: LI {li:g}°C"
    return 0, None


def moisture_points(dewpoint_f: float | None) -> tuple[int, str | None]:
    """Thresholds are in °C; Open-Meteo is queried in °F."""
    if dewpoint_f is None:
        return 0, None
    dewpoint_c = (dewpoint_f - 32) * 5 / 9
    if dewpoint_c >= 20:
        return 15, f"HIGH MOISTURE: Dewpoint {dewpoint_f:.0f}°F"
    if dewpoint_c >= 15:
        return 10, f"GOOD MOISTURE: Dewpoint {dewpoint_f:.0f}°F"
    return 0, None


def wind_gust_points(gust_mph: float | None) -> tuple[int, str | None]:
    if gust_mph is None:
        return 0, None
    if gust_mph >= 50:
        return 15, f"STRONG GUSTS: {gust_mph:.0f} mph (16-day max)"
    if gust_mph >= 30:
        return 10, f"MODERATE GUSTS: {gust_mph:.0f} mph (16-day max)"
    return 0, None


def cin_points(cin: float | None) -> tuple[int, str | None]:
    """Weak inhibition lets storms initiate; an absent CIN scores nothing."""
    if cin is None:
        return 0, None
    if cin < 25:
        return 10, f"WEAK CAP: CIN {cin:.0f} J/kg (storms develop easily)"
    if cin < 100:
        return 5, f"MODERATE CAP: CIN {cin:.0f} J/kg"
    return 0, None


def high_risk_day_points(count: int) -> tuple[int, str | None]:
    if count >= 3:
        return 10, f"MULTIPLE HIGH-RISK DAYS: {count} days with CAPE >= 1000"
    return 0, None


def forward_level(score: int) -> ForwardLevel:
    if score >= 70:
        return ForwardLevel.EXTREME
    if score >= 50:
        return ForwardLevel.HIGH
    if score >= 30:
        return ForwardLevel.MODERATE
    if score >= 15:
        return ForwardLevel.LOW
    return ForwardLevel.MINIMAL


def compute_forward_score(instability: InstabilityFacts | None) -> ForwardScore:
    """Additive 16-day score from instability facts.

    Terms are evaluated in a fixed order (CAPE, lifted index, moisture,
    gusts, CIN, high-risk days) and each firing band appends one reason.
    With no instability facts the score is 0 / MINIMAL.
    """
    if instability is None:
        return ForwardScore(
            score=0,
            level=ForwardLevel.MINIMAL,
            reasons=[],
            recommendation=FORWARD_RECOMMENDATIONS[ForwardLevel.MINIMAL],
        )

    terms = [
        cape_points(instability.cape_max_7day or instability.cape_max_24hr),
        lifted_index_points(instability.lifted_index_min),
        moisture_points(instability.dewpoint_max_f),
        wind_gust_points(instability.max_wind_gust_16day),
        cin_points(instability.cin_current),
        high_risk_day_points(instability.high_risk_day_count),
    ]
    score = sum(points for points, _ in terms)
    reasons = [reason for _, reason in terms if reason is not None]
    level = forward_level(score)
    return ForwardScore(
        score=score,
        level=level,
        reasons=reasons,
        recommendation=FORWARD_RECOMMENDATIONS[level],
    )
