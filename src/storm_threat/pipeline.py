"""Aggregator: fan out to every source, join, extract facts, assess, compose."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any

from requests import Session

from storm_threat.cache import SOURCE_TTLS, TTLCache, make_key
from storm_threat.config import ThreatConfig
from storm_threat.errors import InvalidQueryError
from storm_threat.extractors import (
    extract_alert_facts,
    extract_discussion_facts,
    extract_instability_facts,
    extract_outlook_facts,
    extract_report_facts,
)
from storm_threat.fetchers.fema import fetch_nearby_shelters, fetch_state_shelters
from storm_threat.fetchers.nws import fetch_active_alerts, fetch_state_alerts
from storm_threat.fetchers.open_meteo import fetch_instability_forecast
from storm_threat.fetchers.spc_discussions import fetch_discussions
from storm_threat.fetchers.spc_outlook import fetch_day1_outlook
from storm_threat.fetchers.spc_reports import REPORT_SOURCES, fetch_todays_reports
from storm_threat.geo import filter_within_radius
from storm_threat.http import create_session
from storm_threat.models import (
    FactSet,
    OutlookRisk,
    Source,
    SourceResult,
    ThreatReport,
    TornadoDanger,
)
from storm_threat.scoring import assess_immediate, compute_forward_score

logger = logging.getLogger(__name__)

Job = tuple[str, Callable[[], Any]]


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_query(
    latitude: float,
    longitude: float,
    radius_miles: float,
    state_code: str | None = None,
    shelter_radius_miles: float | None = None,
) -> None:
    """Reject bad caller input before any upstream request is made."""
    for name, value, bound in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
        if not _is_number(value) or not math.isfinite(value):
            raise InvalidQueryError(f"{name} must be a finite number, got {value!r}")
        if not -bound <= value <= bound:
            raise InvalidQueryError(f"{name} {value} outside [-{bound:g}, {bound:g}]")
    for name, value in (("radius_miles", radius_miles), ("shelter_radius_miles", shelter_radius_miles)):
        if value is None:
            continue
        if not _is_number(value) or not math.isfinite(value) or value < 0:
            raise InvalidQueryError(f"{name} must be a finite number >= 0, got {value!r}")
    if state_code is not None and not (
        isinstance(state_code, str) and len(state_code) == 2 and state_code.isalpha()
    ):
        raise InvalidQueryError(f"state_code must be two letters, got {state_code!r}")


class ThreatAggregator:
    """Compose a ThreatReport for one location from all upstream sources.

    Every source is submitted to a thread pool before any result is awaited
    and the call joins on all of them, so the wall time is roughly the
    slowest single source. A failing source never fails the call: its fact
    is left as None and it is listed in ``partial_failures``.
    """

    def __init__(
        self,
        config: ThreatConfig | None = None,
        cache: TTLCache | None = None,
        session: Session | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or ThreatConfig()
        self.cache = cache if cache is not None else TTLCache()
        # One attempt per source; no retry adapter.
        self.session = session or create_session(retries=0, user_agent=self.config.user_agent)
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

    def clear_cache(self) -> None:
        self.cache.clear()

    def _fetch_source(
        self, source: Source, key: str, fetch_fn: Callable[[], Any]
    ) -> SourceResult[Any]:
        """Cache lookup, fetch on miss, store on success. Never raises."""
        cached = self.cache.get(key)
        if cached is not None:
            return SourceResult(source=source, value=cached, from_cache=True)
        try:
            value = fetch_fn()
        except Exception as exc:
            logger.warning("Source %s failed: %s", source.value, exc, exc_info=True)
            return SourceResult(source=source, error=exc)
        self.cache.set(key, value, SOURCE_TTLS[source])
        return SourceResult(source=source, value=value)

    def _jobs(
        self,
        latitude: float,
        longitude: float,
        state_code: str,
        shelter_radius: float,
        include_state_alerts: bool,
        include_state_shelters: bool,
    ) -> dict[Source, Job]:
        cfg, session = self.config, self.session
        timeout = cfg.request_timeout
        jobs: dict[Source, Job] = {
            Source.ALERTS: (
                make_key(Source.ALERTS, latitude, longitude),
                lambda: fetch_active_alerts(latitude, longitude, timeout=timeout, session=session),
            ),
            Source.SHELTERS: (
                make_key(Source.SHELTERS, latitude, longitude, radius=shelter_radius),
                lambda: fetch_nearby_shelters(
                    latitude, longitude, shelter_radius, timeout=timeout, session=session
                ),
            ),
            Source.INSTABILITY: (
                make_key(Source.INSTABILITY, latitude, longitude),
                lambda: fetch_instability_forecast(
                    latitude, longitude, timeout=timeout, session=session
                ),
            ),
            Source.OUTLOOK: (
                make_key(Source.OUTLOOK),
                lambda: fetch_day1_outlook(timeout=timeout, session=session),
            ),
            Source.DISCUSSIONS: (
                make_key(Source.DISCUSSIONS),
                lambda: fetch_discussions(
                    timeout=timeout, session=session, total_timeout=cfg.bulk_request_timeout
                ),
            ),
        }
        # Report CSVs are nationwide; the distance filter runs after the cache.
        for report_type, source in REPORT_SOURCES.items():
            jobs[source] = (
                make_key(source),
                lambda rt=report_type: fetch_todays_reports(rt, timeout=timeout, session=session),
            )
        if include_state_alerts:
            jobs[Source.STATE_ALERTS] = (
                make_key(Source.STATE_ALERTS, state=state_code),
                lambda: fetch_state_alerts(state_code, timeout=timeout, session=session),
            )
        if include_state_shelters:
            jobs[Source.STATE_SHELTERS] = (
                make_key(Source.STATE_SHELTERS, state=state_code),
                lambda: fetch_state_shelters(
                    state_code, timeout=cfg.bulk_request_timeout, session=session
                ),
            )
        return jobs

    def assess(
        self,
        latitude: float,
        longitude: float,
        radius_miles: float | None = None,
        state_code: str | None = None,
        *,
        shelter_radius_miles: float | None = None,
        include_state_alerts: bool = False,
        include_state_shelters: bool = False,
    ) -> ThreatReport:
        """Run a full threat assessment for one location."""
        cfg = self.config
        radius = cfg.report_radius_miles if radius_miles is None else radius_miles
        shelter_radius = (
            cfg.shelter_radius_miles if shelter_radius_miles is None else shelter_radius_miles
        )
        validate_query(latitude, longitude, radius, state_code, shelter_radius)
        state = (state_code or cfg.state_code).upper()

        started = time.perf_counter()
        jobs = self._jobs(
            latitude,
            longitude,
            state,
            shelter_radius,
            include_state_alerts or cfg.include_state_alerts,
            include_state_shelters or cfg.include_state_shelters,
        )
        logger.info(
            "Assessing (%.4f, %.4f): %d source(s), radius %.0f mi, state %s",
            latitude, longitude, len(jobs), radius, state,
        )

        with ThreadPoolExecutor(max_workers=cfg.max_workers) as pool:
            futures = {
                source: pool.submit(self._fetch_source, source, key, fn)
                for source, (key, fn) in jobs.items()
            }
            results: dict[Source, SourceResult[Any]] = {
                source: future.result() for source, future in futures.items()
            }

        now = self._clock()
        extract_failures: list[Source] = []

        def extract(source: Source, fn: Callable[[Any], Any]) -> Any:
            """Apply ``fn`` to a source's value; a raising extractor fails that source."""
            result = results.get(source)
            if result is None or not result.ok:
                return None
            try:
                return fn(result.value)
            except Exception as exc:
                logger.warning(
                    "Source %s returned unusable data: %s", source.value, exc, exc_info=True
                )
                extract_failures.append(source)
                self.cache.discard(jobs[source][0])
                return None

        nearby_reports = {
            source: extract(
                source, lambda reports: filter_within_radius(reports, latitude, longitude, radius)
            )
            for source in REPORT_SOURCES.values()
        }

        facts = FactSet(
            alerts=extract(Source.ALERTS, lambda alerts: extract_alert_facts(alerts, now)),
            reports=extract_report_facts(nearby_reports, now),
            discussions=extract(
                Source.DISCUSSIONS,
                lambda discussions: extract_discussion_facts(discussions, state, now),
            ),
            outlook=extract(
                Source.OUTLOOK,
                lambda zones: extract_outlook_facts(zones, latitude, longitude, now),
            ),
            instability=extract(
                Source.INSTABILITY,
                lambda forecast: extract_instability_facts(forecast, now, now=now),
            ),
        )

        immediate = assess_immediate(facts, method=cfg.cascade)
        forward = compute_forward_score(facts.instability)

        attempted = list(jobs)
        failures = [
            source
            for source in attempted
            if not results[source].ok or source in extract_failures
        ]
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        if failures:
            logger.info(
                "Partial failures: %s", ", ".join(source.value for source in failures)
            )
        logger.info(
            "Threat %s, forward %s (%d) in %d ms",
            immediate.level.name, forward.level.name, forward.score, elapsed_ms,
        )

        return ThreatReport(
            latitude=latitude,
            longitude=longitude,
            fetched_at=now,
            fetch_duration_ms=elapsed_ms,
            threat_level=immediate.level,
            threat_reasons=immediate.reasons,
            forward_score=forward,
            alerts=extract(Source.ALERTS, list) if facts.alerts is not None else [],
            state_alerts=extract(Source.STATE_ALERTS, list) or [],
            tornado_reports=nearby_reports[Source.TORNADO_REPORTS] or [],
            wind_reports=nearby_reports[Source.WIND_REPORTS] or [],
            hail_reports=nearby_reports[Source.HAIL_REPORTS] or [],
            nearby_shelters=extract(Source.SHELTERS, list) or [],
            state_shelters=extract(Source.STATE_SHELTERS, list) or [],
            outlook_risk=facts.outlook.spc_outlook_risk if facts.outlook else OutlookRisk.NONE,
            mcd_watch_probability=(
                facts.discussions.mcd_watch_probability if facts.discussions else None
            ),
            facts=facts,
            attempted_sources=attempted,
            partial_failures=failures,
        )

    def check_tornado_danger(self, latitude: float, longitude: float) -> TornadoDanger:
        """Alerts-only poll: is any tornado alert active at this point?"""
        validate_query(latitude, longitude, 0.0)
        result = self._fetch_source(
            Source.ALERTS,
            make_key(Source.ALERTS, latitude, longitude),
            lambda: fetch_active_alerts(
                latitude, longitude, timeout=self.config.request_timeout, session=self.session
            ),
        )
        if not result.ok:
            return TornadoDanger(has_danger=False, error=str(result.error))
        # Alerts are already ordered most severe first.
        tornado = [alert for alert in result.value if alert.is_tornado]
        return TornadoDanger(
            has_danger=bool(tornado),
            alerts=tornado,
            most_urgent=tornado[0] if tornado else None,
        )
