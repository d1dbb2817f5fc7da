"""National Weather Service active-alerts fetcher."""

from __future__ import annotations

import logging

from requests import Session

from storm_threat.http import create_session
from storm_threat.models import Alert
from storm_threat.schemas import NWSAlertCollection

logger = logging.getLogger(__name__)

NWS_BASE_URL = "https://api.weather.gov"

SEVERITY_ORDER: dict[str, int] = {
    "Extreme": 0,
    "Severe": 1,
    "Moderate": 2,
    "Minor": 3,
    "Unknown": 4,
}


def severity_rank(severity: str | None) -> int:
    """Sort key for alert severity; unrecognized values sort with Unknown."""
    return SEVERITY_ORDER.get(severity or "Unknown", SEVERITY_ORDER["Unknown"])


def parse_alerts(payload: dict) -> list[Alert]:
    """Convert an NWS GeoJSON FeatureCollection into Alerts, most severe first."""
    collection = NWSAlertCollection.model_validate(payload)
    alerts = [
        Alert(
            id=props.id,
            event=props.event,
            headline=props.headline,
            description=props.description,
            instruction=props.instruction,
            severity=props.severity or "Unknown",
            certainty=props.certainty,
            urgency=props.urgency,
            onset=props.onset,
            expires=props.expires,
            sender_name=props.sender_name,
            area_description=props.area_desc or "",
        )
        for props in (feat.properties for feat in collection.features)
    ]
    alerts.sort(key=lambda a: severity_rank(a.severity))
    return alerts


def _get_alerts(params: dict[str, str], timeout: int, session: Session | None) -> list[Alert]:
    if session is None:
        session = create_session()
    resp = session.get(
        f"{NWS_BASE_URL}/alerts/active",
        params=params,
        headers={"Accept": "application/geo+json"},
        timeout=timeout,
    )
    resp.raise_for_status()
    return parse_alerts(resp.json())


def fetch_active_alerts(
    latitude: float,
    longitude: float,
    timeout: int = 15,
    session: Session | None = None,
) -> list[Alert]:
    """Fetch alerts in effect at a point."""
    alerts = _get_alerts({"point": f"{latitude},{longitude}"}, timeout, session)
    logger.debug("NWS: %d active alert(s) at %.4f,%.4f", len(alerts), latitude, longitude)
    return alerts


def fetch_state_alerts(
    state_code: str,
    timeout: int = 15,
    session: Session | None = None,
) -> list[Alert]:
    """Fetch every alert in effect for a two-letter state or marine area."""
    alerts = _get_alerts({"area": state_code.upper()}, timeout, session)
    logger.debug("NWS: %d active alert(s) in %s", len(alerts), state_code)
    return alerts
