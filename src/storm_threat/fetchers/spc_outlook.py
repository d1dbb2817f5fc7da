"""SPC Day 1 categorical convective outlook fetcher."""

from __future__ import annotations

import logging

from requests import Session

from storm_threat.errors import MalformedPayloadError
from storm_threat.http import create_session
from storm_threat.models import OutlookRisk, OutlookZone, Source
from storm_threat.schemas import OutlookQuery

logger = logging.getLogger(__name__)

SPC_OUTLOOK_URL = (
    "https://mapservices.weather.noaa.gov/vector/rest/services/outlooks/SPC_wx_outlks/MapServer"
)
DAY1_CATEGORICAL_LAYER = 1

RISK_DESCRIPTIONS: dict[OutlookRisk, str] = {
    OutlookRisk.NONE: "No severe weather expected",
    OutlookRisk.TSTM: "General thunderstorms possible",
    OutlookRisk.MRGL: "Marginal risk - Isolated severe storms possible",
    OutlookRisk.SLGT: "Slight risk - Scattered severe storms possible",
    OutlookRisk.ENH: "Enhanced risk - Numerous severe storms possible",
    OutlookRisk.MDT: "Moderate risk - Widespread severe storms likely",
    OutlookRisk.HIGH: "High risk - Severe weather outbreak expected",
}


def parse_risk_label(label: str | None) -> OutlookRisk | None:
    """Map an outlook label such as "SLGT" to OutlookRisk; None if unrecognized."""
    if not label:
        return None
    try:
        return OutlookRisk[label.strip().upper()]
    except KeyError:
        return None


def parse_outlook(payload: dict) -> list[OutlookZone]:
    """Convert an ArcGIS layer query into OutlookZones, skipping unknown labels."""
    query = OutlookQuery.model_validate(payload)
    if query.error is not None:
        raise MalformedPayloadError(
            Source.OUTLOOK.value, f"ArcGIS error: {query.error.get('message', query.error)}"
        )

    zones: list[OutlookZone] = []
    for feat in query.features:
        attrs = feat.attributes
        label = attrs.label or attrs.label2
        risk = parse_risk_label(label)
        if risk is None or risk is OutlookRisk.NONE:
            continue
        zones.append(
            OutlookZone(
                risk=risk,
                label=label or "",
                rings=feat.geometry.rings if feat.geometry else [],
                valid=None if attrs.valid is None else str(attrs.valid),
                expire=None if attrs.expire is None else str(attrs.expire),
                issue=None if attrs.issue is None else str(attrs.issue),
            )
        )
    return zones


def fetch_day1_outlook(
    timeout: int = 15,
    session: Session | None = None,
) -> list[OutlookZone]:
    """Fetch every Day 1 categorical outlook zone nationwide, in WGS84."""
    if session is None:
        session = create_session()

    resp = session.get(
        f"{SPC_OUTLOOK_URL}/{DAY1_CATEGORICAL_LAYER}/query",
        params={"where": "1=1", "outFields": "*", "outSR": "4326", "f": "json"},
        timeout=timeout,
    )
    resp.raise_for_status()
    zones = parse_outlook(resp.json())
    logger.debug("SPC outlook: %d categorical zone(s)", len(zones))
    return zones
