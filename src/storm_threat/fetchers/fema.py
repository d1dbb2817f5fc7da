"""FEMA National Shelter System (Open Shelters) fetcher."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from requests import Session

from storm_threat.errors import MalformedPayloadError
from storm_threat.geo import filter_within_radius
from storm_threat.http import create_session
from storm_threat.models import Shelter, Source
from storm_threat.schemas import FemaShelterFeature, FemaShelterQuery

logger = logging.getLogger(__name__)

FEMA_SHELTERS_URL = (
    "https://gis.fema.gov/arcgis/rest/services/NSS/OpenShelters/MapServer/0/query"
)

METERS_PER_MILE = 1609.34


def _to_shelter(feat: FemaShelterFeature) -> Shelter:
    attrs = feat.attributes
    geom = feat.geometry
    total = attrs.total_population
    current = attrs.evacuees_current
    last_updated = (
        datetime.fromtimestamp(attrs.last_updated / 1000, tz=timezone.utc)
        if attrs.last_updated
        else None
    )
    return Shelter(
        id=attrs.object_id,
        name=attrs.name or "",
        latitude=geom.y if geom else None,
        longitude=geom.x if geom else None,
        address=attrs.address or "",
        city=attrs.city or "",
        state=attrs.state or "",
        zip=str(attrs.zip) if attrs.zip is not None else "",
        county=attrs.county or "",
        capacity_total=total,
        capacity_current=current,
        capacity_available=total - current if total and current is not None else None,
        status=attrs.status or "",
        is_open=attrs.status == "OPEN",
        accepts_pets=attrs.accepting_pets == "Y",
        ada_accessible=attrs.ada_compliant == "Y",
        organization=attrs.org_name or "",
        last_updated=last_updated,
    )


def parse_shelters(payload: dict, source: Source = Source.SHELTERS) -> list[Shelter]:
    """Convert an ArcGIS query response into Shelters.

    ArcGIS reports query errors with HTTP 200 and an ``error`` object, which
    is treated as a failure rather than an empty result.
    """
    query = FemaShelterQuery.model_validate(payload)
    if query.error is not None:
        raise MalformedPayloadError(
            source.value, f"ArcGIS error: {query.error.get('message', query.error)}"
        )
    return [_to_shelter(feat) for feat in query.features]


def _query(params: dict[str, str], timeout: int, session: Session | None) -> dict:
    if session is None:
        session = create_session()
    base = {"outFields": "*", "f": "json", "returnGeometry": "true"}
    resp = session.get(FEMA_SHELTERS_URL, params={**base, **params}, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def fetch_nearby_shelters(
    latitude: float,
    longitude: float,
    radius_miles: float = 50.0,
    timeout: int = 15,
    session: Session | None = None,
) -> list[Shelter]:
    """Fetch open shelters within ``radius_miles``, nearest first.

    The ArcGIS buffer query narrows the result server-side; distances are
    then recomputed with Haversine so the radius rule matches storm reports.
    """
    payload = _query(
        {
            "where": "SHELTER_STATUS='OPEN'",
            "geometry": f"{longitude},{latitude}",
            "geometryType": "esriGeometryPoint",
            "inSR": "4326",
            "outSR": "4326",
            "spatialRel": "esriSpatialRelIntersects",
            "distance": str(radius_miles * METERS_PER_MILE),
            "units": "esriSRUnit_Meter",
        },
        timeout,
        session,
    )
    shelters = parse_shelters(payload, Source.SHELTERS)
    nearby = filter_within_radius(shelters, latitude, longitude, radius_miles)
    logger.debug("FEMA: %d open shelter(s) within %.0f mi", len(nearby), radius_miles)
    return nearby


def fetch_state_shelters(
    state_code: str,
    timeout: int = 30,
    session: Session | None = None,
) -> list[Shelter]:
    """Fetch every shelter listed for a state, most available capacity first."""
    payload = _query(
        {"where": f"SHELTER_STATE='{state_code.upper()}'", "outSR": "4326"},
        timeout,
        session,
    )
    shelters = parse_shelters(payload, Source.STATE_SHELTERS)
    shelters.sort(key=lambda s: s.capacity_available or 0, reverse=True)
    logger.debug("FEMA: %d shelter(s) in %s", len(shelters), state_code)
    return shelters
