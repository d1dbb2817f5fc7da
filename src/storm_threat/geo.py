"""Geographic utilities: Haversine distance, radius filtering, zone membership."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol, TypeVar

from shapely.geometry import LinearRing, Point, Polygon

EARTH_RADIUS_MILES = 3959.0


class _Located(Protocol):
    latitude: float | None
    longitude: float | None
    distance_miles: float | None


R = TypeVar("R", bound=_Located)


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance in statute miles between two points."""
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def filter_within_radius(
    records: Iterable[R],
    latitude: float,
    longitude: float,
    radius_miles: float,
) -> list[R]:
    """Return records within ``radius_miles``, nearest first.

    Records without coordinates are skipped. Each returned record is a copy
    with ``distance_miles`` set (rounded to 0.1 mi); the inclusion test uses
    the unrounded distance.
    """
    nearby: list[tuple[float, R]] = []
    for rec in records:
        if rec.latitude is None or rec.longitude is None:
            continue
        d = haversine_miles(latitude, longitude, rec.latitude, rec.longitude)
        if d <= radius_miles:
            nearby.append((d, replace(rec, distance_miles=round(d, 1))))
    nearby.sort(key=lambda pair: pair[0])
    return [rec for _, rec in nearby]


def point_in_rings(latitude: float, longitude: float, rings: list[list[list[float]]]) -> bool:
    """Test whether a point falls inside an ESRI polygon given as [x, y] rings.

    ESRI writes outer rings clockwise and holes counter-clockwise. Points on
    an outer boundary count as inside.
    """
    point = Point(longitude, latitude)
    outers: list[Polygon] = []
    holes: list[Polygon] = []
    for ring in rings:
        if len(ring) < 3:
            continue
        coords = [(pt[0], pt[1]) for pt in ring]
        poly = Polygon(coords)
        if not poly.is_valid:
            poly = poly.buffer(0)
        if LinearRing(coords).is_ccw:
            holes.append(poly)
        else:
            outers.append(poly)
    if not outers:
        # Orientation not as ESRI documents it; treat every ring as an outer.
        outers, holes = holes, []
    if not any(poly.covers(point) for poly in outers):
        return False
    return not any(hole.contains(point) for hole in holes)
