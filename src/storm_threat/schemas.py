"""Pydantic schemas for the raw upstream payloads.

Only the fields the extractors read are declared; everything else is
ignored. A payload that fails validation is treated as a failure of that
source, never as an empty result.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -- NWS /alerts/active (GeoJSON) ------------------------------------------


class NWSAlertProperties(_Lenient):
    id: str = ""
    event: str
    headline: str | None = None
    description: str | None = None
    instruction: str | None = None
    severity: str | None = None
    certainty: str | None = None
    urgency: str | None = None
    onset: datetime | None = None
    expires: datetime | None = None
    sender_name: str | None = Field(default=None, alias="senderName")
    area_desc: str | None = Field(default=None, alias="areaDesc")


class NWSAlertFeature(_Lenient):
    properties: NWSAlertProperties


class NWSAlertCollection(_Lenient):
    features: list[NWSAlertFeature]


# -- FEMA Open Shelters (ArcGIS JSON) ---------------------------------------


class FemaShelterAttributes(_Lenient):
    object_id: int | None = Field(default=None, alias="OBJECTID")
    name: str | None = Field(default=None, alias="SHELTER_NAME")
    address: str | None = Field(default=None, alias="ADDRESS")
    city: str | None = Field(default=None, alias="CITY")
    state: str | None = Field(default=None, alias="SHELTER_STATE")
    zip: str | int | None = Field(default=None, alias="ZIP")
    county: str | None = Field(default=None, alias="COUNTY")
    total_population: int | None = Field(default=None, alias="TOTAL_POPULATION")
    evacuees_current: int | None = Field(default=None, alias="EVACUEES_CURRENT")
    status: str | None = Field(default=None, alias="SHELTER_STATUS")
    accepting_pets: str | None = Field(default=None, alias="ACCEPTING_PETS")
    ada_compliant: str | None = Field(default=None, alias="ADA_COMPLIANT")
    org_name: str | None = Field(default=None, alias="ORG_NAME")
    last_updated: int | None = Field(default=None, alias="LAST_UPDATED")  # epoch ms


class ArcGISPoint(_Lenient):
    x: float | None = None
    y: float | None = None


class FemaShelterFeature(_Lenient):
    attributes: FemaShelterAttributes
    geometry: ArcGISPoint | None = None


class FemaShelterQuery(_Lenient):
    features: list[FemaShelterFeature] = []
    error: dict[str, Any] | None = None


# -- Open-Meteo /v1/forecast ------------------------------------------------


class OpenMeteoHourly(_Lenient):
    time: list[str]
    cape: list[float | None] = []
    lifted_index: list[float | None] = []
    convective_inhibition: list[float | None] = []
    dewpoint_2m: list[float | None] = []
    wind_gusts_10m: list[float | None] = []


class OpenMeteoDaily(_Lenient):
    time: list[str]
    cape_max: list[float | None] = []
    cape_min: list[float | None] = []
    cape_mean: list[float | None] = []
    wind_gusts_10m_max: list[float | None] = []


class OpenMeteoForecast(_Lenient):
    hourly: OpenMeteoHourly
    daily: OpenMeteoDaily | None = None
    utc_offset_seconds: int = 0
    timezone: str = "GMT"


# -- SPC outlook MapServer layer (ArcGIS JSON) ------------------------------


class OutlookAttributes(_Lenient):
    label: str | None = Field(default=None, alias="LABEL")
    label2: str | None = Field(default=None, alias="LABEL2")
    valid: str | int | None = Field(default=None, alias="VALID")
    expire: str | int | None = Field(default=None, alias="EXPIRE")
    issue: str | int | None = Field(default=None, alias="ISSUE")


# [x, y] or [x, y, z, ...]; a vertex without both coordinates is malformed.
Vertex = Annotated[list[float], Field(min_length=2)]


class OutlookGeometry(_Lenient):
    rings: list[list[Vertex]] = []


class OutlookFeature(_Lenient):
    attributes: OutlookAttributes
    geometry: OutlookGeometry | None = None


class OutlookQuery(_Lenient):
    features: list[OutlookFeature] = []
    error: dict[str, Any] | None = None
