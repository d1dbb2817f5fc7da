"""FastAPI wrapper for the storm threat aggregator."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, Response

from storm_threat import __version__
from storm_threat.cache import TTLCache
from storm_threat.config import OutputFormat, ThreatConfig
from storm_threat.errors import InvalidQueryError
from storm_threat.exporters import render_markdown
from storm_threat.pipeline import ThreatAggregator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Create the process-wide cache and store startup state for /health."""
    application.state.start_time = datetime.now(tz=timezone.utc)
    application.state.last_run = None
    application.state.run_count = 0
    application.state.cache = TTLCache()
    yield


app = FastAPI(
    title="Storm Threat API",
    description="Real-time tornado and severe-weather threat assessment.",
    version=__version__,
    lifespan=lifespan,
)


def _aggregator() -> ThreatAggregator:
    return ThreatAggregator(ThreatConfig(), cache=app.state.cache)


@app.get("/health")
def health() -> dict[str, Any]:
    """Server health check with uptime, version, run count, and cache size."""
    now = datetime.now(tz=timezone.utc)
    return {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round((now - app.state.start_time).total_seconds(), 1),
        "last_run": app.state.last_run.isoformat() if app.state.last_run else None,
        "run_count": app.state.run_count,
        "cache_entries": len(app.state.cache),
    }


@app.get("/assess")
def assess(
    lat: Annotated[float, Query(ge=-90.0, le=90.0, description="Latitude.")],
    lon: Annotated[float, Query(ge=-180.0, le=180.0, description="Longitude.")],
    radius: Annotated[
        float | None, Query(ge=0.0, description="Storm report radius in miles."),
    ] = None,
    shelter_radius: Annotated[
        float | None, Query(ge=0.0, description="Shelter search radius in miles."),
    ] = None,
    state: Annotated[
        str | None, Query(description="Two-letter state code for discussions."),
    ] = None,
    state_alerts: Annotated[
        bool, Query(description="Also fetch state-wide alerts."),
    ] = False,
    format: Annotated[
        OutputFormat, Query(description="Output format."),
    ] = "json",
) -> Response:
    """Assess the storm threat for a location.

    Query parameters mirror the CLI options. The ``format`` param controls
    the response content type (json, markdown).
    """
    try:
        report = _aggregator().assess(
            lat,
            lon,
            radius,
            state,
            shelter_radius_miles=shelter_radius,
            include_state_alerts=state_alerts,
        )
    except InvalidQueryError as exc:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    app.state.last_run = datetime.now(tz=timezone.utc)
    app.state.run_count += 1

    if format == "markdown":
        return Response(content=render_markdown(report), media_type="text/markdown; charset=utf-8")
    return JSONResponse(content=report.to_dict())


@app.get("/tornado-danger")
def tornado_danger(
    lat: Annotated[float, Query(ge=-90.0, le=90.0, description="Latitude.")],
    lon: Annotated[float, Query(ge=-180.0, le=180.0, description="Longitude.")],
) -> dict[str, Any]:
    """Alerts-only poll for an active tornado alert at a point."""
    return _aggregator().check_tornado_danger(lat, lon).to_dict()
