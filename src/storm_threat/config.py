"""Configuration model for the storm threat aggregator."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

CascadeMethod = Literal["alerts", "predictive"]
OutputFormat = Literal["json", "markdown"]


class ThreatConfig(BaseSettings):
    """All configurable parameters for a threat assessment.

    Values can be set via constructor arguments, environment variables
    prefixed with STORM_THREAT_, or defaults.
    """

    model_config = {"env_prefix": "STORM_THREAT_"}

    report_radius_miles: float = Field(
        default=100.0, ge=0.0, description="Radius (mi) for counting today's storm reports."
    )
    shelter_radius_miles: float = Field(
        default=50.0, ge=0.0, description="Radius (mi) for nearby open shelters."
    )
    state_code: str = Field(
        default="OK",
        min_length=2,
        max_length=2,
        description="Two-letter state used for discussions and state-wide queries.",
    )
    request_timeout: int = Field(
        default=15, ge=1, le=120, description="Per-request HTTP timeout in seconds."
    )
    bulk_request_timeout: int = Field(
        default=30, ge=1, le=300, description="Timeout for nationwide/state-wide queries."
    )
    user_agent: str = Field(
        default="StormThreat/0.1 (contact@example.com)",
        description="User-Agent sent to api.weather.gov (required by NWS).",
    )
    cascade: CascadeMethod = Field(
        default="alerts",
        description="Immediate-level cascade: 'alerts' (default) or 'predictive'.",
    )
    max_workers: int = Field(
        default=8, ge=1, le=32, description="Thread pool size for concurrent fetches."
    )
    include_state_alerts: bool = Field(
        default=False, description="Also fetch state-wide alerts."
    )
    include_state_shelters: bool = Field(
        default=False, description="Also fetch every open shelter in the state."
    )
