from pathlib import Path
from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Load apps/dwd/.env and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "Nexus DWD Service"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = 3000

    # Upstream DWD endpoints
    dwd_station_list_url: str = Field(
        default="https://www.dwd.de/DE/leistungen/klimadatendeutschland/statliste/statlex_html.html?view=nasPublication&nn=16102",
        description="HTML page listing every DWD observation station.",
    )
    dwd_forecast_url: str = Field(
        default="https://dwd.api.proxy.bund.dev/v30/stationOverviewExtended",
        description="JSON endpoint returning forecasts keyed by station code.",
    )
    dwd_user_agent: str = Field(
        default="NexusDWD/0.1.0 (support@example.com)",
        description="User-Agent sent to the DWD endpoints.",
    )
    dwd_request_timeout: float = Field(default=10.0, ge=1.0, description="Timeout in seconds for DWD HTTP calls")

    # Transport-level response caching
    station_list_http_ttl: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Cache duration (seconds) for the raw station list HTML.",
    )
    forecast_http_ttl: int = Field(
        default=15 * 60,
        ge=0,
        description="Cache duration (seconds) for raw forecast responses.",
    )

    # Query result caching
    station_cache_ttl: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Cache duration (seconds) for parsed and filtered station lookups.",
    )
    forecast_cache_ttl: int = Field(
        default=30 * 60,
        ge=0,
        description="Cache duration (seconds) for forecast lookups.",
    )

    default_range_km: float = Field(default=10.0, gt=0.0, description="Search radius used when a query omits one")
    station_columns: Dict[str, int] = Field(
        default_factory=dict,
        description="Overrides for the positional station table layout, e.g. {\"recency\": 12}.",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                return json.loads(s)
            if s in ("", "*"):
                return ["*"]
            return [p.strip() for p in s.split(",")]
        return v

settings = Settings()
