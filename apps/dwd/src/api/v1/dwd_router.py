from __future__ import annotations

import math

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from config import settings
from services.dwd_client import UpstreamFetchError
from services.dwd_stations import station_directory
from services.dwd_types import ForecastDay, ForecastResult, Station, StationWithDistance

router = APIRouter(prefix="/dwd", tags=["dwd"])


def validate_lat(lat: float = Query(..., ge=-90.0, le=90.0)) -> float:
    return lat


def validate_lng(lng: float = Query(..., ge=-180.0, le=180.0)) -> float:
    return lng


def validate_range(
    range_km: float | None = Query(None, alias="range", gt=0.0, description="Search radius in km"),
) -> float:
    if range_km is None:
        return settings.default_range_km
    return range_km


def validate_recency(
    recency: float | None = Query(None, ge=0.0, allow_inf_nan=False, description="Last measurement not older than <recency> days"),
) -> float | None:
    return recency


class StationModel(BaseModel):
    name: str
    id: str
    code: str
    lat: float | None = Field(default=None, description="Latitude in decimal degrees, null when unreadable upstream")
    lng: float | None = Field(default=None, description="Longitude in decimal degrees, null when unreadable upstream")
    altitude: int = Field(description="Station height in meters")
    recency: str = Field(description="Last contact date (YYYY-MM-DD), empty when unknown")


class PointModel(BaseModel):
    lat: float
    lng: float


class StationWithDistanceModel(BaseModel):
    point: PointModel
    distance: float = Field(description="Distance from the requested point in kilometers")
    station: StationModel


class ForecastDayModel(BaseModel):
    date: str
    temperature_min: float | None = None
    temperature_max: float | None = None
    temperature_unit: str = "°C"
    precipitation: float | None = None
    icon: int | None = None


class ForecastModel(BaseModel):
    station: StationModel
    forecast: list[ForecastDayModel] = Field(default_factory=list)


@router.get("/stations-by-place", response_model=list[StationModel])
async def stations_by_place(
    place: str = Query(..., min_length=1, description="Part of the station name"),
    recency: float | None = Depends(validate_recency),
) -> list[StationModel]:
    try:
        stations = await station_directory.stations_by_name(place, recency)
    except UpstreamFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [_to_station_model(station) for station in stations]


@router.get(
    "/stations-by-location",
    response_model=list[StationWithDistanceModel],
    description="Stations within range in station-list order; sort by distance client side if needed.",
)
async def stations_by_location(
    lat: float = Depends(validate_lat),
    lng: float = Depends(validate_lng),
    range_km: float = Depends(validate_range),
    recency: float | None = Depends(validate_recency),
) -> list[StationWithDistanceModel]:
    try:
        stations = await station_directory.stations_by_location_with_distance(lat, lng, range_km, recency)
    except UpstreamFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [_to_distance_model(item) for item in stations]


@router.get("/forecast-by-location", response_model=list[ForecastModel])
async def forecast_by_location(
    lat: float = Depends(validate_lat),
    lng: float = Depends(validate_lng),
    range_km: float = Depends(validate_range),
) -> list[ForecastModel]:
    try:
        results = await station_directory.forecast(lat, lng, range_km)
    except UpstreamFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [_to_forecast_model(result) for result in results]


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def _to_station_model(station: Station) -> StationModel:
    return StationModel(
        name=station.name,
        id=station.id,
        code=station.code,
        lat=_finite(station.lat),
        lng=_finite(station.lng),
        altitude=station.altitude,
        recency=station.recency,
    )


def _to_distance_model(item: StationWithDistance) -> StationWithDistanceModel:
    lat, lng = item.point
    return StationWithDistanceModel(
        point=PointModel(lat=lat, lng=lng),
        distance=item.distance,
        station=_to_station_model(item.station),
    )


def _to_day_model(day: ForecastDay) -> ForecastDayModel:
    return ForecastDayModel(
        date=day.date,
        temperature_min=day.temperature_min,
        temperature_max=day.temperature_max,
        temperature_unit=day.temperature_unit,
        precipitation=day.precipitation,
        icon=day.icon,
    )


def _to_forecast_model(result: ForecastResult) -> ForecastModel:
    return ForecastModel(
        station=_to_station_model(result.station),
        forecast=[_to_day_model(day) for day in result.forecast],
    )
