from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class Station:
    """A single DWD observation site as listed in the station table.

    ``recency`` holds the last contact date as ``YYYY-MM-DD`` or an empty
    string when the upstream cell could not be read. Unreadable coordinates
    are ``nan`` and an unreadable altitude is ``0``.
    """

    name: str
    id: str
    code: str
    lat: float
    lng: float
    altitude: int
    recency: str


@dataclass(frozen=True, slots=True)
class StationWithDistance:
    point: tuple[float, float]
    distance: float
    station: Station


@dataclass(frozen=True, slots=True)
class ForecastDay:
    date: str
    temperature_min: Optional[float]
    temperature_max: Optional[float]
    precipitation: Optional[float]
    icon: Optional[int]
    temperature_unit: str = "°C"


ForecastBundle = List[ForecastDay]


@dataclass(frozen=True, slots=True)
class ForecastResult:
    station: Station
    forecast: ForecastBundle = field(default_factory=list)
