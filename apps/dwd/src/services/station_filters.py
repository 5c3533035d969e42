from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from services.dates import parse_station_date
from services.dwd_types import Station
from services.geo import haversine_km

StationPredicate = Callable[[Station], bool]


def name_filter(place: str) -> StationPredicate:
    needle = place.lower()

    def _matches(station: Station) -> bool:
        return needle in station.name.lower()

    return _matches


def recency_filter(recency_days: Optional[float], now: datetime) -> StationPredicate:
    """Keep stations whose last contact lies within ``recency_days`` of ``now``.

    ``None`` means no recency constraint at all.
    """
    if recency_days is None:
        return lambda station: True

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    try:
        window: Optional[timedelta] = timedelta(days=recency_days)
    except OverflowError:
        # wider than any representable date range
        window = None

    def _matches(station: Station) -> bool:
        last_contact = parse_station_date(station.recency)
        if last_contact is None:
            return False
        if window is None:
            return True
        midnight = datetime(last_contact.year, last_contact.month, last_contact.day, tzinfo=timezone.utc)
        try:
            return midnight + window > now
        except OverflowError:
            return True

    return _matches


def geo_filter(lat: float, lng: float, range_km: float) -> StationPredicate:
    def _matches(station: Station) -> bool:
        if math.isnan(station.lat) or math.isnan(station.lng):
            return False
        return haversine_km(lat, lng, station.lat, station.lng) <= range_km

    return _matches


def all_of(*predicates: Optional[StationPredicate]) -> StationPredicate:
    active = [predicate for predicate in predicates if predicate is not None]

    def _matches(station: Station) -> bool:
        return all(predicate(station) for predicate in active)

    return _matches
