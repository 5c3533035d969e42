from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol

from config import settings
from services.dwd_client import dwd_client
from services.dwd_forecast import aggregate_forecasts, distinct_codes
from services.dwd_types import ForecastResult, Station, StationWithDistance
from services.geo import haversine_km
from services.station_filters import StationPredicate, all_of, geo_filter, name_filter, recency_filter
from services.station_table import ColumnMap, SchemaDriftError, parse_station_table
from services.ttl_cache import TtlCache, make_cache_key

logger = logging.getLogger("nexus.dwd.stations")


class StationFetcher(Protocol):
    async def fetch_station_list_html(self) -> str: ...

    async def fetch_forecasts_by_codes(self, codes: Iterable[str]) -> Mapping[str, Any]: ...


class StationDirectory:
    """Station and forecast queries over the DWD station table.

    Parsed lookups are cached for ``settings.station_cache_ttl`` seconds and
    forecast lookups for ``settings.forecast_cache_ttl`` seconds. Results keep
    the upstream row order; callers that need nearest-first must sort by
    ``StationWithDistance.distance`` themselves. The recency window is
    evaluated against the clock when a lookup is computed, so a cached
    recency-filtered answer can lag ``now`` by up to ``station_cache_ttl``.
    """

    def __init__(
        self,
        fetcher: StationFetcher,
        *,
        cache: Optional[TtlCache[str, Any]] = None,
        columns: Optional[ColumnMap] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache: TtlCache[str, Any] = cache or TtlCache(name="dwd-lookup")
        self._columns = columns
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Public API ---------------------------------------------------------
    async def stations_by_name(self, place: str, recency_days: Optional[float] = None) -> List[Station]:
        key = make_cache_key("name", place, recency_days)
        return await self._lookup(
            key,
            lambda: all_of(name_filter(place), recency_filter(recency_days, self._clock())),
        )

    async def stations_by_location(
        self,
        lat: float,
        lng: float,
        range_km: float,
        recency_days: Optional[float] = None,
    ) -> List[Station]:
        key = make_cache_key("location", lat, lng, range_km, recency_days)
        return await self._lookup(
            key,
            lambda: all_of(geo_filter(lat, lng, range_km), recency_filter(recency_days, self._clock())),
        )

    async def stations_by_location_with_distance(
        self,
        lat: float,
        lng: float,
        range_km: float,
        recency_days: Optional[float] = None,
    ) -> List[StationWithDistance]:
        stations = await self.stations_by_location(lat, lng, range_km, recency_days)
        return [
            StationWithDistance(
                point=(lat, lng),
                distance=haversine_km(lat, lng, station.lat, station.lng),
                station=station,
            )
            for station in stations
        ]

    async def forecast(
        self,
        lat: float,
        lng: float,
        range_km: float,
        recency_days: Optional[float] = None,
    ) -> List[ForecastResult]:
        stations = await self.stations_by_location(lat, lng, range_km, recency_days)
        codes = distinct_codes(stations)
        if not codes:
            return []
        key = make_cache_key("forecast", ",".join(codes))
        forecast_map = await self._cache.get_or_compute(
            key,
            settings.forecast_cache_ttl,
            lambda: self._fetcher.fetch_forecasts_by_codes(codes),
        )
        return aggregate_forecasts(stations, forecast_map)

    def clear(self) -> None:
        self._cache.clear()

    # Helpers ------------------------------------------------------------
    async def _lookup(self, key: str, build_predicate: Callable[[], StationPredicate]) -> List[Station]:
        try:
            stations = await self._cache.get_or_compute(
                key,
                settings.station_cache_ttl,
                lambda: self._scan(build_predicate()),
            )
        except SchemaDriftError as exc:
            logger.warning("Station table layout not recognised, returning no stations: %s", exc)
            return []
        return list(stations)

    async def _scan(self, predicate: StationPredicate) -> List[Station]:
        markup = await self._fetcher.fetch_station_list_html()
        start = time.perf_counter()
        stations = parse_station_table(markup, predicate, self._resolve_columns())
        dur_ms = (time.perf_counter() - start) * 1000.0
        logger.info("Parsed station table: %d match(es) in %.1f ms", len(stations), dur_ms)
        return stations

    def _resolve_columns(self) -> ColumnMap:
        if self._columns is not None:
            return self._columns
        return ColumnMap.from_mapping(settings.station_columns)


station_directory = StationDirectory(dwd_client)
