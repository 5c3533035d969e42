from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from services.dwd_types import ForecastBundle, ForecastDay, ForecastResult, Station

logger = logging.getLogger("nexus.dwd.forecast")

# DWD marks absent readings with this value instead of omitting them
MISSING_VALUE = 32767


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number == MISSING_VALUE:
        return None
    return number


def _safe_int(value: Any) -> Optional[int]:
    number = _safe_float(value)
    if number is None:
        return None
    return int(number)


def _tenths_to_celsius(value: Any) -> Optional[float]:
    number = _safe_float(value)
    if number is None:
        return None
    return round(number / 10.0, 1)


def parse_forecast_days(payload: Any) -> ForecastBundle:
    """Convert one station's upstream payload into ordered ``ForecastDay`` rows."""
    if not isinstance(payload, Mapping):
        return []
    days = payload.get("days")
    if not isinstance(days, list):
        return []
    bundle: ForecastBundle = []
    for entry in days:
        if not isinstance(entry, Mapping):
            logger.debug("Skipping non-object forecast day %r", entry)
            continue
        day_date = entry.get("dayDate")
        if not isinstance(day_date, str) or not day_date:
            logger.debug("Skipping forecast day without date: %r", entry)
            continue
        bundle.append(
            ForecastDay(
                date=day_date,
                temperature_min=_tenths_to_celsius(entry.get("temperatureMin")),
                temperature_max=_tenths_to_celsius(entry.get("temperatureMax")),
                precipitation=_safe_float(entry.get("precipitation")),
                icon=_safe_int(entry.get("icon")),
            )
        )
    return bundle


def distinct_codes(stations: Iterable[Station]) -> List[str]:
    return list(dict.fromkeys(station.code for station in stations if station.code))


def aggregate_forecasts(stations: Iterable[Station], forecast_map: Mapping[str, Any]) -> List[ForecastResult]:
    """Join stations with their forecasts, one result per distinct code.

    A station the upstream map has no entry for is kept with an empty
    forecast. When several stations share a code the first one wins.
    """
    results: List[ForecastResult] = []
    seen: set[str] = set()
    missing: List[str] = []
    for station in stations:
        if not station.code or station.code in seen:
            continue
        seen.add(station.code)
        payload = forecast_map.get(station.code)
        if payload is None:
            missing.append(station.code)
        results.append(ForecastResult(station=station, forecast=parse_forecast_days(payload)))
    if missing:
        logger.info("No forecast data for station(s) %s", ", ".join(missing))
    return results
