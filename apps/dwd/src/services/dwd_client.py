from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import httpx

from config import settings
from services.ttl_cache import TtlCache, make_cache_key

logger = logging.getLogger("nexus.dwd.client")


class UpstreamFetchError(RuntimeError):
    """Raised when a DWD endpoint is unreachable, times out or answers with an error."""


class DwdClient:
    """Thin async transport for the two DWD resources the service consumes.

    Responses are kept in memory for ``settings.station_list_http_ttl`` and
    ``settings.forecast_http_ttl`` seconds respectively. Failures are never
    cached.
    """

    def __init__(
        self,
        *,
        station_list_url: Optional[str] = None,
        forecast_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[TtlCache[str, Any]] = None,
    ) -> None:
        self._station_list_url = station_list_url or settings.dwd_station_list_url
        self._forecast_url = forecast_url or settings.dwd_forecast_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._cache: TtlCache[str, Any] = cache or TtlCache(name="dwd-http")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": settings.dwd_user_agent,
                "Accept-Charset": "utf-8",
            }
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=settings.dwd_request_timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def clear(self) -> None:
        self._cache.clear()

    async def fetch_station_list_html(self) -> str:
        key = make_cache_key("stations", self._station_list_url)
        return await self._cache.get_or_compute(key, settings.station_list_http_ttl, self._download_station_list)

    async def fetch_forecasts_by_codes(self, codes: Iterable[str]) -> dict[str, Any]:
        ordered = list(dict.fromkeys(code for code in codes if code))
        if not ordered:
            return {}
        key = make_cache_key("forecast", ",".join(ordered))
        return await self._cache.get_or_compute(
            key,
            settings.forecast_http_ttl,
            lambda: self._download_forecasts(ordered),
        )

    async def _download_station_list(self) -> str:
        response = await self._get(self._station_list_url, headers={"Accept": "text/html"})
        logger.info("Fetched DWD station list (%d bytes)", len(response.content))
        return response.text

    async def _download_forecasts(self, codes: list[str]) -> dict[str, Any]:
        response = await self._get(
            self._forecast_url,
            params={"stationIds": ",".join(codes)},
            headers={"Accept": "application/json"},
        )
        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("DWD forecast response is not JSON", exc_info=exc)
            raise UpstreamFetchError("invalid forecast json") from exc
        if not isinstance(payload, dict):
            raise UpstreamFetchError("forecast response is not an object keyed by station code")
        logger.info("Fetched DWD forecasts for %d of %d stations", len(payload), len(codes))
        return payload

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        logger.debug("Fetching %s", url)
        try:
            response = await client.get(url, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("Request to %s timed out", url)
            raise UpstreamFetchError(f"timeout fetching {url}") from exc
        except httpx.HTTPStatusError as exc:
            logger.error("DWD returned %s for %s", exc.response.status_code, url)
            raise UpstreamFetchError(f"HTTP {exc.response.status_code} from {url}") from exc
        except httpx.HTTPError as exc:
            logger.error("Request to %s failed: %s", url, exc)
            raise UpstreamFetchError(f"request to {url} failed") from exc
        return response


dwd_client = DwdClient()
