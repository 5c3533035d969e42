
from fastapi.testclient import TestClient

from config import settings


def test_meta_root(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"name": settings.app_name, "version": settings.app_version}


def test_meta_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": settings.app_version}


def test_v1_health(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_v1_info(client: TestClient) -> None:
    response = client.get("/api/v1/info")
    assert response.status_code == 200
    payload = response.json()
    assert payload["name"] == settings.app_name
    assert payload["version"] == settings.app_version
    assert payload["debug"] == settings.debug
    assert payload["cors_origins"] == settings.cors_origins
    assert payload["station_cache_ttl"] == settings.station_cache_ttl
    assert payload["forecast_cache_ttl"] == settings.forecast_cache_ttl
    assert payload["default_range_km"] == settings.default_range_km


def test_openapi_lists_dwd_routes(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]
    assert "/api/v1/dwd/stations-by-place" in paths
    assert "/api/v1/dwd/stations-by-location" in paths
    assert "/api/v1/dwd/forecast-by-location" in paths
