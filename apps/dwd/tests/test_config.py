from config import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.app_name == "Nexus DWD Service"
    assert settings.app_version == "0.1.0"
    assert settings.station_cache_ttl == 24 * 60 * 60
    assert settings.forecast_cache_ttl == 30 * 60
    assert settings.forecast_http_ttl < settings.station_list_http_ttl
    assert settings.default_range_km == 10.0
    assert settings.station_columns == {}


def test_settings_normalizes_cors_from_string():
    settings = Settings(cors_origins="http://example.com, http://localhost")
    assert settings.cors_origins == ["http://example.com", "http://localhost"]


def test_settings_handles_case_insensitive_env(monkeypatch):
    monkeypatch.setenv("DWD_FORECAST_URL", "https://override.test/forecast")
    monkeypatch.setenv("station_cache_ttl", "60")
    settings = Settings()
    assert settings.dwd_forecast_url == "https://override.test/forecast"
    assert settings.station_cache_ttl == 60


def test_settings_parses_column_overrides_from_env(monkeypatch):
    monkeypatch.setenv("STATION_COLUMNS", '{"recency": 12}')
    settings = Settings()
    assert settings.station_columns == {"recency": 12}
